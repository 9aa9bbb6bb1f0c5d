"""aidlctl — AI decision log control utility."""

__version__ = "0.1.0"
