"""Output formatting for the CLI (Rich for humans, JSON for machines)."""
