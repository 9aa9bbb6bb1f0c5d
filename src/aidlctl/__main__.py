"""Allow ``python -m aidlctl``."""

from aidlctl.cli import cli

cli()
