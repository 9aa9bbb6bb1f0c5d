"""serve — start the MCP server (requires aidlctl[mcp] extra)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from aidlctl.commands._base import AidlCommand

if TYPE_CHECKING:
    from aidlctl.commands._context import AppContext


@click.command(
    cls=AidlCommand,
    examples="""\
  # Start the MCP server (stdio transport, default)
  aidlctl serve

  # Streamable HTTP on custom host/port
  aidlctl serve --transport streamable-http --host 0.0.0.0 --port 9000""",
)
@click.option(
    "--transport",
    default=None,
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    help="MCP transport protocol (default: [mcp] transport, else stdio).",
)
@click.option("--host", default="127.0.0.1", help="Bind address (HTTP transports only).")
@click.option("--port", default=8000, type=int, help="Listen port (HTTP transports only).")
@click.pass_obj
def serve(app: AppContext, transport: str | None, host: str, port: int) -> None:
    """Start the MCP server (requires aidlctl[mcp] extra)."""
    from aidlctl.mcp.server import create_server, mcp_available

    if not mcp_available:
        click.echo("MCP not installed. Install with: pip install aidlctl[mcp]", err=True)
        raise SystemExit(1)

    server = create_server(app.settings, host=host, port=port)
    server.run(transport=transport or app.settings.mcp.transport)
