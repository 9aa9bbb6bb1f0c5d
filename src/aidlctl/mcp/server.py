"""FastMCP server setup.

Optional extra — guarded behind try/except ImportError.
Transport: stdio default, streamable HTTP optional.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aidlctl.config.settings import AidlSettings

mcp_available = False
_FastMCP: Any = None

try:
    from mcp.server.fastmcp import FastMCP as _FastMCP  # type: ignore[no-redef,import-not-found]

    mcp_available = True
except ImportError:
    pass

__all__ = ["create_server", "mcp_available"]


def create_server(
    settings: AidlSettings,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> Any:
    """Create and configure the MCP server.

    Builds a RecordStore from *settings* and registers the record tools.
    Returns the FastMCP instance.

    *host* and *port* configure the bind address for HTTP transports
    (sse, streamable-http). They are ignored when using stdio.

    Raises RuntimeError if the mcp extra is not installed.
    """
    if not mcp_available or _FastMCP is None:
        msg = "MCP extra not installed. Install with: pip install aidlctl[mcp]"
        raise RuntimeError(msg)

    from aidlctl.infrastructure.store import RecordStore
    from aidlctl.mcp.tools import register_tools

    store = RecordStore(settings)
    server = _FastMCP(settings.mcp.name, host=host, port=port)
    register_tools(server, store)
    return server
