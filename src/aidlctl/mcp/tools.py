"""MCP tool definitions — 8 tools across 3 categories.

Categories: Creation (1), Lifecycle (3), Query (4).
Each tool has a ``<name>_impl`` function testable without the mcp package.
``register_tools()`` wraps them with FastMCP decorators; argument schemas
come from the type hints (domain models for structured fields).

Every tool returns ``{"ok": True, ...}`` or
``{"ok": False, "error": <kind>, "message": ...}`` and never raises.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

from pydantic import BaseModel, Field

from aidlctl.domain.record import Consequences, Cost, Risk

if TYPE_CHECKING:
    from aidlctl.infrastructure.store import RecordStore


def _plain(value: Any) -> Any:
    """Dump pydantic argument models (and mappings of them) to plain data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


# ---------------------------------------------------------------------------
# Creation tools (1)
# ---------------------------------------------------------------------------


def create_impl(
    store: RecordStore,
    record_id: str,
    title: str,
    *,
    context: str,
    decision: str,
    rationale: str,
    assumptions: list[str] | None = None,
    risks: dict[str, Any] | None = None,
    cost: Any = None,
    consequences: Any = None,
    expected_result: list[str] | None = None,
) -> dict[str, Any]:
    """Create a new decision record."""
    from aidlctl.services.create import CreateService

    result = CreateService(store).create(
        record_id,
        title,
        context=context,
        decision=decision,
        rationale=rationale,
        assumptions=assumptions,
        risks=_plain(risks),
        cost=_plain(cost),
        consequences=_plain(consequences),
        expected_result=expected_result,
    )
    return result.to_tool_response()


# ---------------------------------------------------------------------------
# Lifecycle tools (3)
# ---------------------------------------------------------------------------


def update_status_impl(store: RecordStore, record_id: str, status: str) -> dict[str, Any]:
    """Set a record's status."""
    from aidlctl.services.update import UpdateService

    return UpdateService(store).update_status(record_id, status).to_tool_response()


def supersede_impl(
    store: RecordStore,
    record_id: str,
    superseded_by: str | int,
) -> dict[str, Any]:
    """Mark a record as superseded by another."""
    from aidlctl.services.update import UpdateService

    return UpdateService(store).supersede(record_id, superseded_by).to_tool_response()


def update_impl(store: RecordStore, record_id: str, *, changes: dict[str, Any]) -> dict[str, Any]:
    """Patch content fields of a record."""
    from aidlctl.services.update import UpdateService

    return UpdateService(store).update(record_id, _plain(changes)).to_tool_response()


# ---------------------------------------------------------------------------
# Query tools (4)
# ---------------------------------------------------------------------------


def get_impl(store: RecordStore, record_id: str) -> dict[str, Any]:
    """Get a full record by ID."""
    from aidlctl.services.query import QueryService

    return QueryService(store).get(record_id).to_tool_response()


def search_impl(store: RecordStore, keyword: str) -> dict[str, Any]:
    """Search record titles."""
    from aidlctl.services.query import QueryService

    return QueryService(store).search(keyword).to_tool_response()


def detail_search_impl(store: RecordStore, keyword: str) -> dict[str, Any]:
    """Search the full text of every record."""
    from aidlctl.services.query import QueryService

    return QueryService(store).detail_search(keyword).to_tool_response()


def list_impl(
    store: RecordStore,
    *,
    status: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    page: int = 1,
    page_size: int | None = None,
) -> dict[str, Any]:
    """List records with filters and pagination."""
    from aidlctl.services.query import QueryService

    result = QueryService(store).list_records(
        status=status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return result.to_tool_response()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

RecordId = Annotated[str, Field(description="Record ID, e.g. 'cache_policy'.")]


def register_tools(server: Any, store: RecordStore) -> None:
    """Register all 8 MCP tools on the FastMCP server."""

    @server.tool(name="aidl_create")  # type: ignore[untyped-decorator]
    def aidl_create(
        title: str,
        id: RecordId,  # noqa: A002
        context: str,
        decision: str,
        rationale: str,
        assumptions: list[str] | None = None,
        risks: dict[str, Risk] | None = None,
        cost: Cost | None = None,
        consequences: Consequences | None = None,
        expected_result: list[str] | None = None,
    ) -> dict[str, Any]:
        """Record a new important decision (starts PROPOSED)."""
        return create_impl(
            store,
            id,
            title,
            context=context,
            decision=decision,
            rationale=rationale,
            assumptions=assumptions,
            risks=risks,
            cost=cost,
            consequences=consequences,
            expected_result=expected_result,
        )

    @server.tool(name="aidl_get")  # type: ignore[untyped-decorator]
    def aidl_get(id: RecordId) -> dict[str, Any]:  # noqa: A002
        """Get a decision record by ID."""
        return get_impl(store, id)

    @server.tool(name="aidl_search")  # type: ignore[untyped-decorator]
    def aidl_search(keyword: str) -> dict[str, Any]:
        """Search decision record titles (case-insensitive)."""
        return search_impl(store, keyword)

    @server.tool(name="aidl_detail_search")  # type: ignore[untyped-decorator]
    def aidl_detail_search(keyword: str) -> dict[str, Any]:
        """Full-text search across decision record content."""
        return detail_search_impl(store, keyword)

    @server.tool(name="aidl_update_status")  # type: ignore[untyped-decorator]
    def aidl_update_status(
        id: RecordId,  # noqa: A002
        status: Annotated[
            str,
            Field(description="One of PROPOSED, ACCEPTED, REJECTED, FINISHED, FAILED."),
        ],
    ) -> dict[str, Any]:
        """Change the status of a decision record."""
        return update_status_impl(store, id, status)

    @server.tool(name="aidl_supersede")  # type: ignore[untyped-decorator]
    def aidl_supersede(
        id: RecordId,  # noqa: A002
        superseded_by: Annotated[
            str | int,
            Field(description="ID or sequence number of the superseding record."),
        ],
    ) -> dict[str, Any]:
        """Mark a decision record as superseded by a newer one."""
        return supersede_impl(store, id, superseded_by)

    @server.tool(name="aidl_update")  # type: ignore[untyped-decorator]
    def aidl_update(id: RecordId, fields: dict[str, Any]) -> dict[str, Any]:  # noqa: A002
        """Update content fields of a decision record (not allowed once superseded)."""
        return update_impl(store, id, changes=fields)

    @server.tool(name="aidl_list")  # type: ignore[untyped-decorator]
    def aidl_list(
        status: str | None = None,
        date_from: Annotated[str | None, Field(description="Earliest date, YYYY-MM-DD.")] = None,
        date_to: Annotated[str | None, Field(description="Latest date, YYYY-MM-DD.")] = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """List decision records, newest first, with status and date filters."""
        return list_impl(
            store,
            status=status,
            date_from=date_from,
            date_to=date_to,
            page=page,
            page_size=page_size,
        )
