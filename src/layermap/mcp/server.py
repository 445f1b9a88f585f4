"""MCP server exposing layer map editing, preview and export tools."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from layermap.config import resolve_data_directory
from layermap.core.export.files import export_map_async
from layermap.core.grid.preview import preview_map
from layermap.core.tree.markdown import render_outline
from layermap.core.tree.navigation import get_breadcrumbs, get_siblings
from layermap.errors import ExportError, LayerMapError
from layermap.models.node import LayerMap, Node
from layermap.protocols import MapStoreProtocol
from layermap.session import LayerMapSession
from layermap.storage import MapStore


def _node_summary(node: Node) -> dict[str, Any]:
    return {
        "id": node.id,
        "title": node.title,
        "level": node.level,
        "order": node.order,
        "background_color": node.background_color,
        "child_count": len(node.children),
    }


def _map_summary(layer_map: LayerMap) -> dict[str, Any]:
    return {
        "id": layer_map.id,
        "name": layer_map.name,
        "template": layer_map.template.value,
        "updated_at": layer_map.updated_at.isoformat(),
        "root_count": len(layer_map.root_nodes),
    }


def _error(e: Exception) -> dict[str, Any]:
    return {"error": str(e)}


# --- Core functions (testable without MCP context) ---


def layermap_list_maps(session: LayerMapSession) -> dict[str, Any]:
    """List all maps and which one is current."""
    current = session.current_map
    return {
        "maps": [_map_summary(m) for m in session.maps],
        "count": len(session.maps),
        "current_map_id": current.id if current else None,
    }


def layermap_create_map(session: LayerMapSession, *, name: str, template: str) -> dict[str, Any]:
    """Create a map from a template and make it current."""
    try:
        layer_map = session.create_map(name, template)
    except ValueError as e:
        return _error(e)
    return {"map": _map_summary(layer_map)}


def layermap_load_map(session: LayerMapSession, *, map_id: str) -> dict[str, Any]:
    try:
        layer_map = session.load_map(map_id)
    except LayerMapError as e:
        return _error(e)
    return {"map": _map_summary(layer_map)}


def layermap_delete_map(session: LayerMapSession, *, map_id: str) -> dict[str, Any]:
    try:
        session.delete_map(map_id)
    except LayerMapError as e:
        return _error(e)
    return {"deleted": map_id}


def layermap_read_map(
    session: LayerMapSession,
    *,
    max_depth: int | None = None,
    include_notes: bool = True,
) -> dict[str, Any]:
    """Render the current map as a markdown outline with node ids."""
    layer_map = session.current_map
    if layer_map is None:
        return {"error": "No map is currently loaded"}
    md = render_outline(
        layer_map.root_nodes,
        max_depth=max_depth,
        include_notes=include_notes,
        include_ids=True,
    )
    return {"map": _map_summary(layer_map), "content": md}


def layermap_get_node_context(
    session: LayerMapSession, *, node_id: str, sibling_count: int = 3
) -> dict[str, Any]:
    """Get a node with its ancestors, nearby siblings and children."""
    try:
        node = session.find_node(node_id)
    except LayerMapError as e:
        return _error(e)
    roots = session.require_current_map().root_nodes
    before, after = get_siblings(roots, node_id, count=sibling_count)
    return {
        "node": {**_node_summary(node), "notes": node.notes},
        "breadcrumbs": " > ".join(a.title[:40] for a in get_breadcrumbs(roots, node_id)),
        "siblings_before": [_node_summary(s) for s in before],
        "siblings_after": [_node_summary(s) for s in after],
        "children": [_node_summary(c) for c in node.children],
    }


def layermap_add_node(
    session: LayerMapSession,
    *,
    parent_id: str | None = None,
    title: str | None = None,
    notes: str = "",
    background_color: str | None = None,
) -> dict[str, Any]:
    """Append a node under ``parent_id`` (top level when omitted)."""
    kwargs: dict[str, Any] = {"notes": notes, "background_color": background_color}
    if title is not None:
        kwargs["title"] = title
    try:
        node = session.add_node(parent_id, **kwargs)
    except (LayerMapError, ValueError) as e:
        return _error(e)
    return {"node": _node_summary(node)}


def layermap_update_node(
    session: LayerMapSession,
    *,
    node_id: str,
    title: str | None = None,
    notes: str | None = None,
    background_color: str | None = None,
    reset_color: bool = False,
) -> dict[str, Any]:
    """Edit title/notes/colour. ``reset_color`` returns to the level colour."""
    changes: dict[str, Any] = {}
    if title is not None:
        changes["title"] = title
    if notes is not None:
        changes["notes"] = notes
    if background_color is not None:
        changes["background_color"] = background_color
    elif reset_color:
        changes["background_color"] = None
    try:
        node = session.update_node(node_id, **changes)
    except (LayerMapError, ValueError) as e:
        return _error(e)
    return {"node": _node_summary(node)}


def layermap_delete_node(session: LayerMapSession, *, node_id: str) -> dict[str, Any]:
    try:
        node = session.delete_node(node_id)
    except LayerMapError as e:
        return _error(e)
    return {"deleted": _node_summary(node)}


def layermap_move_node(
    session: LayerMapSession,
    *,
    node_id: str,
    new_parent_id: str | None = None,
    new_order: int = 0,
) -> dict[str, Any]:
    try:
        node = session.move_node(node_id, new_parent_id, new_order)
    except LayerMapError as e:
        return _error(e)
    return {"node": _node_summary(node)}


def layermap_change_level(
    session: LayerMapSession, *, node_id: str, direction: str
) -> dict[str, Any]:
    """Promote or demote a node; refusals are reported, not raised."""
    try:
        result = session.change_level(node_id, direction)  # type: ignore[arg-type]
    except (LayerMapError, ValueError) as e:
        return _error(e)
    return {
        "status": result.status.value,
        "changed": result.changed,
        "message": result.message,
    }


def layermap_copy_node(session: LayerMapSession, *, node_id: str) -> dict[str, Any]:
    try:
        node = session.copy_node(node_id)
    except LayerMapError as e:
        return _error(e)
    return {"node": _node_summary(node)}


def layermap_undo(session: LayerMapSession) -> dict[str, Any]:
    return {"undone": session.undo(), "can_undo": session.history.can_undo}


def layermap_redo(session: LayerMapSession) -> dict[str, Any]:
    return {"redone": session.redo(), "can_redo": session.history.can_redo}


def layermap_preview(session: LayerMapSession, *, include_styles: bool = False) -> dict[str, Any]:
    """Return the current map's grid rows (trailing empty rows/columns trimmed)."""
    layer_map = session.current_map
    if layer_map is None:
        return {"error": "No map is currently loaded"}
    preview = preview_map(layer_map)
    rows = [list(row) for row in preview.grid.rows]
    while rows and not any(rows[-1]):
        rows.pop()
    width = max((i + 1 for row in rows for i, cell in enumerate(row) if cell), default=0)
    result: dict[str, Any] = {
        "rows": [row[:width] for row in rows],
        "row_count": preview.grid.row_count,
        "column_count": preview.grid.column_count,
    }
    if include_styles:
        result["styles"] = {
            key: {
                "background_color": style.background_color,
                "borders": {
                    side: weight
                    for side, weight in vars(style.borders).items()
                    if weight is not None
                },
            }
            for key, style in preview.styles.items()
        }
    return result


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    session: LayerMapSession
    store: MapStoreProtocol
    data_dir: Path
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Load saved maps on startup; save them again on shutdown."""
    data_dir = resolve_data_directory()
    store = MapStore(data_dir)
    session = LayerMapSession(store.load())
    logger.info("Serving {} map(s) from {}", len(session.maps), data_dir)
    try:
        yield ServerContext(session=session, store=store, data_dir=data_dir)
    finally:
        store.save(session.maps)


mcp_server = FastMCP(
    "layermap",
    instructions="""\
A layer map is a tree of titled, coloured nodes shown as a spreadsheet grid:
each node takes one row and sits in the column matching its depth.

## Workflow

1. layermap_list_maps_tool to see maps, then layermap_load_map_tool or
   layermap_create_map_tool (templates: sitemap, wbs, content-calendar, custom).
2. layermap_read_map_tool shows the outline with node ids.
3. Edit with the add/update/delete/move/change_level tools. Colours follow the
   node's depth unless pinned with background_color.
4. layermap_undo_tool / layermap_redo_tool step through edits.
5. layermap_preview_tool shows the grid; layermap_export_tool writes .xlsx or .csv.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


async def _mutate(mcp_ctx: Context, fn: Any, **kwargs: Any) -> dict[str, Any]:
    """Run an editing core function and persist the map list when it succeeds."""
    ctx = _ctx(mcp_ctx)
    async with ctx.lock:
        result = fn(ctx.session, **kwargs)
        if "error" not in result:
            ctx.store.save(ctx.session.maps)
    return result


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def layermap_list_maps_tool(ctx: Context) -> dict[str, Any]:
    """List all saved maps and the id of the current one."""
    return layermap_list_maps(_ctx(ctx).session)


@mcp_server.tool()
async def layermap_create_map_tool(
    ctx: Context, name: str, template: str = "sitemap"
) -> dict[str, Any]:
    """Create a map pre-filled with the template's starter nodes and make it current.

    Args:
        name: Map name.
        template: sitemap, wbs, content-calendar or custom.
    """
    return await _mutate(ctx, layermap_create_map, name=name, template=template)


@mcp_server.tool()
async def layermap_load_map_tool(ctx: Context, map_id: str) -> dict[str, Any]:
    """Make a saved map current. Resets undo history."""
    return await _mutate(ctx, layermap_load_map, map_id=map_id)


@mcp_server.tool()
async def layermap_delete_map_tool(ctx: Context, map_id: str) -> dict[str, Any]:
    """Delete a whole map."""
    return await _mutate(ctx, layermap_delete_map, map_id=map_id)


@mcp_server.tool()
async def layermap_read_map_tool(
    ctx: Context,
    max_depth: int | None = None,
    include_notes: bool = True,
) -> dict[str, Any]:
    """Read the current map as a markdown outline with node ids.

    Args:
        max_depth: Max depth levels (None = unlimited).
        include_notes: Include node notes in output.
    """
    return layermap_read_map(_ctx(ctx).session, max_depth=max_depth, include_notes=include_notes)


@mcp_server.tool()
async def layermap_get_node_context_tool(
    ctx: Context, node_id: str, sibling_count: int = 3
) -> dict[str, Any]:
    """Get a node with breadcrumbs, neighbouring siblings and children."""
    return layermap_get_node_context(
        _ctx(ctx).session, node_id=node_id, sibling_count=sibling_count
    )


@mcp_server.tool()
async def layermap_add_node_tool(
    ctx: Context,
    parent_id: str | None = None,
    title: str | None = None,
    notes: str = "",
    background_color: str | None = None,
) -> dict[str, Any]:
    """Add a node as the last child of parent_id (top level when omitted).

    Args:
        parent_id: Parent node id.
        title: Node title.
        notes: Node notes.
        background_color: #RRGGBB to pin instead of the level colour.
    """
    return await _mutate(
        ctx,
        layermap_add_node,
        parent_id=parent_id,
        title=title,
        notes=notes,
        background_color=background_color,
    )


@mcp_server.tool()
async def layermap_update_node_tool(
    ctx: Context,
    node_id: str,
    title: str | None = None,
    notes: str | None = None,
    background_color: str | None = None,
    reset_color: bool = False,
) -> dict[str, Any]:
    """Edit a node's title, notes or colour.

    Args:
        node_id: Node id.
        title: New title.
        notes: New notes.
        background_color: #RRGGBB to pin.
        reset_color: Drop a pinned colour and use the level colour again.
    """
    return await _mutate(
        ctx,
        layermap_update_node,
        node_id=node_id,
        title=title,
        notes=notes,
        background_color=background_color,
        reset_color=reset_color,
    )


@mcp_server.tool()
async def layermap_delete_node_tool(ctx: Context, node_id: str) -> dict[str, Any]:
    """Delete a node and its whole subtree."""
    return await _mutate(ctx, layermap_delete_node, node_id=node_id)


@mcp_server.tool()
async def layermap_move_node_tool(
    ctx: Context, node_id: str, new_parent_id: str | None = None, new_order: int = 0
) -> dict[str, Any]:
    """Move a node (with its subtree) to position new_order under new_parent_id."""
    return await _mutate(
        ctx, layermap_move_node, node_id=node_id, new_parent_id=new_parent_id, new_order=new_order
    )


@mcp_server.tool()
async def layermap_change_level_tool(
    ctx: Context, node_id: str, direction: str
) -> dict[str, Any]:
    """Promote (out one level) or demote (under the previous sibling) a node.

    Args:
        node_id: Node id.
        direction: "promote" or "demote".
    """
    return await _mutate(ctx, layermap_change_level, node_id=node_id, direction=direction)


@mcp_server.tool()
async def layermap_copy_node_tool(ctx: Context, node_id: str) -> dict[str, Any]:
    """Duplicate a node without its children, as the last of its siblings."""
    return await _mutate(ctx, layermap_copy_node, node_id=node_id)


@mcp_server.tool()
async def layermap_undo_tool(ctx: Context) -> dict[str, Any]:
    """Undo the last edit of the current map."""
    return await _mutate(ctx, layermap_undo)


@mcp_server.tool()
async def layermap_redo_tool(ctx: Context) -> dict[str, Any]:
    """Redo the last undone edit of the current map."""
    return await _mutate(ctx, layermap_redo)


@mcp_server.tool()
async def layermap_preview_tool(ctx: Context, include_styles: bool = False) -> dict[str, Any]:
    """Show the current map as grid rows, optionally with per-cell styles."""
    return layermap_preview(_ctx(ctx).session, include_styles=include_styles)


@mcp_server.tool()
async def layermap_export_tool(
    ctx: Context, out_dir: str | None = None, fmt: str = "xlsx"
) -> dict[str, Any]:
    """Export the current map as .xlsx or .csv.

    Args:
        out_dir: Target directory (default: an "exports" folder in the data directory).
        fmt: "xlsx" or "csv".
    """
    server_ctx = _ctx(ctx)
    layer_map = server_ctx.session.current_map
    if layer_map is None:
        return {"error": "No map is currently loaded"}
    target_dir = Path(out_dir) if out_dir else server_ctx.data_dir / "exports"
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        path = await export_map_async(layer_map, target_dir, fmt)
    except (ExportError, OSError) as e:
        return _error(e)
    return {"path": str(path)}


def run_mcp_server(*, verbose: bool = False) -> None:
    """Run the MCP server with stdio transport."""
    from layermap.logging_config import configure_logging

    configure_logging(verbose=verbose)
    mcp_server.run(transport="stdio")
