"""CLI for layer maps (create, edit, export, MCP server)."""

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from layermap.config import DATA_DIR_ENV, DEFAULT_NODE_TITLE, resolve_data_directory
from layermap.core.export.files import ExportFormat, export_map
from layermap.core.tree.markdown import render_outline
from layermap.errors import ExportError, LayerMapError, MapNotFoundError
from layermap.logging_config import configure_logging
from layermap.models.node import LevelChange, Template
from layermap.session import LayerMapSession
from layermap.storage import MapStore

app = typer.Typer(help="Layer maps: hierarchical outlines rendered as styled spreadsheets.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory holding the saved map list"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _open_store(data_dir: Path | None) -> MapStore:
    return MapStore(data_dir or resolve_data_directory())


def _resolve_map_id(session: LayerMapSession, ref: str) -> str:
    """Accept a map id or an exact map name."""
    for layer_map in session.maps:
        if layer_map.id == ref:
            return layer_map.id
    for layer_map in session.maps:
        if layer_map.name == ref:
            return layer_map.id
    raise MapNotFoundError(ref)


@contextmanager
def _editing(data_dir: Path | None, map_ref: str | None = None) -> Iterator[LayerMapSession]:
    """Open a session (with ``map_ref`` loaded), save it afterwards.

    Engine errors become a message and exit code 1; nothing is saved then.
    """
    store = _open_store(data_dir)
    session = LayerMapSession(store.load())
    try:
        if map_ref is not None:
            session.load_map(_resolve_map_id(session, map_ref))
        yield session
    except (LayerMapError, ValueError) as e:
        typer.echo(str(e))
        raise typer.Exit(1) from e
    store.save(session.maps)


@app.command()
def new(
    name: str = typer.Argument(..., help="Name of the new map"),
    template: Annotated[
        Template,
        typer.Option("--template", "-t", help="Template (palette and starter nodes)"),
    ] = Template.SITEMAP,
    data_dir: DataDirOption = None,
) -> None:
    """Create a map pre-filled with the template's starter nodes."""
    with _editing(data_dir) as session:
        layer_map = session.create_map(name, template)
    typer.echo(f"Created map '{layer_map.name}' [id={layer_map.id}]")


@app.command()
def maps(data_dir: DataDirOption = None) -> None:
    """List saved maps."""
    saved = _open_store(data_dir).load()
    typer.echo(f"{len(saved)} maps:\n")
    for layer_map in saved:
        typer.echo(
            f"  {layer_map.name} ({layer_map.template.value}) "
            f"updated {layer_map.updated_at:%Y-%m-%d %H:%M}  [id={layer_map.id}]"
        )


@app.command()
def show(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max depth levels to render"),
    ] = None,
    notes: bool = typer.Option(True, "--notes/--no-notes", help="Include node notes"),
    data_dir: DataDirOption = None,
) -> None:
    """Print a map as a markdown outline, with node ids."""
    with _editing(data_dir, map_ref) as session:
        layer_map = session.require_current_map()
        typer.echo(f"# {layer_map.name} ({layer_map.template.value})\n")
        typer.echo(
            render_outline(
                layer_map.root_nodes, max_depth=max_depth, include_notes=notes, include_ids=True
            )
        )


@app.command()
def add(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    parent: Annotated[
        str | None,
        typer.Option("--parent", "-p", help="Parent node id (default: top level)"),
    ] = None,
    title: str = typer.Option(DEFAULT_NODE_TITLE, "--title", "-t", help="Node title"),
    notes: str = typer.Option("", "--notes", "-n", help="Node notes"),
    color: Annotated[
        str | None,
        typer.Option("--color", "-c", help="Fixed #RRGGBB colour instead of the level colour"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Add a node as the last child of a parent."""
    with _editing(data_dir, map_ref) as session:
        node = session.add_node(parent, title=title, notes=notes, background_color=color)
    typer.echo(f"Added '{node.title}' at level {node.level} [id={node.id}]")


@app.command()
def edit(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    node_id: str = typer.Argument(..., help="Node id"),
    title: Annotated[str | None, typer.Option("--title", "-t", help="New title")] = None,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="New notes")] = None,
    color: Annotated[
        str | None, typer.Option("--color", "-c", help="Pin a #RRGGBB colour")
    ] = None,
    reset_color: bool = typer.Option(
        False, "--reset-color", help="Go back to the level colour"
    ),
    data_dir: DataDirOption = None,
) -> None:
    """Change a node's title, notes or colour."""
    changes: dict[str, str | None] = {}
    if title is not None:
        changes["title"] = title
    if notes is not None:
        changes["notes"] = notes
    if color is not None:
        changes["background_color"] = color
    elif reset_color:
        changes["background_color"] = None

    with _editing(data_dir, map_ref) as session:
        node = session.update_node(node_id, **changes)
    typer.echo(f"Updated '{node.title}' ({node.background_color}) [id={node.id}]")


@app.command()
def delete(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    node_id: str = typer.Argument(..., help="Node id"),
    data_dir: DataDirOption = None,
) -> None:
    """Delete a node together with its subtree."""
    with _editing(data_dir, map_ref) as session:
        node = session.delete_node(node_id)
    typer.echo(f"Deleted '{node.title}' [id={node.id}]")


@app.command()
def move(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    node_id: str = typer.Argument(..., help="Node id"),
    parent: Annotated[
        str | None,
        typer.Option("--parent", "-p", help="New parent id (default: top level)"),
    ] = None,
    order: int = typer.Option(0, "--order", "-o", help="Position among the new siblings"),
    data_dir: DataDirOption = None,
) -> None:
    """Move a node (and its subtree) to a new parent and position."""
    with _editing(data_dir, map_ref) as session:
        node = session.move_node(node_id, parent, order)
    typer.echo(f"Moved '{node.title}' to level {node.level}, position {node.order}")


def _report_level_change(result: LevelChange) -> None:
    typer.echo(result.message)
    if not result.changed:
        raise typer.Exit(1)


@app.command()
def promote(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    node_id: str = typer.Argument(..., help="Node id"),
    data_dir: DataDirOption = None,
) -> None:
    """Move a node out one level, right after its former parent."""
    with _editing(data_dir, map_ref) as session:
        result = session.promote(node_id)
    _report_level_change(result)


@app.command()
def demote(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    node_id: str = typer.Argument(..., help="Node id"),
    data_dir: DataDirOption = None,
) -> None:
    """Move a node under its previous sibling, as that sibling's last child."""
    with _editing(data_dir, map_ref) as session:
        result = session.demote(node_id)
    _report_level_change(result)


@app.command()
def copy(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    node_id: str = typer.Argument(..., help="Node id"),
    data_dir: DataDirOption = None,
) -> None:
    """Duplicate a node (without children) at the end of its siblings."""
    with _editing(data_dir, map_ref) as session:
        node = session.copy_node(node_id)
    typer.echo(f"Copied to '{node.title}' [id={node.id}]")


@app.command()
def rename(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    name: str = typer.Argument(..., help="New map name"),
    data_dir: DataDirOption = None,
) -> None:
    """Rename a map."""
    with _editing(data_dir, map_ref) as session:
        layer_map = session.rename_map(name)
    typer.echo(f"Renamed map to '{layer_map.name}' [id={layer_map.id}]")


@app.command(name="delete-map")
def delete_map(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    data_dir: DataDirOption = None,
) -> None:
    """Delete a whole map."""
    with _editing(data_dir) as session:
        map_id = _resolve_map_id(session, map_ref)
        session.delete_map(map_id)
    typer.echo(f"Deleted map [id={map_id}]")


@app.command(name="export")
def export_cmd(
    map_ref: str = typer.Argument(..., metavar="MAP", help="Map id or name"),
    fmt: Annotated[
        ExportFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = ExportFormat.XLSX,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Output directory (default: current directory)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Export a map as a styled spreadsheet or plain CSV."""
    with _editing(data_dir, map_ref) as session:
        layer_map = session.require_current_map()
    try:
        path = export_map(layer_map, out or Path.cwd(), fmt)
    except ExportError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    typer.echo(f"Wrote {path}")


@app.command()
def serve(data_dir: DataDirOption = None) -> None:
    """Start the MCP server (stdio transport)."""
    from layermap.mcp.server import run_mcp_server

    if data_dir is not None:
        os.environ[DATA_DIR_ENV] = str(data_dir)
    run_mcp_server()
