"""Convert maps to and from the JSON layout used by saved map lists."""

import json
from datetime import UTC, datetime
from typing import Any

from layermap.models.node import LayerMap, Node, Template


def node_to_dict(node: Node) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": node.id,
        "title": node.title,
        "backgroundColor": node.background_color,
        "notes": node.notes,
        "children": [node_to_dict(child) for child in node.children],
        "order": node.order,
        "level": node.level,
    }
    if node.parent_id is not None:
        data["parentId"] = node.parent_id
    if node.color_overridden:
        data["colorOverridden"] = True
    return data


def node_from_dict(data: dict[str, Any], *, parent_id: str | None = None, level: int = 0) -> Node:
    """Build a Node from its saved dict.

    ``level`` and ``order`` may be missing in older files; they are filled in
    from the position in the tree.
    """
    node_id = data["id"]
    children = tuple(
        node_from_dict(child, parent_id=node_id, level=level + 1)
        for child in data.get("children", [])
    )
    return Node(
        id=node_id,
        title=data.get("title", ""),
        background_color=data.get("backgroundColor", ""),
        notes=data.get("notes", ""),
        children=children,
        parent_id=data.get("parentId", parent_id),
        order=data.get("order", 0),
        level=data.get("level", level),
        color_overridden=data.get("colorOverridden", False),
    )


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def map_to_dict(layer_map: LayerMap) -> dict[str, Any]:
    return {
        "id": layer_map.id,
        "name": layer_map.name,
        "createdAt": _format_timestamp(layer_map.created_at),
        "updatedAt": _format_timestamp(layer_map.updated_at),
        "rootNodes": [node_to_dict(node) for node in layer_map.root_nodes],
        "template": layer_map.template.value,
    }


def map_from_dict(data: dict[str, Any]) -> LayerMap:
    """Build a LayerMap, parsing timestamps back into aware datetimes."""
    try:
        return LayerMap(
            id=data["id"],
            name=data["name"],
            created_at=_parse_timestamp(data["createdAt"]),
            updated_at=_parse_timestamp(data["updatedAt"]),
            root_nodes=tuple(node_from_dict(node) for node in data.get("rootNodes", [])),
            template=Template(data.get("template", Template.CUSTOM.value)),
        )
    except KeyError as e:
        msg = f"Map entry is missing field {e.args[0]!r}"
        raise ValueError(msg) from e


def dumps_maps(maps: list[LayerMap] | tuple[LayerMap, ...]) -> str:
    return json.dumps([map_to_dict(m) for m in maps], ensure_ascii=False, indent=2) + "\n"


def loads_maps(text: str) -> list[LayerMap]:
    raw = json.loads(text)
    if not isinstance(raw, list):
        msg = f"Expected a list of maps, got {type(raw).__name__}"
        raise ValueError(msg)
    return [map_from_dict(entry) for entry in raw]
