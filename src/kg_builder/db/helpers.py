from typing import Any

from kg_builder.models import EmbeddedEntity, Entity

GRAPH_NAME = "kg_builder"

FILE_LABEL = "SourceFile"
ENTITY_LABEL = "Entity"
DEFINES_REL = "DEFINES"

_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def escape_str(value: str) -> str:
    """Escape backslashes, single quotes and line breaks for safe Cypher literal usage."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    for raw, replacement in _CONTROL_ESCAPES.items():
        escaped = escaped.replace(raw, replacement)
    return escaped


def to_cypher_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int | float)):
        return repr(value)
    if isinstance(value, (list | tuple)):
        return "[" + ", ".join(to_cypher_value(v) for v in value) + "]"
    return f"'{escape_str(str(value))}'"


def to_cypher_props(props: dict[str, Any]) -> str:
    inner = ", ".join(f"{k}: {to_cypher_value(v)}" for k, v in props.items())
    return "{" + inner + "}"


def make_entity_uid(file_path: str, entity: Entity) -> str:
    """Composite upsert key: stable across re-parses of unchanged code, not across edits that move lines."""
    return f"{file_path}::{entity.start_line}::{entity.end_line}::{entity.kind.value}"


def parse_agtype_int(val: Any) -> int:
    s = str(val)
    digits = "".join(ch for ch in s if ch.isdigit())
    return int(digits) if digits else 0


def entity_properties(path: str, item: EmbeddedEntity) -> dict[str, Any]:
    """The full property map written for an Entity node, minus ``created``."""
    entity = item.entity
    return {
        "uid": make_entity_uid(path, entity),
        "path": path,
        "kind": entity.kind.value,
        "name": entity.name,
        "language": entity.language,
        "start_line": entity.start_line,
        "end_line": entity.end_line,
        "snippet": entity.snippet,
        "doc": entity.doc,
        "embedding": item.embedding,
    }
