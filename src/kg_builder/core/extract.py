import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import cast

from tree_sitter import Node, Tree
from tree_sitter_language_pack import SupportedLanguage, get_parser

from kg_builder.core.languages import LanguageSpec
from kg_builder.exceptions import ParseError, ReadError
from kg_builder.models import ANON_NAME, Entity, EntityKind


@dataclass(frozen=True)
class EntityRule:
    kind: EntityKind
    # Node type of an enclosing declaration that owns the name (go structs live inside type_spec).
    name_parent: str | None = None


@dataclass(frozen=True)
class LanguageTable:
    rules: Mapping[str, EntityRule]
    identifier_types: frozenset[str]
    docstrings: bool = False


_FUNCTION = EntityRule(EntityKind.FUNCTION)
_CLASS = EntityRule(EntityKind.CLASS)

_PYTHON_TABLE = LanguageTable(
    rules={
        "function_definition": _FUNCTION,
        "class_definition": _CLASS,
    },
    identifier_types=frozenset({"identifier"}),
    docstrings=True,
)

_JAVASCRIPT_TABLE = LanguageTable(
    rules={
        "function_declaration": _FUNCTION,
        "generator_function_declaration": _FUNCTION,
        "method_definition": _FUNCTION,
        "class_declaration": _CLASS,
    },
    identifier_types=frozenset({"identifier", "property_identifier", "type_identifier"}),
)

_GO_TABLE = LanguageTable(
    rules={
        "function_declaration": _FUNCTION,
        "method_declaration": _FUNCTION,
        "struct_type": EntityRule(EntityKind.CLASS, name_parent="type_spec"),
    },
    identifier_types=frozenset({"identifier"}),
)

ENTITY_TABLES: dict[str, LanguageTable] = {
    "python": _PYTHON_TABLE,
    "javascript": _JAVASCRIPT_TABLE,
    "typescript": _JAVASCRIPT_TABLE,
    "go": _GO_TABLE,
}

_QUOTES_RE = re.compile(r"^[rRbBuUfF]*['\"`]+|['\"`]+$")


def _node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _first_named_child(node: Node, types: frozenset[str]) -> Node | None:
    for child in node.named_children:
        if child.type in types:
            return child
    return None


def _first_descendant(node: Node, types: frozenset[str]) -> Node | None:
    stack = list(reversed(node.named_children))
    while stack:
        current = stack.pop()
        if current.type in types:
            return current
        stack.extend(reversed(current.named_children))
    return None


def resolve_name(node: Node, source: bytes, rule: EntityRule, table: LanguageTable) -> str:
    """Best-effort name for an entity node, falling back to ``<anon>``.

    Tries, in order: the ``name`` field of the enclosing declaration (when the
    rule names one), the node's own ``name`` field, the first identifier-typed
    named child, the first identifier-typed descendant.
    """
    candidates: list[Node | None] = []
    parent = node.parent
    if rule.name_parent is not None and parent is not None and parent.type == rule.name_parent:
        candidates.append(parent.child_by_field_name("name"))
    candidates.append(node.child_by_field_name("name"))
    candidates.append(_first_named_child(node, table.identifier_types))
    candidates.append(_first_descendant(node, table.identifier_types))

    for candidate in candidates:
        if candidate is None:
            continue
        text = _node_text(candidate, source).strip()
        if text:
            return text
    return ANON_NAME


def python_docstring(node: Node, source: bytes) -> str:
    """Return the docstring of a python function/class definition, or ``""``."""
    body = node.child_by_field_name("body")
    if body is None:
        return ""
    statements = [child for child in body.named_children if child.type != "comment"]
    if not statements:
        return ""
    first = statements[0]
    if first.type != "expression_statement" or first.named_child_count != 1:
        return ""
    literal = first.named_children[0]
    if literal.type != "string":
        return ""
    raw = _node_text(literal, source)
    prefix = raw[: len(raw) - len(raw.lstrip("rRbBuUfF"))].lower()
    # f-strings and bytes literals never become __doc__.
    if "f" in prefix or "b" in prefix:
        return ""

    parts = [_node_text(child, source) for child in literal.named_children if child.type == "string_content"]
    text = "".join(parts) if parts else _QUOTES_RE.sub("", _node_text(literal, source))
    return text.strip()


def extract_entities(tree: Tree, source: bytes, language: str) -> list[Entity]:
    """Walk ``tree`` depth-first and return one Entity per entity-producing node.

    Nested functions and classes are returned as further flat records; matching
    a node never stops the descent into its children.
    """
    table = ENTITY_TABLES.get(language)
    if table is None:
        raise ValueError(f"No entity table for language '{language}'")

    entities: list[Entity] = []
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        rule = table.rules.get(node.type)
        if rule is not None:
            entities.append(
                Entity(
                    kind=rule.kind,
                    name=resolve_name(node, source, rule, table),
                    language=language,
                    start_line=node.start_point[0] + 1,
                    end_line=node.end_point[0] + 1,
                    snippet=_node_text(node, source),
                    doc=python_docstring(node, source) if table.docstrings else "",
                )
            )
        stack.extend(reversed(node.named_children))
    return entities


def parse_source(source_bytes: bytes, spec: LanguageSpec) -> Tree:
    # A fresh parser per call keeps concurrent parse tasks independent.
    parser = get_parser(cast(SupportedLanguage, spec.grammar))
    return parser.parse(source_bytes)


def read_source(path: Path) -> bytes:
    """Read ``path`` as UTF-8 text (undecodable bytes replaced) and return it re-encoded."""
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ReadError(str(path), exc.strerror or str(exc)) from exc
    return raw.decode("utf-8", errors="replace").encode("utf-8")


def extract_entities_from_file(path: Path, spec: LanguageSpec, reject_syntax_errors: bool = True) -> list[Entity]:
    source_bytes = read_source(path)
    try:
        tree = parse_source(source_bytes, spec)
    except ValueError as exc:
        raise ParseError(str(path), str(exc)) from exc

    if reject_syntax_errors and tree.root_node.has_error:
        raise ParseError(str(path), f"{spec.grammar} grammar reported syntax errors")

    return extract_entities(tree, source_bytes, spec.language_id)
