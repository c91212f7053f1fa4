from kg_builder.models import Entity

MAX_SNIPPET_BYTES = 32 * 1024


def truncate_utf8(text: str, max_bytes: int = MAX_SNIPPET_BYTES) -> str:
    """Cut ``text`` to at most ``max_bytes`` of UTF-8 without splitting a character."""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def compose_blob(entity: Entity, file_path: str) -> str:
    """Render the canonical text that is embedded for ``entity``."""
    header = (
        f"{entity.kind.value} {entity.name} ({entity.language})\n"
        f"file: {file_path}:{entity.start_line}-{entity.end_line}"
    )
    doc = f"\ndoc: {entity.doc}" if entity.doc else ""
    code = f"\n\n{truncate_utf8(entity.snippet)}"
    return f"{header}{doc}{code}"
