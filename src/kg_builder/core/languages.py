from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class LanguageSpec:
    """A source language and the tree-sitter grammar used to parse it.

    Several extensions can share one spec, and a language may borrow another
    language's entity table (``typescript`` is extracted with the javascript
    node types).
    """

    language_id: str
    grammar: str


_PYTHON = LanguageSpec("python", "python")
_JAVASCRIPT = LanguageSpec("javascript", "javascript")
_TYPESCRIPT = LanguageSpec("typescript", "typescript")
_TSX = LanguageSpec("typescript", "tsx")
_GO = LanguageSpec("go", "go")

_EXTENSION_LANGUAGE_MAP: dict[str, LanguageSpec] = {
    ".py": _PYTHON,
    ".js": _JAVASCRIPT,
    ".jsx": _JAVASCRIPT,
    ".mjs": _JAVASCRIPT,
    ".cjs": _JAVASCRIPT,
    ".ts": _TYPESCRIPT,
    ".tsx": _TSX,
    ".go": _GO,
}


def supported_extensions() -> frozenset[str]:
    return frozenset(_EXTENSION_LANGUAGE_MAP)


def language_for_path(file_path: Path) -> LanguageSpec | None:
    """Return the language spec for ``file_path``, or None when its extension is unsupported."""
    return _EXTENSION_LANGUAGE_MAP.get(file_path.suffix.lower())
