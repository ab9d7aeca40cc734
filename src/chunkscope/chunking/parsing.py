"""
Tree-sitter grammar loading and language detection.

Grammars come prebuilt from ``tree_sitter_language_pack``. ``Language``
objects are cached per process; a fresh ``Parser`` is handed out on every call
because parsers keep per-parse state and files may be chunked on several
threads at once.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict

from tree_sitter import Language, Parser  # type: ignore[import]

from ..errors import UnsupportedLanguageError

_LANGUAGE_CACHE: Dict[str, Language] = {}
_CACHE_LOCK = threading.Lock()

EXTENSION_LANGUAGES: Dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".go": "go",
    ".java": "java",
}


def load_language(grammar: str) -> Language:
    """
    Lazily load a prebuilt tree-sitter grammar.

    Users are expected to install ``tree-sitter-language-pack``, which bundles
    the compiled grammars.
    """
    with _CACHE_LOCK:
        if grammar in _LANGUAGE_CACHE:
            return _LANGUAGE_CACHE[grammar]

        try:
            from tree_sitter_language_pack import get_language  # type: ignore
        except ImportError as exc:  # pragma: no cover - runtime configuration issue
            raise RuntimeError(
                "tree_sitter_language_pack is required for prebuilt grammars. "
                "Install it via `pip install tree-sitter-language-pack`."
            ) from exc

        language = get_language(grammar)
        _LANGUAGE_CACHE[grammar] = language
        return language


def new_parser(grammar: str) -> Parser:
    return Parser(load_language(grammar))


def detect_language(path: Path | str) -> str:
    """Return the language tag for ``path`` based on its extension."""
    suffix = Path(path).suffix.lower()
    language = EXTENSION_LANGUAGES.get(suffix)
    if language is None:
        raise UnsupportedLanguageError(suffix or str(path))
    return language
