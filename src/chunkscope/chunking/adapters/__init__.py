"""
Node adapters: one per supported tree-sitter grammar.
"""
from __future__ import annotations

from typing import Dict, List, Type

from ...errors import UnsupportedLanguageError
from .base import NodeAdapter
from .golang import GoAdapter
from .java import JavaAdapter
from .javascript import JavaScriptAdapter, TsxAdapter, TypeScriptAdapter
from .python import PythonAdapter

_ADAPTERS: Dict[str, Type[NodeAdapter]] = {
    adapter.language: adapter
    for adapter in (
        PythonAdapter,
        JavaScriptAdapter,
        TypeScriptAdapter,
        TsxAdapter,
        GoAdapter,
        JavaAdapter,
    )
}


def register_adapter(adapter_cls: Type[NodeAdapter]) -> Type[NodeAdapter]:
    """Register ``adapter_cls`` under its ``language``; usable as a class decorator."""
    _ADAPTERS[adapter_cls.language] = adapter_cls
    return adapter_cls


def get_adapter(language: str) -> NodeAdapter:
    adapter_cls = _ADAPTERS.get(language.lower())
    if adapter_cls is None:
        raise UnsupportedLanguageError(language)
    return adapter_cls()


def supported_languages() -> List[str]:
    return sorted(_ADAPTERS)


__all__ = [
    "GoAdapter",
    "JavaAdapter",
    "JavaScriptAdapter",
    "NodeAdapter",
    "PythonAdapter",
    "TsxAdapter",
    "TypeScriptAdapter",
    "get_adapter",
    "register_adapter",
    "supported_languages",
]
