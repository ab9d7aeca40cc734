"""
Exception hierarchy for the chunkscope project.

Error categories:

1. ``ConfigurationError``: invalid size bounds or policy values. Fatal and
   raised before any file is processed.
2. ``UnsupportedLanguageError``: no grammar/adapter is registered for the
   requested language or file extension.
3. ``MalformedTreeWarning``: the syntax tree handed to the walker was partial
   or inconsistent. It is a warning category, never raised; the file is
   chunked with the whole-file fallback and a diagnostic is attached.

Unrecognized decorators/modifiers are not errors; their verbatim text is kept
on the chunk.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ChunkscopeError(Exception):
    """Base exception for all chunkscope errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ChunkscopeError):
    """Raised when the chunking policy is invalid (e.g. min size above max size)."""


class UnsupportedLanguageError(ChunkscopeError, ValueError):
    """Raised when no adapter or grammar exists for a language."""

    def __init__(self, language: str) -> None:
        super().__init__(f"Unsupported language for chunking: {language}", {"language": language})
        self.language = language


class MalformedTreeWarning(UserWarning):
    """Issued when a syntax tree is partial or inconsistent and the fallback chunk is used."""


__all__ = [
    "ChunkscopeError",
    "ConfigurationError",
    "MalformedTreeWarning",
    "UnsupportedLanguageError",
]
