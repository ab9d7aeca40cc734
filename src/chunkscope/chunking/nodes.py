"""
Language-neutral view over a syntax tree.

Node adapters turn grammar specific trees into ``NormalizedNode`` instances;
everything downstream (walker, metadata extraction, boundary handling) only
ever sees this view.
"""
from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple


class NodeKind(str, Enum):
    """Structural role of a normalized node."""

    FUNCTION = "function"
    CLASS = "class"
    MODULE = "module"
    STATEMENT = "statement"
    EXPRESSION = "expression"
    MODIFIER = "modifier"


class Trait(str, Enum):
    """Structural facts an adapter can attach to a node."""

    ASYNC = "async"
    YIELD = "yield"
    ANONYMOUS_CALLABLE = "anonymous_callable"
    ASSIGNED_CALLABLE = "assigned_callable"
    LAMBDA = "lambda"
    MAIN_GUARD = "main_guard"
    IMPORT = "import"
    FIELD = "field"
    DOCSTRING = "docstring"
    COMMENT = "comment"
    KEYWORD = "keyword"
    ERROR = "error"


DEFINITION_KINDS = frozenset({NodeKind.FUNCTION, NodeKind.CLASS, NodeKind.MODULE})


@dataclass(frozen=True)
class Span:
    """
    Half-open byte range plus the 1-based inclusive line range of its
    non-whitespace content (see ``LineIndex.span``).
    """

    start_byte: int
    end_byte: int
    start_line: int
    end_line: int

    @property
    def length(self) -> int:
        return self.end_byte - self.start_byte

    def contains(self, other: "Span") -> bool:
        return self.start_byte <= other.start_byte and other.end_byte <= self.end_byte

    def overlaps(self, other: "Span") -> bool:
        return self.start_byte < other.end_byte and other.start_byte < self.end_byte


@dataclass(frozen=True)
class NormalizedNode:
    kind: NodeKind
    span: Span
    name: Optional[str] = None
    children: Tuple["NormalizedNode", ...] = ()
    modifiers: Tuple["NormalizedNode", ...] = ()
    doc_candidates: Tuple["NormalizedNode", ...] = ()
    text: str = ""
    signature: str = ""
    extends: Tuple[str, ...] = ()
    receiver: str = ""
    package: str = ""
    traits: FrozenSet[Trait] = frozenset()
    grammar_type: str = ""

    def has(self, trait: Trait) -> bool:
        return trait in self.traits

    @property
    def is_definition(self) -> bool:
        return self.kind in DEFINITION_KINDS


class LineIndex:
    """Maps byte offsets of a source buffer to 1-based line numbers."""

    def __init__(self, source: bytes) -> None:
        self.source = source
        self._line_starts: List[int] = [0]
        offset = source.find(b"\n")
        while offset != -1:
            self._line_starts.append(offset + 1)
            offset = source.find(b"\n", offset + 1)

    def line_of(self, offset: int) -> int:
        return bisect_right(self._line_starts, offset)

    def line_start(self, line: int) -> int:
        """Byte offset where ``line`` (1-based) begins."""
        if line > len(self._line_starts):
            return len(self.source)
        return self._line_starts[line - 1]

    def span(self, start: int, end: int) -> Span:
        """
        Build a ``Span`` for ``[start, end)``.

        Line numbers describe the non-whitespace extent of the range so that
        blank lines absorbed into a span do not inflate its reported lines.
        """
        text = self.source[start:end]
        stripped = text.strip()
        if stripped:
            lead = len(text) - len(text.lstrip())
            trail = len(text) - len(text.rstrip())
            first, last = start + lead, end - trail - 1
        else:
            first, last = start, max(start, end - 1)
        return Span(start, end, self.line_of(first), self.line_of(last))

    def whitespace_only(self, start: int, end: int) -> bool:
        return not self.source[start:end].strip()
