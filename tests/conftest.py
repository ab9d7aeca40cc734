from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional

import pytest

from chunkscope.chunking.models import ChunkRecord
from chunkscope.chunking.nodes import LineIndex, NodeKind, NormalizedNode, Span, Trait

FIXTURES = Path(__file__).parent / "fixtures"


class TreeBuilder:
    """Builds ``NormalizedNode`` trees whose spans point at substrings of a source."""

    def __init__(self, source: str) -> None:
        self.text = source
        self.source = source.encode("utf-8")
        self.lines = LineIndex(self.source)

    def span(self, snippet: str, occurrence: int = 0) -> Span:
        needle = snippet.encode("utf-8")
        start = -1
        for _ in range(occurrence + 1):
            start = self.source.index(needle, start + 1)
        return self.lines.span(start, start + len(needle))

    def node(
        self,
        kind: NodeKind,
        snippet: str,
        *,
        name: Optional[str] = None,
        children: Iterable[NormalizedNode] = (),
        modifiers: Iterable[NormalizedNode] = (),
        doc: Iterable[NormalizedNode] = (),
        traits: Iterable[Trait] = (),
        signature: str = "",
        extends: Iterable[str] = (),
        text: str = "",
        occurrence: int = 0,
    ) -> NormalizedNode:
        return NormalizedNode(
            kind=kind,
            span=self.span(snippet, occurrence),
            name=name,
            children=tuple(children),
            modifiers=tuple(modifiers),
            doc_candidates=tuple(doc),
            text=text,
            signature=signature,
            extends=tuple(extends),
            traits=frozenset(traits),
        )

    def function(self, snippet: str, name: str, **kwargs) -> NormalizedNode:
        return self.node(NodeKind.FUNCTION, snippet, name=name, **kwargs)

    def cls(self, snippet: str, name: str, **kwargs) -> NormalizedNode:
        return self.node(NodeKind.CLASS, snippet, name=name, **kwargs)

    def statement(self, snippet: str, *traits: Trait, **kwargs) -> NormalizedNode:
        return self.node(NodeKind.STATEMENT, snippet, traits=traits, **kwargs)

    def modifier(self, snippet: str, occurrence: int = 0) -> NormalizedNode:
        traits = () if snippet.startswith("@") else (Trait.KEYWORD,)
        return self.node(
            NodeKind.MODIFIER, snippet, text=snippet, traits=traits, occurrence=occurrence
        )

    def docstring(self, snippet: str, value: str) -> NormalizedNode:
        return self.node(NodeKind.STATEMENT, snippet, text=value, traits=(Trait.DOCSTRING,))

    def comment(self, snippet: str) -> NormalizedNode:
        return self.node(NodeKind.STATEMENT, snippet, text=snippet, traits=(Trait.COMMENT,))

    def yield_(self, snippet: str) -> NormalizedNode:
        return self.node(NodeKind.EXPRESSION, snippet, traits=(Trait.YIELD,))

    def module(self, *children: NormalizedNode, doc: Iterable[NormalizedNode] = ()) -> NormalizedNode:
        return NormalizedNode(
            kind=NodeKind.MODULE,
            span=self.lines.span(0, len(self.source)),
            children=tuple(children),
            doc_candidates=tuple(doc),
        )


@pytest.fixture
def tree_builder():
    return TreeBuilder


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


def by_name(records: List[ChunkRecord], name: str) -> ChunkRecord:
    matches = [r for r in records if r.name == name]
    assert len(matches) == 1, f"expected one chunk named {name!r}, got {len(matches)}"
    return matches[0]


def assert_chunk_invariants(records: List[ChunkRecord], source: bytes) -> None:
    """Coverage, nesting and ordering checks shared by the chunking tests."""
    by_id = {r.id: r for r in records}
    assert len(by_id) == len(records), "chunk ids must be unique"

    root = records[0]
    assert root.depth == 0 and root.parent_id is None
    assert (root.span.start_byte, root.span.end_byte) == (0, len(source))

    top = [by_id[c] for c in root.children]
    cursor = 0
    for record in top:
        assert record.span.start_byte == cursor
        cursor = record.span.end_byte
    if top:
        assert cursor == len(source)

    for record in records:
        children = [by_id[c] for c in record.children]
        starts = [c.span.start_byte for c in children]
        assert starts == sorted(starts)
        for child in children:
            assert child.parent_id == record.id
            assert child.depth == record.depth + 1
            assert record.span.start_byte <= child.span.start_byte
            assert child.span.end_byte <= record.span.end_byte
        for left, right in zip(children, children[1:]):
            assert left.span.end_byte <= right.span.start_byte

    for a in records:
        for b in records:
            if a.id == b.id:
                continue
            disjoint = a.span.end_byte <= b.span.start_byte or b.span.end_byte <= a.span.start_byte
            a_in_b = b.span.start_byte <= a.span.start_byte and a.span.end_byte <= b.span.end_byte
            b_in_a = a.span.start_byte <= b.span.start_byte and b.span.end_byte <= a.span.end_byte
            assert disjoint or a_in_b or b_in_a, f"{a.name} partially overlaps {b.name}"
