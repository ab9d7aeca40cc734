"""
Tree walker: builds the provisional chunk tree from a normalized syntax tree.

The root chunk always spans the whole file. Definitions (and, depending on the
policy, anonymous callables, lambda assignments and ``__main__`` guards)
become chunks owned by the innermost enclosing chunk. Everything else at the
top level is cut into gap units so the root's children partition the file.
"""
from __future__ import annotations

import warnings
from pathlib import PurePath
from typing import List, Optional, Tuple

from ..errors import MalformedTreeWarning
from ..logger import get_logger
from .models import Chunk, ChunkKind
from .nodes import LineIndex, NodeKind, NormalizedNode, Span, Trait
from .policy import ChunkingPolicy

log = get_logger(__name__)

FALLBACK_DIAGNOSTIC = "malformed_tree: emitted whole-file fallback chunk"


def position_label(lines: LineIndex, offset: int) -> str:
    """``line:col`` (both 1-based, column counted in characters) for a byte offset."""
    line = lines.line_of(offset)
    prefix = lines.source[lines.line_start(line):offset]
    column = len(prefix.decode("utf-8", errors="replace")) + 1
    return f"{line}:{column}"


class TreeWalker:
    """Turns a ``NormalizedNode`` tree into a provisional ``Chunk`` tree."""

    def __init__(self, policy: ChunkingPolicy) -> None:
        self.policy = policy

    def walk(
        self,
        root: NormalizedNode,
        lines: LineIndex,
        file_identity: str,
        language: str = "",
    ) -> Chunk:
        problems = validate_tree(root, len(lines.source))
        if problems:
            return self._fallback(lines, file_identity, language, problems)

        root_chunk = Chunk(
            file_identity=file_identity,
            kind=ChunkKind.MODULE,
            name=module_name(file_identity),
            span=lines.span(0, len(lines.source)),
            depth=0,
            language=language,
            node=root,
        )

        stack: List[Tuple[NormalizedNode, Chunk]] = [(root, root_chunk)]
        while stack:
            node, owner = stack.pop()
            for child in node.children:
                if self.is_chunkable(child):
                    chunk = self._make_chunk(child, owner, lines)
                    owner.adopt(chunk)
                    stack.append((child, chunk))
                else:
                    stack.append((child, owner))

        pending = [root_chunk]
        while pending:
            chunk = pending.pop()
            chunk.sort_children()
            pending.extend(chunk.children)

        self._partition_top_level(root_chunk, root, lines)
        return root_chunk

    def is_chunkable(self, node: NormalizedNode) -> bool:
        if node.kind is NodeKind.FUNCTION:
            if node.has(Trait.ASSIGNED_CALLABLE):
                return self.policy.lambda_assignment_policy == "chunk"
            return True
        if node.kind in (NodeKind.CLASS, NodeKind.MODULE):
            return True
        if node.has(Trait.ANONYMOUS_CALLABLE):
            return self.policy.chunk_anonymous_literals
        if node.has(Trait.MAIN_GUARD):
            return self.policy.main_guard_policy == "chunk"
        return False

    def _make_chunk(self, node: NormalizedNode, owner: Chunk, lines: LineIndex) -> Chunk:
        span = folded_span(node, lines)
        name = node.name or f"<anonymous@{position_label(lines, node.span.start_byte)}>"
        return Chunk(
            file_identity=owner.file_identity,
            kind=structural_kind(node, owner),
            name=name,
            span=span,
            depth=owner.depth + 1,
            language=owner.language,
            node=node,
        )

    def _partition_top_level(self, root: Chunk, tree: NormalizedNode, lines: LineIndex) -> None:
        """Replace the root's children with units that exactly cover the file."""
        definitions = list(root.children)
        items: List[Tuple[int, int, Optional[Chunk]]] = [
            (c.span.start_byte, c.span.end_byte, c) for c in definitions
        ]
        for node in tree.children:
            if self.is_chunkable(node):
                continue
            inner = [c.span for c in definitions if node.span.contains(c.span)]
            for start, end in _subtract(node.span, inner):
                if not lines.whitespace_only(start, end):
                    items.append((start, end, None))
        items.sort(key=lambda item: (item[0], item[1]))

        units: List[Chunk] = []
        cursor = 0
        leading_ws: Optional[int] = None
        for start, end, chunk in items:
            if start > cursor:
                if lines.whitespace_only(cursor, start):
                    if units:
                        _extend(units[-1], units[-1].span.start_byte, start, lines)
                    else:
                        leading_ws = cursor
                else:
                    units.append(self._gap_unit(root, cursor, start, lines))
            unit_start = start
            if leading_ws is not None and not units:
                unit_start = leading_ws
            leading_ws = None
            if chunk is None:
                units.append(self._gap_unit(root, unit_start, end, lines))
            else:
                if unit_start != start:
                    _extend(chunk, unit_start, end, lines)
                units.append(chunk)
            cursor = max(cursor, end)

        size = len(lines.source)
        if cursor < size:
            if units and lines.whitespace_only(cursor, size):
                _extend(units[-1], units[-1].span.start_byte, size, lines)
            else:
                units.append(self._gap_unit(root, cursor, size, lines))

        root.children = []
        for unit in units:
            root.adopt(unit)

    @staticmethod
    def _gap_unit(root: Chunk, start: int, end: int, lines: LineIndex) -> Chunk:
        return Chunk(
            file_identity=root.file_identity,
            kind=ChunkKind.MODULE,
            name=f"<module@{position_label(lines, start)}>",
            span=lines.span(start, end),
            depth=1,
            language=root.language,
            synthetic=True,
            gap=True,
        )

    def _fallback(
        self,
        lines: LineIndex,
        file_identity: str,
        language: str,
        problems: List[str],
    ) -> Chunk:
        warnings.warn(
            f"{file_identity}: malformed syntax tree ({'; '.join(problems)}); "
            "using whole-file fallback chunk",
            MalformedTreeWarning,
            stacklevel=3,
        )
        log.warning("malformed_tree_fallback", file=file_identity, problems=problems)
        return Chunk(
            file_identity=file_identity,
            kind=ChunkKind.MODULE,
            name=module_name(file_identity),
            span=lines.span(0, len(lines.source)),
            depth=0,
            language=language,
            diagnostics=problems + [FALLBACK_DIAGNOSTIC],
        )


def module_name(file_identity: str) -> str:
    stem = PurePath(file_identity).stem if file_identity else ""
    return stem or "<module>"


def structural_kind(node: NormalizedNode, owner: Chunk) -> ChunkKind:
    """Kind implied by the tree shape alone; the metadata extractor refines it."""
    if node.kind is NodeKind.CLASS:
        return ChunkKind.CLASS
    if node.kind is NodeKind.MODULE:
        return ChunkKind.MODULE
    if node.has(Trait.MAIN_GUARD):
        return ChunkKind.OTHER
    if node.has(Trait.LAMBDA):
        return ChunkKind.LAMBDA
    if node.kind is NodeKind.FUNCTION and node.receiver:
        return ChunkKind.METHOD
    if node.kind is NodeKind.FUNCTION and owner.node is not None and owner.node.kind is NodeKind.CLASS:
        return ChunkKind.METHOD
    return ChunkKind.FUNCTION


def folded_span(node: NormalizedNode, lines: LineIndex) -> Span:
    """Node span widened to cover its modifiers and the comments directly above it."""
    start = node.span.start_byte
    for modifier in node.modifiers:
        start = min(start, modifier.span.start_byte)
    for candidate in node.doc_candidates:
        if candidate.has(Trait.COMMENT) and candidate.span.start_byte < node.span.start_byte:
            start = min(start, candidate.span.start_byte)
    return lines.span(start, node.span.end_byte)


def validate_tree(root: NormalizedNode, size: int) -> List[str]:
    """Describe every structural inconsistency found in ``root``; empty when sound."""
    problems: List[str] = []
    if root.has(Trait.ERROR):
        problems.append("parser reported syntax errors")
    if not 0 <= root.span.start_byte <= root.span.end_byte <= size:
        problems.append(f"root span {_describe(root)} lies outside the file (0-{size})")

    stack = [root]
    while stack:
        node = stack.pop()
        previous: Optional[NormalizedNode] = None
        for child in sorted(node.children, key=lambda c: (c.span.start_byte, c.span.end_byte)):
            if child.span.start_byte > child.span.end_byte or child.span.end_byte > size:
                problems.append(f"{_describe(child)} lies outside the file (0-{size})")
            elif not node.span.contains(child.span):
                problems.append(f"{_describe(child)} is not contained in {_describe(node)}")
            if previous is not None and previous.span.overlaps(child.span):
                problems.append(f"{_describe(previous)} overlaps sibling {_describe(child)}")
            previous = child
            stack.append(child)
    return problems


def _describe(node: NormalizedNode) -> str:
    label = node.kind.value if node.name is None else f"{node.kind.value} {node.name!r}"
    return f"{label} at bytes {node.span.start_byte}-{node.span.end_byte}"


def _subtract(span: Span, holes: List[Span]) -> List[Tuple[int, int]]:
    pieces: List[Tuple[int, int]] = []
    cursor = span.start_byte
    for hole in sorted(holes, key=lambda h: h.start_byte):
        if hole.start_byte > cursor:
            pieces.append((cursor, hole.start_byte))
        cursor = max(cursor, hole.end_byte)
    if cursor < span.end_byte:
        pieces.append((cursor, span.end_byte))
    return pieces


def _extend(chunk: Chunk, start: int, end: int, lines: LineIndex) -> None:
    chunk.span = lines.span(start, end)
