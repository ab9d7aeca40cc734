"""
Boundary post-processing: merging trivial top-level gap units and splitting
oversized chunks.

Both passes keep the chunk tree's invariants: the root's children still
partition the file, fragments of a split chunk partition the original span,
and nested chunks are never cut across fragments.
"""
from __future__ import annotations

from typing import List, Tuple

from ..logger import get_logger
from .models import Chunk, ChunkKind
from .nodes import LineIndex
from .policy import ChunkingPolicy, SizeUnit
from .walker import position_label

log = get_logger(__name__)

UNSPLITTABLE_DIAGNOSTIC = "oversized: no internal boundary to split at"


class BoundaryProcessor:
    """Applies the size policy to a provisional chunk tree, in place."""

    def __init__(self, policy: ChunkingPolicy) -> None:
        policy.check_bounds()
        self.policy = policy

    def measure(self, lines: LineIndex, start: int, end: int) -> int:
        if self.policy.size_unit is SizeUnit.LINES:
            if lines.whitespace_only(start, end):
                return 0
            span = lines.span(start, end)
            return span.end_line - span.start_line + 1
        return len(lines.source[start:end].decode("utf-8", errors="replace"))

    def process(self, root: Chunk, lines: LineIndex) -> Chunk:
        if self.policy.merge_adjacent_trivial:
            self.merge(root, lines)
        self.split(root, lines)
        return root

    # -- merging -----------------------------------------------------------

    def merge(self, root: Chunk, lines: LineIndex) -> None:
        """Fold maximal runs of adjacent trivial gap units into synthetic module chunks."""
        merged: List[Chunk] = []
        run: List[Chunk] = []

        def flush() -> None:
            if run:
                merged.append(self._fold(root, run, lines))
                run.clear()

        for unit in root.children:
            size = self.measure(lines, unit.span.start_byte, unit.span.end_byte)
            if not unit.gap or size >= self.policy.min_unit_size:
                flush()
                merged.append(unit)
                continue
            if run:
                combined = self.measure(lines, run[0].span.start_byte, unit.span.end_byte)
                if combined > self.policy.max_unit_size:
                    flush()
            run.append(unit)
        flush()

        root.children = []
        for unit in merged:
            root.adopt(unit)

    @staticmethod
    def _fold(root: Chunk, run: List[Chunk], lines: LineIndex) -> Chunk:
        start = run[0].span.start_byte
        name = "<preamble>" if start == 0 else f"<module@{position_label(lines, start)}>"
        folded = Chunk(
            file_identity=root.file_identity,
            kind=ChunkKind.MODULE,
            name=name,
            span=lines.span(start, run[-1].span.end_byte),
            depth=root.depth + 1,
            language=root.language,
            synthetic=True,
            gap=True,
        )
        for unit in run:
            for child in unit.children:
                folded.adopt(child)
        return folded

    # -- splitting ---------------------------------------------------------

    def split(self, root: Chunk, lines: LineIndex) -> None:
        """Split every non-root chunk larger than ``max_unit_size`` into fragments."""
        stack = list(reversed(root.children))
        while stack:
            chunk = stack.pop()
            size = self.measure(lines, chunk.span.start_byte, chunk.span.end_byte)
            if size <= self.policy.max_unit_size:
                stack.extend(reversed(chunk.children))
                continue

            bounds = self._fragment_bounds(chunk, lines)
            if len(bounds) < 2:
                chunk.diagnostics.append(UNSPLITTABLE_DIAGNOSTIC)
                log.debug("chunk_unsplittable", file=chunk.file_identity, chunk=chunk.name, size=size)
                stack.extend(reversed(chunk.children))
                continue

            fragments = self._fragments(chunk, bounds, lines)
            parent = chunk.parent
            assert parent is not None
            index = parent.children.index(chunk)
            parent.children[index:index + 1] = fragments
            log.debug(
                "chunk_split",
                file=chunk.file_identity,
                chunk=chunk.name,
                size=size,
                fragments=len(fragments),
            )
            for fragment in reversed(fragments):
                stack.extend(reversed(fragment.children))

    def _fragment_bounds(self, chunk: Chunk, lines: LineIndex) -> List[Tuple[int, int]]:
        """Greedily pack atoms (child chunks and the text between them) into fragments."""
        atoms: List[Tuple[int, int]] = []
        cursor = chunk.span.start_byte
        for child in chunk.children:
            if child.span.start_byte > cursor:
                atoms.extend(self._gap_atoms(lines, cursor, child.span.start_byte))
            atoms.append((child.span.start_byte, child.span.end_byte))
            cursor = child.span.end_byte
        if cursor < chunk.span.end_byte:
            atoms.extend(self._gap_atoms(lines, cursor, chunk.span.end_byte))

        bounds: List[Tuple[int, int]] = []
        for start, end in atoms:
            if bounds and (
                self.measure(lines, bounds[-1][0], end) <= self.policy.max_unit_size
                or lines.whitespace_only(*bounds[-1])
            ):
                bounds[-1] = (bounds[-1][0], end)
            else:
                bounds.append((start, end))
        # Whitespace never stands alone as a fragment.
        if len(bounds) > 1 and lines.whitespace_only(*bounds[-1]):
            tail = bounds.pop()
            bounds[-1] = (bounds[-1][0], tail[1])
        return bounds

    def _gap_atoms(self, lines: LineIndex, start: int, end: int) -> List[Tuple[int, int]]:
        """Text between children; broken into whole lines only when it is oversized."""
        if self.measure(lines, start, end) <= self.policy.max_unit_size:
            return [(start, end)]
        atoms: List[Tuple[int, int]] = []
        cursor = start
        while cursor < end:
            newline = lines.source.find(b"\n", cursor, end)
            stop = end if newline == -1 else newline + 1
            atoms.append((cursor, stop))
            cursor = stop
        return atoms

    @staticmethod
    def _fragments(chunk: Chunk, bounds: List[Tuple[int, int]], lines: LineIndex) -> List[Chunk]:
        original_id = chunk.id
        fragments: List[Chunk] = []
        for index, (start, end) in enumerate(bounds, start=1):
            first = index == 1
            fragment = Chunk(
                file_identity=chunk.file_identity,
                kind=chunk.kind,
                name=f"{chunk.name}#part{index}",
                span=lines.span(start, end),
                depth=chunk.depth,
                language=chunk.language,
                parent=chunk.parent,
                signature=chunk.signature if first else "",
                docstring=chunk.docstring if first else "",
                decorators=list(chunk.decorators) if first else [],
                tags=list(chunk.tags) if first else [],
                extends=chunk.extends if first else None,
                receiver=chunk.receiver if first else None,
                imports=list(chunk.imports) if first else [],
                fields=list(chunk.fields) if first else [],
                synthetic=True,
                split_from=original_id,
                diagnostics=list(chunk.diagnostics) if first else [],
                gap=chunk.gap,
                node=chunk.node if first else None,
            )
            for child in chunk.children:
                if start <= child.span.start_byte and child.span.end_byte <= end:
                    fragment.adopt(child)
            fragments.append(fragment)
        return fragments
