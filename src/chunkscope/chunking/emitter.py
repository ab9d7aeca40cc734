"""
Emitter: flattens the final chunk tree into ordered ``ChunkRecord`` objects.
"""
from __future__ import annotations

from typing import List

from .models import Chunk, ChunkRecord, SpanRecord


def to_record(chunk: Chunk) -> ChunkRecord:
    return ChunkRecord(
        id=chunk.id,
        parent_id=chunk.parent_id,
        file=chunk.file_identity,
        language=chunk.language,
        kind=chunk.kind,
        name=chunk.name,
        signature=chunk.signature,
        docstring=chunk.docstring,
        decorators=list(chunk.decorators),
        tags=list(chunk.tags),
        span=SpanRecord(
            start_byte=chunk.span.start_byte,
            end_byte=chunk.span.end_byte,
            start_line=chunk.span.start_line,
            end_line=chunk.span.end_line,
        ),
        depth=chunk.depth,
        synthetic=chunk.synthetic,
        split_from=chunk.split_from,
        diagnostics=list(chunk.diagnostics),
        children=[child.id for child in chunk.children],
        extends=chunk.extends,
        receiver=chunk.receiver,
        package=chunk.package,
        imports=list(chunk.imports),
        fields=list(chunk.fields),
    )


class Emitter:
    """Pre-order serialization: parents precede children, siblings in source order."""

    def emit(self, root: Chunk) -> List[ChunkRecord]:
        records: List[ChunkRecord] = []
        stack = [root]
        while stack:
            chunk = stack.pop()
            records.append(to_record(chunk))
            stack.extend(reversed(chunk.children))
        return records
