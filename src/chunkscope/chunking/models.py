"""
Chunk data model and the flat record emitted to downstream collaborators.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from .nodes import NormalizedNode, Span


class ChunkKind(str, Enum):
    MODULE = "module"
    CLASS = "class"
    FUNCTION = "function"
    METHOD = "method"
    PROPERTY = "property"
    STATIC_METHOD = "static_method"
    CLASS_METHOD = "class_method"
    GENERATOR = "generator"
    ASYNC_FUNCTION = "async_function"
    LAMBDA = "lambda"
    DATA_HOLDER = "data_holder"
    OTHER = "other"


class DecoratorTag(str, Enum):
    """Closed set of modifier classifications."""

    PROPERTY = "property"
    STATIC = "static"
    CLASS_SCOPED = "class_scoped"
    GENERATOR = "generator"
    ASYNCHRONOUS = "asynchronous"
    DATA_HOLDER = "data_holder"
    OTHER = "other"


def make_chunk_id(file_identity: str, span: Span, depth: int) -> str:
    """Stable id derived from file identity, byte span and nesting depth."""
    key = f"{file_identity}::{span.start_byte}::{span.end_byte}::{depth}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


@dataclass(eq=False)
class Chunk:
    """Mutable chunk used while the tree is being built and post-processed."""

    file_identity: str
    kind: ChunkKind
    name: str
    span: Span
    depth: int
    language: str = ""
    parent: Optional["Chunk"] = field(default=None, repr=False)
    children: List["Chunk"] = field(default_factory=list, repr=False)
    signature: str = ""
    docstring: str = ""
    decorators: List[str] = field(default_factory=list)
    tags: List[DecoratorTag] = field(default_factory=list)
    extends: Optional[str] = None
    receiver: Optional[str] = None
    package: Optional[str] = None
    imports: List[str] = field(default_factory=list)
    fields: List[str] = field(default_factory=list)
    synthetic: bool = False
    split_from: Optional[str] = None
    diagnostics: List[str] = field(default_factory=list)
    gap: bool = False
    node: Optional[NormalizedNode] = field(default=None, repr=False)

    @property
    def id(self) -> str:
        return make_chunk_id(self.file_identity, self.span, self.depth)

    @property
    def parent_id(self) -> Optional[str]:
        return self.parent.id if self.parent is not None else None

    def adopt(self, child: "Chunk") -> None:
        child.parent = self
        self.children.append(child)

    def sort_children(self) -> None:
        self.children.sort(key=lambda c: (c.span.start_byte, c.span.end_byte))


class SpanRecord(BaseModel):
    """
    Byte range ``[start_byte, end_byte)`` plus the 1-based, inclusive lines of
    its non-whitespace content.

    Whitespace absorbed at either end of a span (blank lines between units,
    indentation before a fragment) is not counted in the line range, so
    ``start_line`` can lie after the line holding ``start_byte`` and
    ``end_line`` before the line holding ``end_byte - 1``. A whitespace-only
    span reports the lines of its first and last byte.
    """

    model_config = ConfigDict(frozen=True)

    start_byte: int
    end_byte: int
    start_line: int
    end_line: int


class ChunkRecord(BaseModel):
    """Flat, serializable image of one chunk (the output contract)."""

    model_config = ConfigDict(frozen=True)

    id: str
    parent_id: Optional[str]
    file: str
    language: str
    kind: ChunkKind
    name: str
    signature: str = ""
    docstring: str = ""
    decorators: List[str] = []
    tags: List[DecoratorTag] = []
    span: SpanRecord
    depth: int
    synthetic: bool = False
    split_from: Optional[str] = None
    diagnostics: List[str] = []
    children: List[str] = []
    extends: Optional[str] = None
    receiver: Optional[str] = None
    package: Optional[str] = None
    imports: List[str] = []
    fields: List[str] = []
