"""
Semantic chunking of source files.

Tree-sitter trees are normalized by per-grammar adapters, walked into a
nested chunk tree, annotated, sized according to a ``ChunkingPolicy`` and
flattened into ``ChunkRecord`` objects.
"""

from .adapters import get_adapter, register_adapter, supported_languages
from .models import Chunk, ChunkKind, ChunkRecord, DecoratorTag, SpanRecord
from .nodes import NodeKind, NormalizedNode, Span, Trait
from .pipeline import FileResult, SemanticChunker
from .policy import ChunkingPolicy, DecoratorRuleConfig, SizeUnit

__all__ = [
    "Chunk",
    "ChunkKind",
    "ChunkRecord",
    "ChunkingPolicy",
    "DecoratorRuleConfig",
    "DecoratorTag",
    "FileResult",
    "NodeKind",
    "NormalizedNode",
    "SemanticChunker",
    "SizeUnit",
    "Span",
    "SpanRecord",
    "Trait",
    "get_adapter",
    "register_adapter",
    "supported_languages",
]
