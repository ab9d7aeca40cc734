"""
chunkscope: semantic chunking of source code for retrieval indexing.
"""

from .chunking import ChunkingPolicy, ChunkKind, ChunkRecord, DecoratorTag, SemanticChunker
from .errors import ConfigurationError, MalformedTreeWarning, UnsupportedLanguageError
from .version import __version__

__all__ = [
    "ChunkKind",
    "ChunkRecord",
    "ChunkingPolicy",
    "ConfigurationError",
    "DecoratorTag",
    "MalformedTreeWarning",
    "SemanticChunker",
    "UnsupportedLanguageError",
    "__version__",
]
