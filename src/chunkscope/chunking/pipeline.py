"""
End-to-end chunking: parse, walk, extract metadata, apply size policy, emit.

Each file is chunked independently with no shared mutable state, so
``chunk_files`` simply fans files out over a thread pool.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Union

from ..logger import get_logger
from .adapters import get_adapter
from .boundaries import BoundaryProcessor
from .emitter import Emitter
from .metadata import MetadataExtractor
from .models import ChunkRecord
from .nodes import LineIndex, NormalizedNode
from .parsing import detect_language
from .policy import ChunkingPolicy
from .walker import TreeWalker

if TYPE_CHECKING:  # pragma: no cover
    from ..settings import AppSettings

log = get_logger(__name__)

DEFAULT_MAX_WORKERS = 4


@dataclass
class FileResult:
    """Outcome of chunking one file in a batch."""

    path: Path
    records: List[ChunkRecord] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SemanticChunker:
    """Splits source files into nested, metadata-rich semantic chunks."""

    def __init__(self, policy: Optional[ChunkingPolicy] = None, max_workers: int = DEFAULT_MAX_WORKERS) -> None:
        self.policy = policy or ChunkingPolicy()
        self.policy.check_bounds()
        self.max_workers = max_workers
        self.walker = TreeWalker(self.policy)
        self.extractor = MetadataExtractor(self.policy)
        self.boundaries = BoundaryProcessor(self.policy)
        self.emitter = Emitter()

    @classmethod
    def from_settings(cls, app_settings: "AppSettings") -> "SemanticChunker":
        return cls(policy=app_settings.chunking, max_workers=app_settings.max_workers)

    def chunk_tree(
        self,
        file_identity: str,
        source: bytes,
        root: NormalizedNode,
        language: str = "",
    ) -> List[ChunkRecord]:
        """Chunk an already normalized tree of ``source``."""
        lines = LineIndex(source)
        chunk_root = self.walker.walk(root, lines, file_identity, language)
        self.extractor.apply(chunk_root)
        self.boundaries.process(chunk_root, lines)
        records = self.emitter.emit(chunk_root)
        log.debug(
            "file_chunked",
            file=file_identity,
            language=language,
            chunks=len(records),
            fallback=bool(chunk_root.diagnostics),
        )
        return records

    def chunk_source(
        self,
        source: Union[bytes, str],
        language: str,
        file_identity: str = "<memory>",
    ) -> List[ChunkRecord]:
        if isinstance(source, str):
            source = source.encode("utf-8")
        adapter = get_adapter(language)
        root = adapter.parse(source)
        return self.chunk_tree(file_identity, source, root, adapter.language)

    def chunk_file(self, path: Union[Path, str], language: Optional[str] = None) -> List[ChunkRecord]:
        path = Path(path)
        language = language or detect_language(path)
        return self.chunk_source(path.read_bytes(), language, file_identity=str(path))

    def chunk_files(
        self,
        paths: Sequence[Union[Path, str]],
        max_workers: Optional[int] = None,
        progress_callback: Optional[Callable[[Path], None]] = None,
    ) -> Dict[Path, FileResult]:
        """
        Chunk many files concurrently.

        A failure in one file is logged and reported in that file's
        ``FileResult.error``; it never affects the other files. Results are
        keyed by path in input order.
        """
        resolved = [Path(p) for p in paths]
        results: Dict[Path, FileResult] = {path: FileResult(path=path) for path in resolved}
        workers = max_workers or self.max_workers
        log.info("chunking_files", files=len(results), workers=workers)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_path = {executor.submit(self.chunk_file, path): path for path in results}
            for future in as_completed(future_to_path):
                path = future_to_path[future]
                try:
                    results[path].records = future.result()
                except Exception as exc:
                    results[path].error = f"{type(exc).__name__}: {exc}"
                    log.warning("chunk_file_failed", file=str(path), error=str(exc))
                if progress_callback:
                    progress_callback(path)

        failed = sum(1 for result in results.values() if not result.ok)
        log.info("chunks_ready", files=len(results), failed=failed)
        return results
