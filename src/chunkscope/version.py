"""
Version lookup for chunkscope.

``VERSION`` is the single source of truth: setuptools reads it at build time
and the running package reads the copy shipped as package data.
"""

from __future__ import annotations

from functools import lru_cache
from importlib import metadata, resources

_DISTRIBUTION = "chunkscope"


@lru_cache(maxsize=1)
def get_version() -> str:
    try:
        packaged = resources.files(__package__).joinpath("VERSION")
        return packaged.read_text(encoding="utf-8").strip()
    except (FileNotFoundError, ModuleNotFoundError):
        pass
    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "unknown"


__version__ = get_version()

__all__ = ["get_version", "__version__"]
