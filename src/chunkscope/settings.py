"""
Centralized application settings.

The chunker itself only needs a :class:`~chunkscope.chunking.policy.ChunkingPolicy`;
``AppSettings`` wraps it for applications that configure chunkscope through
environment variables (``CHUNKSCOPE_*``) or a TOML file.
"""
from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .chunking.policy import ChunkingPolicy


class AppSettings(BaseSettings):
    """Project-wide settings loaded from env or TOML."""

    model_config = SettingsConfigDict(
        env_prefix="CHUNKSCOPE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    chunking: ChunkingPolicy = ChunkingPolicy()
    max_workers: int = 4
    log_level: str = "INFO"
    log_json: bool = False


_CONFIG_ENV_VAR = "CHUNKSCOPE_CONFIG_PATH"
_DEFAULT_CONFIG_FILE = Path("chunkscope_settings.toml")
_CHUNKING_KEYS = (
    "min_unit_size",
    "max_unit_size",
    "size_unit",
    "merge_adjacent_trivial",
    "chunk_anonymous_literals",
    "main_guard_policy",
    "lambda_assignment_policy",
)


def _load_toml_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from the first TOML file that exists."""
    candidates: List[Path] = []
    if path is not None:
        candidates.append(path)
    config_override = os.getenv(_CONFIG_ENV_VAR)
    if config_override:
        candidates.append(Path(config_override))
    candidates.append(_DEFAULT_CONFIG_FILE)

    for candidate in candidates:
        if candidate.is_file():
            with candidate.open("rb") as handle:
                return tomllib.load(handle)
    return {}


def _flatten_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Translate grouped TOML sections into AppSettings keyword arguments."""
    data: Dict[str, Any] = {}

    chunking = raw.get("chunking", {})
    if chunking:
        policy: Dict[str, Any] = {
            key: chunking[key] for key in _CHUNKING_KEYS if key in chunking
        }
        rules = chunking.get("decorator_rules", [])
        if rules:
            policy["decorator_rules"] = [
                {"pattern": rule["pattern"], "tag": rule["tag"]} for rule in rules
            ]
        data["chunking"] = policy

    general = raw.get("general", {})
    if "max_workers" in general:
        data["max_workers"] = int(general["max_workers"])
    if "log_level" in general:
        data["log_level"] = str(general["log_level"])
    if "log_json" in general:
        data["log_json"] = bool(general["log_json"])

    return data


def load_settings(path: Optional[Path] = None) -> AppSettings:
    raw = _load_toml_config(path)
    return AppSettings(**_flatten_config(raw))
