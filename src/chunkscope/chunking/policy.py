"""
Chunking policy: size bounds and classification switches.

The policy is validated on construction; an unusable combination raises
``ConfigurationError`` before any file is touched.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import List, Literal

from pydantic import BaseModel, model_validator

from ..errors import ConfigurationError
from .models import DecoratorTag


class SizeUnit(str, Enum):
    """Unit used to measure chunk spans against the size bounds."""

    CHARACTERS = "characters"
    LINES = "lines"


InlinePolicy = Literal["chunk", "fold"]


class DecoratorRuleConfig(BaseModel):
    """User supplied decorator classification rule (regex over the modifier text)."""

    pattern: str
    tag: DecoratorTag


class ChunkingPolicy(BaseModel):
    """Size and classification policy for one chunker instance."""

    min_unit_size: int = 120
    max_unit_size: int = 6000
    size_unit: SizeUnit = SizeUnit.CHARACTERS
    merge_adjacent_trivial: bool = True
    chunk_anonymous_literals: bool = False
    main_guard_policy: InlinePolicy = "chunk"
    lambda_assignment_policy: InlinePolicy = "chunk"
    decorator_rules: List[DecoratorRuleConfig] = []

    @model_validator(mode="after")
    def _validate_bounds(self) -> "ChunkingPolicy":
        self.check_bounds()
        return self

    def check_bounds(self) -> None:
        """Raise ``ConfigurationError`` when the policy cannot be applied."""
        if self.max_unit_size <= 0:
            raise ConfigurationError(
                "max_unit_size must be positive",
                {"max_unit_size": self.max_unit_size},
            )
        if self.min_unit_size < 0:
            raise ConfigurationError(
                "min_unit_size must not be negative",
                {"min_unit_size": self.min_unit_size},
            )
        if self.min_unit_size > self.max_unit_size:
            raise ConfigurationError(
                "min_unit_size must not exceed max_unit_size",
                {"min_unit_size": self.min_unit_size, "max_unit_size": self.max_unit_size},
            )
        for rule in self.decorator_rules:
            try:
                re.compile(rule.pattern)
            except re.error as exc:
                raise ConfigurationError(
                    "invalid decorator rule pattern",
                    {"pattern": rule.pattern, "error": str(exc)},
                ) from exc
