"""
Metadata extraction: docstrings, modifier classification, signatures and the
final chunk kind.

Modifier text is classified through an ordered rule table; the first rule
whose pattern fully matches the text (without a leading ``@``) wins. Rules
supplied by the policy are consulted before the built-in ones. Unmatched
modifiers are kept verbatim and tagged ``other``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .adapters.base import normalize_whitespace
from .models import Chunk, ChunkKind, DecoratorTag
from .nodes import NodeKind, NormalizedNode, Trait
from .policy import ChunkingPolicy


@dataclass(frozen=True)
class DecoratorRule:
    pattern: re.Pattern
    tag: DecoratorTag

    @classmethod
    def compile(cls, pattern: str, tag: DecoratorTag) -> "DecoratorRule":
        return cls(re.compile(pattern, re.DOTALL), tag)

    def matches(self, text: str) -> bool:
        return self.pattern.fullmatch(text) is not None


DEFAULT_RULES: Tuple[DecoratorRule, ...] = (
    DecoratorRule.compile(r"(builtins\.)?property", DecoratorTag.PROPERTY),
    DecoratorRule.compile(r"[\w.]+\.(setter|getter|deleter)", DecoratorTag.PROPERTY),
    DecoratorRule.compile(r"(functools\.)?cached_property", DecoratorTag.PROPERTY),
    DecoratorRule.compile(r"(abc\.)?abstractproperty", DecoratorTag.PROPERTY),
    DecoratorRule.compile(r"get|set", DecoratorTag.PROPERTY),
    DecoratorRule.compile(r"(builtins\.)?staticmethod|static", DecoratorTag.STATIC),
    DecoratorRule.compile(r"(abc\.)?abstractstaticmethod", DecoratorTag.STATIC),
    DecoratorRule.compile(r"(builtins\.)?classmethod", DecoratorTag.CLASS_SCOPED),
    DecoratorRule.compile(r"(abc\.)?abstractclassmethod", DecoratorTag.CLASS_SCOPED),
    DecoratorRule.compile(r"(dataclasses\.)?dataclass(\(.*\))?", DecoratorTag.DATA_HOLDER),
    DecoratorRule.compile(
        r"(attr|attrs)\.(s|attrs|define|frozen|mutable|dataclass)(\(.*\))?",
        DecoratorTag.DATA_HOLDER,
    ),
    DecoratorRule.compile(r"(attr\.)?(define|frozen)(\(.*\))?", DecoratorTag.DATA_HOLDER),
)

_BLOCK_COMMENT_LINE_RE = re.compile(r"^\s*\*(?!/)\s?")
_LINE_COMMENT_RE = re.compile(r"^\s*(//+|#+)!?\s?")


def clean_comment(text: str) -> str:
    """Strip comment markers from one comment, keeping its line structure."""
    text = text.strip()
    if text.startswith("/*"):
        body = text[2:]
        if body.endswith("*/"):
            body = body[:-2]
        body = body.lstrip("*")
        lines = [_BLOCK_COMMENT_LINE_RE.sub("", line).rstrip() for line in body.splitlines()]
    else:
        lines = [_LINE_COMMENT_RE.sub("", line).rstrip() for line in text.splitlines()]
    return "\n".join(lines).strip()


def contains_yield(node: NormalizedNode) -> bool:
    """True when ``node``'s body yields, ignoring nested callables and classes."""
    stack = list(node.children)
    while stack:
        current = stack.pop()
        if current.kind is NodeKind.EXPRESSION and current.has(Trait.YIELD):
            return True
        if current.kind in (NodeKind.FUNCTION, NodeKind.CLASS) or current.has(
            Trait.ANONYMOUS_CALLABLE
        ):
            continue
        stack.extend(current.children)
    return False


class MetadataExtractor:
    """Fills in docstring, decorators, tags, signature and kind of each chunk."""

    def __init__(
        self,
        policy: Optional[ChunkingPolicy] = None,
        rules: Optional[Sequence[DecoratorRule]] = None,
    ) -> None:
        user_rules: List[DecoratorRule] = []
        if policy is not None:
            user_rules = [DecoratorRule.compile(r.pattern, r.tag) for r in policy.decorator_rules]
        self.rules: Tuple[DecoratorRule, ...] = tuple(user_rules) + tuple(
            DEFAULT_RULES if rules is None else rules
        )

    def apply(self, root: Chunk) -> None:
        stack = [root]
        while stack:
            chunk = stack.pop()
            self.extract(chunk)
            stack.extend(chunk.children)

    def classify(self, text: str) -> Optional[DecoratorTag]:
        bare = text.strip().lstrip("@").strip()
        for rule in self.rules:
            if rule.matches(bare):
                return rule.tag
        return None

    def extract(self, chunk: Chunk) -> None:
        """Populate ``chunk`` from its normalized node; only ``chunk`` itself is touched."""
        node = chunk.node
        if node is None:
            return

        chunk.docstring = self.docstring(node)
        chunk.signature = normalize_whitespace(node.signature)

        decorators, tags = self.classify_modifiers(node.modifiers)
        structural = node.kind is NodeKind.FUNCTION or node.has(Trait.ANONYMOUS_CALLABLE)
        if structural and node.has(Trait.ASYNC):
            tags.append(DecoratorTag.ASYNCHRONOUS)
        if structural and (node.has(Trait.YIELD) or contains_yield(node)):
            tags.append(DecoratorTag.GENERATOR)
        chunk.decorators = decorators
        chunk.tags = _dedupe(tags)
        chunk.kind = resolve_kind(chunk.kind, node, chunk.tags)
        chunk.receiver = node.receiver or None

        if node.kind is NodeKind.CLASS:
            chunk.extends = ", ".join(node.extends) or None
            chunk.fields = _dedupe(c.name for c in node.children if c.has(Trait.FIELD) and c.name)
        if chunk.depth == 0:
            chunk.imports = [c.text for c in node.children if c.has(Trait.IMPORT)]
            chunk.package = node.package or None

    def classify_modifiers(
        self, modifiers: Iterable[NormalizedNode]
    ) -> Tuple[List[str], List[DecoratorTag]]:
        decorators: List[str] = []
        tags: List[DecoratorTag] = []
        for modifier in modifiers:
            tag = self.classify(modifier.text)
            if tag is None:
                decorators.append(modifier.text)
                tags.append(DecoratorTag.OTHER)
            else:
                decorators.append(tag.value)
                tags.append(tag)
        return _dedupe(decorators), tags

    @staticmethod
    def docstring(node: NormalizedNode) -> str:
        for candidate in node.doc_candidates:
            if candidate.has(Trait.DOCSTRING):
                return candidate.text
        comments = [clean_comment(c.text) for c in node.doc_candidates if c.has(Trait.COMMENT)]
        return "\n".join(c for c in comments if c)


def resolve_kind(current: ChunkKind, node: NormalizedNode, tags: Sequence[DecoratorTag]) -> ChunkKind:
    if node.kind is NodeKind.CLASS:
        return ChunkKind.DATA_HOLDER if DecoratorTag.DATA_HOLDER in tags else ChunkKind.CLASS
    if node.kind is not NodeKind.FUNCTION and not node.has(Trait.ANONYMOUS_CALLABLE):
        return current
    if DecoratorTag.PROPERTY in tags:
        return ChunkKind.PROPERTY
    if DecoratorTag.STATIC in tags:
        return ChunkKind.STATIC_METHOD
    if DecoratorTag.CLASS_SCOPED in tags:
        return ChunkKind.CLASS_METHOD
    if current in (ChunkKind.METHOD, ChunkKind.LAMBDA):
        return current
    if DecoratorTag.ASYNCHRONOUS in tags:
        return ChunkKind.ASYNC_FUNCTION
    if DecoratorTag.GENERATOR in tags:
        return ChunkKind.GENERATOR
    return ChunkKind.FUNCTION


def _dedupe(items: Iterable) -> list:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
