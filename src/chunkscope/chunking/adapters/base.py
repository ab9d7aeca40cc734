"""
Adapter capability shared by every grammar.

An adapter turns a tree-sitter tree into the ``NormalizedNode`` view. The
conversion is a post-order walk driven by an explicit stack, so arbitrarily
deep sources cannot exhaust the interpreter's recursion limit. Grammar nodes
the adapter does not care about are spliced away: their normalized children
are handed to the nearest kept ancestor.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import ClassVar, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from tree_sitter import Node  # type: ignore[import]

from ..nodes import LineIndex, NodeKind, NormalizedNode, Span, Trait
from ..parsing import new_parser

_BLANK_LINE_RE = re.compile(rb"\r?\n[ \t]*\r?\n")
_WS_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


@dataclass
class AdapterContext:
    source: bytes
    lines: LineIndex

    def text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def span(self, node: Node) -> Span:
        return self.lines.span(node.start_byte, node.end_byte)

    def starts_own_line(self, offset: int) -> bool:
        line_start = self.source.rfind(b"\n", 0, offset) + 1
        return not self.source[line_start:offset].strip()

    def blank_line_between(self, end: int, start: int) -> bool:
        return bool(_BLANK_LINE_RE.search(self.source[end:start]))


@dataclass
class _Frame:
    node: Node
    pending: Iterator[Node]
    children: List[NormalizedNode] = field(default_factory=list)


class NodeAdapter(ABC):
    """Normalizes one tree-sitter grammar."""

    language: ClassVar[str]
    grammar: ClassVar[str]
    # Grammar node types whose subtrees never hold anything the chunker needs.
    opaque_types: ClassVar[FrozenSet[str]] = frozenset({"comment"})
    comment_types: ClassVar[FrozenSet[str]] = frozenset({"comment"})
    # Statement containers that start at their first statement, so that a
    # comment opening the block is parsed as a child of the block's owner.
    block_types: ClassVar[FrozenSet[str]] = frozenset()

    def parse(self, source: bytes) -> NormalizedNode:
        tree = new_parser(self.grammar).parse(source)
        return self.normalize(tree.root_node, source)

    def normalize(self, root: Node, source: bytes) -> NormalizedNode:
        ctx = AdapterContext(source=source, lines=LineIndex(source))
        stack = [_Frame(root, iter(root.named_children))]
        while True:
            frame = stack[-1]
            child = next(frame.pending, None)
            if child is not None:
                if child.type not in self.opaque_types:
                    stack.append(_Frame(child, iter(child.named_children)))
                continue
            stack.pop()
            built = self.build(frame.node, frame.children, ctx)
            if not stack:
                if built is None:
                    built = self.statement(frame.node, frame.children, ctx)
                if root.has_error:
                    built = with_traits(built, Trait.ERROR)
                return built
            if built is None:
                stack[-1].children.extend(frame.children)
            else:
                stack[-1].children.append(built)

    @abstractmethod
    def build(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> Optional[NormalizedNode]:
        """Return the normalized node for ``node``, or None to splice its children upward."""

    # -- helpers shared by the grammar adapters ---------------------------

    def statement(
        self,
        node: Node,
        children: Iterable[NormalizedNode],
        ctx: AdapterContext,
        *traits: Trait,
        name: Optional[str] = None,
        text: str = "",
    ) -> NormalizedNode:
        return NormalizedNode(
            kind=NodeKind.STATEMENT,
            span=ctx.span(node),
            name=name,
            children=tuple(children),
            text=text,
            traits=frozenset(traits),
            grammar_type=node.type,
        )

    def leading_comments(self, node: Node, ctx: AdapterContext) -> Tuple[NormalizedNode, ...]:
        """
        Comments directly above ``node``: contiguous, each on its own line and
        not separated from the node (or from each other) by a blank line.
        """
        found: List[NormalizedNode] = []
        start = node.start_byte
        anchor = node
        sibling = anchor.prev_named_sibling
        while (
            sibling is None
            and anchor.parent is not None
            and anchor.parent.type in self.block_types
            and anchor.parent.start_byte == anchor.start_byte
        ):
            anchor = anchor.parent
            sibling = anchor.prev_named_sibling
        while sibling is not None and sibling.type in self.comment_types:
            if ctx.blank_line_between(sibling.end_byte, start):
                break
            if not ctx.starts_own_line(sibling.start_byte):
                break
            found.append(
                NormalizedNode(
                    kind=NodeKind.STATEMENT,
                    span=ctx.span(sibling),
                    text=ctx.text(sibling),
                    traits=frozenset({Trait.COMMENT}),
                    grammar_type=sibling.type,
                )
            )
            start = sibling.start_byte
            sibling = sibling.prev_named_sibling
        found.reverse()
        return tuple(found)


def with_traits(node: NormalizedNode, *traits: Trait) -> NormalizedNode:
    return replace(node, traits=node.traits | frozenset(traits))


def splice_out(children: Iterable[NormalizedNode], target: Span) -> Tuple[NormalizedNode, ...]:
    """Replace the child spanning exactly ``target`` with that child's own children."""
    result: List[NormalizedNode] = []
    for child in children:
        if child.span == target:
            result.extend(child.children)
        else:
            result.append(child)
    return tuple(result)
