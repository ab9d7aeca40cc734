"""
Normalization of tree-sitter-python trees.
"""
from __future__ import annotations

import ast
import inspect
import re
from dataclasses import replace
from typing import List, Optional, Tuple

from tree_sitter import Node  # type: ignore[import]

from ..nodes import NodeKind, NormalizedNode, Trait
from .base import AdapterContext, NodeAdapter, normalize_whitespace, splice_out

_MAIN_GUARD_RE = re.compile(
    r"""^(?:__name__\s*==\s*(['"])__main__\1|(['"])__main__\2\s*==\s*__name__)$"""
)
_IMPORT_TYPES = frozenset({"import_statement", "import_from_statement", "future_import_statement"})
_STRING_TYPES = frozenset({"string", "concatenated_string"})
_NON_BASE_ARGUMENTS = frozenset({"keyword_argument", "list_splat", "dictionary_splat", "comment"})


def literal_value(text: str) -> Optional[str]:
    """Evaluate a Python string literal and clean it like ``inspect.getdoc`` does."""
    try:
        value = ast.literal_eval(text.strip())
    except (ValueError, SyntaxError):
        return None
    if not isinstance(value, str):
        return None
    return inspect.cleandoc(value)


class PythonAdapter(NodeAdapter):
    language = "python"
    grammar = "python"
    block_types = frozenset({"block"})
    opaque_types = frozenset(
        {
            "comment",
            "string",
            "concatenated_string",
            "identifier",
            "dotted_name",
            "integer",
            "float",
            "true",
            "false",
            "none",
            "type",
        }
    )

    def build(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> Optional[NormalizedNode]:
        kind = node.type
        if kind == "module":
            return NormalizedNode(
                kind=NodeKind.MODULE,
                span=ctx.span(node),
                children=tuple(children),
                doc_candidates=self._docstring(node, ctx),
                grammar_type=kind,
            )
        if kind == "function_definition":
            return self._function(node, children, ctx)
        if kind == "class_definition":
            return self._class(node, children, ctx)
        if kind == "decorated_definition":
            return self._decorated(node, children, ctx)
        if kind == "decorator":
            return NormalizedNode(
                kind=NodeKind.MODIFIER,
                span=ctx.span(node),
                text=ctx.text(node).strip(),
                grammar_type=kind,
            )
        if kind == "lambda":
            return NormalizedNode(
                kind=NodeKind.EXPRESSION,
                span=ctx.span(node),
                children=tuple(children),
                signature=self._lambda_signature(node, ctx),
                traits=frozenset({Trait.ANONYMOUS_CALLABLE, Trait.LAMBDA}),
                grammar_type=kind,
            )
        if kind == "yield":
            return NormalizedNode(
                kind=NodeKind.EXPRESSION,
                span=ctx.span(node),
                children=tuple(children),
                traits=frozenset({Trait.YIELD}),
                grammar_type=kind,
            )
        if kind == "expression_statement":
            return self._expression_statement(node, children, ctx)
        if kind == "if_statement" and self._is_main_guard(node, ctx):
            return self.statement(node, children, ctx, Trait.MAIN_GUARD, name="__main__")
        if kind in _IMPORT_TYPES:
            return self.statement(
                node, children, ctx, Trait.IMPORT, text=normalize_whitespace(ctx.text(node))
            )
        if kind.endswith("_statement"):
            return self.statement(node, children, ctx)
        return None

    def _function(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> NormalizedNode:
        parameters = ctx.text(node.child_by_field_name("parameters"))
        return_type = node.child_by_field_name("return_type")
        signature = parameters
        if return_type is not None:
            signature = f"{parameters} -> {ctx.text(return_type)}"
        traits = frozenset({Trait.ASYNC}) if any(c.type == "async" for c in node.children) else frozenset()
        return NormalizedNode(
            kind=NodeKind.FUNCTION,
            span=ctx.span(node),
            name=ctx.text(node.child_by_field_name("name")) or None,
            children=tuple(children),
            doc_candidates=self.leading_comments(node, ctx)
            + self._docstring(node.child_by_field_name("body"), ctx),
            signature=signature,
            traits=traits,
            grammar_type=node.type,
        )

    def _class(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> NormalizedNode:
        bases: Tuple[str, ...] = ()
        superclasses = node.child_by_field_name("superclasses")
        if superclasses is not None:
            bases = tuple(
                ctx.text(arg)
                for arg in superclasses.named_children
                if arg.type not in _NON_BASE_ARGUMENTS
            )
        return NormalizedNode(
            kind=NodeKind.CLASS,
            span=ctx.span(node),
            name=ctx.text(node.child_by_field_name("name")) or None,
            children=tuple(children),
            doc_candidates=self.leading_comments(node, ctx)
            + self._docstring(node.child_by_field_name("body"), ctx),
            extends=bases,
            grammar_type=node.type,
        )

    def _decorated(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> Optional[NormalizedNode]:
        modifiers = tuple(c for c in children if c.kind is NodeKind.MODIFIER)
        definitions = [c for c in children if c.kind in (NodeKind.FUNCTION, NodeKind.CLASS)]
        if len(definitions) != 1:
            return None
        definition = definitions[0]
        return replace(
            definition,
            modifiers=modifiers + definition.modifiers,
            doc_candidates=self.leading_comments(node, ctx) + definition.doc_candidates,
        )

    def _expression_statement(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> NormalizedNode:
        inner = node.named_children[0] if node.named_child_count == 1 else None
        if inner is not None and inner.type == "assignment":
            left = inner.child_by_field_name("left")
            right = inner.child_by_field_name("right")
            if left is not None and left.type == "identifier":
                if right is not None and right.type == "lambda":
                    return NormalizedNode(
                        kind=NodeKind.FUNCTION,
                        span=ctx.span(node),
                        name=ctx.text(left),
                        children=splice_out(children, ctx.span(right)),
                        doc_candidates=self.leading_comments(node, ctx),
                        signature=self._lambda_signature(right, ctx),
                        traits=frozenset({Trait.ASSIGNED_CALLABLE, Trait.LAMBDA}),
                        grammar_type="lambda_assignment",
                    )
                if self._in_class_body(node):
                    return self.statement(node, children, ctx, Trait.FIELD, name=ctx.text(left))
        return self.statement(node, children, ctx)

    def _docstring(self, body: Optional[Node], ctx: AdapterContext) -> Tuple[NormalizedNode, ...]:
        if body is None:
            return ()
        for stmt in body.named_children:
            if stmt.type == "comment":
                continue
            if stmt.type != "expression_statement" or stmt.named_child_count != 1:
                return ()
            if stmt.named_children[0].type not in _STRING_TYPES:
                return ()
            value = literal_value(ctx.text(stmt))
            if value is None:
                return ()
            return (
                NormalizedNode(
                    kind=NodeKind.STATEMENT,
                    span=ctx.span(stmt),
                    text=value,
                    traits=frozenset({Trait.DOCSTRING}),
                    grammar_type=stmt.type,
                ),
            )
        return ()

    @staticmethod
    def _lambda_signature(node: Node, ctx: AdapterContext) -> str:
        return f"({ctx.text(node.child_by_field_name('parameters'))})"

    @staticmethod
    def _in_class_body(node: Node) -> bool:
        block = node.parent
        return (
            block is not None
            and block.type == "block"
            and block.parent is not None
            and block.parent.type == "class_definition"
        )

    @staticmethod
    def _is_main_guard(node: Node, ctx: AdapterContext) -> bool:
        if node.parent is None or node.parent.type != "module":
            return False
        condition = normalize_whitespace(ctx.text(node.child_by_field_name("condition")))
        return bool(_MAIN_GUARD_RE.match(condition))
