"""
Normalization of tree-sitter-java trees.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from tree_sitter import Node  # type: ignore[import]

from ..nodes import NodeKind, NormalizedNode, Trait
from .base import AdapterContext, NodeAdapter, normalize_whitespace

_CLASS_TYPES = frozenset(
    {
        "class_declaration",
        "interface_declaration",
        "enum_declaration",
        "record_declaration",
        "annotation_type_declaration",
    }
)
_FUNCTION_TYPES = frozenset(
    {"method_declaration", "constructor_declaration", "compact_constructor_declaration"}
)
_ANNOTATION_TYPES = frozenset({"annotation", "marker_annotation"})
# Visibility and ``final`` say nothing about what kind of unit a member is.
_KEYWORD_MODIFIERS = frozenset({"static", "abstract", "default", "synchronized", "native"})
_FIELD_TYPES = frozenset({"field_declaration", "constant_declaration"})
_COMMENT_TYPES = frozenset({"line_comment", "block_comment", "comment"})


class JavaAdapter(NodeAdapter):
    language = "java"
    grammar = "java"
    comment_types = _COMMENT_TYPES
    opaque_types = _COMMENT_TYPES | frozenset(
        {
            "string_literal",
            "character_literal",
            "decimal_integer_literal",
            "hex_integer_literal",
            "decimal_floating_point_literal",
            "identifier",
            "scoped_identifier",
            "type_identifier",
            "scoped_type_identifier",
            "generic_type",
            "array_type",
            "integral_type",
            "floating_point_type",
            "boolean_type",
            "void_type",
            "type_parameters",
            "type_arguments",
            "formal_parameters",
            "superclass",
            "super_interfaces",
            "extends_interfaces",
            "throws",
            "dimensions",
            "true",
            "false",
            "null_literal",
        }
    )

    def build(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> Optional[NormalizedNode]:
        kind = node.type
        if kind == "program":
            return NormalizedNode(
                kind=NodeKind.MODULE,
                span=ctx.span(node),
                children=tuple(children),
                package=self._package_name(node, ctx),
                grammar_type=kind,
            )
        if kind in _ANNOTATION_TYPES:
            return NormalizedNode(
                kind=NodeKind.MODIFIER,
                span=ctx.span(node),
                text=ctx.text(node).strip(),
                grammar_type=kind,
            )
        if kind == "modifiers":
            return None
        if kind in _CLASS_TYPES:
            modifiers, rest = self._split_modifiers(node, children, ctx)
            return NormalizedNode(
                kind=NodeKind.CLASS,
                span=ctx.span(node),
                name=ctx.text(node.child_by_field_name("name")) or None,
                children=rest,
                modifiers=modifiers,
                doc_candidates=self.leading_comments(node, ctx),
                extends=self._extends(node, ctx),
                grammar_type=kind,
            )
        if kind in _FUNCTION_TYPES:
            modifiers, rest = self._split_modifiers(node, children, ctx)
            return NormalizedNode(
                kind=NodeKind.FUNCTION,
                span=ctx.span(node),
                name=ctx.text(node.child_by_field_name("name")) or None,
                children=rest,
                modifiers=modifiers,
                doc_candidates=self.leading_comments(node, ctx),
                signature=self._signature(node, ctx),
                grammar_type=kind,
            )
        if kind == "lambda_expression":
            parameters = node.child_by_field_name("parameters")
            signature = ctx.text(parameters)
            if parameters is not None and parameters.type == "identifier":
                signature = f"({signature})"
            return NormalizedNode(
                kind=NodeKind.EXPRESSION,
                span=ctx.span(node),
                children=tuple(children),
                signature=signature,
                traits=frozenset({Trait.ANONYMOUS_CALLABLE}),
                grammar_type=kind,
            )
        if kind == "import_declaration":
            return self.statement(
                node, children, ctx, Trait.IMPORT, text=normalize_whitespace(ctx.text(node))
            )
        if kind in _FIELD_TYPES:
            declarator = node.child_by_field_name("declarator")
            name = declarator.child_by_field_name("name") if declarator is not None else None
            return self.statement(node, children, ctx, Trait.FIELD, name=ctx.text(name) or None)
        if kind == "enum_constant":
            return self.statement(node, children, ctx, name=ctx.text(node.child_by_field_name("name")))
        if kind.endswith("_statement") or kind.endswith("_declaration"):
            return self.statement(node, children, ctx)
        return None

    def _split_modifiers(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> Tuple[Tuple[NormalizedNode, ...], Tuple[NormalizedNode, ...]]:
        """Annotations arrive as children; keywords are read off the ``modifiers`` node."""
        modifiers = [c for c in children if c.kind is NodeKind.MODIFIER]
        for child in node.children:
            if child.type != "modifiers":
                continue
            for keyword in child.children:
                if not keyword.is_named and keyword.type in _KEYWORD_MODIFIERS:
                    modifiers.append(
                        NormalizedNode(
                            kind=NodeKind.MODIFIER,
                            span=ctx.span(keyword),
                            text=ctx.text(keyword),
                            traits=frozenset({Trait.KEYWORD}),
                            grammar_type=keyword.type,
                        )
                    )
        modifiers.sort(key=lambda m: m.span.start_byte)
        rest = tuple(c for c in children if c.kind is not NodeKind.MODIFIER)
        return tuple(modifiers), rest

    @staticmethod
    def _signature(node: Node, ctx: AdapterContext) -> str:
        signature = ctx.text(node.child_by_field_name("parameters"))
        return_type = node.child_by_field_name("type")
        if return_type is not None:
            signature = f"{signature} -> {ctx.text(return_type)}"
        return signature

    @staticmethod
    def _extends(node: Node, ctx: AdapterContext) -> Tuple[str, ...]:
        """The superclass, or the interfaces an interface extends; never ``implements``."""
        bases: List[str] = []
        for child in node.named_children:
            if child.type == "superclass":
                bases.extend(ctx.text(t) for t in child.named_children)
            elif child.type == "extends_interfaces":
                for type_list in child.named_children:
                    bases.extend(ctx.text(t) for t in type_list.named_children)
        return tuple(bases)

    @staticmethod
    def _package_name(root: Node, ctx: AdapterContext) -> str:
        for child in root.named_children:
            if child.type != "package_declaration":
                continue
            for part in child.named_children:
                if part.type in ("scoped_identifier", "identifier"):
                    return ctx.text(part)
        return ""
