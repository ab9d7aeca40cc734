"""
Normalization of tree-sitter-javascript and tree-sitter-typescript trees.

The TypeScript grammars extend the JavaScript one, so a single adapter covers
all three; the subclasses only pick the grammar.
"""
from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Tuple

from tree_sitter import Node  # type: ignore[import]

from ..nodes import NodeKind, NormalizedNode, Trait
from .base import AdapterContext, NodeAdapter, normalize_whitespace, splice_out

_FUNCTION_TYPES = frozenset(
    {"function_declaration", "generator_function_declaration", "method_definition"}
)
_CALLABLE_EXPRESSIONS = frozenset(
    {"arrow_function", "function_expression", "function", "generator_function"}
)
_CLASS_TYPES = frozenset(
    {
        "class_declaration",
        "class",
        "abstract_class_declaration",
        "interface_declaration",
        "enum_declaration",
    }
)
_KEYWORD_MODIFIERS = frozenset({"static", "get", "set", "readonly", "abstract", "override", "declare"})
_NAMED_MODIFIERS = frozenset({"accessibility_modifier", "override_modifier"})
_FIELD_TYPES = frozenset({"field_definition", "public_field_definition"})


class JavaScriptAdapter(NodeAdapter):
    language = "javascript"
    grammar = "javascript"
    opaque_types = frozenset(
        {
            "comment",
            "string",
            "identifier",
            "property_identifier",
            "private_property_identifier",
            "shorthand_property_identifier",
            "number",
            "regex",
            "true",
            "false",
            "null",
            "undefined",
            "type_annotation",
            "type_identifier",
            "predefined_type",
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
                doc_candidates=self._file_comment(node, ctx),
                grammar_type=kind,
            )
        if kind == "decorator":
            return NormalizedNode(
                kind=NodeKind.MODIFIER,
                span=ctx.span(node),
                text=ctx.text(node).strip(),
                grammar_type=kind,
            )
        if kind in _FUNCTION_TYPES:
            return self._function(node, children, ctx)
        if kind in _CLASS_TYPES:
            return self._class(node, children, ctx)
        if kind == "internal_module":
            return NormalizedNode(
                kind=NodeKind.MODULE,
                span=ctx.span(node),
                name=ctx.text(node.child_by_field_name("name")) or None,
                children=tuple(children),
                doc_candidates=self.leading_comments(node, ctx),
                grammar_type=kind,
            )
        if kind in _CALLABLE_EXPRESSIONS:
            return NormalizedNode(
                kind=NodeKind.EXPRESSION,
                span=ctx.span(node),
                children=tuple(children),
                signature=self._signature(node, ctx),
                traits=frozenset({Trait.ANONYMOUS_CALLABLE}) | self._callable_traits(node),
                grammar_type=kind,
            )
        if kind == "yield_expression":
            return NormalizedNode(
                kind=NodeKind.EXPRESSION,
                span=ctx.span(node),
                children=tuple(children),
                traits=frozenset({Trait.YIELD}),
                grammar_type=kind,
            )
        if kind in ("lexical_declaration", "variable_declaration"):
            return self._declaration(node, children, ctx)
        if kind == "export_statement":
            return self._export(node, children, ctx)
        if kind == "import_statement":
            return self.statement(
                node, children, ctx, Trait.IMPORT, text=normalize_whitespace(ctx.text(node))
            )
        if kind in _FIELD_TYPES:
            name_node = node.child_by_field_name("property")
            if name_node is None:
                name_node = node.child_by_field_name("name")
            return self.statement(node, children, ctx, Trait.FIELD, name=ctx.text(name_node) or None)
        if kind.endswith("_statement") or kind.endswith("_declaration"):
            return self.statement(node, children, ctx)
        return None

    def _function(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> NormalizedNode:
        modifiers, body_children = self._split_modifiers(node, children, ctx)
        return NormalizedNode(
            kind=NodeKind.FUNCTION,
            span=ctx.span(node),
            name=ctx.text(node.child_by_field_name("name")) or None,
            children=body_children,
            modifiers=modifiers,
            doc_candidates=self.leading_comments(node, ctx),
            signature=self._signature(node, ctx),
            traits=self._callable_traits(node),
            grammar_type=node.type,
        )

    def _class(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> NormalizedNode:
        modifiers, body_children = self._split_modifiers(node, children, ctx)
        return NormalizedNode(
            kind=NodeKind.CLASS,
            span=ctx.span(node),
            name=ctx.text(node.child_by_field_name("name")) or None,
            children=body_children,
            modifiers=modifiers,
            doc_candidates=self.leading_comments(node, ctx),
            extends=self._heritage(node, ctx),
            grammar_type=node.type,
        )

    def _declaration(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> NormalizedNode:
        declarators = [c for c in node.named_children if c.type == "variable_declarator"]
        if len(declarators) == 1:
            value = declarators[0].child_by_field_name("value")
            if value is not None and value.type in _CALLABLE_EXPRESSIONS:
                return NormalizedNode(
                    kind=NodeKind.FUNCTION,
                    span=ctx.span(node),
                    name=ctx.text(declarators[0].child_by_field_name("name")) or None,
                    children=splice_out(children, ctx.span(value)),
                    doc_candidates=self.leading_comments(node, ctx),
                    signature=self._signature(value, ctx),
                    traits=frozenset({Trait.ASSIGNED_CALLABLE}) | self._callable_traits(value),
                    grammar_type=node.type,
                )
        return self.statement(node, children, ctx)

    def _export(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> NormalizedNode:
        # Decorators written above ``export class`` belong to the export statement.
        declaration = node.child_by_field_name("declaration")
        modifiers = tuple(c for c in children if c.kind is NodeKind.MODIFIER)
        rest = [c for c in children if c.kind is not NodeKind.MODIFIER]
        if declaration is not None and len(rest) == 1:
            inner = rest[0]
            if inner.kind in (NodeKind.FUNCTION, NodeKind.CLASS) and inner.span == ctx.span(declaration):
                return replace(
                    inner,
                    span=ctx.span(node),
                    modifiers=modifiers + inner.modifiers,
                    doc_candidates=self.leading_comments(node, ctx) + inner.doc_candidates,
                )
        return self.statement(node, children, ctx)

    def _split_modifiers(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> Tuple[Tuple[NormalizedNode, ...], Tuple[NormalizedNode, ...]]:
        modifiers = [c for c in children if c.kind is NodeKind.MODIFIER]
        for child in node.children:
            keyword = not child.is_named and child.type in _KEYWORD_MODIFIERS
            if keyword or child.type in _NAMED_MODIFIERS:
                modifiers.append(
                    NormalizedNode(
                        kind=NodeKind.MODIFIER,
                        span=ctx.span(child),
                        text=ctx.text(child),
                        traits=frozenset({Trait.KEYWORD}),
                        grammar_type=child.type,
                    )
                )
        modifiers.sort(key=lambda m: m.span.start_byte)
        rest = tuple(c for c in children if c.kind is not NodeKind.MODIFIER)
        return tuple(modifiers), rest

    @staticmethod
    def _callable_traits(node: Node) -> frozenset:
        traits = set()
        for child in node.children:
            if child.type == "async":
                traits.add(Trait.ASYNC)
            elif child.type == "*":
                traits.add(Trait.YIELD)
        if node.type in ("generator_function", "generator_function_declaration"):
            traits.add(Trait.YIELD)
        return frozenset(traits)

    @staticmethod
    def _signature(node: Node, ctx: AdapterContext) -> str:
        parameters = node.child_by_field_name("parameters")
        if parameters is not None:
            signature = ctx.text(parameters)
        else:
            single = node.child_by_field_name("parameter")
            signature = f"({ctx.text(single)})" if single is not None else ""
        return_type = node.child_by_field_name("return_type")
        if return_type is not None:
            signature += ctx.text(return_type)
        return signature

    @staticmethod
    def _heritage(node: Node, ctx: AdapterContext) -> Tuple[str, ...]:
        bases: List[str] = []
        for child in node.named_children:
            if child.type != "class_heritage":
                continue
            for part in child.named_children:
                if part.type == "extends_clause":
                    value = part.child_by_field_name("value")
                    bases.append(ctx.text(value) if value is not None else ctx.text(part))
                elif part.type not in ("implements_clause", "comment"):
                    bases.append(ctx.text(part))
        return tuple(bases)

    def _file_comment(self, root: Node, ctx: AdapterContext) -> Tuple[NormalizedNode, ...]:
        """A ``/** ... */`` block opening the file and set apart by a blank line."""
        first = root.named_children[0] if root.named_child_count else None
        if first is None or first.type != "comment" or not ctx.text(first).startswith("/**"):
            return ()
        following = first.next_sibling
        if following is not None and not ctx.blank_line_between(first.end_byte, following.start_byte):
            return ()
        return (
            NormalizedNode(
                kind=NodeKind.STATEMENT,
                span=ctx.span(first),
                text=ctx.text(first),
                traits=frozenset({Trait.COMMENT}),
                grammar_type=first.type,
            ),
        )


class TypeScriptAdapter(JavaScriptAdapter):
    language = "typescript"
    grammar = "typescript"


class TsxAdapter(JavaScriptAdapter):
    language = "tsx"
    grammar = "tsx"
