"""
Normalization of tree-sitter-go trees.

Go has no decorators and no nested type declarations worth chunking, but
methods are declared at file level with a receiver; the receiver type is
recorded so such functions still report as methods of that type.
"""
from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from tree_sitter import Node  # type: ignore[import]

from ..nodes import NodeKind, NormalizedNode, Trait
from .base import AdapterContext, NodeAdapter

_TYPE_BODIES = frozenset({"struct_type", "interface_type"})
_INTERFACE_METHODS = frozenset({"method_elem", "method_spec"})


class GoAdapter(NodeAdapter):
    language = "go"
    grammar = "go"
    opaque_types = frozenset(
        {
            "comment",
            "interpreted_string_literal",
            "raw_string_literal",
            "rune_literal",
            "int_literal",
            "float_literal",
            "imaginary_literal",
            "identifier",
            "field_identifier",
            "type_identifier",
            "package_identifier",
            "parameter_list",
            "type_parameter_list",
            "qualified_type",
            "pointer_type",
            "slice_type",
            "map_type",
            "generic_type",
            "true",
            "false",
            "nil",
            "iota",
        }
    )

    def build(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> Optional[NormalizedNode]:
        kind = node.type
        if kind == "source_file":
            package = self._package_clause(node)
            return NormalizedNode(
                kind=NodeKind.MODULE,
                span=ctx.span(node),
                children=tuple(children),
                doc_candidates=self.leading_comments(package, ctx) if package is not None else (),
                package=self._package_name(package, ctx),
                grammar_type=kind,
            )
        if kind in ("function_declaration", "method_declaration"):
            return NormalizedNode(
                kind=NodeKind.FUNCTION,
                span=ctx.span(node),
                name=ctx.text(node.child_by_field_name("name")) or None,
                children=tuple(children),
                doc_candidates=self.leading_comments(node, ctx),
                signature=self._signature(node, ctx),
                receiver=self._receiver(node, ctx),
                grammar_type=kind,
            )
        if kind == "func_literal":
            return NormalizedNode(
                kind=NodeKind.EXPRESSION,
                span=ctx.span(node),
                children=tuple(children),
                signature=self._signature(node, ctx),
                traits=frozenset({Trait.ANONYMOUS_CALLABLE}),
                grammar_type=kind,
            )
        if kind == "type_declaration":
            return self._type_declaration(node, children, ctx)
        if kind == "type_spec":
            return self._type_spec(node, children, ctx)
        if kind in ("import_declaration", "import_spec_list"):
            return None
        if kind == "import_spec":
            path = ctx.text(node.child_by_field_name("path")).strip('"`')
            return self.statement(node, children, ctx, Trait.IMPORT, text=path)
        if kind == "field_declaration":
            name = node.child_by_field_name("name")
            if name is None:
                # Embedded type
                return self.statement(node, children, ctx)
            return self.statement(node, children, ctx, Trait.FIELD, name=ctx.text(name))
        if kind in _INTERFACE_METHODS:
            name = ctx.text(node.child_by_field_name("name")) or None
            return self.statement(node, children, ctx, Trait.FIELD, name=name)
        if kind.endswith("_statement") or kind.endswith("_declaration"):
            return self.statement(node, children, ctx)
        return None

    def _type_declaration(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> NormalizedNode:
        # ``type Foo struct {...}`` chunks the whole declaration; grouped
        # ``type ( ... )`` blocks keep one chunk per type inside a statement.
        if node.named_child_count == 1 and len(children) == 1 and children[0].kind is NodeKind.CLASS:
            declared = children[0]
            return replace(
                declared,
                span=ctx.span(node),
                doc_candidates=self.leading_comments(node, ctx),
            )
        return self.statement(node, children, ctx)

    def _type_spec(
        self, node: Node, children: List[NormalizedNode], ctx: AdapterContext
    ) -> Optional[NormalizedNode]:
        body = node.child_by_field_name("type")
        if body is None or body.type not in _TYPE_BODIES:
            return None
        return NormalizedNode(
            kind=NodeKind.CLASS,
            span=ctx.span(node),
            name=ctx.text(node.child_by_field_name("name")) or None,
            children=tuple(children),
            doc_candidates=self.leading_comments(node, ctx),
            grammar_type=body.type,
        )

    @staticmethod
    def _signature(node: Node, ctx: AdapterContext) -> str:
        signature = ctx.text(node.child_by_field_name("parameters"))
        result = node.child_by_field_name("result")
        if result is not None:
            signature = f"{signature} {ctx.text(result)}"
        return signature

    @staticmethod
    def _receiver(node: Node, ctx: AdapterContext) -> str:
        """Type of the receiver, pointer included: ``(s *Server)`` gives ``*Server``."""
        receiver = node.child_by_field_name("receiver")
        if receiver is None:
            return ""
        for param in receiver.named_children:
            if param.type == "parameter_declaration":
                type_node = param.child_by_field_name("type")
                if type_node is not None:
                    return ctx.text(type_node)
        return ctx.text(receiver).strip("()").strip()

    @staticmethod
    def _package_clause(root: Node) -> Optional[Node]:
        for child in root.named_children:
            if child.type == "package_clause":
                return child
        return None

    @staticmethod
    def _package_name(clause: Optional[Node], ctx: AdapterContext) -> str:
        if clause is None:
            return ""
        for part in clause.named_children:
            if part.type == "package_identifier":
                return ctx.text(part)
        return ""

