from dataclasses import replace

import pytest

from chunkscope.chunking.models import ChunkKind
from chunkscope.chunking.nodes import NodeKind, Trait
from chunkscope.chunking.policy import ChunkingPolicy
from chunkscope.chunking.walker import FALLBACK_DIAGNOSTIC, TreeWalker, validate_tree
from chunkscope.errors import MalformedTreeWarning

SOURCE = """import os

# helper
@decorate
def outer(a):
    def inner(b):
        return b
    return inner(a)


class Box:
    size = 3

    def get(self):
        yield self.size

value = 1
"""

OUTER = "def outer(a):\n    def inner(b):\n        return b\n    return inner(a)"
INNER = "def inner(b):\n        return b"
BOX = "class Box:\n    size = 3\n\n    def get(self):\n        yield self.size"
GET = "def get(self):\n        yield self.size"


def build_tree(b):
    return b.module(
        b.statement("import os", Trait.IMPORT, text="import os"),
        b.function(
            OUTER,
            "outer",
            modifiers=[b.modifier("@decorate")],
            doc=[b.comment("# helper")],
            children=[b.function(INNER, "inner"), b.statement("return inner(a)")],
        ),
        b.cls(
            BOX,
            "Box",
            children=[
                b.statement("size = 3", Trait.FIELD, name="size"),
                b.function(GET, "get", children=[b.yield_("yield self.size")]),
            ],
        ),
        b.statement("value = 1"),
    )


def walk(b, tree, policy=None):
    walker = TreeWalker(policy or ChunkingPolicy())
    return walker.walk(tree, b.lines, "pkg/sample.py", "python")


def test_root_spans_whole_file_and_top_level_units_partition_it(tree_builder) -> None:
    b = tree_builder(SOURCE)
    root = walk(b, build_tree(b))

    assert root.kind is ChunkKind.MODULE
    assert root.name == "sample"
    assert (root.span.start_byte, root.span.end_byte) == (0, len(b.source))

    units = root.children
    assert [u.name for u in units] == ["<module@1:1>", "outer", "Box", "<module@17:1>"]
    assert units[0].gap and units[3].gap
    cursor = 0
    for unit in units:
        assert unit.span.start_byte == cursor
        assert unit.depth == 1
        cursor = unit.span.end_byte
    assert cursor == len(b.source)


def test_whitespace_between_units_attaches_to_preceding_unit(tree_builder) -> None:
    b = tree_builder(SOURCE)
    root = walk(b, build_tree(b))

    imports, _, box, tail = root.children
    assert b.source[imports.span.start_byte:imports.span.end_byte] == b"import os\n\n"
    assert imports.span.end_line == 1
    assert b.source[box.span.end_byte - 2:box.span.end_byte] == b"\n\n"
    assert b.source[tail.span.start_byte:tail.span.end_byte] == b"value = 1\n"


def test_decorators_and_leading_comment_fold_into_span(tree_builder) -> None:
    b = tree_builder(SOURCE)
    root = walk(b, build_tree(b))

    outer = root.children[1]
    assert outer.span.start_byte == SOURCE.index("# helper")
    assert outer.span.start_line == 3


def test_nested_function_is_child_of_outer(tree_builder) -> None:
    b = tree_builder(SOURCE)
    root = walk(b, build_tree(b))

    outer = root.children[1]
    assert [c.name for c in outer.children] == ["inner"]
    inner = outer.children[0]
    assert inner.parent is outer
    assert inner.depth == outer.depth + 1
    assert outer.span.start_byte < inner.span.start_byte
    assert inner.span.end_byte < outer.span.end_byte


def test_function_inside_class_is_structurally_a_method(tree_builder) -> None:
    b = tree_builder(SOURCE)
    root = walk(b, build_tree(b))

    box = root.children[2]
    assert [(c.name, c.kind) for c in box.children] == [("get", ChunkKind.METHOD)]


def test_comment_only_stretch_becomes_gap_unit(tree_builder) -> None:
    source = "x = 1\n\n# trailing note\n"
    b = tree_builder(source)
    root = walk(b, b.module(b.statement("x = 1")))

    assert len(root.children) == 2
    note = root.children[1]
    assert note.gap
    assert note.span.start_line == 3
    assert note.span.end_byte == len(b.source)


def test_leading_whitespace_attaches_to_first_unit(tree_builder) -> None:
    source = "\n\ndef f():\n    pass\n"
    b = tree_builder(source)
    root = walk(b, b.module(b.function("def f():\n    pass", "f")))

    (f,) = root.children
    assert f.span.start_byte == 0
    assert f.span.end_byte == len(b.source)
    assert (f.span.start_line, f.span.end_line) == (3, 4)


def test_statement_holding_a_definition_is_cut_around_it(tree_builder) -> None:
    source = "handler = register(lambda e: e)\n"
    b = tree_builder(source)
    literal = b.node(
        NodeKind.EXPRESSION,
        "lambda e: e",
        traits=[Trait.ANONYMOUS_CALLABLE, Trait.LAMBDA],
        signature="(e)",
    )
    tree = b.module(b.statement("handler = register(lambda e: e)", children=[literal]))

    folded = walk(b, tree)
    assert len(folded.children) == 1
    assert folded.children[0].gap

    policy = ChunkingPolicy(chunk_anonymous_literals=True)
    root = walk(b, tree, policy=policy)
    head, anonymous, tail = root.children
    assert b.source[head.span.start_byte:head.span.end_byte] == b"handler = register("
    assert anonymous.name == "<anonymous@1:20>"
    assert anonymous.kind is ChunkKind.LAMBDA
    assert anonymous.synthetic is False
    assert b.source[tail.span.start_byte:tail.span.end_byte] == b")\n"


@pytest.mark.parametrize("policy_value, chunked", [("chunk", True), ("fold", False)])
def test_main_guard_policy(tree_builder, policy_value, chunked) -> None:
    source = 'def main():\n    pass\n\nif __name__ == "__main__":\n    main()\n'
    b = tree_builder(source)
    tree = b.module(
        b.function("def main():\n    pass", "main"),
        b.statement(
            'if __name__ == "__main__":\n    main()',
            Trait.MAIN_GUARD,
            name="__main__",
        ),
    )
    root = walk(b, tree, policy=ChunkingPolicy(main_guard_policy=policy_value))

    guard = root.children[-1]
    if chunked:
        assert guard.name == "__main__"
        assert guard.kind is ChunkKind.OTHER
        assert not guard.gap
    else:
        assert guard.gap
        assert guard.kind is ChunkKind.MODULE


@pytest.mark.parametrize("policy_value, chunked", [("chunk", True), ("fold", False)])
def test_lambda_assignment_policy(tree_builder, policy_value, chunked) -> None:
    source = "square = lambda x: x ** 2\n"
    b = tree_builder(source)
    tree = b.module(
        b.function(
            "square = lambda x: x ** 2",
            "square",
            traits=[Trait.ASSIGNED_CALLABLE, Trait.LAMBDA],
            signature="(x)",
        )
    )
    root = walk(b, tree, policy=ChunkingPolicy(lambda_assignment_policy=policy_value))

    (unit,) = root.children
    if chunked:
        assert (unit.name, unit.kind) == ("square", ChunkKind.LAMBDA)
    else:
        assert unit.gap


def test_overlapping_siblings_fall_back_to_whole_file(tree_builder) -> None:
    source = "def a():\n    pass\ndef b():\n    pass\n"
    b = tree_builder(source)
    tree = b.module(
        b.function("def a():\n    pass\ndef b()", "a"),
        b.function("def b():\n    pass", "b"),
    )

    with pytest.warns(MalformedTreeWarning):
        root = walk(b, tree)

    assert root.children == []
    assert (root.span.start_byte, root.span.end_byte) == (0, len(b.source))
    assert root.diagnostics[-1] == FALLBACK_DIAGNOSTIC
    assert any("overlaps" in d for d in root.diagnostics)


def test_parser_error_flag_falls_back_to_whole_file(tree_builder) -> None:
    source = "def broken(:\n"
    b = tree_builder(source)
    tree = b.module()
    tree = replace(tree, traits=frozenset({Trait.ERROR}))

    with pytest.warns(MalformedTreeWarning, match="syntax errors"):
        root = walk(b, tree)

    assert root.children == []
    assert root.diagnostics


def test_validate_tree_reports_child_outside_parent(tree_builder) -> None:
    source = "class A:\n    pass\nx = 1\n"
    b = tree_builder(source)
    tree = b.module(b.cls("class A:\n    pass", "A", children=[b.statement("x = 1")]))

    problems = validate_tree(tree, len(b.source))
    assert len(problems) == 1
    assert "not contained" in problems[0]
