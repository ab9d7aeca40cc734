from pathlib import Path

import pytest

from chunkscope.chunking import ChunkKind, ChunkingPolicy, DecoratorTag, SemanticChunker
from conftest import assert_chunk_invariants, by_name

pytest.importorskip("tree_sitter_language_pack")  # pragma: no cover


@pytest.fixture
def sample(fixtures_dir: Path) -> Path:
    return fixtures_dir / "sample.py"


@pytest.fixture
def records(sample: Path):
    return SemanticChunker(ChunkingPolicy(min_unit_size=400)).chunk_file(sample)


def test_sample_satisfies_invariants(records, sample: Path) -> None:
    assert_chunk_invariants(records, sample.read_bytes())
    assert {r.language for r in records} == {"python"}
    assert {r.file for r in records} == {str(sample)}


def test_module_metadata(records) -> None:
    root = records[0]
    assert root.kind is ChunkKind.MODULE
    assert root.name == "sample"
    assert root.docstring.startswith("Inventory helpers used by the chunking tests.")
    assert root.imports == [
        "import os",
        "import sys",
        "from dataclasses import dataclass",
        "from typing import Dict, Optional",
    ]


def test_leading_statements_fold_into_preamble(records) -> None:
    by_id = {r.id: r for r in records}
    top = [by_id[c] for c in records[0].children]
    assert top[0].name == "<preamble>"
    assert top[0].synthetic
    assert top[0].span.start_byte == 0
    assert top[1].name == "greet"


def test_class_method_kinds(records) -> None:
    by_id = {r.id: r for r in records}
    shelf = by_name(records, "Shelf")
    methods = [by_id[c] for c in shelf.children]

    assert [(m.name, m.kind, m.decorators) for m in methods] == [
        ("restock", ChunkKind.METHOD, []),
        ("capacity", ChunkKind.PROPERTY, ["property"]),
        ("empty", ChunkKind.STATIC_METHOD, ["static"]),
        ("build", ChunkKind.CLASS_METHOD, ["class_scoped"]),
    ]
    assert shelf.extends == "Item"
    assert methods[1].docstring == "Property method."


def test_decorator_is_inside_method_span(records, sample: Path) -> None:
    capacity = by_name(records, "capacity")
    source = sample.read_bytes()
    text = source[capacity.span.start_byte:capacity.span.end_byte]
    assert text.startswith(b"@property")


def test_functions(records) -> None:
    greet = by_name(records, "greet")
    assert greet.kind is ChunkKind.FUNCTION
    assert greet.signature == "(name: str) -> str"
    assert greet.docstring == "Return a greeting."

    fetch = by_name(records, "fetch")
    assert fetch.kind is ChunkKind.ASYNC_FUNCTION
    assert fetch.tags == [DecoratorTag.ASYNCHRONOUS]

    countdown = by_name(records, "countdown")
    assert countdown.kind is ChunkKind.GENERATOR
    assert countdown.tags == [DecoratorTag.GENERATOR]

    ticker = by_name(records, "ticker")
    assert ticker.kind is ChunkKind.ASYNC_FUNCTION
    assert ticker.tags == [DecoratorTag.ASYNCHRONOUS, DecoratorTag.GENERATOR]


def test_data_holder(records) -> None:
    record = by_name(records, "Record")
    assert record.kind is ChunkKind.DATA_HOLDER
    assert record.decorators == ["data_holder"]
    assert record.fields == ["name", "age", "email"]


def test_nested_function(records, sample: Path) -> None:
    outer = by_name(records, "outer")
    inner = by_name(records, "inner")
    assert inner.parent_id == outer.id
    assert inner.depth == outer.depth + 1 == 2
    assert outer.docstring == "Function with a nested function."
    source = sample.read_bytes()
    assert source[outer.span.start_byte:outer.span.end_byte].startswith(b"# Holds an inner helper")


def test_lambda_assignment_and_main_guard(records) -> None:
    square = by_name(records, "square")
    assert square.kind is ChunkKind.LAMBDA
    assert square.signature == "(x)"

    guard = by_name(records, "__main__")
    assert guard.kind is ChunkKind.OTHER
    assert guard.depth == 1


def test_fold_policies_keep_inline_constructs_in_gaps(sample: Path) -> None:
    policy = ChunkingPolicy(main_guard_policy="fold", lambda_assignment_policy="fold")
    records = SemanticChunker(policy).chunk_file(sample)

    names = {r.name for r in records}
    assert "square" not in names
    assert "__main__" not in names
    assert_chunk_invariants(records, sample.read_bytes())


def test_small_max_splits_class_at_method_boundaries(sample: Path) -> None:
    source = sample.read_bytes()
    baseline = SemanticChunker().chunk_file(sample)
    shelf = by_name(baseline, "Shelf")
    by_id = {r.id: r for r in baseline}
    method_sizes = [by_id[c].span.end_byte - by_id[c].span.start_byte for c in shelf.children]
    shelf_size = shelf.span.end_byte - shelf.span.start_byte
    limit = max(method_sizes) + 10
    assert limit < shelf_size

    records = SemanticChunker(ChunkingPolicy(min_unit_size=0, max_unit_size=limit)).chunk_file(sample)
    fragments = [r for r in records if r.split_from == shelf.id]

    assert len(fragments) >= 2
    assert all(f.synthetic and f.kind is ChunkKind.CLASS for f in fragments)
    assert fragments[0].span.start_byte == shelf.span.start_byte
    assert fragments[-1].span.end_byte == shelf.span.end_byte
    for left, right in zip(fragments, fragments[1:]):
        assert left.span.end_byte == right.span.start_byte
    assert fragments[0].docstring == "An item that holds other items."
    assert all(f.docstring == "" for f in fragments[1:])
    assert_chunk_invariants(records, source)


def test_syntax_error_falls_back_to_single_chunk() -> None:
    from chunkscope.errors import MalformedTreeWarning

    source = "def broken(:\n    return\n"
    with pytest.warns(MalformedTreeWarning):
        records = SemanticChunker().chunk_source(source, "python", file_identity="broken.py")

    assert len(records) == 1
    assert records[0].span.end_byte == len(source.encode())
    assert records[0].diagnostics


BLOCK_COMMENTS = """def dec(fn):
    return fn


def outer(flag):
    if flag:
        # Registered only when flagged.
        @dec
        def handler():
            return 1
        return handler


class Widget:
    # Draws the widget.
    def draw(self):
        return None
"""


def test_comment_opening_a_block_is_folded_into_the_first_definition() -> None:
    records = SemanticChunker().chunk_source(BLOCK_COMMENTS, "python", file_identity="blocks.py")
    source = BLOCK_COMMENTS.encode()
    assert_chunk_invariants(records, source)

    handler = by_name(records, "handler")
    assert source[handler.span.start_byte:handler.span.end_byte].startswith(b"# Registered only")
    assert handler.docstring == "Registered only when flagged."
    assert handler.parent_id == by_name(records, "outer").id

    draw = by_name(records, "draw")
    assert source[draw.span.start_byte:draw.span.end_byte].startswith(b"# Draws the widget.")
    assert draw.docstring == "Draws the widget."
