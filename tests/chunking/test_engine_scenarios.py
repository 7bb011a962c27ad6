"""End-to-end tests for the per-file chunking pipeline."""

import random

import pytest

from codechunk.chunking.config import ChunkingConfig
from codechunk.chunking.emitter import chunk_text
from codechunk.chunking.engine import calculate_coverage, chunk_source, reconstruct
from codechunk.chunking.errors import ChunkingCancelled, TokenStreamError
from codechunk.chunking.lexer import tokenize
from codechunk.chunking.languages import get_language
from codechunk.chunking.sizing import SizeUnit

HELPER = (
    "namespace utils {\n"
    "class Helper {\n"
    "    int calculate(int v) {\n"
    "        int doubled = v * 2;\n"
    "        return doubled + 1;\n"
    "    }\n"
    "};\n"
    "}\n"
)


def assert_exact_cover(chunks, source):
    segments = [segment for chunk in chunks for segment in chunk.segments]
    coverage_pct, gaps, overlaps = calculate_coverage(segments, len(source))
    assert gaps == []
    assert overlaps == []
    assert coverage_pct == 100.0
    assert reconstruct(chunks, source) == source


class TestScenarios:
    """Test the reference chunking scenarios."""

    def test_nested_declarations_with_room_to_spare(self):
        """Namespace, class and method each get one chunk with their scope path."""
        chunks = chunk_source(HELPER, ChunkingConfig(language="cpp", max_chunk_size=1000))

        assert [(c.kind, c.scope_path) for c in chunks] == [
            ("namespace", ("utils",)),
            ("class", ("utils", "Helper")),
            ("function", ("utils", "Helper", "calculate")),
        ]
        helper = chunks[1]
        assert chunk_text(helper, HELPER).startswith("class Helper {")
        assert chunk_text(helper, HELPER).rstrip().endswith("};")
        assert chunks[2].signature_text == "int calculate(int v)"
        assert all(c.sequence_index is None for c in chunks)
        assert_exact_cover(chunks, HELPER)

    def test_one_token_budget_splits_the_body(self):
        """With a one-token budget the method splits but its signature stays whole."""
        chunks = chunk_source(HELPER, ChunkingConfig(language="cpp", max_chunk_size=1))

        pieces = [c for c in chunks if c.scope_path == ("utils", "Helper", "calculate")]
        assert len(pieces) > 1
        assert [p.sequence_index for p in pieces] == list(range(len(pieces)))
        assert all(p.kind == "function" for p in pieces)
        assert {p.structure_id for p in pieces} == {pieces[0].chunk_id}

        signature_end = HELPER.index("{", HELPER.index("calculate")) + 1
        first = pieces[0]
        assert first.start == HELPER.index("int calculate")
        assert first.end >= signature_end
        for piece in pieces[1:]:
            assert piece.start >= signature_end
        assert_exact_cover(chunks, HELPER)

    def test_split_overloads_are_told_apart(self):
        """Test that pieces of two same-named split functions link to their own first piece."""
        source = (
            "int f(int a) {\n    a++;\n    a++;\n}\n"
            "int f(double b) {\n    b++;\n    b++;\n}\n"
        )
        chunks = chunk_source(source, ChunkingConfig(language="cpp", max_chunk_size=4), "o.cpp")

        structures = {}
        for chunk in chunks:
            assert chunk.sequence_index is not None
            structures.setdefault(chunk.structure_id, []).append(chunk)

        assert len(structures) == 2
        for structure_id, pieces in structures.items():
            assert pieces[0].chunk_id == structure_id
            assert [p.sequence_index for p in pieces] == list(range(len(pieces)))
            assert len({p.signature_text for p in pieces}) == 1
        assert_exact_cover(chunks, source)

    def test_doc_comment_attaches_to_function(self):
        source = "/// Adds two numbers.\nint add(int a, int b) {\n    return a + b;\n}\n"
        chunks = chunk_source(source, ChunkingConfig(language="cpp"))

        (chunk,) = chunks
        assert chunk.kind == "function"
        assert chunk.leading_comment == "/// Adds two numbers."
        assert chunk.start == 0
        assert not [c for c in chunks if c.kind == "comment"]

    def test_unterminated_class(self):
        source = "class Foo {\n    int x;\n"
        chunks = chunk_source(source, ChunkingConfig(language="cpp"))

        (chunk,) = chunks
        assert chunk.truncated
        assert chunk.kind == "class"
        assert chunk.start == 0
        assert chunk.end == len(source)


class TestSampleFile:
    """Test the dense C++ fixture across budgets and units."""

    def test_chunks_at_generous_budget(self, sample_source):
        chunks = chunk_source(sample_source, ChunkingConfig(language="cpp"), "sample.cpp")
        found = {(c.kind, c.scope_path) for c in chunks}

        assert {
            ("comment", ()),
            ("other", ()),
            ("namespace", ("geometry",)),
            ("namespace", ("geometry", "detail")),
            ("function", ("geometry", "detail", "clamp")),
            ("enum", ("geometry", "Axis")),
            ("struct", ("geometry", "Point")),
            ("function", ("geometry", "Point", "operator<")),
            ("class", ("geometry", "Registry")),
            ("enum", ("geometry", "Registry", "State")),
            ("function", ("geometry", "Registry", "add")),
            ("function", ("geometry", "Registry", "onAdd")),
            ("other", ("geometry", "Registry", "size")),
            ("function", ("geometry", "Registry", "size")),
            ("function", ("geometry", "total")),
            ("namespace", ("(anonymous)",)),
            ("function", ("main",)),
        } == found

    def test_leading_comments_in_sample(self, sample_source):
        chunks = chunk_source(sample_source, ChunkingConfig(language="cpp"))
        by_path = {c.scope_path: c for c in chunks}

        assert by_path[("geometry", "detail", "clamp")].leading_comment == (
            "/// Clamp a value into [lo, hi]."
        )
        assert by_path[("geometry", "Point")].leading_comment.startswith("/**")
        assert by_path[("geometry", "total")].leading_comment == (
            "// Sums every coordinate with a capturing lambda."
        )
        assert by_path[("geometry",)].trailing_comment == "// namespace geometry"

    @pytest.mark.parametrize("unit", [SizeUnit.TOKENS, SizeUnit.LINES, SizeUnit.CHARS])
    @pytest.mark.parametrize(
        "max_size,min_size",
        [(1, 0), (5, 0), (5, 5), (20, 0), (20, 5), (80, 0), (80, 5), (400, 0), (400, 5)],
    )
    def test_exact_cover_and_budget(self, sample_source, unit, max_size, min_size):
        """Test coverage and budget compliance at every budget."""
        config = ChunkingConfig(
            language="cpp", max_chunk_size=max_size, min_chunk_size=min_size, size_unit=unit
        )
        chunks = chunk_source(sample_source, config, "sample.cpp")

        assert_exact_cover(chunks, sample_source)
        for chunk in chunks:
            if not chunk.oversized and not chunk.truncated:
                assert chunk.size <= max_size
        assert [c.ord for c in chunks] == list(range(len(chunks)))
        assert [c.start for c in chunks] == sorted(c.start for c in chunks)

    def test_idempotent(self, sample_source):
        config = ChunkingConfig(language="cpp", max_chunk_size=20, min_chunk_size=4)
        first = chunk_source(sample_source, config, "sample.cpp")
        second = chunk_source(sample_source, config, "sample.cpp")

        assert first == second

    def test_chunk_ids(self, sample_source):
        chunks = chunk_source(sample_source, ChunkingConfig(language="cpp"), "src/sample.cpp")

        assert chunks[0].chunk_id == "src/sample.cpp:0000"
        assert len({c.chunk_id for c in chunks}) == len(chunks)
        assert all(c.file_path == "src/sample.cpp" for c in chunks)


class TestEngineInputs:
    """Test language resolution, external tokens and cancellation."""

    def test_auto_language_uses_extension(self):
        chunks = chunk_source("fn main() {}\n", ChunkingConfig(), "main.rs")
        assert chunks[0].kind == "function"

    def test_external_token_stream(self):
        """Test that a caller-supplied token stream is used as given."""
        source = "int f();\n"
        tokens = [
            {"kind": t.kind.value, "text": t.text, "start": t.start, "end": t.end}
            for t in tokenize(source, get_language("cpp"))
        ]
        chunks = chunk_source(source, ChunkingConfig(language="cpp"), tokens=tokens)
        assert chunks[0].scope_path == ("f",)

    def test_broken_token_stream(self):
        with pytest.raises(TokenStreamError):
            chunk_source("int f();", ChunkingConfig(language="cpp"), tokens=[("word", "int", 0, 3)])

    def test_cancellation_between_stages(self):
        """Test that a cancel request stops the file at the next stage boundary."""
        calls = []

        def should_cancel():
            calls.append(1)
            return len(calls) >= 3

        with pytest.raises(ChunkingCancelled, match="before hierarchy"):
            chunk_source(HELPER, ChunkingConfig(language="cpp"), should_cancel=should_cancel)
        assert len(calls) == 3

    def test_files_are_independent_of_submission_order(self, sample_source):
        """Test that chunking other files in between never changes a file's output."""
        config = ChunkingConfig(language="cpp", max_chunk_size=30)
        inputs = {"a.cpp": sample_source, "b.cpp": HELPER, "c.cpp": "int f();\n"}
        baseline = {name: chunk_source(src, config, name) for name, src in inputs.items()}

        order = list(inputs)
        random.Random(7).shuffle(order)
        for name in order:
            assert chunk_source(inputs[name], config, name) == baseline[name]
