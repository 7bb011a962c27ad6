"""Tests for chunk size measurement."""

import pytest

from codechunk.chunking import sizing
from codechunk.chunking.sizing import SizeMeter, SizeUnit, coalesce


class FakeEncoding:
    """Counts whitespace-separated words, standing in for a BPE encoding."""

    def encode(self, text):
        return text.split()


class TestCoalesce:
    def test_joins_touching_segments(self):
        assert coalesce([(5, 8), (0, 3), (3, 5), (10, 12)]) == [(0, 8), (10, 12)]

    def test_drops_empty_segments(self):
        assert coalesce([(4, 4), (1, 2)]) == [(1, 2)]


class TestSizeMeter:
    """Test measurement in each unit."""

    SOURCE = "int a;\n\n    int b;\n"

    @pytest.mark.parametrize(
        "unit,expected",
        [
            (SizeUnit.TOKENS, 6),
            (SizeUnit.CHARS, 10),
            (SizeUnit.LINES, 2),
        ],
    )
    def test_whole_file(self, make_stream, unit, expected):
        stream = make_stream(self.SOURCE)
        meter = SizeMeter(stream, unit)

        assert meter.measure([(0, len(self.SOURCE))]) == expected

    def test_whitespace_is_free(self, make_stream):
        """Test that reindenting does not change any size."""
        compact = make_stream("int a;\nint b;\n")
        spread = make_stream(self.SOURCE)

        for unit in (SizeUnit.TOKENS, SizeUnit.CHARS, SizeUnit.LINES):
            assert SizeMeter(compact, unit).measure([(0, len(compact.source))]) == SizeMeter(
                spread, unit
            ).measure([(0, len(spread.source))])

    def test_comments_count_as_content(self, make_stream):
        source = "/* one\n   two */\nx;"
        stream = make_stream(source)

        assert SizeMeter(stream, SizeUnit.LINES).measure([(0, len(source))]) == 3
        assert SizeMeter(stream, SizeUnit.TOKENS).measure([(0, len(source))]) == 3

    def test_partial_range_lines(self, make_stream):
        source = "/* one\n   two */\nx;"
        stream = make_stream(source)
        start = source.index("x")

        assert SizeMeter(stream, SizeUnit.LINES).measure([(start, len(source))]) == 1

    def test_lines_shared_by_segments_count_once(self, make_stream):
        source = "a; b;\nc;"
        stream = make_stream(source)
        meter = SizeMeter(stream, SizeUnit.LINES)

        assert meter.measure([(0, 2), (2, 5)]) == 1
        assert meter.measure([(0, len(source))]) == 2

    def test_whitespace_only_segments(self, make_stream):
        source = "a;\n\n\nb;"
        stream = make_stream(source)
        meter = SizeMeter(stream, SizeUnit.TOKENS)

        assert meter.measure([(2, 5)]) == 0
        assert not meter.has_content([(2, 5)])
        assert meter.has_content([(0, 2)])

    def test_bpe_unit(self, make_stream, monkeypatch):
        """Test that the bpe unit encodes the non-whitespace text."""
        monkeypatch.setattr(sizing, "get_encoding", lambda name: FakeEncoding())
        source = "int   answer =\n    42;"
        stream = make_stream(source)
        meter = SizeMeter(stream, SizeUnit.BPE)

        # "int answer = 42 ;" once whitespace is collapsed
        assert meter.measure([(0, len(source))]) == 5

    def test_unit_accepts_strings(self, make_stream):
        meter = SizeMeter(make_stream("a;"), "chars")
        assert meter.unit == SizeUnit.CHARS
