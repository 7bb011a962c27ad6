"""Tests for the reference lexer."""

from codechunk.chunking.languages import get_language
from codechunk.chunking.lexer import tokenize
from codechunk.chunking.types import TokenKind


def kinds_and_texts(tokens):
    return [(t.kind, t.text) for t in tokens if t.kind != TokenKind.WHITESPACE]


class TestTokenize:
    """Test gapless tokenization of brace languages."""

    def test_tokens_are_gapless(self, sample_source, cpp):
        """Test that tokens tile the whole file."""
        tokens = tokenize(sample_source, cpp)

        assert tokens[0].start == 0
        assert tokens[-1].end == len(sample_source)
        for left, right in zip(tokens, tokens[1:]):
            assert left.end == right.start
        assert "".join(t.text for t in tokens) == sample_source

    def test_comments_and_strings(self, cpp):
        """Test that braces inside strings and comments are not punctuation."""
        source = 'auto s = "{ not a brace }"; // } nor this\n/* { */ x;'
        tokens = kinds_and_texts(tokenize(source, cpp))

        assert (TokenKind.STRING, '"{ not a brace }"') in tokens
        assert (TokenKind.COMMENT, "// } nor this") in tokens
        assert (TokenKind.COMMENT, "/* { */") in tokens
        assert not [text for kind, text in tokens if kind == TokenKind.PUNCT and text in "{}"]

    def test_preprocessor_lines(self, cpp):
        """Test that directives at line start become one token, continuations included."""
        source = "#define TWICE(x) \\\n    ((x) * 2)\nint y;"
        tokens = kinds_and_texts(tokenize(source, cpp))

        assert tokens[0] == (TokenKind.PREPROCESSOR, "#define TWICE(x) \\\n    ((x) * 2)")
        assert tokens[1] == (TokenKind.WORD, "int")

    def test_hash_is_not_a_directive_mid_line(self, cpp):
        tokens = kinds_and_texts(tokenize("a # b", cpp))
        assert (TokenKind.PUNCT, "#") in tokens

    def test_raw_string(self, cpp):
        """Test C++ raw strings with a delimiter."""
        source = 'auto r = R"x(quote ") and } brace)x";'
        tokens = kinds_and_texts(tokenize(source, cpp))

        assert (TokenKind.STRING, 'R"x(quote ") and } brace)x"') in tokens

    def test_multi_char_punctuation(self, cpp):
        tokens = kinds_and_texts(tokenize("a::b->c <<= d", cpp))
        puncts = [text for kind, text in tokens if kind == TokenKind.PUNCT]
        assert puncts == ["::", "->", "<<="]

    def test_backtick_template_string(self):
        """Test JavaScript template literals spanning lines."""
        source = "const s = `line {\n}`;"
        tokens = kinds_and_texts(tokenize(source, get_language("javascript")))

        assert (TokenKind.STRING, "`line {\n}`") in tokens

    def test_rust_lifetime_is_not_a_string(self):
        """Test that a lifetime quote does not swallow the rest of the line."""
        source = "fn f<'a>(x: &'a str) -> char { 'x' }"
        tokens = kinds_and_texts(tokenize(source, get_language("rust")))

        assert (TokenKind.STRING, "'x'") in tokens
        assert (TokenKind.PUNCT, "{") in tokens
        assert (TokenKind.PUNCT, "}") in tokens

    def test_unterminated_block_comment_runs_to_end(self, cpp):
        source = "int x; /* never closed {"
        tokens = tokenize(source, cpp)

        assert tokens[-1].kind == TokenKind.COMMENT
        assert tokens[-1].end == len(source)
