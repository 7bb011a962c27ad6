"""
Reference lexer for brace-delimited languages.

Produces a gapless token stream (whitespace and comments included) that the
token adapter accepts like any external tokenizer's output. It knows just
enough lexical structure to keep strings, comments and preprocessor lines
from confusing delimiter tracking.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import List, Pattern, Tuple

from .languages import LanguageTable
from .types import Token, TokenKind

_MULTI_CHAR_PUNCT = [
    "->*",
    "<<=",
    ">>=",
    "<=>",
    "...",
    "::",
    "->",
    "=>",
    "==",
    "!=",
    "<=",
    ">=",
    "&&",
    "||",
    "++",
    "--",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "&=",
    "|=",
    "^=",
    "<<",
    ">>",
]

_PREPROCESSOR = re.compile(r"#(?:\\\r?\n|[^\n])*")

# Group names in match priority order
_GROUP_KINDS = (
    ("ws", TokenKind.WHITESPACE),
    ("comment", TokenKind.COMMENT),
    ("string", TokenKind.STRING),
    ("number", TokenKind.NUMBER),
    ("word", TokenKind.WORD),
    ("punct", TokenKind.PUNCT),
    ("other", TokenKind.OTHER),
)


@lru_cache(maxsize=None)
def _master_pattern(table: LanguageTable) -> Pattern[str]:
    strings = []
    if table.raw_strings:
        strings.append(r'(?:u8|[uUL])?R"(?P<delim>[^()\\\s]{0,16})\(.*?\)(?P=delim)"')
    strings.append(r'"(?:\\.|[^"\\\n])*"?')
    if table.lifetimes:
        strings.append(r"'(?:\\[^'\n]*|[^'\\\n])'")
    else:
        strings.append(r"'(?:\\.|[^'\\\n])*'")
    if table.backtick_strings:
        strings.append(r"`(?:\\.|[^`\\])*`?")

    punct = "|".join(re.escape(p) for p in _MULTI_CHAR_PUNCT)
    parts = [
        r"(?P<ws>\s+)",
        r"(?P<comment>//[^\n]*|/\*.*?(?:\*/|\Z))",
        r"(?P<string>" + "|".join(strings) + ")",
        r"(?P<number>\d[\w.']*)",
        r"(?P<word>(?:[^\W\d]|\$)(?:\w|\$)*)",
        r"(?P<punct>" + punct + r"|[^\w\s])",
        r"(?P<other>.)",
    ]
    return re.compile("|".join(parts), re.DOTALL)


def tokenize(source: str, table: LanguageTable) -> Tuple[Token, ...]:
    """Split ``source`` into a gapless token stream."""
    pattern = _master_pattern(table)
    tokens: List[Token] = []
    pos = 0
    at_line_start = True
    length = len(source)

    while pos < length:
        if table.preprocessor and at_line_start and source[pos] == "#":
            directive = _PREPROCESSOR.match(source, pos)
            if directive:
                end = directive.end()
                tokens.append(
                    Token(TokenKind.PREPROCESSOR, source[pos:end], pos, end)
                )
                pos = end
                at_line_start = False
                continue

        match = pattern.match(source, pos)
        if match is None:  # pragma: no cover - the ``other`` group matches anything
            raise ValueError(f"lexer stalled at offset {pos}")

        kind = TokenKind.OTHER
        for group, group_kind in _GROUP_KINDS:
            if match.group(group) is not None:
                kind = group_kind
                break

        end = match.end()
        text = source[pos:end]
        tokens.append(Token(kind, text, pos, end))

        if kind == TokenKind.WHITESPACE:
            at_line_start = at_line_start or "\n" in text
        else:
            at_line_start = False
        pos = end

    return tuple(tokens)
