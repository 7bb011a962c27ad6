"""
Per-language keyword and delimiter tables.

Boundary detection is table-driven: adding a language means adding a
``LanguageTable`` entry here rather than branching in the scanner. The
registry is built once at import and never mutated, so concurrent workers
can read it without synchronization.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from .errors import UnsupportedLanguageError
from .types import DeclaredKind, TokenKind

# Common aliases external tokenizers use for their kind tags
DEFAULT_KIND_ALIASES: Mapping[str, TokenKind] = MappingProxyType(
    {
        "identifier": TokenKind.WORD,
        "keyword": TokenKind.WORD,
        "name": TokenKind.WORD,
        "type": TokenKind.WORD,
        "number": TokenKind.NUMBER,
        "number_literal": TokenKind.NUMBER,
        "string": TokenKind.STRING,
        "string_literal": TokenKind.STRING,
        "char_literal": TokenKind.STRING,
        "operator": TokenKind.PUNCT,
        "punctuation": TokenKind.PUNCT,
        "delimiter": TokenKind.PUNCT,
        "comment": TokenKind.COMMENT,
        "line_comment": TokenKind.COMMENT,
        "block_comment": TokenKind.COMMENT,
        "whitespace": TokenKind.WHITESPACE,
        "newline": TokenKind.WHITESPACE,
        "ws": TokenKind.WHITESPACE,
        "preprocessor": TokenKind.PREPROCESSOR,
        "directive": TokenKind.PREPROCESSOR,
    }
)

_CONTROL_COMMON = frozenset(
    {
        "if",
        "else",
        "for",
        "while",
        "do",
        "switch",
        "case",
        "return",
        "try",
        "catch",
        "finally",
        "throw",
        "new",
        "delete",
    }
)


@dataclass(frozen=True, eq=False)
class LanguageTable:
    """Keyword/delimiter table for one language."""

    name: str
    extensions: Tuple[str, ...]
    declaration_keywords: Mapping[str, DeclaredKind]
    scope_separator: str = "::"
    # Words that never start a declaration statement
    control_keywords: FrozenSet[str] = _CONTROL_COMMON
    # Words skipped when looking for a declared name after its keyword
    name_skip_words: FrozenSet[str] = frozenset()
    # Words after which the following identifier is not the declared name
    inheritance_words: FrozenSet[str] = frozenset()
    # Visibility words recorded as modifiers (``public`` etc.)
    visibility_words: FrozenSet[str] = frozenset()
    # C++ style ``public:`` section labels inside class bodies
    access_labels: FrozenSet[str] = frozenset()
    template_keyword: Optional[str] = None
    statement_terminators: FrozenSet[str] = frozenset({";", "{", "}"})
    list_separator: str = ","
    # Newline ends a declaration statement (Go, JavaScript without semicolons)
    newline_terminates: bool = False
    # Lexer switches
    preprocessor: bool = False
    backtick_strings: bool = False
    raw_strings: bool = False
    lifetimes: bool = False
    kind_aliases: Mapping[str, TokenKind] = field(
        default_factory=lambda: DEFAULT_KIND_ALIASES
    )

    def kind_for(self, word: str) -> Optional[DeclaredKind]:
        return self.declaration_keywords.get(word)


def _kinds(**entries: DeclaredKind) -> Mapping[str, DeclaredKind]:
    return MappingProxyType(dict(entries))


_CPP = LanguageTable(
    name="cpp",
    extensions=(".cpp", ".cc", ".cxx", ".c++", ".hpp", ".hh", ".hxx", ".h++", ".ipp"),
    declaration_keywords=_kinds(
        namespace=DeclaredKind.NAMESPACE,
        **{
            "class": DeclaredKind.CLASS,
            "struct": DeclaredKind.STRUCT,
            "union": DeclaredKind.STRUCT,
            "enum": DeclaredKind.ENUM,
        },
    ),
    control_keywords=_CONTROL_COMMON
    | {"sizeof", "decltype", "alignof", "static_assert", "typedef", "co_return", "goto", "using"},
    name_skip_words=frozenset({"class", "struct", "alignas", "inline"}),
    visibility_words=frozenset({"public", "private", "protected"}),
    access_labels=frozenset({"public", "private", "protected"}),
    template_keyword="template",
    preprocessor=True,
    raw_strings=True,
)

_C = LanguageTable(
    name="c",
    extensions=(".c", ".h"),
    declaration_keywords=_kinds(
        **{
            "struct": DeclaredKind.STRUCT,
            "union": DeclaredKind.STRUCT,
            "enum": DeclaredKind.ENUM,
        }
    ),
    control_keywords=_CONTROL_COMMON | {"sizeof", "typedef", "goto"},
    preprocessor=True,
)

_JAVA = LanguageTable(
    name="java",
    extensions=(".java",),
    declaration_keywords=_kinds(
        interface=DeclaredKind.CLASS,
        **{"class": DeclaredKind.CLASS, "enum": DeclaredKind.ENUM},
    ),
    scope_separator=".",
    control_keywords=_CONTROL_COMMON | {"synchronized", "assert"},
    inheritance_words=frozenset({"extends", "implements"}),
    visibility_words=frozenset({"public", "private", "protected"}),
)

_CSHARP = LanguageTable(
    name="csharp",
    extensions=(".cs",),
    declaration_keywords=_kinds(
        namespace=DeclaredKind.NAMESPACE,
        interface=DeclaredKind.CLASS,
        **{
            "class": DeclaredKind.CLASS,
            "struct": DeclaredKind.STRUCT,
            "enum": DeclaredKind.ENUM,
        },
    ),
    scope_separator=".",
    control_keywords=_CONTROL_COMMON | {"foreach", "using", "lock", "checked", "unchecked"},
    visibility_words=frozenset({"public", "private", "protected", "internal"}),
    preprocessor=True,
)

_JAVASCRIPT = LanguageTable(
    name="javascript",
    extensions=(".js", ".jsx", ".mjs", ".cjs"),
    declaration_keywords=_kinds(
        function=DeclaredKind.FUNCTION,
        **{"class": DeclaredKind.CLASS},
    ),
    scope_separator=".",
    control_keywords=_CONTROL_COMMON | {"typeof", "await", "yield", "import"},
    inheritance_words=frozenset({"extends"}),
    newline_terminates=True,
    backtick_strings=True,
)

_TYPESCRIPT = LanguageTable(
    name="typescript",
    extensions=(".ts", ".tsx", ".mts", ".cts"),
    declaration_keywords=_kinds(
        function=DeclaredKind.FUNCTION,
        interface=DeclaredKind.CLASS,
        namespace=DeclaredKind.NAMESPACE,
        module=DeclaredKind.NAMESPACE,
        **{"class": DeclaredKind.CLASS, "enum": DeclaredKind.ENUM},
    ),
    scope_separator=".",
    control_keywords=_CONTROL_COMMON | {"typeof", "await", "yield", "import"},
    inheritance_words=frozenset({"extends", "implements"}),
    visibility_words=frozenset({"public", "private", "protected"}),
    newline_terminates=True,
    backtick_strings=True,
)

_GO = LanguageTable(
    name="go",
    extensions=(".go",),
    declaration_keywords=_kinds(func=DeclaredKind.FUNCTION, type=DeclaredKind.STRUCT),
    scope_separator=".",
    control_keywords=_CONTROL_COMMON | {"go", "defer", "select", "range", "package", "import"},
    newline_terminates=True,
    backtick_strings=True,
)

_RUST = LanguageTable(
    name="rust",
    extensions=(".rs",),
    declaration_keywords=_kinds(
        fn=DeclaredKind.FUNCTION,
        mod=DeclaredKind.NAMESPACE,
        trait=DeclaredKind.CLASS,
        impl=DeclaredKind.CLASS,
        **{
            "struct": DeclaredKind.STRUCT,
            "union": DeclaredKind.STRUCT,
            "enum": DeclaredKind.ENUM,
        },
    ),
    control_keywords=_CONTROL_COMMON | {"loop", "match", "let", "use"},
    lifetimes=True,
)

LANGUAGES: Mapping[str, LanguageTable] = MappingProxyType(
    {
        table.name: table
        for table in (_CPP, _C, _JAVA, _CSHARP, _JAVASCRIPT, _TYPESCRIPT, _GO, _RUST)
    }
)

LANGUAGE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "c++": "cpp",
        "cxx": "cpp",
        "cs": "csharp",
        "c#": "csharp",
        "js": "javascript",
        "ts": "typescript",
        "golang": "go",
        "rs": "rust",
    }
)

_EXTENSION_INDEX: Dict[str, str] = {
    ext: table.name for table in LANGUAGES.values() for ext in table.extensions
}


def supported_languages() -> Tuple[str, ...]:
    return tuple(sorted(LANGUAGES))


def get_language(name: str) -> LanguageTable:
    """Resolve a language identifier (or alias) to its table."""
    key = (name or "").strip().lower()
    key = LANGUAGE_ALIASES.get(key, key)
    table = LANGUAGES.get(key)
    if table is None:
        raise UnsupportedLanguageError(name, supported_languages())
    return table


def language_for_path(path: str) -> LanguageTable:
    """Pick a table from a file extension; raises for unknown extensions."""
    suffix = PurePath(path).suffix.lower()
    language = _EXTENSION_INDEX.get(suffix)
    if language is None:
        raise UnsupportedLanguageError(suffix or path, supported_languages())
    return LANGUAGES[language]
