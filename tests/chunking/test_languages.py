"""Tests for the language table registry."""

import pytest

from codechunk.chunking.errors import UnsupportedLanguageError
from codechunk.chunking.languages import (
    LANGUAGES,
    get_language,
    language_for_path,
    supported_languages,
)
from codechunk.chunking.types import DeclaredKind


class TestLanguageRegistry:
    """Test language lookup by name, alias and extension."""

    def test_supported_languages_sorted(self):
        names = supported_languages()
        assert list(names) == sorted(names)
        assert {"cpp", "c", "java", "csharp", "javascript", "typescript", "go", "rust"} <= set(
            names
        )

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("cpp", "cpp"),
            ("C++", "cpp"),
            (" CPP ", "cpp"),
            ("c#", "csharp"),
            ("js", "javascript"),
            ("golang", "go"),
            ("rs", "rust"),
        ],
    )
    def test_get_language_aliases(self, name, expected):
        assert get_language(name).name == expected

    def test_unknown_language_fails_fast(self):
        """Test that an unknown language names the supported ones."""
        with pytest.raises(UnsupportedLanguageError) as exc_info:
            get_language("cobol")

        assert exc_info.value.language == "cobol"
        assert "cpp" in exc_info.value.supported
        assert "supported:" in str(exc_info.value)

    def test_unsupported_language_is_a_value_error(self):
        with pytest.raises(ValueError):
            get_language("python")

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("src/lib.cpp", "cpp"),
            ("include/lib.HPP", "cpp"),
            ("main.c", "c"),
            ("App.java", "java"),
            ("Program.cs", "csharp"),
            ("index.mjs", "javascript"),
            ("view.tsx", "typescript"),
            ("main.go", "go"),
            ("lib.rs", "rust"),
        ],
    )
    def test_language_for_path(self, path, expected):
        assert language_for_path(path).name == expected

    def test_unknown_extension(self):
        with pytest.raises(UnsupportedLanguageError):
            language_for_path("notes.txt")

    def test_tables_are_read_only(self, cpp):
        """Test that shared tables cannot be modified by a worker."""
        with pytest.raises(TypeError):
            LANGUAGES["cobol"] = cpp  # type: ignore[index]
        with pytest.raises(TypeError):
            cpp.declaration_keywords["module"] = DeclaredKind.NAMESPACE  # type: ignore[index]
        with pytest.raises(AttributeError):
            cpp.name = "other"  # type: ignore[misc]

    def test_kind_for(self, cpp):
        assert cpp.kind_for("namespace") == DeclaredKind.NAMESPACE
        assert cpp.kind_for("union") == DeclaredKind.STRUCT
        assert cpp.kind_for("while") is None
        assert get_language("rust").kind_for("impl") == DeclaredKind.CLASS
