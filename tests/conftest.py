"""Global test configuration for codechunk tests."""

from pathlib import Path

import pytest
import structlog

from codechunk.chunking.config import ChunkingConfig
from codechunk.chunking.languages import get_language
from codechunk.chunking.tokens import stream_for
from codechunk.core import config as core_config

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def cpp():
    """The C++ keyword table."""
    return get_language("cpp")


@pytest.fixture
def sample_path():
    return FIXTURES / "sample.cpp"


@pytest.fixture
def sample_source(sample_path):
    return sample_path.read_text(encoding="utf-8")


@pytest.fixture
def make_stream():
    """Lex source text with a named language table."""

    def _make(source: str, language: str = "cpp"):
        return stream_for(source, get_language(language))

    return _make


@pytest.fixture
def config_factory():
    """Build a ChunkingConfig with overrides."""

    def _factory(**overrides):
        values = {"language": "cpp"}
        values.update(overrides)
        return ChunkingConfig(**values)

    return _factory


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Run in an empty temporary directory so var/ artifacts stay isolated."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def isolated_process_state(monkeypatch):
    """Restore the global settings and logging configuration after each test."""
    monkeypatch.setattr(core_config, "SETTINGS", core_config.SETTINGS)
    yield
    structlog.reset_defaults()
