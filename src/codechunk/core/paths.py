"""Workspace path management.

All tool-managed artifacts go under var/ (configurable via CODECHUNK_WORKDIR),
resolved against the current working directory.
"""

from pathlib import Path

from . import config


def workdir() -> Path:
    """Tool-managed workspace directory (default: var/)"""
    return Path.cwd() / config.SETTINGS.CODECHUNK_WORKDIR


def runs() -> Path:
    """Runs artifact directory (default: var/runs/)"""
    return workdir() / "runs"


def verify_reports() -> Path:
    """Verification reports directory (default: var/chunk_verify/)"""
    return workdir() / "chunk_verify"
