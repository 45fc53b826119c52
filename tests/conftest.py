"""Shared test fixtures for clcs.

Provides reusable fixtures for creating isolated config and home
environments, managing output and logging state, and running CLI commands.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from clcs.models import (
    CompletionRequest,
    GetCompletionBlockOptions,
    GetCompletionProviderOptions,
    ShellCompletionResult,
)
from clcs.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    ``main_callback`` and the request command install their own manager;
    without a reset, ``--json`` or the logging-backed serving manager from
    one test would leak into the next.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_logging_between_tests() -> None:
    """Undo whatever ``configure_completion_logging`` did to the ``clcs`` logger."""
    package_logger = logging.getLogger("clcs")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    propagate = package_logger.propagate
    yield
    from clcs import protocol

    for handler in list(package_logger.handlers):
        if handler not in handlers:
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.setLevel(level)
    package_logger.propagate = propagate
    protocol._completion_handler = None


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and the home directory to a temporary directory.

    Sets HOME to ``tmp_path / "home"`` and XDG_CONFIG_HOME,
    XDG_CACHE_HOME, and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config or shell startup files.
    Clears all CLCS_* environment variables as well as SHELL and ZDOTDIR,
    and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USERPROFILE", str(home_dir))

    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "CLCS_COMPLETION_TIMEOUT",
        "CLCS_CURSOR_POLICY",
        "CLCS_SHELL",
        "SHELL",
        "ZDOTDIR",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Protocol fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def block_options() -> GetCompletionBlockOptions:
    """Block options pointing at a ``mytool`` provider command."""
    return GetCompletionBlockOptions(
        get_completion_provider_command="mytool completion provider bash"
    )


@pytest.fixture
def provider_options() -> GetCompletionProviderOptions:
    """Provider options for a ``mytool`` binary."""
    return GetCompletionProviderOptions(
        binary_name="mytool",
        request_completion_command="mytool completion request bash",
    )


@pytest.fixture
def flag_results() -> list[ShellCompletionResult]:
    """Two normalized results, one of them with a description."""
    return [
        ShellCompletionResult(
            completion_text="--force",
            list_item_text="--force",
            description="Skip confirmations",
        ),
        ShellCompletionResult(completion_text="--foo", list_item_text="--foo"),
    ]


@pytest.fixture
def complete_flags():
    """A completion function offering the flags that match the word under the cursor."""

    def _complete(request: CompletionRequest) -> list[str]:
        word = request.text_before_cursor.split(" ")[-1]
        return [flag for flag in ["--force", "--foo", "--bar"] if flag.startswith(word)]

    return _complete


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
