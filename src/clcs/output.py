"""Output formatting system with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (provider scripts, completion replies,
  tables). This is what shells ``eval`` or ``source``, so it must never be
  contaminated.
* **stderr** -- all diagnostics (status, warnings, errors, suggestions).
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped to another process.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

The completion-serving command runs while the user is typing, so it swaps
in an :class:`OutputManager` built with ``log_diagnostics=True``: the same
diagnostic calls then go to the ``clcs`` logger (and from there to the
completion log file) instead of the terminal.

The module exposes two layers:

1. :class:`OutputManager` -- a stateful object holding format preferences,
   Rich consoles, and quiet/verbose flags. Created once in
   :func:`~clcs.app.main_callback` and installed via :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`debug`, etc.) that delegate to the global ``OutputManager``
   instance so callers do not need to pass the manager around.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, NamedTuple, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

logger = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    """Enumeration of supported output formats.

    ``AUTO`` resolves to ``RICH`` when stdout is an interactive TTY and colour
    is not disabled, or to ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class _Diagnostic(NamedTuple):
    prefix: str
    style: str
    hidden_when_quiet: bool
    log_level: int


_DIAGNOSTICS: dict[str, _Diagnostic] = {
    "info": _Diagnostic("", "", True, logging.INFO),
    "success": _Diagnostic("", "green", True, logging.INFO),
    "warning": _Diagnostic("Warning: ", "yellow", False, logging.WARNING),
    "error": _Diagnostic("Error: ", "bold red", False, logging.ERROR),
    "suggest": _Diagnostic("→ ", "dim", True, logging.INFO),
    "debug": _Diagnostic("[debug] ", "dim", False, logging.DEBUG),
}


class OutputManager:
    """Central manager for all CLI output with stdout/stderr discipline.

    Maintains two Rich :class:`~rich.console.Console` instances -- one for
    stdout (data) and one for stderr (diagnostics) -- and routes every
    output call to the correct stream with appropriate formatting.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential informational messages on stderr.
        verbose: Enable debug-level messages on stderr.
        log_diagnostics: Send diagnostics to the ``clcs`` logger instead of
            stderr. Data output is unaffected.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        log_diagnostics: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._log_diagnostics = log_diagnostics

        if format == OutputFormat.AUTO:
            interactive = _is_tty() and not self._no_color
            format = OutputFormat.RICH if interactive else OutputFormat.PLAIN
        self._format = format

        # No explicit file: the consoles follow sys.stdout and sys.stderr
        # as they are at print time.
        self._stdout = Console(no_color=self._no_color, force_terminal=(format == OutputFormat.RICH))
        self._stderr = Console(no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Write *text* to stdout exactly as given.

        Provider scripts and completion replies go through here: a shell
        parses them, so no markup, wrapping or highlighting is applied. A
        trailing newline is added to non-empty text that lacks one.
        """
        if text and not text.endswith("\n"):
            text += "\n"
        sys.stdout.write(text)
        sys.stdout.flush()

    def format_response(self, data: Any) -> None:
        """Write structured data (settings, listings) to stdout in the active format.

        Plain mode prints one ``dotted.key<TAB>value`` line per leaf of a
        nested mapping, which is what ``clcs config show --plain`` emits.
        """
        if self._format == OutputFormat.PLAIN:
            if isinstance(data, dict):
                for key, value in _dotted_items(data):
                    self.print_data(f"{key}\t{value}")
            elif isinstance(data, list):
                for item in data:
                    self.print_data(str(item))
            else:
                self.print_data(str(data))
            return

        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.JSON:
            self.print_data(text)
        else:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data to stdout in the active format.

        * **Rich mode** -- styled :class:`~rich.table.Table`.
        * **JSON mode** -- array of objects keyed by header names.
        * **Plain mode** -- tab-separated values, header line first.

        Args:
            headers: Column header strings.
            rows: List of rows, where each row is a list of cell strings.
            title: Optional table title (Rich mode only).
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*(escape(cell) for cell in row))
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Informational message. Suppressed by ``--quiet``."""
        self._emit("info", message)

    def success(self, message: str) -> None:
        """Green success message. Suppressed by ``--quiet``."""
        self._emit("success", message)

    def warning(self, message: str) -> None:
        """Yellow warning. NOT suppressed by ``--quiet``."""
        self._emit("warning", message)

    def error(self, message: str) -> None:
        """Bold-red error. Never suppressed."""
        self._emit("error", message)

    def suggest(self, message: str) -> None:
        """Dimmed next step, such as the command that reloads the shell. Suppressed by ``--quiet``."""
        self._emit("suggest", message)

    def debug(self, message: str) -> None:
        """Debug trace. Only shown with ``--verbose``."""
        if self._verbose or self._log_diagnostics:
            self._emit("debug", message)

    def _emit(self, kind: str, message: str) -> None:
        level = _DIAGNOSTICS[kind]
        if self._log_diagnostics:
            logger.log(level.log_level, "%s", message)
            return
        if self._quiet and level.hidden_when_quiet:
            return
        if self._no_color or not level.style:
            # Messages carry paths and shell snippets; keep brackets literal.
            self._stderr.print(f"{level.prefix}{message}", markup=False, highlight=False, soft_wrap=True)
        else:
            text = escape(f"{level.prefix}{message}")
            self._stderr.print(f"[{level.style}]{text}[/{level.style}]", highlight=False, soft_wrap=True)


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _dotted_items(data: dict[str, Any], prefix: str = "") -> list[tuple[str, Any]]:
    items: list[tuple[str, Any]] = []
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            items.extend(_dotted_items(value, f"{name}."))
        else:
            items.append((name, value))
    return items


def _is_tty() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating an ``AUTO`` one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Forget the global :class:`OutputManager`; used between tests."""
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
