"""Typer application and CLI entry point for clcs.

The ``clcs`` command is itself a client of the completion protocol: the
``completion`` group is built with :func:`~clcs.commands.completion.build_completion_app`
and answers requests with a completion function derived from this very
command tree (:func:`~clcs.command_tree.typer_completion_function`). Running
``clcs completion install`` therefore gives ``clcs`` completion in the
user's shell, and doubles as a working example for other CLIs.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under
the data directory.

See Also:
    :mod:`clcs.config`: Global configuration resolution.
    :mod:`clcs.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import platform
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any

import typer

from clcs import __version__
from clcs.command_tree import typer_completion_function
from clcs.commands.completion import build_completion_app
from clcs.commands.config import config_app
from clcs.exceptions import ClcsError
from clcs.exit_codes import EXIT_GENERIC_FAILURE
from clcs.output import OutputFormat, OutputManager, error, set_output

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="clcs",
    help="Install and serve shell completion for command-line tools.",
    no_args_is_help=True,
    # Typer's own completion is replaced by the "completion" group below.
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(
    build_completion_app("clcs", typer_completion_function(app, "clcs")),
    name="completion",
    help="Shell completion management.",
)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"clcs {__version__}")
        raise typer.Exit()


def _output_format(json_output: bool, plain_output: bool) -> OutputFormat:
    """Pick the output format: ``--json``, then ``--plain``, then ``output.format`` from the config.

    An unreadable config falls back to ``AUTO``; the commands that need the
    config (such as ``clcs config show``) report the problem themselves.
    """
    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN

    from clcs.config import load_global_config
    from clcs.exceptions import ConfigError

    try:
        return OutputFormat(load_global_config().output.format)
    except (ConfigError, ValueError):
        return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations."),
) -> None:
    """Install and serve shell completion for command-line tools.

    Installs the global :class:`~clcs.output.OutputManager` and keeps
    ``force`` and ``verbose`` in ``ctx.obj`` for the sub-commands.
    """
    set_output(
        OutputManager(
            format=_output_format(json_output, plain_output),
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )
    ctx.ensure_object(dict)
    ctx.obj.update(force=force, verbose=verbose)


def _setup_signal_handlers() -> None:
    """Exit with 130 on Ctrl-C instead of printing a traceback."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> Path:
    """Write the traceback of *exc* to ``<logs_dir>/crash-<timestamp>.log``.

    The log starts with the clcs and Python versions and the command line,
    which is usually all that is needed to reproduce a failure reported
    from someone else's shell.
    """
    from clcs.config import get_logs_dir

    log_path = get_logs_dir() / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    header = (
        f"clcs {__version__} on Python {platform.python_version()} ({platform.system()})\n"
        f"argv: {sys.argv!r}\n\n"
    )
    body = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    log_path.write_text(header + body, encoding="utf-8")
    return log_path


def main() -> None:
    """Console-script entry point for ``clcs``.

    A :class:`~clcs.exceptions.ClcsError` escaping a command is reported
    on stderr and mapped to its ``exit_code``. Anything else leaves a crash
    log and exits with :data:`~clcs.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    _setup_signal_handlers()
    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except ClcsError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error. Debug log: {_write_crash_log(exc)}")
        sys.exit(EXIT_GENERIC_FAILURE)
