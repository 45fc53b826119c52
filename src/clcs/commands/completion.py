"""Shell completion command group -- install, inspect and serve completions.

:func:`build_completion_app` returns a :class:`typer.Typer` group that any
CLI mounts to get shell completion for itself::

    from clcs.commands.completion import build_completion_app

    app.add_typer(
        build_completion_app("mytool", complete_mytool),
        name="completion",
    )

The group provides these sub-commands:

* ``install [SHELL]`` -- add the completion block to the shell's startup
  file. The shell is auto-detected when omitted.
* ``uninstall [SHELL]`` -- remove that block again.
* ``status [SHELL]`` -- show where the block is installed.
* ``shells`` -- list supported shells.
* ``provider SHELL`` (hidden) -- print the provider script; this is what
  the installed block runs.
* ``request SHELL --input --cursor`` (hidden) -- answer a completion
  request; this is what the provider script runs on every TAB.

Supported shells: bash, zsh, fish, pwsh.
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Optional, Sequence

import typer

from clcs.blocks import ConfigurationBlockManager
from clcs.exceptions import ClcsError, ConfigError, ConfigFileUnreadableError, InvalidUsageError
from clcs.invoker import Functions
from clcs.models import (
    GetCompletionBlockOptions,
    GetCompletionProviderOptions,
    GlobalConfig,
    ShellCompletionRequest,
)
from clcs.output import (
    OutputFormat,
    OutputManager,
    debug,
    error,
    info,
    print_data,
    print_table,
    set_output,
    success,
    suggest,
    warning,
)
from clcs.shells import SHELL_DRIVERS, detect_default_shell, get_shell_driver, shell_names
from clcs.shells.base import ShellDriver


def _fail(exc: ClcsError) -> typer.Exit:
    """Report *exc* on stderr and return the ``typer.Exit`` to raise."""
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


def _complete_shell_name(incomplete: str) -> list[tuple[str, str]]:
    return [
        (driver.shell_name, driver.display_name)
        for driver in SHELL_DRIVERS
        if driver.shell_name.startswith(incomplete)
    ]


def _resolve_driver(shell: Optional[str], config: GlobalConfig) -> ShellDriver:
    """Pick the driver for an explicit name, the configured default, or the login shell.

    Raises:
        UnsupportedShellError: If the named shell has no driver.
        InvalidUsageError: If no shell was given and none could be detected.
    """
    if shell:
        return get_shell_driver(shell)
    if config.default_shell:
        return get_shell_driver(config.default_shell)
    driver = detect_default_shell()
    if driver is None:
        raise InvalidUsageError(
            f"Could not detect your shell. Pass one of: {', '.join(shell_names())}"
        )
    return driver


class CompletionCommands:
    """Command lines through which the installed shell code reaches the CLI.

    Args:
        prog: Command line that starts the CLI (usually the binary name).
        group_path: Sub-command path under which the completion group is
            mounted, e.g. ``("completion",)``.
    """

    def __init__(self, prog: str, group_path: Sequence[str]) -> None:
        self._prefix = " ".join([prog, *(shlex.quote(part) for part in group_path)])

    def provider_command(self, driver: ShellDriver) -> str:
        return f"{self._prefix} provider {driver.shell_name}"

    def request_command(self, driver: ShellDriver) -> str:
        return f"{self._prefix} request {driver.shell_name}"

    def block_options(self, driver: ShellDriver) -> GetCompletionBlockOptions:
        return GetCompletionBlockOptions(get_completion_provider_command=self.provider_command(driver))

    def provider_options(self, binary_name: str, driver: ShellDriver) -> GetCompletionProviderOptions:
        return GetCompletionProviderOptions(
            binary_name=binary_name,
            request_completion_command=self.request_command(driver),
        )


def build_completion_app(
    binary_name: str,
    functions: Functions,
    prog: Optional[str] = None,
    group_path: Sequence[str] = ("completion",),
) -> typer.Typer:
    """Create the completion command group for *binary_name*.

    Args:
        binary_name: Name the completion is registered under in the shell.
        functions: Completion function(s) computing candidates; a single
            callable, a sequence, or a
            :class:`~clcs.invoker.CompletionRegistry`.
        prog: Command line used by the installed block and provider to run
            the CLI. Defaults to *binary_name*.
        group_path: Where the returned group is mounted in the CLI.

    Returns:
        A :class:`typer.Typer` group ready for ``app.add_typer``.
    """
    commands = CompletionCommands(prog or binary_name, group_path)
    completion_app = typer.Typer(no_args_is_help=True)

    def _load_config() -> GlobalConfig:
        from clcs.config import resolve_config

        try:
            return resolve_config()
        except ConfigError as exc:
            raise _fail(exc) from None

    def _manager(driver: ShellDriver, config: GlobalConfig, config_file: Optional[Path]) -> ConfigurationBlockManager:
        return ConfigurationBlockManager(
            driver,
            commands.block_options(driver),
            config_file=config_file,
            remove_empty_file=config.install.remove_empty_config_file,
        )

    @completion_app.command("install")
    def completion_install(
        shell: Optional[str] = typer.Argument(
            None,
            help=f"Shell to install completion for ({', '.join(shell_names())}). Auto-detected if omitted.",
            autocompletion=_complete_shell_name,
        ),
        config_file: Optional[Path] = typer.Option(
            None, "--file", help="Startup file to edit instead of the shell's default."
        ),
    ) -> None:
        """Install shell completion.

        Appends a one-line block to the shell's startup file. Running the
        command again does not add a second copy.

        Example::

            mytool completion install
            mytool completion install zsh
        """
        config = _load_config()
        try:
            driver = _resolve_driver(shell, config)
            manager = _manager(driver, config, config_file)
            changed = manager.install()
        except ClcsError as exc:
            raise _fail(exc) from None

        if changed:
            success(f"{driver.display_name} completion installed in {manager.config_file}")
            suggest(f"Restart your shell or run: source {manager.config_file}")
        else:
            info(f"{driver.display_name} completion is already installed in {manager.config_file}")

    @completion_app.command("uninstall")
    def completion_uninstall(
        shell: Optional[str] = typer.Argument(
            None, help="Shell to remove completion from. Auto-detected if omitted.",
            autocompletion=_complete_shell_name,
        ),
        config_file: Optional[Path] = typer.Option(
            None, "--file", help="Startup file to edit instead of the shell's default."
        ),
    ) -> None:
        """Remove the completion block from the shell's startup file."""
        config = _load_config()
        try:
            driver = _resolve_driver(shell, config)
            manager = _manager(driver, config, config_file)
            changed = manager.uninstall()
        except ClcsError as exc:
            raise _fail(exc) from None

        if changed:
            success(f"{driver.display_name} completion removed from {manager.config_file}")
        else:
            info(f"{driver.display_name} completion was not installed in {manager.config_file}")

    @completion_app.command("status")
    def completion_status(
        shell: Optional[str] = typer.Argument(
            None, help="Only check this shell. All shells are checked if omitted.",
            autocompletion=_complete_shell_name,
        ),
    ) -> None:
        """Show whether completion is installed for each shell."""
        config = _load_config()
        try:
            drivers = [get_shell_driver(shell)] if shell else list(SHELL_DRIVERS)
        except ClcsError as exc:
            raise _fail(exc) from None

        rows = []
        for driver in drivers:
            manager = _manager(driver, config, None)
            try:
                installed = "yes" if manager.is_installed() else "no"
            except ConfigFileUnreadableError as exc:
                warning(str(exc))
                installed = "unknown"
            rows.append([driver.shell_name, installed, str(manager.config_file)])
        print_table(["shell", "installed", "file"], rows, title=f"{binary_name} completion")

    @completion_app.command("shells")
    def completion_shells() -> None:
        """List supported shells and their startup files."""
        rows = [
            [
                driver.shell_name,
                driver.display_name,
                "*" if driver.is_default_shell() else "",
                str(driver.get_shell_configuration_file()),
            ]
            for driver in SHELL_DRIVERS
        ]
        print_table(["shell", "name", "default", "file"], rows, title="Supported shells")

    @completion_app.command("provider", hidden=True)
    def completion_provider(
        shell: str = typer.Argument(help="Shell to print the provider script for."),
    ) -> None:
        """Print the provider script loaded by the installed block."""
        try:
            driver = get_shell_driver(shell)
        except ClcsError as exc:
            raise _fail(exc) from None
        print_data(driver.get_completion_provider(commands.provider_options(binary_name, driver)))

    @completion_app.command("request", hidden=True)
    def completion_request(
        shell: str = typer.Argument(help="Shell the request comes from."),
        input_text: str = typer.Option("", "--input", help="Command line typed so far."),
        cursor: str = typer.Option("", "--cursor", help="Cursor offset into the command line."),
        timeout: Optional[float] = typer.Option(
            None, "--timeout", help="Seconds to wait for the completion functions."
        ),
        cursor_policy: Optional[str] = typer.Option(
            None, "--cursor-policy", help="How to treat an out-of-range cursor (clamp or reject)."
        ),
    ) -> None:
        """Answer a completion request from a provider script.

        Prints the reply on stdout and nothing else. Failures are written to
        the completion log rather than the terminal.

        ``--timeout`` and ``--cursor-policy`` take precedence over the
        ``CLCS_*`` environment variables and the stored configuration.
        """
        from clcs.config import get_completion_log_path, resolve_config
        from clcs.protocol import configure_completion_logging, serve_with_config

        try:
            driver = get_shell_driver(shell)
        except ClcsError as exc:
            raise _fail(exc) from None

        config_problem: Optional[ConfigError] = None
        try:
            config = resolve_config(cli_timeout=timeout, cli_cursor_policy=cursor_policy)
        except ConfigError as exc:
            config_problem = exc
            config = GlobalConfig()
        try:
            log_path = get_completion_log_path() if config.completion.log_failures else None
            configure_completion_logging(log_path)
        except OSError as exc:
            debug(f"Completion log unavailable: {exc}")
            configure_completion_logging(None)
        set_output(OutputManager(format=OutputFormat.PLAIN, log_diagnostics=True))
        if config_problem is not None:
            warning(f"Using default completion settings: {config_problem}")

        reply = serve_with_config(
            driver,
            ShellCompletionRequest(input=input_text, cursor_position=cursor),
            functions,
            config.completion,
        )
        print_data(reply)

    return completion_app


__all__ = ["CompletionCommands", "build_completion_app"]
