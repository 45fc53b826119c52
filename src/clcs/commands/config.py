"""Config commands -- view and modify global configuration.

Provides the ``clcs config`` sub-command group for the settings stored in
:class:`~clcs.models.GlobalConfig`: the completion timeout, the cursor
normalization policy, completion failure logging, what uninstall does
with a startup file it leaves empty, the default shell and the default
output format.
"""

from __future__ import annotations

from typing import Any, Callable

import typer
from pydantic import ValidationError

from clcs.exceptions import ClcsError, InvalidUsageError
from clcs.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _shell_choices() -> list[str]:
    from clcs.shells import shell_names

    return shell_names()


def _format_choices() -> list[str]:
    from clcs.output import OutputFormat

    return [fmt.value for fmt in OutputFormat]


def _cursor_policy_choices() -> list[str]:
    from clcs.config import cursor_policy_names

    return cursor_policy_names()


# Settings restricted to a fixed set of values.
_CHOICES: dict[str, Callable[[], list[str]]] = {
    "completion.cursor_policy": _cursor_policy_choices,
    "default_shell": _shell_choices,
    "output.format": _format_choices,
}

# Settings that accept "none" to clear them.
_NULLABLE = {"default_shell"}


def _setting_keys(data: dict, prefix: str = "") -> list[str]:
    keys = []
    for name, value in data.items():
        if isinstance(value, dict):
            keys.extend(_setting_keys(value, f"{prefix}{name}."))
        else:
            keys.append(f"{prefix}{name}")
    return keys


def _complete_setting_key(incomplete: str) -> list[str]:
    from clcs.models import GlobalConfig

    keys = _setting_keys(GlobalConfig().model_dump(mode="json"))
    return [key for key in keys if key.startswith(incomplete)]


def _coerce(key: str, current: Any, value: str) -> Any:
    """Convert the command-line *value* to the type of the *current* setting.

    Raises:
        InvalidUsageError: If *value* does not fit the setting.
    """
    if key in _NULLABLE and value.lower() in ("none", "null", ""):
        return None
    if key in _CHOICES:
        choices = _CHOICES[key]()
        lowered = value.lower()
        if lowered not in choices:
            raise InvalidUsageError(f"Expected one of {', '.join(choices)} for {key}, got: {value}")
        return lowered
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes", "on")
    if isinstance(current, (int, float)):
        kind = type(current)
        try:
            return kind(value)
        except ValueError:
            noun = "integer" if kind is int else "number"
            raise InvalidUsageError(f"Expected {noun} for {key}, got: {value}") from None
    return value


def _load_or_exit():
    from clcs.config import load_global_config

    try:
        return load_global_config()
    except ClcsError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Prints the config directory path on stderr and the stored settings on
    stdout.

    Example::

        clcs config show
        clcs --json config show
    """
    from clcs.config import get_config_dir

    config = _load_or_exit()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'completion.timeout_seconds').",
        autocompletion=_complete_setting_key,
    ),
    value: str = typer.Argument(help="Value to set ('none' clears default_shell)."),
) -> None:
    """Set a configuration value.

    The value is converted to the type of the existing setting and the
    whole configuration is validated before it is saved.

    Example::

        clcs config set completion.timeout_seconds 2.5
        clcs config set completion.cursor_policy reject
        clcs config set default_shell zsh
    """
    from clcs.config import save_global_config
    from clcs.models import GlobalConfig

    data = _load_or_exit().model_dump(mode="json")
    if key not in _setting_keys(data):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    *sections, field = key.split(".")
    target = data
    for section in sections:
        target = target[section]

    try:
        coerced = _coerce(key, target[field], value)
    except InvalidUsageError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    target[field] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.
    """
    from clcs.config import save_global_config
    from clcs.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
