"""Configuration management with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD
  (``$XDG_CONFIG_HOME/clcs``, ``$XDG_DATA_HOME/clcs``), a single
  ``~/.clcs/`` tree on macOS and Windows. The data directory holds the
  completion log and crash logs.
* **Global config** -- one :class:`~clcs.models.GlobalConfig` JSON file
  with the completion timeout, cursor policy, uninstall policy and
  output format.
* **Precedence resolution** -- :func:`resolve_config` layers CLI values and
  ``CLCS_*`` environment variables over the stored file.
* **Atomic writes** -- :func:`atomic_write` is shared with the
  Configuration Block Manager so that a shell startup file is never left
  half-written.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from clcs.exceptions import ConfigError
from clcs.models import CursorPolicy, GlobalConfig

_APP_NAME = "clcs"
_CONFIG_FILENAME = "config.json"
_COMPLETION_LOG_FILENAME = "completion.log"

ENV_TIMEOUT = "CLCS_COMPLETION_TIMEOUT"
ENV_CURSOR_POLICY = "CLCS_CURSOR_POLICY"
ENV_SHELL = "CLCS_SHELL"

# env var -> (section, field); section None means a top-level field.
_ENV_OVERRIDES: dict[str, tuple[Optional[str], str]] = {
    ENV_TIMEOUT: ("completion", "timeout_seconds"),
    ENV_CURSOR_POLICY: ("completion", "cursor_policy"),
    ENV_SHELL: (None, "default_shell"),
}

# kind -> (XDG variable, default under $HOME, sub-directory of ~/.clcs elsewhere)
_DIRECTORIES: dict[str, tuple[str, tuple[str, ...], tuple[str, ...]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), ()),
    "data": ("XDG_DATA_HOME", (".local", "share"), ("data",)),
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True on Linux and the BSDs."""
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, xdg_default, fallback = _DIRECTORIES[kind]
    if _is_xdg_platform():
        base = Path(os.environ.get(env_var) or Path.home().joinpath(*xdg_default))
        path = base / _APP_NAME
    else:
        path = Path.home().joinpath(f".{_APP_NAME}", *fallback)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/clcs/`` (default ``~/.config/clcs/``).
    On macOS/Windows: ``~/.clcs/``.
    """
    return _app_dir("config")


def get_data_dir() -> Path:
    """Return the data directory, creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/clcs/`` (default ``~/.local/share/clcs/``).
    On macOS/Windows: ``~/.clcs/data/``.
    """
    return _app_dir("data")


def get_logs_dir() -> Path:
    """Return ``<data_dir>/logs/``, creating it if necessary."""
    path = get_data_dir() / "logs"
    path.mkdir(exist_ok=True)
    return path


def get_completion_log_path() -> Path:
    """Path of the log file that records completion failures."""
    return get_logs_dir() / _COMPLETION_LOG_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Replace the contents of *path* with *data* in one rename.

    *data* is written verbatim (no newline translation) to a temporary file
    next to *path*, fsynced, given the permission bits of the file it
    replaces, and moved over *path* with ``os.replace``. Readers see
    either the old or the new content, never a mix. The temporary file is
    removed if anything fails, including ``KeyboardInterrupt``.

    Raises:
        OSError: If the parent directory cannot be created or the file
            cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = path.stat().st_mode & 0o7777 if path.exists() else None

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the stored :class:`~clcs.models.GlobalConfig`, or defaults if there is none.

    Raises:
        ConfigError: If the file holds invalid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Write *config* to the config directory atomically."""
    text = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    atomic_write(_global_config_path(), text)


# --- Precedence resolution ---


def _apply(data: dict, section: Optional[str], field: str, value: object) -> None:
    if isinstance(value, str) and field == "cursor_policy":
        value = value.lower()
    target = data if section is None else data[section]
    target[field] = value


def resolve_config(
    cli_timeout: Optional[float] = None,
    cli_cursor_policy: Optional[str] = None,
) -> GlobalConfig:
    """Return the effective configuration.

    Precedence (high to low):
        1. CLI values (``cli_timeout``, ``cli_cursor_policy``)
        2. Environment variables (``CLCS_COMPLETION_TIMEOUT``,
           ``CLCS_CURSOR_POLICY``, ``CLCS_SHELL``)
        3. The stored config file
        4. Defaults

    The stored file is not modified. Empty environment variables are
    ignored.

    Raises:
        ConfigError: If the stored config or an override is invalid.
    """
    data = load_global_config().model_dump(mode="json")

    for env_var, (section, field) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            _apply(data, section, field, value)
    if cli_timeout is not None:
        _apply(data, "completion", "timeout_seconds", cli_timeout)
    if cli_cursor_policy is not None:
        _apply(data, "completion", "cursor_policy", cli_cursor_policy)

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration override: {exc}") from exc


def cursor_policy_names() -> list[str]:
    """Return the accepted values for the ``cursor_policy`` setting."""
    return [policy.value for policy in CursorPolicy]
