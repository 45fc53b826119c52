"""Shell drivers -- the only shell-specific code in clcs.

The set of drivers is closed: :data:`SHELL_DRIVERS` holds exactly one
instance per supported shell, in a fixed order, so installers can list,
detect and iterate shells without any dynamic discovery.
"""

from __future__ import annotations

from typing import Optional

from clcs.exceptions import UnsupportedShellError
from clcs.shells.base import ShellDriver
from clcs.shells.bash import BashDriver
from clcs.shells.fish import FishDriver
from clcs.shells.powershell import PowerShellDriver
from clcs.shells.zsh import ZshDriver

SHELL_DRIVERS: tuple[ShellDriver, ...] = (
    BashDriver(),
    ZshDriver(),
    FishDriver(),
    PowerShellDriver(),
)
"""One driver per supported shell, in display order."""


def shell_names() -> list[str]:
    """Return the ``shell_name`` of every supported shell."""
    return [driver.shell_name for driver in SHELL_DRIVERS]


def get_shell_driver(shell_name: str) -> ShellDriver:
    """Look up the driver registered under *shell_name* (exact match).

    Raises:
        UnsupportedShellError: If no driver has that name.
    """
    for driver in SHELL_DRIVERS:
        if driver.shell_name == shell_name:
            return driver
    raise UnsupportedShellError(shell_name, shell_names())


def detect_default_shell() -> Optional[ShellDriver]:
    """Return the first driver whose shell is the user's default, or ``None``."""
    for driver in SHELL_DRIVERS:
        if driver.is_default_shell():
            return driver
    return None


__all__ = [
    "SHELL_DRIVERS",
    "BashDriver",
    "FishDriver",
    "PowerShellDriver",
    "ShellDriver",
    "ZshDriver",
    "detect_default_shell",
    "get_shell_driver",
    "shell_names",
]
