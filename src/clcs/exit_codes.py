"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~clcs.exceptions.ClcsError` subclass.
Installer scripts can inspect the exit code to find out why completion
was not registered without parsing stderr.

Example::

    $ mytool completion install zsh
    $ echo $?
    9   # EXIT_CONFIG_UNWRITABLE -- ~/.zshrc could not be written
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments (unknown shell, bad cursor)."""

EXIT_CONFIG_UNREADABLE = 8
"""The shell configuration file exists but could not be read."""

EXIT_CONFIG_UNWRITABLE = 9
"""The shell configuration file could not be created or written."""
