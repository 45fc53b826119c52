"""Exception hierarchy for clcs.

All exceptions inherit from :class:`ClcsError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`clcs.exit_codes`.
The top-level error handler in :func:`clcs.app.main` catches
``ClcsError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Only the configuration-file errors and :class:`UnsupportedShellError` are
meant to reach the user. :class:`MalformedRequestError` and
:class:`CompletionProviderFailedError` are recovered inside the serving
command so that a broken completion never prints into an interactive
shell session.

Subclass hierarchy::

    ClcsError (exit 1)
    +-- InvalidUsageError              (exit 2)
    |   +-- UnsupportedShellError      (exit 2)
    |   +-- MalformedRequestError      (exit 2)
    +-- CompletionProviderFailedError  (exit 1)
    +-- ConfigFileUnreadableError      (exit 8)
    +-- ConfigFileUnwritableError      (exit 9)
    +-- ConfigError                    (exit 1)
"""

from __future__ import annotations

from typing import Iterable, Optional

from clcs.exit_codes import (
    EXIT_CONFIG_UNREADABLE,
    EXIT_CONFIG_UNWRITABLE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
)


class ClcsError(Exception):
    """Base exception for all clcs errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`clcs.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ClcsError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class UnsupportedShellError(InvalidUsageError):
    """Raised when no shell driver is registered under the requested name.

    Args:
        shell_name: The name the user asked for.
        supported: Names of all registered drivers, listed in the message.
    """

    def __init__(self, shell_name: str, supported: Iterable[str] = ()):
        self.shell_name = shell_name
        self.supported = tuple(supported)
        message = f"Unsupported shell: {shell_name}"
        if self.supported:
            message += f". Supported: {', '.join(self.supported)}"
        super().__init__(message)


class MalformedRequestError(InvalidUsageError):
    """Raised when a raw shell request cannot be normalized (bad cursor position)."""


class CompletionProviderFailedError(ClcsError):
    """Raised when a completion function raises, times out, or returns an unsupported shape.

    Args:
        message: Description of the failure.
        cause: The underlying exception, if any. Also chained via ``from``.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ConfigFileUnreadableError(ClcsError):
    """Raised when an existing shell configuration file cannot be read or decoded."""

    exit_code = EXIT_CONFIG_UNREADABLE


class ConfigFileUnwritableError(ClcsError):
    """Raised when a shell configuration file (or its parent directory) cannot be written."""

    exit_code = EXIT_CONFIG_UNWRITABLE


class ConfigError(ClcsError):
    """Raised for problems with the clcs settings file (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE
