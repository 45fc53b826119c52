"""Abstract base class for shell drivers.

A shell driver is the only place in clcs allowed to contain shell-specific
code. Each concrete driver implements the same capability set:

* :meth:`ShellDriver.is_default_shell` -- does this driver match the
  user's login shell?
* :meth:`ShellDriver.get_shell_configuration_file` -- absolute path of the
  shell's startup file.
* :meth:`ShellDriver.get_completion_block` -- the single line stored in the
  startup file. It is also used to find and remove that line again, so it
  must depend on nothing but its options.
* :meth:`ShellDriver.get_completion_provider` -- the hook script the block
  loads. It gathers the input line and cursor, runs the request command
  with ``--input=<line> --cursor=<offset>`` and feeds the reply into the
  shell's native candidate registration.
* :meth:`ShellDriver.get_reply` -- serializes normalized results in the
  format the driver's own provider script parses. The two are a matched
  pair and are kept in the same module.

Drivers are stateless; one instance per shell lives in
:data:`clcs.shells.SHELL_DRIVERS`.
"""

from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar, Sequence

from clcs.models import (
    GetCompletionBlockOptions,
    GetCompletionProviderOptions,
    ShellCompletionResult,
)

_PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")
_FIELD_BREAKS_RE = re.compile(r"[\t\r\n]+")
_IDENTIFIER_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_]")


def render_script(template: str, **values: str) -> str:
    """Substitute ``{{name}}`` placeholders in a shell script template.

    Shell scripts are full of ``$``, ``{`` and ``%``, so neither f-strings
    nor :class:`string.Template` fit. Substitution is a single pass: text
    inserted for one placeholder is never expanded again.

    Raises:
        KeyError: If the template references a name missing from *values*.
    """
    return _PLACEHOLDER_RE.sub(lambda match: values[match.group(1)], template)


def clean_field(text: str) -> str:
    """Replace tabs and line breaks with a single space.

    Replies are line-oriented and tab-separated, so a candidate containing
    either would be split into bogus candidates by the provider script.
    """
    return _FIELD_BREAKS_RE.sub(" ", text)


def function_suffix(binary_name: str) -> str:
    """Turn a binary name into a string usable inside a shell function name."""
    return _IDENTIFIER_UNSAFE_RE.sub("_", binary_name)


def login_shell_name() -> str:
    """Return the basename of ``$SHELL`` without a ``.exe`` suffix, or ``""``."""
    shell = os.environ.get("SHELL", "")
    if not shell:
        return ""
    name = Path(shell).name
    if name.lower().endswith(".exe"):
        name = name[:-4]
    return name


class ShellDriver(ABC):
    """Base class for all shell drivers.

    Subclasses set :attr:`shell_name` and implement the abstract methods.
    The default :meth:`is_default_shell` compares :attr:`shell_name` with
    the basename of ``$SHELL``.

    Attributes:
        shell_name: Stable identifier users pass on the command line
            (``bash``, ``zsh``, ``fish``, ``pwsh``). Never inferred.
        display_name: Human-readable name used in messages.
    """

    shell_name: ClassVar[str]
    display_name: ClassVar[str]

    def is_default_shell(self) -> bool:
        """Check whether this shell is the user's login shell."""
        return login_shell_name() == self.shell_name

    @abstractmethod
    def get_shell_configuration_file(self) -> Path:
        """Return the absolute path of the shell's startup file."""
        ...

    @abstractmethod
    def get_completion_block(self, options: GetCompletionBlockOptions) -> str:
        """Return the one-line block that loads the completion provider.

        The result must be identical for equal *options*. It must not read
        the environment, the clock, or the filesystem.
        """
        ...

    @abstractmethod
    def get_completion_provider(self, options: GetCompletionProviderOptions) -> str:
        """Return the provider script registering completion for ``options.binary_name``."""
        ...

    @abstractmethod
    def get_reply(self, results: Sequence[ShellCompletionResult]) -> str:
        """Serialize *results* in the format parsed by :meth:`get_completion_provider`."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(shell_name={self.shell_name!r})"
