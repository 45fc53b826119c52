"""Canonical Pydantic models shared across all clcs modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Protocol models** -- transient values that live for a single
request/reply cycle:
    :class:`ShellCompletionRequest`, :class:`CompletionRequest`,
    :class:`RichCompletionResult`, :class:`ShellCompletionResult`,
    :class:`GetCompletionBlockOptions`, and
    :class:`GetCompletionProviderOptions`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CompletionConfig`, :class:`InstallConfig`, :class:`OutputConfig`,
    and :class:`GlobalConfig`.

Protocol models are frozen: a driver receiving the same options twice must
produce byte-identical output, and freezing keeps callers from mutating an
options record between the install and uninstall of the same block.
"""

from __future__ import annotations

import enum
from typing import Awaitable, Callable, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Protocol models ---


class ShellCompletionRequest(BaseModel):
    """A raw completion request as sent by a shell's provider script.

    The cursor position arrives as text because shells expose it as an
    environment or positional string. It is turned into a
    :class:`CompletionRequest` by :func:`clcs.request.normalize_request`
    and should not be handed to completion functions directly.
    """

    model_config = ConfigDict(frozen=True)

    input: str = ""
    cursor_position: str = ""


class CompletionRequest(BaseModel):
    """A normalized completion request forwarded to completion functions.

    ``cursor_position`` is an offset into ``input`` and always satisfies
    ``0 <= cursor_position <= len(input)``.

    Example::

        CompletionRequest(input="mytool --f", cursor_position=10)
    """

    model_config = ConfigDict(frozen=True)

    input: str
    cursor_position: int = Field(ge=0)

    @model_validator(mode="after")
    def _cursor_within_input(self) -> CompletionRequest:
        if self.cursor_position > len(self.input):
            raise ValueError(
                f"cursor_position {self.cursor_position} exceeds input length {len(self.input)}"
            )
        return self

    @property
    def text_before_cursor(self) -> str:
        """The part of ``input`` to the left of the cursor."""
        return self.input[: self.cursor_position]


class RichCompletionResult(BaseModel):
    """A detailed completion candidate.

    Optional fields aren't supported by all shells, but including them where
    possible improves the experience of users whose shell can show them.

    Attributes:
        completion_text: The text that replaces the word the user typed.
            Supported by all shells.
        list_item_text: The label shown in the candidate list. Defaults to
            ``completion_text`` after normalization. Only zsh and PowerShell
            display it.
        description: Help text shown next to the candidate. Only zsh, fish
            and PowerShell display it.
    """

    model_config = ConfigDict(frozen=True)

    completion_text: str
    list_item_text: Optional[str] = None
    description: Optional[str] = None


class ShellCompletionResult(RichCompletionResult):
    """A normalized completion result, the only shape a driver's ``get_reply`` consumes.

    Produced by :func:`clcs.results.normalize_results`, which guarantees
    ``list_item_text`` is populated.
    """

    list_item_text: str


CompletionResult = Union[str, RichCompletionResult]
"""A bare string (shorthand for ``completion_text``) or a :class:`RichCompletionResult`."""

CompletionResults = Union[
    CompletionResult,
    Sequence[CompletionResult],
    Awaitable[Union[CompletionResult, Sequence[CompletionResult]]],
]
"""What a completion function may return: sync or awaitable, single or sequence."""

CompletionFunction = Callable[[CompletionRequest], CompletionResults]
"""A callable that computes candidates for a :class:`CompletionRequest`."""


class GetCompletionBlockOptions(BaseModel):
    """Options for :meth:`~clcs.shells.base.ShellDriver.get_completion_block`.

    Attributes:
        get_completion_provider_command: Shell command line the installed
            block runs to obtain the provider script. It doesn't have to
            call the binary the completion is registered for.
    """

    model_config = ConfigDict(frozen=True)

    get_completion_provider_command: str = Field(min_length=1)


class GetCompletionProviderOptions(BaseModel):
    """Options for :meth:`~clcs.shells.base.ShellDriver.get_completion_provider`.

    Attributes:
        binary_name: Name of the binary completion is registered for.
        request_completion_command: Shell command line the provider runs to
            request completion. ``--input=...`` and ``--cursor=...`` are
            appended to it by the provider script.
    """

    model_config = ConfigDict(frozen=True)

    binary_name: str = Field(min_length=1)
    request_completion_command: str = Field(min_length=1)


# --- Configuration models ---


class CursorPolicy(str, enum.Enum):
    """How the Request Normalizer treats a numeric cursor outside ``[0, len(input)]``.

    Non-numeric cursor positions are rejected under both policies.
    """

    CLAMP = "clamp"
    REJECT = "reject"


class CompletionConfig(BaseModel):
    """Settings for the completion-serving side, stored in :class:`GlobalConfig`."""

    timeout_seconds: float = Field(
        default=5.0, gt=0, description="Upper bound on completion function latency"
    )
    cursor_policy: CursorPolicy = Field(
        default=CursorPolicy.CLAMP,
        description="clamp or reject out-of-range cursor positions",
    )
    log_failures: bool = Field(
        default=True, description="Write provider failures to the completion log"
    )


class InstallConfig(BaseModel):
    """Settings for the Configuration Block Manager, stored in :class:`GlobalConfig`."""

    remove_empty_config_file: bool = Field(
        default=False,
        description="Delete the shell configuration file when uninstall leaves it empty",
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/clcs/config.json``.

    Loaded and saved by :func:`~clcs.config.load_global_config` and
    :func:`~clcs.config.save_global_config`. Environment variables override
    these values; see :func:`~clcs.config.resolve_config`.
    """

    default_shell: Optional[str] = None
    completion: CompletionConfig = Field(default_factory=CompletionConfig)
    install: InstallConfig = Field(default_factory=InstallConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
