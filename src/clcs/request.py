"""Request normalization -- raw shell state to :class:`~clcs.models.CompletionRequest`.

Shells expose the cursor as text (``$COMP_POINT``, ``$CURSOR``,
``commandline -C``), so the raw request keeps it as a string. This module
parses it and enforces ``0 <= cursor_position <= len(input)``.

Out-of-range numeric positions follow a :class:`~clcs.models.CursorPolicy`:

* ``CLAMP`` (default) -- the value is clamped into ``[0, len(input)]``.
  ``input`` itself is never truncated.
* ``REJECT`` -- :class:`~clcs.exceptions.MalformedRequestError` is raised.

A cursor that is not a base-10 integer is rejected under both policies.
"""

from __future__ import annotations

import re

from clcs.exceptions import MalformedRequestError
from clcs.models import CompletionRequest, CursorPolicy, ShellCompletionRequest

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def parse_cursor_position(raw: str) -> int:
    """Parse a shell cursor position as a base-10 integer.

    Surrounding whitespace is ignored. Only ASCII digits with an optional
    sign are accepted (``int()`` alone would also take ``"1_0"`` or
    non-ASCII digits).

    Raises:
        MalformedRequestError: If *raw* is not an integer.
    """
    text = raw.strip()
    if not _INTEGER_RE.fullmatch(text):
        raise MalformedRequestError(f"Cursor position is not an integer: {raw!r}")
    return int(text, 10)


def normalize_request(
    raw: ShellCompletionRequest,
    policy: CursorPolicy = CursorPolicy.CLAMP,
) -> CompletionRequest:
    """Turn a raw shell request into a :class:`~clcs.models.CompletionRequest`.

    Args:
        raw: The request as received from the provider script.
        policy: What to do with a numeric cursor outside ``[0, len(input)]``.

    Returns:
        The normalized request.

    Raises:
        MalformedRequestError: If the cursor is not an integer, or is out of
            range under :attr:`CursorPolicy.REJECT`.
    """
    position = parse_cursor_position(raw.cursor_position)
    length = len(raw.input)

    if position < 0 or position > length:
        if policy == CursorPolicy.REJECT:
            raise MalformedRequestError(
                f"Cursor position {position} is outside the input (length {length})"
            )
        position = min(max(position, 0), length)

    return CompletionRequest(input=raw.input, cursor_position=position)
