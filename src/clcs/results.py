"""Result normalization -- whatever a completion function returned to ``ShellCompletionResult``s."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Union

from pydantic import ValidationError

from clcs.models import CompletionResult, RichCompletionResult, ShellCompletionResult


def _as_sequence(results: Any) -> list[Any]:
    # Strings and mappings are single results even though they are iterable.
    if isinstance(results, (str, Mapping, RichCompletionResult)):
        return [results]
    if isinstance(results, Iterable):
        return list(results)
    return [results]


def normalize_result(result: Union[CompletionResult, Mapping[str, Any]]) -> ShellCompletionResult:
    """Normalize a single completion result.

    Accepts a bare string, a :class:`~clcs.models.RichCompletionResult`
    (including an already-normalized :class:`ShellCompletionResult`), or a
    mapping with the same keys.

    Raises:
        TypeError: If *result* is none of the accepted shapes.
        ValueError: If a mapping is missing ``completion_text``.
    """
    if isinstance(result, ShellCompletionResult):
        return result
    if isinstance(result, str):
        return ShellCompletionResult(completion_text=result, list_item_text=result)
    if isinstance(result, Mapping):
        try:
            result = RichCompletionResult.model_validate(result)
        except ValidationError as exc:
            raise ValueError(f"Invalid completion result {dict(result)!r}: {exc}") from exc
    if isinstance(result, RichCompletionResult):
        list_item_text = result.list_item_text
        if list_item_text is None:
            list_item_text = result.completion_text
        return ShellCompletionResult(
            completion_text=result.completion_text,
            list_item_text=list_item_text,
            description=result.description,
        )
    raise TypeError(f"Unsupported completion result type: {type(result).__name__}")


def normalize_results(results: Any) -> list[ShellCompletionResult]:
    """Normalize the output of completion functions into ``ShellCompletionResult``s.

    A single result is wrapped into a one-element list and ``list_item_text``
    is filled from ``completion_text`` wherever it is missing. The order of
    the input is kept; nothing is deduplicated, sorted or filtered.

    Normalizing an already normalized list returns an equal list.

    Example::

        >>> normalize_results("foo")
        [ShellCompletionResult(completion_text='foo', list_item_text='foo', description=None)]
    """
    if results is None:
        return []
    return [normalize_result(item) for item in _as_sequence(results)]
