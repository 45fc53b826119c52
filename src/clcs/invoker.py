"""Completion invocation -- awaiting and flattening completion function output.

A completion function may return a value or an awaitable, and the value may
be a single :data:`~clcs.models.CompletionResult` or a sequence of them.
:func:`invoke_completion` accepts all four combinations and always resolves
to one ordered ``list``. Nothing past this module sees the union shape.

Coroutine functions are awaited on the event loop. Plain functions run on
daemon threads so that a function blocking on I/O cannot hold the reply
past the timeout, and an abandoned thread never delays interpreter exit.

Several functions can be registered for the same binary through a
:class:`CompletionRegistry`. They run concurrently, but their contributions
are merged in registration order, never in completion order.

Failures (an exception, a timeout, or an unsupported return shape) are
raised as :class:`~clcs.exceptions.CompletionProviderFailedError`; the
serving side in :mod:`clcs.protocol` turns that into an empty reply.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import Mapping
from typing import Any, Iterable, Iterator, Optional, Sequence, Union

from clcs.exceptions import CompletionProviderFailedError
from clcs.models import CompletionFunction, CompletionRequest, CompletionResult, RichCompletionResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0
"""Timeout applied when neither the caller nor the configuration sets one."""


class CompletionRegistry:
    """Ordered collection of completion functions for one binary.

    Registration order is the merge order of the final candidate list.
    :meth:`register` returns the function unchanged so it doubles as a
    decorator.

    Example::

        registry = CompletionRegistry()

        @registry.register
        def complete_flags(request):
            return ["--force", "--foo"]

        @registry.register
        async def complete_remote(request):
            return await fetch_names()
    """

    def __init__(self, functions: Iterable[CompletionFunction] = ()) -> None:
        self._functions: list[CompletionFunction] = []
        for fn in functions:
            self.register(fn)

    def register(self, fn: CompletionFunction) -> CompletionFunction:
        """Append *fn* to the registry.

        Raises:
            TypeError: If *fn* is not callable.
        """
        if not callable(fn):
            raise TypeError(f"Completion function must be callable, got {type(fn).__name__}")
        self._functions.append(fn)
        return fn

    @property
    def functions(self) -> tuple[CompletionFunction, ...]:
        """Registered functions in registration order."""
        return tuple(self._functions)

    def __iter__(self) -> Iterator[CompletionFunction]:
        return iter(self.functions)

    def __len__(self) -> int:
        return len(self._functions)


Functions = Union[CompletionFunction, CompletionRegistry, Sequence[CompletionFunction]]


def _function_name(fn: Any) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)


def _is_result(item: Any) -> bool:
    return isinstance(item, (str, RichCompletionResult, Mapping))


def _flatten(fn: Any, value: Any) -> list[CompletionResult]:
    if value is None:
        return []
    if _is_result(value):
        return [value]
    if isinstance(value, Iterable):
        items = list(value)
        for item in items:
            if not _is_result(item):
                raise CompletionProviderFailedError(
                    f"Completion function {_function_name(fn)} returned an unsupported "
                    f"item of type {type(item).__name__}"
                )
        return items
    raise CompletionProviderFailedError(
        f"Completion function {_function_name(fn)} returned an unsupported "
        f"value of type {type(value).__name__}"
    )


def _is_async(fn: Any) -> bool:
    return inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(getattr(fn, "__call__", None))


def _call_in_thread(fn: CompletionFunction, request: CompletionRequest) -> asyncio.Future:
    """Run a plain function on a daemon thread and return a future for its value.

    The thread is never joined: if the future has been cancelled (the
    request timed out) or the loop has closed, the late value is dropped.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def settle(value: Any, exc: Optional[BaseException]) -> None:
        if future.done():
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(value)

    def worker() -> None:
        value: Any = None
        failure: Optional[BaseException] = None
        try:
            value = fn(request)
        except Exception as exc:
            failure = exc
        try:
            loop.call_soon_threadsafe(settle, value, failure)
        except RuntimeError:
            logger.debug("Dropping late result of completion function %s", _function_name(fn))

    threading.Thread(target=worker, name=f"clcs-completion-{_function_name(fn)}", daemon=True).start()
    return future


async def _call(fn: CompletionFunction, request: CompletionRequest) -> list[CompletionResult]:
    try:
        if _is_async(fn):
            value = await fn(request)
        else:
            value = await _call_in_thread(fn, request)
            if inspect.isawaitable(value):
                value = await value
    except Exception as exc:
        raise CompletionProviderFailedError(
            f"Completion function {_function_name(fn)} failed: {exc}", cause=exc
        ) from exc
    return _flatten(fn, value)


def _as_function_list(functions: Functions) -> list[CompletionFunction]:
    if isinstance(functions, CompletionRegistry):
        return list(functions.functions)
    if callable(functions):
        return [functions]
    return list(functions)


async def invoke_completion(
    functions: Functions,
    request: CompletionRequest,
    timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
) -> list[CompletionResult]:
    """Call every completion function with *request* and merge their results.

    All functions are started together and joined before returning. The
    merged list holds each function's results in registration order.

    Coroutine functions run on the event loop. Plain functions each run on
    a daemon thread, so *timeout* also bounds a function that blocks; a
    function still running when the timeout expires is abandoned, and
    whatever it returns later is discarded.

    Args:
        functions: A single function, a sequence of functions, or a
            :class:`CompletionRegistry`.
        request: The normalized request passed to each function.
        timeout: Seconds to wait for all functions, or ``None`` for no limit.

    Returns:
        The merged, ordered list of raw completion results.

    Raises:
        CompletionProviderFailedError: If any function raises, returns an
            unsupported shape, or the timeout expires.
    """
    fns = _as_function_list(functions)
    if not fns:
        return []

    logger.debug("Invoking %d completion function(s) at cursor %d", len(fns), request.cursor_position)
    try:
        gathered = await asyncio.wait_for(
            asyncio.gather(*(_call(fn, request) for fn in fns)),
            timeout,
        )
    except asyncio.TimeoutError as exc:
        raise CompletionProviderFailedError(
            f"Completion timed out after {timeout}s", cause=exc
        ) from exc

    merged: list[CompletionResult] = []
    for part in gathered:
        merged.extend(part)
    return merged


def run_completion(
    functions: Functions,
    request: CompletionRequest,
    timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
) -> list[CompletionResult]:
    """Blocking wrapper around :func:`invoke_completion` for synchronous callers.

    Must not be called from inside a running event loop.
    """
    return asyncio.run(invoke_completion(functions, request, timeout))
