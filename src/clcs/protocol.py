"""Serving side of the provider/reply protocol.

A provider script (see :mod:`clcs.shells`) runs the request command with
``--input=<line> --cursor=<offset>`` taken verbatim from the shell. The
completion-serving process then runs::

    ShellCompletionRequest
      -> normalize_request      (clcs.request)
      -> invoke_completion      (clcs.invoker)
      -> normalize_results      (clcs.results)
      -> driver.get_reply       (clcs.shells)

and writes the reply to stdout for the provider to parse.

Nothing in this pipeline may print to the terminal: a message emitted
mid-completion corrupts the user's prompt. Malformed requests and failing
completion functions are logged and answered with an empty reply.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from clcs.exceptions import CompletionProviderFailedError, MalformedRequestError
from clcs.invoker import DEFAULT_TIMEOUT_SECONDS, Functions, invoke_completion, run_completion
from clcs.models import CompletionConfig, CompletionRequest, CursorPolicy, ShellCompletionRequest
from clcs.request import normalize_request
from clcs.results import normalize_results
from clcs.shells.base import ShellDriver

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s :: %(message)s"


def _normalize_or_none(raw: ShellCompletionRequest, policy: CursorPolicy) -> Optional[CompletionRequest]:
    try:
        return normalize_request(raw, policy)
    except MalformedRequestError as exc:
        logger.warning("Ignoring malformed completion request: %s", exc)
        return None


def _log_failure(exc: CompletionProviderFailedError) -> None:
    cause = exc.cause
    exc_info = (type(cause), cause, cause.__traceback__) if cause is not None else None
    logger.error("Completion provider failed: %s", exc, exc_info=exc_info)


def _reply(driver: ShellDriver, results: list) -> str:
    try:
        normalized = normalize_results(results)
    except (TypeError, ValueError) as exc:
        _log_failure(CompletionProviderFailedError(f"Invalid completion result: {exc}", cause=exc))
        return driver.get_reply([])
    return driver.get_reply(normalized)


def serve_completion(
    driver: ShellDriver,
    raw: ShellCompletionRequest,
    functions: Functions,
    policy: CursorPolicy = CursorPolicy.CLAMP,
    timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """Answer one raw completion request with a reply in *driver*'s format.

    Never raises for a bad request or a failing completion function; both
    produce the driver's empty reply.

    Args:
        driver: The shell whose provider sent the request.
        raw: The request exactly as received from the shell.
        functions: The completion function(s) for the binary.
        policy: Cursor normalization policy.
        timeout: Seconds to wait for completion functions.

    Returns:
        The serialized reply (possibly empty).
    """
    request = _normalize_or_none(raw, policy)
    if request is None:
        return driver.get_reply([])
    try:
        results = run_completion(functions, request, timeout)
    except CompletionProviderFailedError as exc:
        _log_failure(exc)
        return driver.get_reply([])
    return _reply(driver, results)


async def serve_completion_async(
    driver: ShellDriver,
    raw: ShellCompletionRequest,
    functions: Functions,
    policy: CursorPolicy = CursorPolicy.CLAMP,
    timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """Awaitable variant of :func:`serve_completion` for callers already inside an event loop."""
    request = _normalize_or_none(raw, policy)
    if request is None:
        return driver.get_reply([])
    try:
        results = await invoke_completion(functions, request, timeout)
    except CompletionProviderFailedError as exc:
        _log_failure(exc)
        return driver.get_reply([])
    return _reply(driver, results)


def serve_with_config(
    driver: ShellDriver,
    raw: ShellCompletionRequest,
    functions: Functions,
    config: CompletionConfig,
) -> str:
    """Run :func:`serve_completion` with the policy and timeout from *config*."""
    return serve_completion(
        driver,
        raw,
        functions,
        policy=config.cursor_policy,
        timeout=config.timeout_seconds,
    )


_completion_handler: Optional[logging.Handler] = None


def configure_completion_logging(log_path: Optional[Path], level: int = logging.INFO) -> logging.Handler:
    """Send ``clcs`` log records to *log_path* and nowhere else.

    Called by the serving command before handling a request, so failures
    end up in a file instead of the interactive terminal. Records stop
    propagating to the root logger, whose default stderr handler would
    print into the shell. With ``log_path=None`` records are discarded.

    Calling it again replaces the handler installed by the previous call.

    Returns:
        The installed handler.

    Raises:
        OSError: If the log file cannot be opened.
    """
    global _completion_handler

    handler: logging.Handler
    if log_path is None:
        handler = logging.NullHandler()
    else:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    package_logger = logging.getLogger("clcs")
    if _completion_handler is not None:
        package_logger.removeHandler(_completion_handler)
        _completion_handler.close()
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False
    _completion_handler = handler
    return handler
