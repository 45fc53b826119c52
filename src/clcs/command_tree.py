"""Completion functions derived from a Typer command tree.

:func:`typer_completion_function` turns a :class:`typer.Typer` application
into a completion function for :mod:`clcs.invoker`. It walks the command
tree Typer builds for the app using the words left of the cursor and offers:

* sub-command names (with their short help as description) inside a group,
* option names when the current word starts with ``-``,
* values for an option expecting one, or for the next positional argument,
  as produced by the parameter's own ``shell_complete`` (``Choice``
  values, Typer ``autocompletion`` callbacks).

Hidden commands and options are never offered. Candidates are narrowed to
those starting with the word under the cursor.

The walk relies only on the command protocol (``params``,
``list_commands``/``get_command``, ``context_class``, and a parameter's
``param_type_name``), never on ``isinstance`` checks against Click
classes: recent Typer releases ship their own copy of Click, whose
classes are unrelated to those of an installed ``click``.
"""

from __future__ import annotations

import shlex
from typing import Any, Optional

import typer

from clcs.models import CompletionFunction, CompletionRequest, RichCompletionResult


def split_command_line(text: str) -> tuple[list[str], str]:
    """Split the text left of the cursor into finished words and the current word.

    Shell quoting is honoured; an unterminated quote is treated as closed
    at the cursor. The current word is ``""`` when *text* ends with
    whitespace.
    """
    lexer = shlex.shlex(text, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    words: list[str] = []
    try:
        for word in lexer:
            words.append(word)
    except ValueError:
        # Unterminated quote: the lexer has buffered the partial word.
        if lexer.token:
            words.append(lexer.token)
    if not text or text[-1].isspace():
        return words, ""
    if not words:
        return [], ""
    return words[:-1], words[-1]


def _make_context(command: Any, parent: Any, name: str) -> Any:
    return command.context_class(command, parent=parent, info_name=name, resilient_parsing=True)


def _is_group(command: Any) -> bool:
    return hasattr(command, "list_commands") and hasattr(command, "get_command")


def _params_of_kind(command: Any, kind: str) -> list[Any]:
    return [param for param in command.params if getattr(param, "param_type_name", None) == kind]


def _visible_options(command: Any) -> list[Any]:
    return [param for param in _params_of_kind(command, "option") if not param.hidden]


def _find_option(command: Any, word: str) -> Optional[Any]:
    for param in _params_of_kind(command, "option"):
        if word in (*param.opts, *param.secondary_opts):
            return param
    return None


def _param_candidates(param: Any, ctx: Any, incomplete: str) -> list[RichCompletionResult]:
    results = []
    for item in param.shell_complete(ctx, incomplete):
        # "file" and "dir" items ask the shell to complete paths itself.
        if item.type != "plain":
            continue
        results.append(RichCompletionResult(completion_text=str(item.value), description=item.help))
    return results


def complete_command(command: Any, prog_name: str, request: CompletionRequest) -> list[RichCompletionResult]:
    """Compute candidates for *request* against a Click-style *command* tree.

    The first word of the command line is taken to be the program itself
    and skipped.
    """
    words, current = split_command_line(request.text_before_cursor)
    ctx = _make_context(command, None, prog_name)
    positional: list[str] = []
    pending_option: Optional[Any] = None

    for word in words[1:]:
        if pending_option is not None:
            pending_option = None
            continue
        if word.startswith("-") and word != "-":
            option = _find_option(ctx.command, word.split("=", 1)[0])
            if option is not None and not option.is_flag and not option.count and "=" not in word:
                pending_option = option
            continue
        if _is_group(ctx.command) and not positional:
            sub = ctx.command.get_command(ctx, word)
            if sub is not None:
                ctx = _make_context(sub, ctx, word)
                continue
        positional.append(word)

    command_here = ctx.command
    if pending_option is not None:
        candidates = _param_candidates(pending_option, ctx, current)
    elif current.startswith("-"):
        candidates = [
            RichCompletionResult(completion_text=opt, description=option.help)
            for option in _visible_options(command_here)
            for opt in (*option.opts, *option.secondary_opts)
        ]
    elif _is_group(command_here) and not positional:
        candidates = []
        for name in command_here.list_commands(ctx):
            sub = command_here.get_command(ctx, name)
            if sub is None or sub.hidden:
                continue
            candidates.append(RichCompletionResult(
                completion_text=name,
                description=sub.get_short_help_str(limit=60) or None,
            ))
    else:
        arguments = _params_of_kind(command_here, "argument")
        index = len(positional)
        candidates = _param_candidates(arguments[index], ctx, current) if index < len(arguments) else []

    return [candidate for candidate in candidates if candidate.completion_text.startswith(current)]


def typer_completion_function(app: typer.Typer, prog_name: str) -> CompletionFunction:
    """Build a completion function for a Typer *app* invoked as *prog_name*.

    The command tree is built lazily on the first request, after every
    sub-application has been registered on *app*.
    """
    command: Optional[Any] = None

    def complete(request: CompletionRequest) -> list[RichCompletionResult]:
        nonlocal command
        if command is None:
            command = typer.main.get_command(app)
        return complete_command(command, prog_name, request)

    complete.__qualname__ = f"typer_completion_function.<{prog_name}>"
    return complete
