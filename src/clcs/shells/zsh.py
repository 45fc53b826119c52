"""Zsh driver.

The provider defines a completion function and registers it with
``compdef``, initialising the completion system first when the user's
``.zshrc`` has not done so yet. Inside a completion widget zle exposes
``$BUFFER`` (the edit buffer) and ``$CURSOR`` (0-based offset), which are
forwarded as-is.

Candidates are added with ``compadd -l -d displays -a completions``:
``completions`` holds the text to insert and ``displays`` the label shown
in the menu, with the description appended after ``--``. Zsh matches the
candidates against the current word itself, so no filtering is done here.

Reply format: one candidate per line, three tab-separated fields
``completion_text``, ``list_item_text``, ``description`` (possibly empty).

References:
    https://zsh.sourceforge.io/Doc/Release/Completion-Widgets.html
    https://zsh.sourceforge.io/Doc/Release/Zsh-Line-Editor.html#User_002dDefined-Widgets
"""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Sequence

from clcs.models import (
    GetCompletionBlockOptions,
    GetCompletionProviderOptions,
    ShellCompletionResult,
)
from clcs.shells.base import ShellDriver, clean_field, function_suffix, render_script

_PROVIDER_TEMPLATE = r"""_clcs_complete_{{suffix}}() {
    local entry
    local -a reply_lines fields completions displays
    reply_lines=("${(@f)$({{request_command}} --input="$BUFFER" --cursor="$CURSOR" 2>/dev/null)}")
    for entry in "${reply_lines[@]}"; do
        [[ -n "$entry" ]] || continue
        fields=("${(@ps:\t:)entry}")
        completions+=("${fields[1]}")
        if [[ -n "${fields[3]}" ]]; then
            displays+=("${fields[2]} -- ${fields[3]}")
        else
            displays+=("${fields[2]}")
        fi
    done
    (( ${#completions} )) || return 1
    compadd -l -d displays -a completions
}
if ! (( $+functions[compdef] )); then
    autoload -Uz compinit
    compinit
fi
compdef _clcs_complete_{{suffix}} {{binary}}
"""


class ZshDriver(ShellDriver):
    """Driver for Zsh (5.0+)."""

    shell_name = "zsh"
    display_name = "Zsh"

    def get_shell_configuration_file(self) -> Path:
        zdotdir = os.environ.get("ZDOTDIR")
        base = Path(zdotdir).expanduser() if zdotdir else Path.home()
        return base / ".zshrc"

    def get_completion_block(self, options: GetCompletionBlockOptions) -> str:
        return f'eval "$({options.get_completion_provider_command})"'

    def get_completion_provider(self, options: GetCompletionProviderOptions) -> str:
        return render_script(
            _PROVIDER_TEMPLATE,
            suffix=function_suffix(options.binary_name),
            binary=shlex.quote(options.binary_name),
            request_command=options.request_completion_command,
        )

    def get_reply(self, results: Sequence[ShellCompletionResult]) -> str:
        lines = []
        for result in results:
            fields = (
                result.completion_text,
                result.list_item_text,
                result.description or "",
            )
            lines.append("\t".join(clean_field(field) for field in fields))
        return "\n".join(lines)
