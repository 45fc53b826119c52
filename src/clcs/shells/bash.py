"""Bash driver.

The provider registers a function with ``complete -F``. Bash calls it with
``$COMP_LINE`` (the whole command line) and ``$COMP_POINT`` (the cursor
offset into it) set, and with the word being completed as ``$2``.

Bash does not filter ``COMPREPLY`` by itself when a function is used, so
the provider keeps only candidates starting with ``$2``, the same narrowing
``compgen -W`` would apply.

Reply format: one ``completion_text`` per line. Bash has no notion of
display labels or descriptions, so those fields are dropped.

References:
    https://www.gnu.org/software/bash/manual/html_node/Programmable-Completion.html
    https://www.gnu.org/software/bash/manual/html_node/Bash-Variables.html (COMP_LINE, COMP_POINT)
"""

from __future__ import annotations

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
    local cur="${2-}" candidate
    COMPREPLY=()
    while IFS= read -r candidate; do
        if [[ -n "$candidate" && "$candidate" == "$cur"* ]]; then
            COMPREPLY+=("$candidate")
        fi
    done < <({{request_command}} --input="$COMP_LINE" --cursor="$COMP_POINT" 2>/dev/null)
}
complete -F _clcs_complete_{{suffix}} {{binary}}
"""


class BashDriver(ShellDriver):
    """Driver for GNU Bash (4.0+, process substitution required)."""

    shell_name = "bash"
    display_name = "Bash"

    def get_shell_configuration_file(self) -> Path:
        return Path.home() / ".bashrc"

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
        return "\n".join(clean_field(result.completion_text) for result in results)
