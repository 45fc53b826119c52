"""Fish driver.

The provider defines a function whose output is used as the argument list
of ``complete -c <binary> -f -a``. It reads the whole edit buffer with
``commandline -b`` (joined with ``string collect`` so multi-line buffers
stay one argument) and the cursor offset with ``commandline -C``.

Fish natively understands ``candidate<TAB>description`` lines and filters
them against the current token, which is exactly what the reply contains.
Fish has no separate display label, so ``list_item_text`` is dropped.

References:
    https://fishshell.com/docs/current/completions.html
    https://fishshell.com/docs/current/cmds/commandline.html
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence

from clcs.models import (
    GetCompletionBlockOptions,
    GetCompletionProviderOptions,
    ShellCompletionResult,
)
from clcs.shells.base import ShellDriver, clean_field, function_suffix, render_script

_PROVIDER_TEMPLATE = r"""function __clcs_complete_{{suffix}}
    set -l input (commandline -b | string collect)
    set -l cursor (commandline -C)
    {{request_command}} --input="$input" --cursor="$cursor" 2>/dev/null
end
complete -c {{binary}} -f -a '(__clcs_complete_{{suffix}})'
"""


def fish_quote(text: str) -> str:
    """Quote *text* as a fish single-quoted string."""
    return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"


class FishDriver(ShellDriver):
    """Driver for the fish shell (3.0+)."""

    shell_name = "fish"
    display_name = "fish"

    def get_shell_configuration_file(self) -> Path:
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg_config) if xdg_config else Path.home() / ".config"
        return base / "fish" / "config.fish"

    def get_completion_block(self, options: GetCompletionBlockOptions) -> str:
        return f"{options.get_completion_provider_command} | source"

    def get_completion_provider(self, options: GetCompletionProviderOptions) -> str:
        return render_script(
            _PROVIDER_TEMPLATE,
            suffix=function_suffix(options.binary_name),
            binary=fish_quote(options.binary_name),
            request_command=options.request_completion_command,
        )

    def get_reply(self, results: Sequence[ShellCompletionResult]) -> str:
        lines = []
        for result in results:
            line = clean_field(result.completion_text)
            if result.description:
                line += "\t" + clean_field(result.description)
            lines.append(line)
        return "\n".join(lines)
