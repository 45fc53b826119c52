"""PowerShell driver (``pwsh``, PowerShell 7+).

The provider registers a script block with
``Register-ArgumentCompleter -Native``. PowerShell passes the word being
completed, the command's AST and the cursor offset into the whole input
script. The command line is taken from the AST extent and the cursor is
made relative to its start. When the cursor sits past the extent (the
user typed trailing spaces) the line is padded so the "start a new word"
information survives.

PowerShell offsets count UTF-16 code units while the request cursor counts
characters, so each surrogate pair (an emoji, say) left of the cursor is
counted once before the request is sent.

Native completers receive no filtering from PowerShell, so the provider
keeps candidates starting with the current word, case-insensitively like
PowerShell's own completers.

Reply format: same as zsh, three tab-separated fields per line
(``completion_text``, ``list_item_text``, ``description``). The
description becomes the tooltip, falling back to the list label since
``CompletionResult`` rejects an empty tooltip.

References:
    https://learn.microsoft.com/powershell/module/microsoft.powershell.core/register-argumentcompleter
    https://learn.microsoft.com/dotnet/api/system.management.automation.completionresult
"""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Sequence

from clcs.models import (
    GetCompletionBlockOptions,
    GetCompletionProviderOptions,
    ShellCompletionResult,
)
from clcs.shells.base import ShellDriver, clean_field, login_shell_name, render_script

_PROFILE_FILENAME = "Microsoft.PowerShell_profile.ps1"

_PROVIDER_TEMPLATE = r"""Register-ArgumentCompleter -Native -CommandName {{binary}} -ScriptBlock {
    param($wordToComplete, $commandAst, $cursorPosition)
    $line = $commandAst.Extent.Text
    $cursor = $cursorPosition - $commandAst.Extent.StartOffset
    if ($cursor -gt $line.Length) {
        $line = $line.PadRight($cursor)
    }
    if ($cursor -gt 0) {
        $cursor -= [regex]::Matches($line.Substring(0, $cursor), '[\uD800-\uDBFF][\uDC00-\uDFFF]').Count
    }
    $reply = {{request_command}} "--input=$line" "--cursor=$cursor" 2>$null
    foreach ($entry in @($reply)) {
        if (-not $entry) {
            continue
        }
        $fields = $entry -split "`t"
        $completionText = $fields[0]
        if (-not $completionText.StartsWith($wordToComplete, [System.StringComparison]::OrdinalIgnoreCase)) {
            continue
        }
        $listItemText = if ($fields.Count -gt 1 -and $fields[1]) { $fields[1] } else { $completionText }
        $toolTip = if ($fields.Count -gt 2 -and $fields[2]) { $fields[2] } else { $listItemText }
        [System.Management.Automation.CompletionResult]::new($completionText, $listItemText, 'ParameterValue', $toolTip)
    }
}
"""


def powershell_quote(text: str) -> str:
    """Quote *text* as a PowerShell verbatim (single-quoted) string."""
    return "'" + text.replace("'", "''") + "'"


class PowerShellDriver(ShellDriver):
    """Driver for cross-platform PowerShell (``pwsh``)."""

    shell_name = "pwsh"
    display_name = "PowerShell"

    def is_default_shell(self) -> bool:
        name = login_shell_name()
        if name:
            return name == self.shell_name
        # Windows has no $SHELL; PowerShell is the interactive default there.
        return platform.system() == "Windows"

    def get_shell_configuration_file(self) -> Path:
        if platform.system() == "Windows":
            return Path.home() / "Documents" / "PowerShell" / _PROFILE_FILENAME
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg_config) if xdg_config else Path.home() / ".config"
        return base / "powershell" / _PROFILE_FILENAME

    def get_completion_block(self, options: GetCompletionBlockOptions) -> str:
        return f"{options.get_completion_provider_command} | Out-String | Invoke-Expression"

    def get_completion_provider(self, options: GetCompletionProviderOptions) -> str:
        return render_script(
            _PROVIDER_TEMPLATE,
            binary=powershell_quote(options.binary_name),
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
