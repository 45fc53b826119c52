"""clcs -- shell completion for command-line tools, over a small text protocol.

A CLI that wants completion supplies a *completion function* that maps a
command line and cursor position to candidates. clcs does the rest:

* it writes a one-line block into the user's shell startup file
  (``~/.bashrc``, ``~/.zshrc``, ``config.fish`` or the PowerShell profile),
* that block loads a *provider* script generated for the shell,
* on every TAB the provider runs the CLI's hidden request command, and clcs
  answers with the candidates in a format the provider parses.

Typical wiring inside a Typer CLI::

    from clcs.commands.completion import build_completion_app

    app.add_typer(build_completion_app("mytool", complete_mytool), name="completion")

then, once per user::

    mytool completion install

Modules:
    app: The ``clcs`` CLI and console-script entry point.
    models: Pydantic models for requests, results, options and config.
    request: Cursor parsing and request normalization.
    results: Result normalization into the canonical shape.
    invoker: Running sync/async completion functions.
    shells: One driver per supported shell.
    blocks: Installing and removing the startup-file block.
    protocol: Serving a raw request end to end.
    command_tree: Completion functions derived from a Typer app.
    config: XDG-aware global configuration.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
