"""Built-in CLI sub-commands for clcs.

This package groups the Typer sub-command modules of the ``clcs`` command
tree:

* :mod:`~clcs.commands.completion` -- the completion group factory that
  any CLI (including ``clcs`` itself) mounts to install and serve shell
  completion.
* :mod:`~clcs.commands.config` -- view and modify global settings.

Each module exports a :class:`typer.Typer` sub-application, or a factory
returning one, registered on the root app in :mod:`clcs.app`.
"""
