"""Tests for completion functions derived from Typer apps (clcs.command_tree)."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest
import typer

from clcs.command_tree import complete_command, split_command_line, typer_completion_function
from clcs.models import CompletionRequest


def _request(line: str) -> CompletionRequest:
    return CompletionRequest(input=line, cursor_position=len(line))


def _texts(results) -> list[str]:
    return [result.completion_text for result in results]


@pytest.fixture
def demo_app() -> typer.Typer:
    """A small CLI: ``demo [-v] deploy run ENV [--force] [--region R] [--out FILE]``."""
    app = typer.Typer()
    deploy_app = typer.Typer()

    @app.callback()
    def main(
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output."),
    ) -> None:
        """Demo CLI."""

    @deploy_app.command("run")
    def deploy_run(
        env: str = typer.Argument(
            ...,
            help="Target environment.",
            autocompletion=lambda incomplete: [("prod", "Production"), ("dev", "Development")],
        ),
        force: bool = typer.Option(False, "--force", help="Skip checks."),
        region: Optional[str] = typer.Option(
            None,
            "--region",
            help="Region.",
            autocompletion=lambda incomplete: ["eu-west", "us-east"],
        ),
        out: Optional[Path] = typer.Option(None, "--out", help="Output file."),
    ) -> None:
        """Run a deployment."""

    @deploy_app.command("rollback")
    def deploy_rollback() -> None:
        """Undo the last deployment."""

    @app.command("secret", hidden=True)
    def secret() -> None:
        """Not listed."""

    app.add_typer(deploy_app, name="deploy", help="Deployment commands.")
    return app


@pytest.fixture
def complete(demo_app):
    return typer_completion_function(demo_app, "demo")


class TestSplitCommandLine:
    @pytest.mark.parametrize(
        "text, words, current",
        [
            ("", [], ""),
            ("demo", [], "demo"),
            ("demo ", ["demo"], ""),
            ("demo --f", ["demo"], "--f"),
            ("demo 'a b' c", ["demo", "a b"], "c"),
            ("demo 'a b' ", ["demo", "a b"], ""),
            ('demo "unterminated wo', ["demo"], "unterminated wo"),
        ],
    )
    def test_split(self, text, words, current):
        assert split_command_line(text) == (words, current)


class TestTyperCompletion:
    def test_top_level_commands(self, complete):
        results = complete(_request("demo "))
        assert _texts(results) == ["deploy"]
        assert results[0].description == "Deployment commands."

    def test_hidden_commands_are_not_offered(self, complete):
        assert "secret" not in _texts(complete(_request("demo s")))

    def test_sub_commands(self, complete):
        assert sorted(_texts(complete(_request("demo deploy ")))) == ["rollback", "run"]

    def test_sub_commands_narrowed_by_prefix(self, complete):
        results = complete(_request("demo deploy ru"))
        assert _texts(results) == ["run"]
        assert results[0].description == "Run a deployment."

    def test_root_options(self, complete):
        assert _texts(complete(_request("demo --v"))) == ["--verbose"]

    def test_short_option(self, complete):
        assert _texts(complete(_request("demo -v"))) == ["-v"]

    def test_command_options(self, complete):
        results = complete(_request("demo deploy run --f"))
        assert _texts(results) == ["--force"]
        assert results[0].description == "Skip checks."

    def test_argument_values(self, complete):
        results = complete(_request("demo deploy run "))
        assert _texts(results) == ["prod", "dev"]
        assert results[0].description == "Production"

    def test_argument_values_narrowed(self, complete):
        assert _texts(complete(_request("demo -v deploy run d"))) == ["dev"]

    def test_option_values(self, complete):
        assert _texts(complete(_request("demo deploy run --region "))) == ["eu-west", "us-east"]

    def test_option_value_is_skipped_when_counting_arguments(self, complete):
        assert _texts(complete(_request("demo deploy run --region eu-west "))) == ["prod", "dev"]

    def test_path_values_are_left_to_the_shell(self, complete):
        assert complete(_request("demo deploy run --out ")) == []

    def test_no_more_arguments(self, complete):
        assert complete(_request("demo deploy run prod ")) == []

    def test_unknown_command(self, complete):
        assert complete(_request("demo nope ")) == []

    def test_only_text_before_cursor_counts(self, complete):
        line = "demo deploy ro --force"
        request = CompletionRequest(input=line, cursor_position=len("demo deploy ro"))
        assert _texts(complete(request)) == ["rollback"]

    def test_complete_command_directly(self, demo_app):
        command = typer.main.get_command(demo_app)
        assert _texts(complete_command(command, "demo", _request("demo dep"))) == ["deploy"]


class TestClcsSelfCompletion:
    """The clcs CLI completes its own command tree."""

    @pytest.fixture
    def complete_clcs(self):
        from clcs.app import app

        return typer_completion_function(app, "clcs")

    def test_groups(self, complete_clcs):
        assert sorted(_texts(complete_clcs(_request("clcs ")))) == ["completion", "config"]

    def test_completion_commands_hide_protocol_plumbing(self, complete_clcs):
        texts = _texts(complete_clcs(_request("clcs completion ")))
        assert sorted(texts) == ["install", "shells", "status", "uninstall"]

    def test_shell_names(self, complete_clcs):
        results = complete_clcs(_request("clcs completion install "))
        assert _texts(results) == ["bash", "zsh", "fish", "pwsh"]
        assert results[-1].description == "PowerShell"

    def test_config_keys(self, complete_clcs):
        texts = _texts(complete_clcs(_request("clcs config set completion.")))
        assert "completion.timeout_seconds" in texts
        assert "completion.cursor_policy" in texts
        assert all(text.startswith("completion.") for text in texts)


class _Item:
    def __init__(self, value, help=None):
        self.type = "plain"
        self.value = value
        self.help = help


class _Context:
    def __init__(self, command, parent=None, info_name=None, resilient_parsing=False):
        self.command = command
        self.parent = parent
        self.info_name = info_name


class _Param:
    def __init__(self, kind, opts=(), values=(), is_flag=False, help=None):
        self.param_type_name = kind
        self.opts = list(opts)
        self.secondary_opts = []
        self.is_flag = is_flag
        self.count = False
        self.hidden = False
        self.help = help
        self._values = values

    def shell_complete(self, ctx, incomplete):
        return [_Item(value) for value in self._values]


class _Command:
    context_class = _Context

    def __init__(self, params=(), help=None, hidden=False):
        self.params = list(params)
        self.hidden = hidden
        self._help = help

    def get_short_help_str(self, limit=45):
        return self._help or ""


class _Group(_Command):
    def __init__(self, commands, params=(), help=None):
        super().__init__(params, help)
        self.commands = commands

    def list_commands(self, ctx):
        return sorted(self.commands)

    def get_command(self, ctx, name):
        return self.commands.get(name)


class TestCommandProtocol:
    """Trees are walked by their interface, whatever classes implement it."""

    @pytest.fixture
    def tree(self):
        run = _Command(
            params=[
                _Param("argument", values=["prod", "dev"]),
                _Param("option", opts=["--region"], values=["eu-west"], help="Region."),
                _Param("option", opts=["--force"], is_flag=True),
            ],
            help="Run a deployment.",
        )
        deploy = _Group({"run": run, "hidden": _Command(hidden=True)}, help="Deployment commands.")
        return _Group({"deploy": deploy}, params=[_Param("option", opts=["--verbose"], is_flag=True)])

    def test_sub_commands(self, tree):
        results = complete_command(tree, "demo", _request("demo "))
        assert _texts(results) == ["deploy"]
        assert results[0].description == "Deployment commands."

    def test_nested_sub_commands_skip_hidden(self, tree):
        assert _texts(complete_command(tree, "demo", _request("demo deploy "))) == ["run"]

    def test_options(self, tree):
        assert _texts(complete_command(tree, "demo", _request("demo deploy run --"))) == ["--region", "--force"]

    def test_option_values(self, tree):
        assert _texts(complete_command(tree, "demo", _request("demo deploy run --region "))) == ["eu-west"]

    def test_argument_values(self, tree):
        line = "demo --verbose deploy run --force "
        assert _texts(complete_command(tree, "demo", _request(line))) == ["prod", "dev"]
