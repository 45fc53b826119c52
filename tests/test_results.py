"""Tests for result normalization (clcs.results)."""

from __future__ import annotations

import pytest

from clcs.models import RichCompletionResult, ShellCompletionResult
from clcs.results import normalize_result, normalize_results


class TestNormalizeResult:
    def test_string(self):
        assert normalize_result("foo") == ShellCompletionResult(
            completion_text="foo", list_item_text="foo"
        )

    def test_rich_result_without_label(self):
        result = normalize_result(RichCompletionResult(completion_text="--force", description="Skip"))
        assert result.list_item_text == "--force"
        assert result.description == "Skip"

    def test_rich_result_keeps_label(self):
        result = normalize_result(
            RichCompletionResult(completion_text="main", list_item_text="main (default)")
        )
        assert result.completion_text == "main"
        assert result.list_item_text == "main (default)"

    def test_empty_label_is_kept(self):
        result = normalize_result(RichCompletionResult(completion_text="x", list_item_text=""))
        assert result.list_item_text == ""

    def test_mapping(self):
        result = normalize_result({"completion_text": "prod", "description": "Production"})
        assert result == ShellCompletionResult(
            completion_text="prod", list_item_text="prod", description="Production"
        )

    def test_mapping_without_completion_text(self):
        with pytest.raises(ValueError):
            normalize_result({"description": "orphan"})

    def test_shell_result_passes_through(self):
        shell_result = ShellCompletionResult(completion_text="a", list_item_text="A")
        assert normalize_result(shell_result) is shell_result

    @pytest.mark.parametrize("value", [42, 1.5, object(), b"bytes"])
    def test_unsupported_type(self, value):
        with pytest.raises(TypeError):
            normalize_result(value)


class TestNormalizeResults:
    def test_single_string_becomes_list(self):
        assert normalize_results("foo") == [
            ShellCompletionResult(completion_text="foo", list_item_text="foo", description=None)
        ]

    def test_single_rich_result_becomes_list(self):
        results = normalize_results(RichCompletionResult(completion_text="a"))
        assert len(results) == 1

    def test_none_is_empty(self):
        assert normalize_results(None) == []

    def test_empty_list(self):
        assert normalize_results([]) == []

    def test_order_and_duplicates_are_kept(self):
        results = normalize_results(["b", "a", "b"])
        assert [r.completion_text for r in results] == ["b", "a", "b"]

    def test_mixed_sequence(self):
        results = normalize_results(
            ["plain", RichCompletionResult(completion_text="rich", description="d")]
        )
        assert [r.list_item_text for r in results] == ["plain", "rich"]
        assert [r.description for r in results] == [None, "d"]

    def test_tuple_and_generator(self):
        assert len(normalize_results(("a", "b"))) == 2
        assert len(normalize_results(s for s in ["a", "b", "c"])) == 3

    def test_idempotent(self):
        once = normalize_results(
            ["a", RichCompletionResult(completion_text="b", list_item_text="B", description="d")]
        )
        assert normalize_results(once) == once
