"""Macro expansion tests for both dialects."""

import logging
from pathlib import Path

import pytest

from procargs.dialect import Dialect
from procargs.macros import (
    MacroExpander,
    MacroMatch,
    expand_macros,
    expand_macros_str,
    load_macro_file,
)
from procargs.unix import split_unix
from procargs.windows import quote_arg_win, split_win


def unix(text: str, **values: str):
    return expand_macros(text, MacroExpander(values), Dialect.UNIX)


def win(text: str, **values: str):
    return expand_macros(text, MacroExpander(values), Dialect.WINDOWS)


class TestMacroExpander:
    def test_finds_known_macro(self) -> None:
        lookup = MacroExpander({"X": "v"})
        assert lookup.find_next_macro("a %{X}", 0) == MacroMatch(2, 4, "v")

    def test_skips_unknown_names(self) -> None:
        lookup = MacroExpander({"X": "v"})
        assert lookup.find_next_macro("%{Y} %{X}", 0) == MacroMatch(5, 4, "v")
        assert lookup.find_next_macro("%{Y}", 0) is None

    def test_respects_start(self) -> None:
        lookup = MacroExpander({"X": "v"})
        assert lookup.find_next_macro("%{X}", 1) is None

    def test_custom_pattern(self) -> None:
        lookup = MacroExpander({"X": "a b"}, r"@(\w+)@")
        assert expand_macros("run @X@", lookup, Dialect.UNIX).text == "run 'a b'"

    def test_pattern_without_group_skips_empty_matches(self) -> None:
        lookup = MacroExpander({"xx": "y"}, r"x*")
        assert lookup.find_next_macro("a xx", 0) == MacroMatch(2, 2, "y")


class TestUnixExpansion:
    def test_value_with_space(self) -> None:
        result = unix("run %{X}", X="a b")
        assert result.ok
        assert result.text == "run 'a b'"
        assert split_unix(result.text).args == ["run", "a b"]

    def test_plain_value_unquoted(self) -> None:
        assert unix("run %{X}", X="abc").text == "run abc"

    def test_empty_value(self) -> None:
        assert unix("run %{X}", X="").text == "run ''"

    def test_single_quote_in_value(self) -> None:
        assert unix("run %{X}", X="it's").text == "run 'it'\\''s'"

    def test_inside_single_quotes(self) -> None:
        result = unix("echo '%{X}'", X="it's")
        assert result.text == "echo 'it'\\''s'"
        assert split_unix(result.text).args == ["echo", "it's"]

    def test_inside_double_quotes(self) -> None:
        result = unix('echo "%{X}"', X='a"$b')
        assert result.text == 'echo "a\\"\\$b"'
        assert split_unix(result.text, abort_on_meta=True).args == ["echo", 'a"$b']

    def test_multiple_macros(self) -> None:
        result = unix("cp %{SRC} %{DST}", SRC="a b", DST="c")
        assert result.text == "cp 'a b' c"

    def test_unknown_macro_stays(self) -> None:
        assert unix("a %{NOPE} %{X}", X="1").text == "a %{NOPE} 1"

    def test_no_macros(self) -> None:
        result = unix("echo $(date) | wc", X="1")
        assert result.ok
        assert result.text == "echo $(date) | wc"

    def test_command_substitution_in_double_quotes(self) -> None:
        assert unix('echo "$(ls %{X})"', X="a b").text == "echo \"$(ls 'a b')\""

    def test_brace_group(self) -> None:
        result = unix("find . -exec rm {} %{X} \\;", X="a b")
        assert result.text == "find . -exec rm {} 'a b' \\;"

    def test_variable_substitution(self) -> None:
        assert unix("echo ${V:-%{X}}", X="a b").text == "echo ${V:-'a b'}"

    def test_backticks_rewritten(self) -> None:
        result = unix("echo `ls %{X}`", X="a b")
        assert result.ok
        assert result.text == "echo $( ls 'a b')"

    def test_backtick_escapes(self) -> None:
        assert unix("echo `echo \\$x %{X}`", X="y").text == "echo $( echo $x y)"

    def test_arithmetic(self) -> None:
        assert unix("echo $((1 + %{N}))", N="2").text == "echo $((1 + 2))"

    def test_arithmetic_turns_out_to_be_subshell(self) -> None:
        result = unix("echo $((cd /x) && ls %{X})", X="a b")
        assert result.ok
        assert result.text == "echo $((cd /x) && ls 'a b')"

    def test_subshell_guess_settled_after_last_macro(self) -> None:
        result = unix('"$((echo %{X}) )"', X="a b")
        assert result.text == "\"$((echo 'a b') )\""

    def test_open_context_at_end(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="procargs.macros"):
            result = unix('echo "%{X}', X="a b")
        assert result.ok
        assert result.text == 'echo "a b'
        assert "open shell context" in caplog.text


class TestUnixFailures:
    @pytest.mark.parametrize(
        "text",
        [
            "echo \\%{X}",
            "echo $%{X}",
            "echo `ls %{X}",
            "echo ) %{X}",
            "echo } %{X}",
        ],
    )
    def test_refused(self, text: str) -> None:
        result = unix(text, X="a b")
        assert not result.ok
        assert result.text == text
        assert result.reason

    def test_expand_str_returns_input(self) -> None:
        lookup = MacroExpander({"X": "a b"})
        assert expand_macros_str("echo \\%{X}", lookup, Dialect.UNIX) == "echo \\%{X}"


class TestWindowsExpansion:
    def test_value_with_space(self) -> None:
        result = win("run %{X}", X="a b")
        assert result.ok
        assert result.text == 'run "a b"'
        assert split_win(result.text, abort_on_meta=True).args == ["run", "a b"]

    def test_plain_value(self) -> None:
        assert win("run %{X}", X="abc").text == "run abc"

    def test_empty_value(self) -> None:
        assert win("run %{X}", X="").text == 'run ""'
        assert win("run %{X} next", X="").text == 'run "" next'

    def test_embedded_quote_matches_quote_arg(self) -> None:
        assert win("run %{X}", X='a"b').text == "run " + quote_arg_win('a"b')

    def test_inside_quotes(self) -> None:
        assert win('run "%{X}"', X="a b").text == 'run "a b"'
        assert win('run "%{X}"', X='a"b').text == 'run "a"\\^""b"'

    def test_trailing_backslash_in_value(self) -> None:
        result = win("run %{X}", X="a b\\")
        assert result.text == 'run "a b\\\\"'
        assert split_win(result.text, abort_on_meta=True).args == ["run", "a b\\"]

    def test_backslashes_before_macro(self) -> None:
        result = win("run C:\\dir\\%{X}", X="a b")
        assert result.text == 'run C:\\dir\\\\"a b"'
        assert split_win(result.text, abort_on_meta=True).args == ["run", "C:\\dir\\a b"]

    def test_trailing_backslash_before_literal_quote(self) -> None:
        result = win('run "%{X}"', X="a b\\")
        assert result.text == 'run "a b\\\\"'
        assert split_win(result.text, abort_on_meta=True).args == ["run", "a b\\"]

    def test_plain_value_joins_quoted_macro(self) -> None:
        result = win("%{A}%{B}", A="a b", B="c")
        assert result.text == '"a bc"'
        assert split_win(result.text).args == ["a bc"]


class TestWindowsFailures:
    @pytest.mark.parametrize(
        "text",
        [
            "run ^%{X}",
            'run \\"%{X}',
            'run ""%{X}',
            'run %{X}"y"',
        ],
    )
    def test_refused(self, text: str) -> None:
        result = win(text, X="a b")
        assert not result.ok
        assert result.text == text

    def test_adjacent_quoted_macros(self) -> None:
        result = win("%{A}%{B}", A="a b", B="c d")
        assert not result.ok
        assert result.text == "%{A}%{B}"
        assert "another quoted macro" in result.reason


class TestLoadMacroFile:
    def test_nested_under_macros(self, tmp_path: Path) -> None:
        path = tmp_path / "macros.yaml"
        path.write_text("macros:\n  X: a b\n  N: 3\n", encoding="utf-8")
        assert load_macro_file(path) == {"X": "a b", "N": "3"}

    def test_top_level_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "macros.yaml"
        path.write_text("X: one\nEMPTY:\n", encoding="utf-8")
        assert load_macro_file(path) == {"X": "one", "EMPTY": ""}

    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_macro_file(tmp_path / "nope.yaml") == {}

    def test_malformed_file(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "macros.yaml"
        path.write_text("X: [unclosed\n", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="procargs.macros"):
            assert load_macro_file(path) == {}
        assert "Failed to parse" in caplog.text

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "macros.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        assert load_macro_file(path) == {}
