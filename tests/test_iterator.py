"""Argument iterator tests."""

from procargs.dialect import Dialect
from procargs.iterator import ArgIterator


class TestUnixIteration:
    def test_quoted_words(self) -> None:
        it = ArgIterator("foo 'bar baz' \"q\"", Dialect.UNIX)
        assert list(it) == [("foo", True), ("bar baz", True), ("q", True)]

    def test_variable_is_not_simple(self) -> None:
        it = ArgIterator("echo $HOME x", Dialect.UNIX)
        assert list(it) == [("echo", True), ("", False), ("x", True)]

    def test_arithmetic_is_one_word(self) -> None:
        it = ArgIterator("$((1+2)) x", Dialect.UNIX)
        assert list(it) == [("", False), ("x", True)]

    def test_stops_at_pipe(self) -> None:
        assert list(ArgIterator("foo | bar", Dialect.UNIX)) == [("foo", True)]

    def test_stops_at_unterminated_quote(self) -> None:
        assert list(ArgIterator("foo 'bar", Dialect.UNIX)) == [("foo", True)]

    def test_escape_and_double_quotes(self) -> None:
        it = ArgIterator(r'a\ b "c\d"', Dialect.UNIX)
        assert list(it) == [("a b", True), ("c\\d", True)]

    def test_empty(self) -> None:
        it = ArgIterator("   ", Dialect.UNIX)
        assert not it.advance()


class TestWindowsIteration:
    def test_crt_quoting(self) -> None:
        it = ArgIterator(r'a "b c" d\"e', Dialect.WINDOWS)
        assert list(it) == [("a", True), ("b c", True), ('d"e', True)]

    def test_variable_is_not_simple(self) -> None:
        it = ArgIterator("echo %PATH% x", Dialect.WINDOWS)
        assert list(it) == [("echo", True), ("", False), ("x", True)]

    def test_stops_at_meta(self) -> None:
        assert list(ArgIterator("a & b", Dialect.WINDOWS)) == [("a", True)]

    def test_circumflex_escapes_meta(self) -> None:
        it = ArgIterator("a ^& b", Dialect.WINDOWS)
        assert list(it) == [("a", True), ("&", True), ("b", True)]

    def test_stops_at_unterminated_quote(self) -> None:
        assert list(ArgIterator('a "b', Dialect.WINDOWS)) == [("a", True)]


class TestEditing:
    def test_delete_middle(self) -> None:
        it = ArgIterator("foo bar baz", Dialect.UNIX)
        it.advance()
        it.advance()
        assert it.value == "bar"
        it.delete_current()
        assert it.text == "foo baz"
        assert it.advance()
        assert it.value == "baz"

    def test_delete_first(self) -> None:
        it = ArgIterator("foo bar baz", Dialect.UNIX)
        it.advance()
        it.delete_current()
        assert it.text == "bar baz"
        it.advance()
        assert it.value == "bar"

    def test_delete_last_after_end(self) -> None:
        it = ArgIterator("foo bar", Dialect.UNIX)
        while it.advance():
            pass
        it.delete_current()
        assert it.text == "foo"

    def test_insert_before_next(self) -> None:
        it = ArgIterator("foo bar baz", Dialect.UNIX)
        it.advance()
        it.insert_before("a b")
        assert it.text == "foo 'a b' bar baz"
        it.advance()
        assert it.value == "bar"

    def test_insert_at_start(self) -> None:
        it = ArgIterator("x y", Dialect.UNIX)
        it.insert_before("w")
        assert it.text == "w x y"
        it.advance()
        assert it.value == "x"

    def test_insert_windows_quoting(self) -> None:
        it = ArgIterator("x y", Dialect.WINDOWS)
        it.advance()
        it.insert_before("a b")
        assert it.text == 'x "a b" y'
        it.advance()
        assert it.value == "y"
