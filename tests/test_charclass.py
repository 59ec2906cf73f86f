"""Character class table tests."""

from procargs.charclass import (
    UNIX_META_CHARS,
    WINDOWS_META_CHARS,
    has_quote_worthy,
    is_meta_char,
    is_quote_worthy,
)
from procargs.dialect import Dialect


class TestMetaChars:
    def test_unix(self) -> None:
        for ch in "|&;<>()$`\\\"'*?[]#{}":
            assert is_meta_char(Dialect.UNIX, ch), ch
        assert not is_meta_char(Dialect.UNIX, "a")
        assert not is_meta_char(Dialect.UNIX, "~")
        assert not is_meta_char(Dialect.UNIX, "=")

    def test_windows(self) -> None:
        assert WINDOWS_META_CHARS == frozenset("&()<>|")
        assert not is_meta_char(Dialect.WINDOWS, "^")
        assert not is_meta_char(Dialect.WINDOWS, "%")

    def test_space_is_not_meta(self) -> None:
        assert " " not in UNIX_META_CHARS
        assert " " not in WINDOWS_META_CHARS


class TestQuoteWorthy:
    def test_whitespace_and_controls(self) -> None:
        for dialect in (Dialect.UNIX, Dialect.WINDOWS):
            assert is_quote_worthy(dialect, " ")
            assert is_quote_worthy(dialect, "\t")
            assert is_quote_worthy(dialect, "\x00")
            assert not is_quote_worthy(dialect, "\x7f")

    def test_dialect_differences(self) -> None:
        assert is_quote_worthy(Dialect.UNIX, "~")
        assert not is_quote_worthy(Dialect.WINDOWS, "~")
        assert is_quote_worthy(Dialect.WINDOWS, "=")
        assert not is_quote_worthy(Dialect.UNIX, "=")
        assert is_quote_worthy(Dialect.WINDOWS, "^")
        assert not is_quote_worthy(Dialect.WINDOWS, "\\")

    def test_non_ascii_never_special(self) -> None:
        assert not is_quote_worthy(Dialect.UNIX, "é")
        assert not is_meta_char(Dialect.WINDOWS, "ü")

    def test_has_quote_worthy(self) -> None:
        assert has_quote_worthy(Dialect.UNIX, "a b")
        assert not has_quote_worthy(Dialect.UNIX, "/usr/bin/env")
        assert not has_quote_worthy(Dialect.WINDOWS, "")
