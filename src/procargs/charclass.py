"""Per-dialect character classification tables."""

from __future__ import annotations

from procargs.dialect import Dialect

_CONTROL_AND_SPACE: frozenset[str] = frozenset(chr(c) for c in range(33))

# Characters that abort splitting when abort_on_meta is requested
UNIX_META_CHARS: frozenset[str] = frozenset("\\'\"$`<>|;&(){}*?#[]")
WINDOWS_META_CHARS: frozenset[str] = frozenset("&()<>|")

# Characters that force quoting when a word is put on a command line
UNIX_QUOTE_WORTHY: frozenset[str] = _CONTROL_AND_SPACE | frozenset("\\'\"$`<>|;&(){}*?#!~[]")
WINDOWS_QUOTE_WORTHY: frozenset[str] = _CONTROL_AND_SPACE | frozenset("\"&()<>^|,;=")


def is_meta_char(dialect: Dialect, ch: str) -> bool:
    table = WINDOWS_META_CHARS if dialect == Dialect.WINDOWS else UNIX_META_CHARS
    return ch in table


def is_quote_worthy(dialect: Dialect, ch: str) -> bool:
    table = WINDOWS_QUOTE_WORTHY if dialect == Dialect.WINDOWS else UNIX_QUOTE_WORTHY
    return ch in table


def has_quote_worthy(dialect: Dialect, text: str) -> bool:
    """Return True if any character of text needs quoting in this dialect."""
    table = WINDOWS_QUOTE_WORTHY if dialect == Dialect.WINDOWS else UNIX_QUOTE_WORTHY
    return any(ch in table for ch in text)
