"""Dialect dispatch for splitting, quoting and joining arguments."""

from __future__ import annotations

from typing import Iterable

from procargs.dialect import Dialect, SplitResult
from procargs.environment import EnvLookup
from procargs.unix import quote_arg_unix, split_unix
from procargs.windows import quote_arg_win, split_win


def split_args(
    text: str,
    dialect: Dialect,
    abort_on_meta: bool = False,
    env: EnvLookup | None = None,
    pwd: str | None = None,
) -> SplitResult:
    """Split a command line into literal words according to dialect."""
    if dialect == Dialect.WINDOWS:
        return split_win(text, abort_on_meta, env, pwd)
    return split_unix(text, abort_on_meta, env, pwd)


def quote_arg(word: str, dialect: Dialect) -> str:
    if dialect == Dialect.WINDOWS:
        return quote_arg_win(word)
    return quote_arg_unix(word)


def add_arg(args: str, word: str, dialect: Dialect) -> str:
    """Append one quoted word to a command line string."""
    if args:
        args += " "
    return args + quote_arg(word, dialect)


def add_args(args: str, extra: str) -> str:
    """Append an already quoted command line fragment."""
    if not extra:
        return args
    if args:
        args += " "
    return args + extra


def join_args(words: Iterable[str], dialect: Dialect) -> str:
    """Quote each word and join them with single spaces."""
    result = ""
    for word in words:
        result = add_arg(result, word, dialect)
    return result
