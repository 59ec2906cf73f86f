"""Parser states shared by the macro expander and the argument iterator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class QuotingKind(Enum):
    BASIC = "basic"
    SINGLE_QUOTE = "single_quote"  # '...'
    DOUBLE_QUOTE = "double_quote"  # "..."
    PAREN_GROUP = "paren_group"  # (...)
    COMMAND_SUBST = "command_subst"  # $(...) and `...`
    VAR_SUBST = "var_subst"  # ${...}
    BRACE_GROUP = "brace_group"  # {...}
    ARITH_EXPR = "arith_expr"  # $((...))


@dataclass(frozen=True)
class QuotingContext:
    kind: QuotingKind = QuotingKind.BASIC
    # An enclosing double-quoted string is still in force. This changes the
    # meaning of quotes and backslashes inside nested substitutions.
    dquote: bool = False

    def enter(self, kind: QuotingKind, dquote: bool | None = None) -> QuotingContext:
        return QuotingContext(kind, self.dquote if dquote is None else dquote)


class ShellState(Enum):
    """cmd.exe's view of the command line."""

    BASIC = "basic"
    QUOTED = "quoted"  # nothing but the closing quote is interpreted
    ESCAPED = "escaped"  # after a circumflex, the next char is literal


class ArgvState(IntEnum):
    """The C runtime argv parser's view, plus pending macro bookkeeping.

    Members at or above QUOTED are inside a quoted run.
    """

    BASIC = 0
    NEED_WORD = 1  # after an empty macro; emit "" if the word ends here
    IN_WORD = 2
    CLOSED = 3  # previous char closed a quoted run
    HAD_QUOTE = 4  # closed a quoted run right after a macro
    QUOTED = 5
    NEED_QUOTE = 6  # a macro opened a quoted run; close it unless another macro follows

    @property
    def quoted(self) -> bool:
        return self >= ArgvState.QUOTED
