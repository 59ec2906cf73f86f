"""Word-by-word cursor over a command line that supports in-place editing."""

from __future__ import annotations

from typing import Iterator

from procargs.args import quote_arg
from procargs.charclass import is_meta_char
from procargs.dialect import Dialect
from procargs.states import ArgvState, QuotingContext, QuotingKind, ShellState

# Unquoted characters that end the command at top level
_UNIX_COMMAND_ENDS = ("<", ">", "&", "|", ";")


class ArgIterator:
    """Walk the arguments of a command line without re-splitting it.

    Each successful :meth:`advance` makes the argument available as
    ``value``. Arguments that need expansion to be known (variables,
    substitutions) are not *simple*; their ``value`` is empty. Quoting
    errors and unquoted command separators simply end the iteration.

    The just-read argument can be removed with :meth:`delete_current`, and
    new ones can be inserted at the cursor with :meth:`insert_before`.
    """

    def __init__(self, text: str, dialect: Dialect) -> None:
        self._text = text
        self.dialect = dialect
        self.value = ""
        self.is_simple = True
        self._pos = 0
        self._prev = 0

    @property
    def text(self) -> str:
        return self._text

    def __iter__(self) -> Iterator[tuple[str, bool]]:
        while self.advance():
            yield self.value, self.is_simple

    def advance(self) -> bool:
        """Move to the next argument. Returns False when there is none."""
        # _prev is only updated on success, so the last argument can still
        # be deleted after advance() reported the end.
        prev = self._pos
        self.is_simple = True
        self.value = ""
        if self.dialect == Dialect.WINDOWS:
            found = self._advance_windows()
        else:
            found = self._advance_unix()
        if found:
            self._prev = prev
        return found

    def delete_current(self) -> None:
        """Remove the argument last returned, with one separating space."""
        if not self._prev:
            while self._pos < len(self._text) and self._text[self._pos].isspace():
                self._pos += 1
        self._text = self._text[:self._prev] + self._text[self._pos:]
        self._pos = self._prev

    def insert_before(self, word: str) -> None:
        """Insert word, quoted, at the cursor: in front of the next argument."""
        quoted = quote_arg(word, self.dialect)
        if not self._pos:
            self._text = quoted + " " + self._text
        else:
            self._text = self._text[:self._pos] + " " + quoted + self._text[self._pos:]
        self._pos += len(quoted) + 1

    def _advance_windows(self) -> bool:
        text = self._text
        value: list[str] = []
        shell = ShellState.BASIC
        crt = ArgvState.BASIC
        # Inside a potential %NAME% reference: 0 none, 1 after '%', 2 in name
        var_state = 0
        bslashes = 0

        while True:
            cc = text[self._pos] if self._pos < len(text) else ""
            if shell == ShellState.BASIC and cc == "^":
                var_state = 0
                shell = ShellState.ESCAPED
            elif not cc or (shell == ShellState.BASIC and is_meta_char(Dialect.WINDOWS, cc)):
                # Quoting state is ignored here
                break
            else:
                if crt != ArgvState.QUOTED and cc in (" ", "\t"):
                    if crt != ArgvState.BASIC:
                        break
                elif cc == "\\":
                    bslashes += 1
                    if crt != ArgvState.QUOTED:
                        crt = ArgvState.IN_WORD
                    var_state = 0
                else:
                    copy = True
                    if cc == '"':
                        var_state = 0
                        if shell != ShellState.ESCAPED:
                            shell = ShellState.BASIC if shell == ShellState.QUOTED else ShellState.QUOTED
                        escaped = bslashes & 1
                        bslashes >>= 1
                        if not escaped:
                            if crt == ArgvState.QUOTED:
                                crt = ArgvState.CLOSED
                                copy = False
                            elif crt == ArgvState.CLOSED:
                                # "" inside quotes: literal quote, quoting ends
                                crt = ArgvState.IN_WORD
                            else:
                                crt = ArgvState.QUOTED
                                copy = False
                        elif crt != ArgvState.QUOTED:
                            crt = ArgvState.IN_WORD
                    else:
                        if cc == "%":
                            if var_state == 2:
                                self.is_simple = False
                                var_state = 0
                            else:
                                var_state = 1
                        elif var_state:
                            # Roughly what a sane variable name looks like
                            var_state = 2 if (cc.isalnum() or cc in ("_", "-", ".")) else 0
                        if crt != ArgvState.QUOTED:
                            crt = ArgvState.IN_WORD
                    if copy:
                        value.append("\\" * bslashes)
                        bslashes = 0
                        value.append(cc)
                if shell == ShellState.ESCAPED:
                    shell = ShellState.BASIC
            self._pos += 1

        if crt == ArgvState.QUOTED and not cc:
            # Unterminated quote
            return False
        if self.is_simple:
            value.append("\\" * bslashes)
            self.value = "".join(value)
        return crt != ArgvState.BASIC

    def _advance_unix(self) -> bool:
        text = self._text
        length = len(text)
        value: list[str] = []
        state = QuotingContext()
        stack: list[QuotingContext] = []
        saves: list[int] = []
        had_word = False
        unterminated = False

        while self._pos < length:
            cc = text[self._pos]
            if state.kind == QuotingKind.SINGLE_QUOTE:
                if cc == "'":
                    state = stack.pop()
                    self._pos += 1
                    continue
            elif cc == "\\":
                self._pos += 1
                if self._pos >= length:
                    unterminated = True
                    break
                cc = text[self._pos]
                if state.dquote and cc not in ('"', "\\", "$", "`"):
                    value.append("\\")
            elif cc == "$":
                nxt = text[self._pos + 1] if self._pos + 1 < length else ""
                if nxt == "(":
                    stack.append(state)
                    self._pos += 1
                    if self._pos + 1 < length and text[self._pos + 1] == "(":
                        self._pos += 1
                        saves.append(self._pos)
                        state = state.enter(QuotingKind.ARITH_EXPR)
                    else:
                        state = state.enter(QuotingKind.COMMAND_SUBST, dquote=False)
                elif nxt == "{":
                    stack.append(state)
                    self._pos += 1
                    state = state.enter(QuotingKind.VAR_SUBST)
                elif not nxt:
                    # A trailing $ is taken literally by the shell
                    value.append(cc)
                    had_word = True
                    self._pos += 1
                    continue
                self.is_simple = False
                had_word = True
                self._pos += 1
                continue
            elif cc == "`":
                while True:
                    self._pos += 1
                    if self._pos >= length:
                        return False
                    cc = text[self._pos]
                    if cc == "`":
                        break
                    if cc == "\\":
                        self._pos += 1
                self.is_simple = False
                had_word = True
                self._pos += 1
                continue
            elif state.kind == QuotingKind.DOUBLE_QUOTE:
                if cc == '"':
                    state = stack.pop()
                    self._pos += 1
                    continue
            elif cc == "'":
                if not state.dquote:
                    stack.append(state)
                    state = state.enter(QuotingKind.SINGLE_QUOTE)
                    had_word = True
                    self._pos += 1
                    continue
            elif cc == '"':
                if not state.dquote:
                    stack.append(state)
                    state = state.enter(QuotingKind.DOUBLE_QUOTE, dquote=True)
                    had_word = True
                    self._pos += 1
                    continue
            elif state.kind == QuotingKind.VAR_SUBST:
                if cc == "}":
                    state = stack.pop()
                self._pos += 1
                continue
            elif cc == ")":
                if state.kind == QuotingKind.ARITH_EXPR:
                    self._pos += 1
                    if self._pos >= length:
                        break
                    if text[self._pos] == ")":
                        saves.pop()
                        state = stack.pop()
                    else:
                        # The $(( was a $( ( after all
                        self._pos = saves.pop()
                        stack.append(QuotingContext(QuotingKind.COMMAND_SUBST, False))
                        state = QuotingContext(QuotingKind.PAREN_GROUP, False)
                    self._pos += 1
                    continue
                if state.kind in (QuotingKind.PAREN_GROUP, QuotingKind.COMMAND_SUBST):
                    state = stack.pop()
                    self._pos += 1
                    continue
                break
            elif cc == "(":
                stack.append(state)
                state = state.enter(QuotingKind.PAREN_GROUP)
                self.is_simple = False
                had_word = True
                self._pos += 1
                continue
            elif cc in _UNIX_COMMAND_ENDS:
                if not stack:
                    break
            elif cc in (" ", "\t"):
                if not had_word:
                    self._pos += 1
                    continue
                if not stack:
                    break
            value.append(cc)
            had_word = True
            self._pos += 1

        if unterminated or stack:
            # Open quote, substitution or escape at the end
            return False
        self.value = "".join(value) if self.is_simple else ""
        return had_word
