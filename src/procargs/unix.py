"""POSIX shell word splitting and quoting.

Splitting follows the POSIX shell and bash:

- Whitespace splits tokens.
- The backslash quotes the following character.
- A string in single quotes is not split and no meta characters are
  interpreted inside it.
- A string in double quotes is not split. Inside it the backslash only
  quotes ``"`` and ``\\`` (plus ``$`` and the backtick when aborting on
  meta characters); before any other character it is kept verbatim.

With ``abort_on_meta=False`` only the splitting and quoting rules apply and
other meta characters (substitutions, redirections, ...) are taken literally.
With ``abort_on_meta=True`` they make the split fail with ``FOUND_META`` so the
caller can hand the command to a real shell instead.
"""

from __future__ import annotations

from pathlib import Path

from procargs.charclass import has_quote_worthy, is_meta_char
from procargs.dialect import Dialect, SplitError, SplitResult
from procargs.environment import PWD_NAMES, EnvLookup

# Characters that terminate a word when they come from a substituted value
_FIELD_SEPARATORS = ("\t", "\n", " ")


class _BadQuoting(Exception):
    pass


class _FoundMeta(Exception):
    pass


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


class _UnixSplitter:
    """Single-use scanner; ``pos`` always points at the next unread character."""

    def __init__(
        self,
        text: str,
        abort_on_meta: bool,
        env: EnvLookup | None,
        pwd: str | None,
    ) -> None:
        self.text = text
        self.abort_on_meta = abort_on_meta
        self.env = env
        self.pwd = pwd
        self.pos = 0
        self.words: list[str] = []

    def _getc(self) -> str:
        if self.pos >= len(self.text):
            raise _BadQuoting()
        ch = self.text[self.pos]
        self.pos += 1
        return ch

    def _at_end(self) -> bool:
        return self.pos >= len(self.text)

    def _variable(self, name: str) -> str | None:
        if name == PWD_NAMES[Dialect.UNIX] and self.pwd:
            return self.pwd
        value = self.env.lookup(name) if self.env is not None else None
        if value is None and self.abort_on_meta:
            # Unknown name, assume this is a shell builtin
            raise _FoundMeta()
        return value

    def _close_brace(self, ch: str) -> None:
        if ch != "}":
            if self.abort_on_meta:
                raise _FoundMeta()  # complex expansion like ${VAR:-x}
            raise _BadQuoting()

    def run(self) -> list[str]:
        text = self.text
        while True:
            while True:
                if self._at_end():
                    return self.words
                ch = text[self.pos]
                self.pos += 1
                if not ch.isspace():
                    break
            self._word(ch)

    def _word(self, ch: str) -> None:
        chars: list[str] = []
        had_word = False
        skip = False

        if ch == "~":
            if self._at_end() or self.text[self.pos].isspace() or self.text[self.pos] == "/":
                chars.append(str(Path.home()))
                had_word = True
                skip = True
            elif self.abort_on_meta:
                raise _FoundMeta()

        while True:
            if not skip:
                if ch == "'":
                    start = self.pos
                    while self._getc() != "'":
                        pass
                    chars.append(self.text[start:self.pos - 1])
                    had_word = True
                elif ch == '"':
                    self._double_quoted(chars)
                    had_word = True
                elif ch == "$" and self.env is not None:
                    ch, had_word, chars = self._bare_variable(chars, had_word)
                    if ch is not None:
                        # Unbraced name: ch is already the character after it
                        if ch.isspace():
                            break
                        continue
                else:
                    if ch == "\\":
                        ch = self._getc()
                    elif self.abort_on_meta and is_meta_char(Dialect.UNIX, ch):
                        raise _FoundMeta()
                    chars.append(ch)
                    had_word = True
            skip = False
            if self._at_end():
                break
            ch = self._getc()
            if ch.isspace():
                break

        if had_word:
            self.words.append("".join(chars))

    def _double_quoted(self, chars: list[str]) -> None:
        ch = self._getc()
        while True:
            if ch == '"':
                return
            if ch == "\\":
                ch = self._getc()
                if ch not in ('"', "\\") and not (self.abort_on_meta and ch in ("$", "`")):
                    chars.append("\\")
            elif ch == "$" and self.env is not None:
                ch = self._getc()
                braced = ch == "{"
                if braced:
                    ch = self._getc()
                name: list[str] = []
                while _is_name_char(ch):
                    name.append(ch)
                    ch = self._getc()
                value = self._variable("".join(name))
                if value is not None:
                    chars.append(value)
                if not braced:
                    # ch is the first character after the name, look at it again
                    continue
                self._close_brace(ch)
                ch = self._getc()
                continue
            elif self.abort_on_meta and ch in ("$", "`"):
                raise _FoundMeta()
            chars.append(ch)
            ch = self._getc()

    def _bare_variable(
        self, chars: list[str], had_word: bool
    ) -> tuple[str | None, bool, list[str]]:
        """Expand ``$NAME`` or ``${NAME}`` outside quotes with field splitting.

        Returns the lookahead character for the unbraced form (None when
        braced, meaning the caller must fetch the next character itself).
        """
        ch = self._getc()
        braced = ch == "{"
        if braced:
            ch = self._getc()
        name: list[str] = []
        while _is_name_char(ch):
            name.append(ch)
            if self._at_end():
                if braced:
                    raise _BadQuoting()
                ch = " "
                break
            ch = self._getc()

        value = self._variable("".join(name)) or ""
        for cc in value:
            if cc in _FIELD_SEPARATORS:
                if had_word:
                    self.words.append("".join(chars))
                    chars = []
                    had_word = False
            else:
                chars.append(cc)
                had_word = True

        if not braced:
            return ch, had_word, chars
        self._close_brace(ch)
        return None, had_word, chars


def split_unix(
    text: str,
    abort_on_meta: bool = False,
    env: EnvLookup | None = None,
    pwd: str | None = None,
) -> SplitResult:
    """Split text into literal words using POSIX shell rules.

    If env is given, ``$VAR`` and ``${VAR}`` are substituted; outside of
    double quotes the substituted value is split on whitespace like the shell
    does. ``$PWD`` is answered from pwd when that is non-empty.
    """
    splitter = _UnixSplitter(text, abort_on_meta, env, pwd)
    try:
        return SplitResult(args=splitter.run())
    except _BadQuoting:
        return SplitResult.failed(SplitError.BAD_QUOTING)
    except _FoundMeta:
        return SplitResult.failed(SplitError.FOUND_META)


def quote_arg_unix(word: str) -> str:
    """Quote a word for a POSIX shell.

    Words without special characters are returned unchanged, everything else
    is single-quoted with embedded single quotes written as ``'\\''``.
    """
    if not word:
        return "''"
    if has_quote_worthy(Dialect.UNIX, word):
        return "'" + word.replace("'", "'\\''") + "'"
    return word
