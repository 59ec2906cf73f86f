"""Windows command line handling: cmd.exe on top of the C runtime argv parser.

The C runtime splits a command line like this:

- Whitespace splits tokens.
- A string in double quotes is not split. 3N double quotes inside a quoted
  string yield N literal quotes (undocumented, but that is what it does).
- Backslashes are only special when followed by a double quote:
  2N backslashes + quote give N backslashes and begin/end quoting,
  2N+1 backslashes + quote give N backslashes and a literal quote.

cmd.exe looks at the same string first. It ignores every special character
between double quotes (without removing the quotes) and uses the circumflex
to escape anything else, including itself. The two quoting levels are
independent, so getting ``foo " bar`` through both takes ``"foo "\\^"" bar"``.
"""

from __future__ import annotations

import re

from procargs.charclass import has_quote_worthy, is_meta_char
from procargs.dialect import Dialect, SplitError, SplitResult
from procargs.environment import PWD_NAMES, EnvLookup
from procargs.utils import to_native_separators

_WHITESPACE = (" ", "\t")

# Embedded quote: close the cmd quoting, double the backslashes, escape the
# quote for both CRT (backslash) and cmd (circumflex), reopen.
_EMBEDDED_QUOTE = re.compile(r'(\\*)"')


def expand_env_win(text: str, env: EnvLookup, pwd: str | None = None) -> str:
    """Replace ``%NAME%`` references with their values.

    Names are upper-cased before lookup. References to unknown or empty
    variables are left alone and the closing ``%`` may open the next one.
    """
    off = 0
    prev = -1
    while True:
        that = text.find("%", off)
        if that < 0:
            return text
        if prev >= 0:
            name = text[prev + 1:that].upper()
            if name == PWD_NAMES[Dialect.WINDOWS] and pwd:
                value = to_native_separators(pwd, Dialect.WINDOWS)
            else:
                value = env.lookup(name)
            # Empty values do not exist in a Windows environment
            if value:
                text = text[:prev] + value + text[that + 1:]
                off = prev + len(value)
                prev = -1
                continue
        prev = that
        off = that + 1


def prepare_args_win(
    text: str,
    env: EnvLookup | None = None,
    pwd: str | None = None,
) -> tuple[str, SplitError]:
    """Apply the cmd.exe layer to text.

    Expands environment references, drops a leading ``@`` and the
    circumflexes outside quotes. Quotes are kept for the CRT parser. Returns
    an empty string and ``FOUND_META`` on an unquoted ``&()<>|`` or, without
    an environment, on any ``%``.
    """
    if env is not None:
        text = expand_env_win(text, env, pwd)
    elif "%" in text:
        return "", SplitError.FOUND_META

    if text.startswith("@"):
        text = text[1:]

    out: list[str] = []
    p = 0
    length = len(text)
    while p < length:
        ch = text[p]
        if ch == "^":
            # The escaped character is kept as is
            p += 1
            if p < length:
                out.append(text[p])
        elif ch == '"':
            end = text.find('"', p + 1)
            if end < 0:
                # An open quote is no error for cmd
                out.append(text[p:])
                break
            out.append(text[p:end + 1])
            p = end
        elif is_meta_char(Dialect.WINDOWS, ch):
            return "", SplitError.FOUND_META
        else:
            out.append(ch)
        p += 1
    return "".join(out), SplitError.OK


def _split_crt(text: str) -> SplitResult:
    words: list[str] = []
    p = 0
    length = len(text)
    while True:
        while True:
            if p == length:
                return SplitResult(args=words)
            if text[p] not in _WHITESPACE:
                break
            p += 1

        arg: list[str] = []
        in_quote = False
        while True:
            copy = True
            bslashes = 0
            while p < length and text[p] == "\\":
                p += 1
                bslashes += 1
            if p < length and text[p] == '"':
                if not bslashes & 1:
                    if in_quote:
                        if p + 1 < length and text[p + 1] == '"':
                            # Two quotes inside a quoted run give a literal
                            # quote, but still end the quoted run.
                            p += 1
                        else:
                            copy = False
                        in_quote = False
                    else:
                        copy = False
                        in_quote = True
                bslashes >>= 1

            arg.append("\\" * bslashes)

            if p == length or (not in_quote and text[p] in _WHITESPACE):
                if in_quote:
                    return SplitResult.failed(SplitError.BAD_QUOTING)
                words.append("".join(arg))
                break

            if copy:
                arg.append(text[p])
            p += 1


def split_win(
    text: str,
    abort_on_meta: bool = False,
    env: EnvLookup | None = None,
    pwd: str | None = None,
) -> SplitResult:
    """Split text into literal words the way a Windows program receives them.

    With abort_on_meta the cmd.exe layer is applied first (see
    :func:`prepare_args_win`); otherwise only ``%VAR%`` expansion (when env is
    given) and the CRT rules apply.
    """
    if abort_on_meta:
        prepared, err = prepare_args_win(text, env, pwd)
        if err != SplitError.OK:
            return SplitResult.failed(err)
        return _split_crt(prepared)
    if env is not None:
        text = expand_env_win(text, env, pwd)
    return _split_crt(text)


def quote_internal_win(text: str, bslashes: int = 0) -> tuple[str, int]:
    """Escape the quotes of text for use inside a quoted CRT word.

    bslashes is the number of backslashes directly preceding text. Returns
    the transformed text and the number of trailing backslashes, which still
    need doubling if a quote ends up following them.
    """
    out: list[str] = []
    for ch in text:
        if ch == "\\":
            bslashes += 1
        else:
            if ch == '"':
                out.append("\\" * bslashes)
                out.append('"\\^"')
            bslashes = 0
        out.append(ch)
    return "".join(out), bslashes


def quote_arg_win(word: str) -> str:
    """Quote a word so that both cmd.exe and the CRT pass it on unchanged."""
    if not word:
        return '""'
    if not has_quote_worthy(Dialect.WINDOWS, word):
        return word
    ret = _EMBEDDED_QUOTE.sub(r'"\1\1\\^""', word)
    # A trailing backslash would escape the closing quote, so the quote goes
    # in front of the backslash run: "foo"\ instead of "foo\"
    end = len(ret)
    while end > 0 and ret[end - 1] == "\\":
        end -= 1
    return '"' + ret[:end] + '"' + ret[end:]
