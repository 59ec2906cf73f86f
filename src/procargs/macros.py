"""Safe macro substitution into shell command lines.

The expander walks the command line with a model of the shell's quoting
state and quotes each macro value so that the result splits into the same
words as if the value had been inserted as a literal argument.

Unix
----
Explicitly supported constructs: ``\\ '' "" {} () $(()) ${} $() ``.
Backticks are rewritten to ``$( ... )`` since every shell treats escapes
inside them differently. Shortened ``case $v in pat)`` syntax and bash's
``$""``/``$''`` strings are not understood. Never put macros into double
quoted substitutions (``"${VAR:-%{macro}}"``) or into arguments that are
nested shell commands (``sh -c 'foo %{file}'``); use
``file=%{file} sh -c 'foo "$file"'`` instead.

Windows
-------
All quoting understood by the splitter is supported. Circumflex-escaping a
macro, closing a quote right before a quoted macro, opening one right after
it and placing two quoted macros next to each other are errors. Macro values
must not contain anything cmd would treat as a ``%VAR%`` reference, and
macros must not go into nested commands such as ``for /f`` bodies.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Protocol

import yaml

from procargs.charclass import has_quote_worthy
from procargs.dialect import Dialect
from procargs.states import ArgvState, QuotingContext, QuotingKind, ShellState
from procargs.windows import quote_internal_win

logger = logging.getLogger(__name__)

DEFAULT_MACRO_PATTERN = r"%\{([^}]*)\}"

_DQUOTE_SPECIALS = re.compile(r'([$`"\\])')


@dataclass
class MacroMatch:
    start: int
    length: int
    replacement: str


class MacroLookup(Protocol):
    def find_next_macro(self, text: str, start: int) -> MacroMatch | None:
        ...


@dataclass
class ExpandResult:
    text: str
    ok: bool = True
    reason: str = ""


class MacroExpander:
    """Regex-driven macro lookup over a fixed set of values.

    The first group of pattern (or the whole match if it has none) is the
    macro name. Names without a value are skipped and stay in the text.
    """

    def __init__(
        self,
        values: Mapping[str, str] | None = None,
        pattern: str = DEFAULT_MACRO_PATTERN,
    ) -> None:
        self.values = dict(values or {})
        self.pattern = re.compile(pattern)

    def find_next_macro(self, text: str, start: int) -> MacroMatch | None:
        for m in self.pattern.finditer(text, start):
            if m.end() == m.start():
                continue
            name = m.group(1) if self.pattern.groups else m.group(0)
            if name in self.values:
                return MacroMatch(m.start(), m.end() - m.start(), self.values[name])
        return None


def load_macro_file(path: Path) -> dict[str, str]:
    """Load macro values from a YAML file.

    Accepts either a top-level mapping or one nested under ``macros:``.
    Returns an empty dict if the file is missing or malformed.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("Macro file not found: %s", path)
        return {}
    except yaml.YAMLError as exc:
        logger.warning("Failed to parse macro file %s: %s", path, exc)
        return {}

    if isinstance(data, dict) and isinstance(data.get("macros"), dict):
        data = data["macros"]
    if not isinstance(data, dict):
        logger.warning("Macro file %s does not contain a mapping", path)
        return {}
    return {str(k): "" if v is None else str(v) for k, v in data.items()}


class _ExpansionFailure(Exception):
    pass


def _char(text: str, index: int) -> str:
    return text[index] if 0 <= index < len(text) else ""


def _single_quote_escape(value: str) -> str:
    return value.replace("'", "'\\''")


def _quote_for_unix_context(value: str, state: QuotingContext) -> str:
    if state.dquote:
        return _DQUOTE_SPECIALS.sub(r"\\\1", value)
    if state.kind == QuotingKind.SINGLE_QUOTE:
        # Already inside '...': suspend the quoting around each quote
        return _single_quote_escape(value)
    if not value or has_quote_worthy(Dialect.UNIX, value):
        return "'" + _single_quote_escape(value) + "'"
    return value


def _expand_unix(text: str, lookup: MacroLookup) -> str:
    s = text
    match = lookup.find_next_macro(s, 0)
    if match is None:
        return s

    state = QuotingContext()
    stack: list[QuotingContext] = []
    # Restart points for $(( that may turn out to be $( (
    saves: list[tuple[str, int, MacroMatch | None]] = []
    pos = 0

    while pos < len(s):
        if match is not None and pos == match.start:
            value = _quote_for_unix_context(match.replacement, state)
            s = s[:pos] + value + s[pos + match.length:]
            pos += len(value)
            match = lookup.find_next_macro(s, pos)
            if match is None and not saves:
                break
            continue
        if match is None:
            # Only scanning on to settle a pending $((
            if not saves:
                break
        elif match.start < pos:
            raise _ExpansionFailure(f"macro at offset {match.start} is part of a shell token")

        cc = s[pos]
        if state.kind == QuotingKind.SINGLE_QUOTE:
            if cc == "'":
                state = stack.pop()
        elif cc == "\\":
            pos += 2
            if match is not None and match.start < pos:
                raise _ExpansionFailure("macro follows a backslash")
            continue
        elif cc == "$":
            pos += 1
            if match is not None and pos == match.start:
                raise _ExpansionFailure("macro follows a '$'")
            cc = _char(s, pos)
            if cc == "(":
                stack.append(state)
                if _char(s, pos + 1) == "(":
                    pos += 2
                    saves.append((s, pos, match))
                    state = state.enter(QuotingKind.ARITH_EXPR)
                    continue
                # A command substitution opens a fresh context, even in "..."
                state = state.enter(QuotingKind.COMMAND_SUBST, dquote=False)
            elif cc == "{":
                stack.append(state)
                state = state.enter(QuotingKind.VAR_SUBST)
            else:
                # Bare $NAME; look at the next char normally
                continue
        elif cc == "`":
            s, pos, match = _rewrite_backticks(s, pos, match, state)
            stack.append(state)
            state = state.enter(QuotingKind.COMMAND_SUBST, dquote=False)
            continue
        elif state.kind == QuotingKind.DOUBLE_QUOTE:
            if cc == '"':
                state = stack.pop()
        elif cc == "'":
            if not state.dquote:
                stack.append(state)
                state = state.enter(QuotingKind.SINGLE_QUOTE)
        elif cc == '"':
            if not state.dquote:
                stack.append(state)
                state = state.enter(QuotingKind.DOUBLE_QUOTE, dquote=True)
        elif state.kind == QuotingKind.VAR_SUBST:
            if cc == "}":
                state = stack.pop()
        elif cc == ")":
            if state.kind == QuotingKind.ARITH_EXPR:
                if _char(s, pos + 1) == ")":
                    saves.pop()
                    state = stack.pop()
                    pos += 2
                else:
                    # The $(( was a $( ( after all. Start over from behind
                    # the (( with the text as it was back then.
                    s, pos, match = saves.pop()
                    stack.append(QuotingContext(QuotingKind.COMMAND_SUBST, False))
                    state = QuotingContext(QuotingKind.PAREN_GROUP, False)
                continue
            if state.kind in (QuotingKind.PAREN_GROUP, QuotingKind.COMMAND_SUBST):
                state = stack.pop()
            else:
                raise _ExpansionFailure(f"unbalanced ')' at offset {pos}")
        elif cc == "}":
            if state.kind == QuotingKind.BRACE_GROUP:
                state = stack.pop()
            else:
                raise _ExpansionFailure(f"unbalanced '}}' at offset {pos}")
        elif cc == "(":
            stack.append(state)
            state = state.enter(QuotingKind.PAREN_GROUP)
        elif cc == "{":
            stack.append(state)
            state = state.enter(QuotingKind.BRACE_GROUP)
        pos += 1

    if stack:
        logger.debug("Command line ends inside %d open shell context(s)", len(stack))
    return s


def _rewrite_backticks(
    s: str, pos: int, match: MacroMatch | None, state: QuotingContext
) -> tuple[str, int, MacroMatch | None]:
    """Turn the backtick expression at pos into ``$( ... )``.

    Applies bash's unescaping rules to the body. Returns the new text, the
    position right behind ``$( `` and the shifted macro match.
    """
    # The space keeps a following ( from forming $((
    s = s[:pos] + "$( " + s[pos + 1:]
    if match is not None:
        match = replace(match, start=match.start + 2)
    pos += 3
    end = pos
    while True:
        if end >= len(s):
            raise _ExpansionFailure("unterminated backtick expression")
        cc = s[end]
        if cc == "`":
            break
        if cc == "\\":
            end += 1
            cc = _char(s, end)
            if cc in ("$", "`", "\\") or (cc == '"' and state.dquote):
                s = s[:end - 1] + s[end:]
                if match is not None and match.start >= end:
                    match = replace(match, start=match.start - 1)
                continue
        end += 1
    return s[:end] + ")" + s[end + 1:], pos, match


def _expand_windows(text: str, lookup: MacroLookup) -> str:
    s = text
    match = lookup.find_next_macro(s, 0)
    if match is None:
        return s

    var_pos: int | None = match.start
    var_len = match.length
    value = match.replacement
    shell = ShellState.BASIC
    crt = ArgvState.BASIC
    bslashes = 0  # backslashes seen in the literal text
    rbslashes = 0  # trailing backslashes that still need doubling before a quote
    pos = 0

    def insert(at: int, fragment: str) -> None:
        nonlocal s, pos, var_pos
        s = s[:at] + fragment + s[at:]
        pos += len(fragment)
        if var_pos is not None:
            var_pos += len(fragment)

    while True:
        if pos == var_pos:
            if shell == ShellState.ESCAPED:
                raise _ExpansionFailure("macro is escaped with a circumflex")
            if (shell == ShellState.QUOTED) != (crt == ArgvState.QUOTED):
                raise _ExpansionFailure("cmd and argv quoting are out of sync")
            if crt == ArgvState.NEED_QUOTE and has_quote_worthy(Dialect.WINDOWS, value):
                raise _ExpansionFailure("quoted macro right after another quoted macro")
            rbslashes += bslashes
            bslashes = 0
            if not crt.quoted:
                if not value:
                    if crt == ArgvState.BASIC:
                        crt = ArgvState.NEED_WORD
                elif has_quote_worthy(Dialect.WINDOWS, value):
                    if crt == ArgvState.CLOSED:
                        raise _ExpansionFailure("quoted macro right after a closing quote")
                    body, tail = quote_internal_win(value, 0)
                    value = "\\" * rbslashes + '"' + body
                    crt = ArgvState.NEED_QUOTE
                    rbslashes = tail
                else:
                    # No quotes and no spaces in here
                    crt = ArgvState.IN_WORD
                    value, rbslashes = quote_internal_win(value, rbslashes)
            else:
                value, rbslashes = quote_internal_win(value, rbslashes)
            s = s[:pos] + value + s[pos + var_len:]
            pos += len(value)
            nxt = lookup.find_next_macro(s, pos)
            if nxt is None:
                # Keep going: an empty word or trailing backslashes may
                # still need fixing up.
                var_pos = None
            else:
                var_pos, var_len, value = nxt.start, nxt.length, nxt.replacement
            continue

        if crt == ArgvState.NEED_QUOTE:
            if rbslashes:
                insert(pos, "\\" * rbslashes)
                rbslashes = 0
            insert(pos, '"')
            crt = ArgvState.HAD_QUOTE

        cc = _char(s, pos)
        if shell == ShellState.BASIC and cc == "^":
            shell = ShellState.ESCAPED
        else:
            if not cc or cc in (" ", "\t"):
                if not crt.quoted:
                    if crt == ArgvState.NEED_WORD:
                        insert(pos, '""')
                    crt = ArgvState.BASIC
                if not cc:
                    break
                bslashes = 0
                rbslashes = 0
            elif cc == "\\":
                bslashes += 1
                if not crt.quoted:
                    crt = ArgvState.IN_WORD
            else:
                if cc == '"':
                    if shell != ShellState.ESCAPED:
                        shell = ShellState.BASIC if shell == ShellState.QUOTED else ShellState.QUOTED
                    if rbslashes:
                        # There is at least one backslash right before, so
                        # going one back also skips a possible circumflex.
                        insert(pos - 1, "\\" * rbslashes)
                    if not bslashes & 1:
                        if crt == ArgvState.QUOTED:
                            crt = ArgvState.CLOSED
                        elif crt == ArgvState.CLOSED:
                            # "" inside quotes: literal quote, quoting ends
                            crt = ArgvState.IN_WORD
                        elif crt == ArgvState.HAD_QUOTE:
                            raise _ExpansionFailure("opening quote right after a quoted macro")
                        else:
                            crt = ArgvState.QUOTED
                    elif not crt.quoted:
                        crt = ArgvState.IN_WORD
                elif not crt.quoted:
                    crt = ArgvState.IN_WORD
                bslashes = 0
                rbslashes = 0
            if var_pos is None and not rbslashes:
                break
            if shell == ShellState.ESCAPED:
                shell = ShellState.BASIC
        pos += 1

    return s


def expand_macros(text: str, lookup: MacroLookup, dialect: Dialect) -> ExpandResult:
    """Substitute every macro lookup finds in text, quoting values for dialect.

    On failure the returned text is the unmodified input and ``ok`` is False;
    such a command line must not be run.
    """
    if not text:
        return ExpandResult(text=text)
    try:
        if dialect == Dialect.WINDOWS:
            expanded = _expand_windows(text, lookup)
        else:
            expanded = _expand_unix(text, lookup)
    except _ExpansionFailure as exc:
        logger.debug("Macro expansion failed (%s): %s", exc, text)
        return ExpandResult(text=text, ok=False, reason=str(exc))
    return ExpandResult(text=expanded)


def expand_macros_str(text: str, lookup: MacroLookup, dialect: Dialect) -> str:
    """Like :func:`expand_macros` but returns the input unchanged on failure."""
    return expand_macros(text, lookup, dialect).text
