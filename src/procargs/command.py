"""Argument representations and shell fallback for launching a command."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from procargs.args import join_args, quote_arg
from procargs.dialect import Dialect, SplitError
from procargs.environment import EnvLookup
from procargs.unix import split_unix
from procargs.utils import to_native_separators
from procargs.windows import prepare_args_win, split_win

logger = logging.getLogger(__name__)

DEFAULT_UNIX_SHELL = "/bin/sh"
DEFAULT_WINDOWS_SHELL = "cmd.exe"


class WrongModeError(AssertionError):
    """Raised when CommandArgs is read in the representation it does not hold."""


class CommandArgs:
    """Arguments in native form: one pre-quoted string (Windows) or a word list (Unix)."""

    def __init__(self, windows_args: str | None = None, unix_args: list[str] | None = None) -> None:
        if (windows_args is None) == (unix_args is None):
            raise ValueError("exactly one of windows_args and unix_args is required")
        self._windows_args = windows_args
        self._unix_args = unix_args

    @classmethod
    def create_windows_args(cls, args: str) -> CommandArgs:
        return cls(windows_args=args)

    @classmethod
    def create_unix_args(cls, args: list[str]) -> CommandArgs:
        return cls(unix_args=list(args))

    @property
    def is_windows(self) -> bool:
        return self._windows_args is not None

    def to_windows_args(self) -> str:
        if self._windows_args is None:
            raise WrongModeError("CommandArgs holds a Unix word list")
        return self._windows_args

    def to_unix_args(self) -> list[str]:
        if self._unix_args is None:
            raise WrongModeError("CommandArgs holds a Windows command line")
        return list(self._unix_args)

    def to_string(self) -> str:
        if self._windows_args is not None:
            return self._windows_args
        return join_args(self._unix_args or [], Dialect.UNIX)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CommandArgs):
            return NotImplemented
        return (self._windows_args, self._unix_args) == (other._windows_args, other._unix_args)

    def __repr__(self) -> str:
        if self.is_windows:
            return f"CommandArgs(windows_args={self._windows_args!r})"
        return f"CommandArgs(unix_args={self._unix_args!r})"


@dataclass
class PreparedCommand:
    executable: str
    args: CommandArgs | None
    error: SplitError = SplitError.OK
    via_shell: bool = False

    @property
    def ok(self) -> bool:
        return self.args is not None


def prepare_args(
    text: str,
    dialect: Dialect,
    env: EnvLookup | None = None,
    pwd: str | None = None,
    abort_on_meta: bool = True,
) -> tuple[CommandArgs, SplitError]:
    """Turn a command line into native arguments.

    On Windows only the cmd.exe layer is applied, the program splits the
    string itself; the result must still split cleanly by CRT rules. On
    Unix the line is split into words. On error the returned arguments are
    empty.
    """
    if dialect == Dialect.WINDOWS:
        args, err = prepare_args_win(text, env, pwd)
        if err == SplitError.OK:
            err = split_win(args).error
            if err != SplitError.OK:
                args = ""
        return CommandArgs.create_windows_args(args), err
    result = split_unix(text, abort_on_meta, env, pwd)
    return CommandArgs.create_unix_args(result.args), result.error


def prepare_command(
    executable: str,
    arguments: str,
    dialect: Dialect,
    env: EnvLookup | None = None,
    pwd: str | None = None,
    shell: str | None = None,
) -> PreparedCommand:
    """Prepare executable and arguments for launching.

    If the arguments use shell syntax this module does not interpret, the
    whole command is handed to a shell instead: ``cmd /v:off /s /c "..."``
    on Windows, ``$SHELL -c "..."`` on Unix. Bad quoting is never passed on.
    """
    args, err = prepare_args(arguments, dialect, env, pwd)
    if err == SplitError.OK:
        return PreparedCommand(executable=executable, args=args)
    if err != SplitError.FOUND_META:
        logger.debug("Refusing to prepare %s: %s", executable, err.value)
        return PreparedCommand(executable=executable, args=None, error=err)

    if dialect == Dialect.WINDOWS:
        shell = shell or os.environ.get("COMSPEC") or DEFAULT_WINDOWS_SHELL
        program = quote_arg(to_native_separators(executable, Dialect.WINDOWS), Dialect.WINDOWS)
        args = CommandArgs.create_windows_args(f'/v:off /s /c "{program} {arguments}"')
    else:
        shell = shell or os.environ.get("SHELL") or DEFAULT_UNIX_SHELL
        args = CommandArgs.create_unix_args(
            ["-c", quote_arg(executable, Dialect.UNIX) + " " + arguments]
        )
    logger.debug("Falling back to %s for %s", shell, executable)
    return PreparedCommand(executable=shell, args=args, error=err, via_shell=True)
