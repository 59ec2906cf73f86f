"""Environment lookup used by the splitters for variable expansion."""

from __future__ import annotations

import os
from typing import Mapping, Protocol

from procargs.dialect import Dialect

# Pseudo-variables answered from the caller's working directory hint
PWD_NAMES: dict[Dialect, str] = {
    Dialect.UNIX: "PWD",
    Dialect.WINDOWS: "CD",
}


class EnvLookup(Protocol):
    def lookup(self, name: str) -> str | None:
        ...


class Environment:
    """Dict-backed environment snapshot.

    Windows environments are case-insensitive; pass ``case_sensitive=False``
    (or use :meth:`for_dialect`) to get that behaviour.
    """

    def __init__(self, values: Mapping[str, str] | None = None, case_sensitive: bool = True) -> None:
        self.case_sensitive = case_sensitive
        self._values: dict[str, str] = {}
        for key, value in (values or {}).items():
            self.set(key, value)

    @classmethod
    def system(cls) -> Environment:
        return cls(os.environ, case_sensitive=os.name != "nt")

    @classmethod
    def for_dialect(cls, values: Mapping[str, str] | None, dialect: Dialect) -> Environment:
        return cls(values, case_sensitive=dialect != Dialect.WINDOWS)

    def _key(self, name: str) -> str:
        return name if self.case_sensitive else name.upper()

    def set(self, name: str, value: str) -> None:
        self._values[self._key(name)] = value

    def lookup(self, name: str) -> str | None:
        return self._values.get(self._key(name))

    def __contains__(self, name: str) -> bool:
        return self._key(name) in self._values

    def __len__(self) -> int:
        return len(self._values)
