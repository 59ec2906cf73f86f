"""Dialect and split outcome types shared by every parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Dialect(str, Enum):
    UNIX = "unix"
    WINDOWS = "windows"


class SplitError(str, Enum):
    OK = "ok"
    BAD_QUOTING = "bad_quoting"  # open quote/substitution/escape at end of input
    FOUND_META = "found_meta"    # unsupported shell construct with abort_on_meta


@dataclass
class SplitResult:
    args: list[str] = field(default_factory=list)
    error: SplitError = SplitError.OK

    @property
    def ok(self) -> bool:
        return self.error == SplitError.OK

    @classmethod
    def failed(cls, error: SplitError) -> SplitResult:
        return cls(args=[], error=error)
