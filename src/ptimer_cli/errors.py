#!/usr/bin/env python3
"""
Error types raised by the ptimer packaging pipelines.

I/O problems are not wrapped: missing files, permission problems and full
disks surface as the built-in OSError family.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional


class PtimerError(Exception):
    """Base class for every error the packaging core raises on purpose."""


class ParseError(PtimerError):
    """The source document is malformed."""

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        location: Optional[str] = None,
    ):
        self.message = message
        self.line = line
        self.location = location
        super().__init__(str(self))

    def __str__(self):
        where = []
        if self.line is not None:
            where.append(f"line {self.line}")
        if self.location:
            where.append(self.location)
        if where:
            return f"{', '.join(where)}: {self.message}"
        return self.message


@dataclass(frozen=True)
class Violation:
    """One structural rule broken by a program."""

    kind: str
    message: str
    step_id: Optional[str] = None

    def __str__(self):
        return f"[{self.kind}] {self.message}"


class ValidationError(PtimerError):
    """A program broke one or more structural rules."""

    def __init__(self, violations: Iterable[Violation]):
        self.violations: List[Violation] = list(violations)
        super().__init__(str(self))

    def __str__(self):
        count = len(self.violations)
        noun = "violation" if count == 1 else "violations"
        return f"{count} {noun}: " + "; ".join(str(v) for v in self.violations)


class SchemaVersionError(PtimerError):
    """A container carries a schema version this reader does not know."""

    def __init__(self, found: int, supported: Iterable[int]):
        self.found = found
        self.supported = tuple(supported)
        super().__init__(str(self))

    def __str__(self):
        known = ", ".join(str(v) for v in self.supported)
        return f"Unsupported container schema version {self.found} (supported: {known})"


class CorruptPackageError(PtimerError):
    """A container failed its checksum or could not be decoded."""
