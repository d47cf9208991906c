#!/usr/bin/env python3
"""
Program Model

In-memory representation of a timer program: the ordered steps, the
program metadata and the binary assets the steps refer to.

The step graph is kept as a plain list of steps addressed by index.
A step's successor is either its explicit ``next`` identifier or the step
that follows it in document order.
"""

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath, PureWindowsPath
from typing import Dict, List, Optional

SCHEMA_VERSION = 1

# Durations are stored as unsigned 64-bit seconds
MAX_DURATION = 2**64 - 1


def normalize_asset_reference(reference: str) -> str:
    """
    Normalize an asset path to the POSIX form used as its identifier.

    Raises:
        ValueError: If the path is absolute or climbs out of its base directory
    """
    if PurePosixPath(reference).is_absolute() or PureWindowsPath(reference).drive:
        raise ValueError(f"Asset path '{reference}' must be relative")

    normalized = posixpath.normpath(reference)
    if normalized in (".", "..") or normalized.startswith("../"):
        raise ValueError(
            f"Asset path '{reference}' must point inside the document directory"
        )
    return normalized


class StepAction(Enum):
    """What happens when a step's timer runs out."""

    NONE = "none"  # Wait for the user
    ALERT = "alert"  # Play an alert and wait for the user
    AUTO_ADVANCE = "auto-advance"  # Move on to the next step immediately

    @property
    def code(self) -> int:
        return _ACTION_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> "StepAction":
        for action, action_code in _ACTION_CODES.items():
            if action_code == code:
                return action
        raise ValueError(f"Unknown step action code: {code}")


_ACTION_CODES = {
    StepAction.NONE: 0,
    StepAction.ALERT: 1,
    StepAction.AUTO_ADVANCE: 2,
}


@dataclass
class Step:
    """One timed unit of a program."""

    step_id: str
    title: str = ""
    body: str = ""
    duration: int = 0
    next_step: Optional[str] = None
    assets: List[str] = field(default_factory=list)
    action: StepAction = StepAction.NONE


@dataclass
class Asset:
    """A binary resource bundled with a program.

    Attributes:
        asset_id: Normalized POSIX path, relative to the source document
        content_type: MIME type of the blob
        data: Raw file contents
    """

    asset_id: str
    content_type: str
    data: bytes


@dataclass
class Program:
    """An ordered timer program."""

    title: str
    steps: List[Step] = field(default_factory=list)
    description: str = ""
    lang: Optional[str] = None
    default_duration: Optional[int] = None
    version: int = SCHEMA_VERSION

    def step_index(self) -> Dict[str, int]:
        """Map step identifiers to their first index."""
        index = {}
        for position, step in enumerate(self.steps):
            index.setdefault(step.step_id, position)
        return index

    def successors(self) -> List[Optional[int]]:
        """
        Resolve every step's successor to an index.

        An explicit ``next`` that names no step resolves to ``None``, the
        same as the last step of a linear program.
        """
        index = self.step_index()
        successors = []
        for position, step in enumerate(self.steps):
            if step.next_step is not None:
                successors.append(index.get(step.next_step))
            elif position + 1 < len(self.steps):
                successors.append(position + 1)
            else:
                successors.append(None)
        return successors

    def asset_references(self) -> List[str]:
        """Asset references in first-use order, without duplicates."""
        seen = []
        for step in self.steps:
            for ref in step.assets:
                if ref not in seen:
                    seen.append(ref)
        return seen

    def total_duration(self) -> int:
        return sum(step.duration for step in self.steps)
