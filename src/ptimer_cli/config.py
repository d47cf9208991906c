#!/usr/bin/env python3
"""
Runtime configuration for the create and extract pipelines.

Values come from explicit options first, then environment variables,
then the defaults below.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

DOCUMENT_FORMATS = ("yaml", "json")
CYCLE_POLICIES = ("allow", "forbid")

ENV_ALLOW_CYCLES = "PTIMER_ALLOW_CYCLES"
ENV_DOCUMENT_FORMAT = "PTIMER_DOCUMENT_FORMAT"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def cycle_policy_allows(policy: Optional[str]) -> Optional[bool]:
    """Translate a cycle policy name; None means "not specified"."""
    if policy is None:
        return None
    if policy not in CYCLE_POLICIES:
        raise ValueError(f"Unknown cycle policy '{policy}'")
    return policy == "allow"


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be one of 0/1/true/false, got '{value}'")


@dataclass(frozen=True)
class PackagerConfig:
    """Settings shared by the packaging pipelines."""

    allow_cycles: bool = True
    document_format: str = "yaml"
    force: bool = False

    def __post_init__(self):
        if self.document_format not in DOCUMENT_FORMATS:
            raise ValueError(
                f"Unknown document format '{self.document_format}' "
                f"(expected one of: {', '.join(DOCUMENT_FORMATS)})"
            )

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "PackagerConfig":
        """Build a configuration from ``PTIMER_*`` environment variables."""
        if environ is None:
            environ = os.environ

        kwargs = {}
        allow_cycles = environ.get(ENV_ALLOW_CYCLES)
        if allow_cycles:
            kwargs["allow_cycles"] = _parse_bool(ENV_ALLOW_CYCLES, allow_cycles)

        document_format = environ.get(ENV_DOCUMENT_FORMAT)
        if document_format:
            kwargs["document_format"] = document_format.strip().lower()

        return cls(**kwargs)

    def with_overrides(self, **overrides) -> "PackagerConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)
