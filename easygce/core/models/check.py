"""
Capability checks — static configuration the reconciler iterates over.

A check pairs a read-only probe with an optional idempotent fix. Both
are engine steps (remote command, remote script, control-plane call or
local call); see ``easygce.core.engine.steps``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easygce.core.engine.steps import Step


class CapabilityState(StrEnum):
    """Observed state of a capability."""

    PRESENT = "present"
    MISSING = "missing"
    ERROR = "error"


class RemediationOutcome(StrEnum):
    """What happened when (if) a fix was applied."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"


@dataclass(frozen=True)
class CapabilityCheck:
    """One named, probe-able and optionally fixable capability."""

    name: str
    description: str
    probe: Step
    fix: Step | None = None
    category: str = ""

    @property
    def fixable(self) -> bool:
        return self.fix is not None
