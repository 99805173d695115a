"""
Capability prober — observe whether one capability is present.

Runs the check's probe step exactly once. Exit status 0 means PRESENT,
anything else MISSING. A non-zero exit caused by something unrelated
(a PATH problem, say) still reads as MISSING; no attempt is made to
tell the two apart. Session failures propagate as RemoteExecutionError.
"""

from __future__ import annotations

import logging

from easygce.core.engine.steps import CheckContext
from easygce.core.models.check import CapabilityCheck, CapabilityState

logger = logging.getLogger(__name__)


class CapabilityProber:
    """Probe capabilities against one context."""

    def __init__(self, ctx: CheckContext):
        self.ctx = ctx

    def probe(self, check: CapabilityCheck) -> CapabilityState:
        """Return PRESENT or MISSING; raise RemoteExecutionError if unknown."""
        present = check.probe.run(self.ctx)
        state = CapabilityState.PRESENT if present else CapabilityState.MISSING
        logger.debug("probe %s → %s", check.name, state.value)
        return state

    def apply_fix(self, check: CapabilityCheck) -> bool:
        """Run the check's fix step. Returns False if it has none."""
        if check.fix is None:
            return False
        logger.info("Fixing %s: %s", check.name, check.fix.describe())
        return check.fix.run(self.ctx)
