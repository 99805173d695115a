"""
CheckResult and Report — the only output artifact of a run.

A Report is created fresh per run and holds one CheckResult per
CapabilityCheck, in declaration order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from easygce.core.models.check import CapabilityState, RemediationOutcome
from easygce.core.models.target import Target


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class CheckResult(BaseModel):
    """Outcome of reconciling a single capability.

    ``state`` is the final observation (after a fix, if one ran);
    ``initial_state`` is what the first probe saw.
    """

    name: str
    description: str = ""
    category: str = ""

    state: CapabilityState
    initial_state: CapabilityState | None = None

    remediation_attempted: bool = False
    remediation: RemediationOutcome = RemediationOutcome.NOT_ATTEMPTED

    error: str | None = None
    duration_ms: int = 0

    def model_post_init(self, __context: Any) -> None:
        if self.initial_state is None:
            self.initial_state = self.state

    @property
    def present(self) -> bool:
        return self.state == CapabilityState.PRESENT

    @property
    def remediated(self) -> bool:
        return self.remediation == RemediationOutcome.SUCCEEDED


@dataclass
class Report:
    """Ordered results of all capability checks for one run."""

    operation_id: str = ""
    suite: str = ""
    target: Target | None = None
    auto_fix: bool = False
    started_at: str = field(default_factory=_now_iso)
    ended_at: str = ""
    results: list[CheckResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def present(self) -> int:
        return sum(1 for r in self.results if r.state == CapabilityState.PRESENT)

    @property
    def missing(self) -> int:
        return sum(1 for r in self.results if r.state == CapabilityState.MISSING)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.state == CapabilityState.ERROR)

    @property
    def remediated(self) -> int:
        return sum(1 for r in self.results if r.remediated)

    @property
    def remediation_failed(self) -> int:
        return sum(
            1 for r in self.results if r.remediation == RemediationOutcome.FAILED
        )

    @property
    def clean(self) -> bool:
        """Every capability ended up PRESENT (the exit-code-0 condition)."""
        return all(r.present for r in self.results)

    @property
    def status(self) -> str:
        if self.clean:
            return "ok"
        if self.present > 0:
            return "partial"
        return "failed"

    @property
    def exit_code(self) -> int:
        return 0 if self.clean else 1

    def get(self, name: str) -> CheckResult | None:
        """Look up a result by capability name."""
        for result in self.results:
            if result.name == name:
                return result
        return None

    def names(self) -> list[str]:
        return [r.name for r in self.results]

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "suite": self.suite,
            "target": self.target.model_dump(mode="json") if self.target else None,
            "auto_fix": self.auto_fix,
            "status": self.status,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "total": self.total,
            "present": self.present,
            "missing": self.missing,
            "errors": self.errors,
            "remediated": self.remediated,
            "remediation_failed": self.remediation_failed,
            "results": [r.model_dump(mode="json") for r in self.results],
        }
