"""
Reconciler — the central loop: probe, optionally fix, re-probe, report.

Flow, for each check strictly in declared order:

    probe ─ PRESENT ─────────────────────────────► PRESENT / NOT_ATTEMPTED
          ─ MISSING ─ no auto-fix (or no fix) ────► MISSING / NOT_ATTEMPTED
                    ─ auto-fix ─ fix ─ re-probe ─► PRESENT / SUCCEEDED
                                               └─► MISSING / FAILED
          ─ RemoteExecutionError ─────────────────► ERROR / NOT_ATTEMPTED

An error during the fix or the re-probe yields ERROR / FAILED. One
check's outcome never stops the next check from running.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from easygce.core.engine.prober import CapabilityProber
from easygce.core.engine.steps import CheckContext
from easygce.core.errors import RemoteExecutionError
from easygce.core.models.check import CapabilityCheck, CapabilityState, RemediationOutcome
from easygce.core.models.report import CheckResult, Report

logger = logging.getLogger(__name__)

_MARKERS = {
    CapabilityState.PRESENT: "✓",
    CapabilityState.MISSING: "✗",
    CapabilityState.ERROR: "!",
}


def reconcile_check(
    prober: CapabilityProber,
    check: CapabilityCheck,
    auto_fix: bool,
) -> CheckResult:
    """Reconcile a single capability. Never raises RemoteExecutionError."""
    start = time.monotonic()

    def _result(state: CapabilityState, **kwargs) -> CheckResult:
        return CheckResult(
            name=check.name,
            description=check.description,
            category=check.category,
            state=state,
            duration_ms=int((time.monotonic() - start) * 1000),
            **kwargs,
        )

    try:
        initial = prober.probe(check)
    except RemoteExecutionError as e:
        return _result(CapabilityState.ERROR, error=str(e))

    if initial == CapabilityState.PRESENT or not auto_fix or not check.fixable:
        return _result(initial)

    try:
        prober.apply_fix(check)
        final = prober.probe(check)
    except RemoteExecutionError as e:
        return _result(
            CapabilityState.ERROR,
            initial_state=initial,
            remediation_attempted=True,
            remediation=RemediationOutcome.FAILED,
            error=str(e),
        )

    outcome = (
        RemediationOutcome.SUCCEEDED
        if final == CapabilityState.PRESENT
        else RemediationOutcome.FAILED
    )
    return _result(
        final,
        initial_state=initial,
        remediation_attempted=True,
        remediation=outcome,
    )


def reconcile(
    ctx: CheckContext,
    checks: Sequence[CapabilityCheck],
    auto_fix: bool = False,
    suite: str = "",
    operation_id: str | None = None,
) -> Report:
    """Reconcile every check against ``ctx.target``.

    Args:
        ctx: Resolved target plus the collaborators to reach it.
        checks: The suite, in the order results should appear.
        auto_fix: Apply fixes to MISSING capabilities.
        suite: Suite name recorded on the report.
        operation_id: Defaults to a fresh id.

    Returns:
        A new Report with one CheckResult per check, in order.
    """
    report = Report(
        operation_id=operation_id or generate_operation_id(),
        suite=suite,
        target=ctx.target,
        auto_fix=auto_fix,
    )
    prober = CapabilityProber(ctx)

    logger.info(
        "Reconciling %d checks on %s (auto-fix %s)",
        len(checks),
        ctx.target.label,
        "on" if auto_fix else "off",
    )

    for check in checks:
        result = reconcile_check(prober, check, auto_fix)
        report.results.append(result)

        suffix = f" (fix {result.remediation.value})" if result.remediation_attempted else ""
        if result.error:
            suffix += f": {result.error}"
        logger.info("%s %s → %s%s", _MARKERS[result.state], check.name, result.state.value, suffix)

    report.ended_at = datetime.now(UTC).isoformat()
    return report


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
