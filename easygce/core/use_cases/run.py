"""
Run use case — reconcile one suite against its target.

This is the vertical slice behind every suite command: validate the
settings, build adapters, resolve the target once, reconcile the
suite's checks, and append the outcome to the audit ledger.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from easygce.adapters.registry import AdapterSet, build_adapters
from easygce.core.catalog import Suite, get_suite
from easygce.core.engine.reconciler import reconcile
from easygce.core.engine.resolver import ensure_running, resolve_target
from easygce.core.engine.steps import CheckContext
from easygce.core.errors import ControlPlaneError, NotFound
from easygce.core.models.cloud import FirewallRule, HostRecord
from easygce.core.models.report import Report
from easygce.core.models.settings import Settings
from easygce.core.models.target import Target
from easygce.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of running a suite."""

    suite: str = ""
    report: Report | None = None
    target: Target | None = None
    audit_path: Path | None = None
    started: bool = False
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error or self.report is None:
            return 1
        return self.report.exit_code

    def to_dict(self) -> dict:
        result: dict = {"suite": self.suite}
        if self.error:
            result["error"] = self.error
            return result

        if self.target:
            result["target"] = self.target.model_dump(mode="json")
        if self.started:
            result["started"] = True
        if self.report:
            result["report"] = self.report.to_dict()
        if self.audit_path:
            result["audit_path"] = str(self.audit_path)
        return result


def resolve_for_suite(suite: Suite, settings: Settings, adapters: AdapterSet) -> Target:
    """The target a suite runs against.

    Host-scoped suites resolve a VM; the others get a project-scoped
    target carrying the configured VM name and zone, if any.

    Raises:
        NotFound: No VM could be resolved.
        ControlPlaneError: The control plane could not be queried.
    """
    if not suite.host_scoped:
        return Target.for_project(settings.project, settings.zone, name=settings.vm_name or "")
    return resolve_target(
        adapters.control_plane,
        settings.project,
        name=settings.vm_name,
        zone=settings.zone,
        name_fragment=settings.name_fragment,
    )


def record_audit(report: Report, settings: Settings, duration_ms: int) -> Path:
    writer = AuditWriter(state_dir=settings.state_path)
    writer.write(AuditEntry.from_report(report, duration_ms=duration_ms))
    return writer.path


def run_suite(
    suite_name: str,
    settings: Settings,
    auto_fix: bool | None = None,
    adapters: AdapterSet | None = None,
    mock_mode: bool = False,
    audit: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """Reconcile a named suite.

    Args:
        suite_name: One of the catalog's suites.
        settings: Resolved configuration (project is required).
        auto_fix: Apply fixes; None = the suite's default.
        adapters: Pre-built adapters (tests); built from settings otherwise.
        mock_mode: Use in-memory adapters when ``adapters`` is None.
        audit: Append the outcome to the audit ledger.
        sleep: Injectable sleep for the wait after starting a stopped VM.

    Returns:
        RunResult with the report, or an error if the run never started.
    """
    result = RunResult(suite=suite_name)

    suite = get_suite(suite_name)
    if suite is None:
        result.error = f"Unknown suite: {suite_name}"
        return result

    if not settings.project:
        result.error = "GCE project name is required (-p, EASYGCE_PROJECT or easygce.yml)"
        return result

    if adapters is None:
        adapters = build_adapters(settings, mock_mode=mock_mode)

    if auto_fix is None:
        auto_fix = suite.fix_by_default

    # ── Resolve the target once ──────────────────────────────────
    # With fixes on, a stopped VM is started here so that every check
    # sees its new address.
    try:
        target = resolve_for_suite(suite, settings, adapters)
        if suite.host_scoped and auto_fix:
            target, result.started = ensure_running(
                adapters.control_plane,
                target,
                attempts=settings.provision.wait_attempts,
                interval=settings.provision.wait_interval,
                sleep=sleep,
            )
    except NotFound as e:
        result.error = str(e)
        return result
    except ControlPlaneError as e:
        result.error = f"Could not query project {settings.project}: {e}"
        return result

    result.target = target
    if suite.host_scoped:
        logger.info("Target: %s at %s", target.label, target.address or "(no address)")

    # ── Reconcile ────────────────────────────────────────────────
    ctx = CheckContext(
        target=target,
        shell=adapters.shell,
        control_plane=adapters.control_plane,
        settings=settings,
        runner=adapters.runner,
        connect_timeout=settings.ssh.connect_timeout,
    )
    start = time.monotonic()
    report = reconcile(ctx, suite.build(settings), auto_fix=auto_fix, suite=suite.name)
    result.report = report

    # ── Write audit log ──────────────────────────────────────────
    if audit:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        result.audit_path = record_audit(report, settings, elapsed_ms)

    return result


@dataclass
class FirewallInventory:
    """Every firewall rule in the project and the network tags of its VMs."""

    rules: list[FirewallRule] = field(default_factory=list)
    hosts: list[HostRecord] = field(default_factory=list)
    error: str | None = None


def firewall_inventory(settings: Settings, adapters: AdapterSet) -> FirewallInventory:
    """List rules (on the configured network) and VM tags for display."""
    inventory = FirewallInventory()
    cp = adapters.control_plane
    try:
        inventory.rules = [
            r for r in cp.list_firewall_rules() if r.network == settings.firewall.network
        ]
        inventory.hosts = cp.list_hosts()
    except ControlPlaneError as e:
        inventory.error = f"Could not list firewall rules: {e}"
    return inventory
