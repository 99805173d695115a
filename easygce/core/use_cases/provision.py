"""
Provision use case — stand up the desktop VM from nothing.

Reconciles the provision suite with fixes on, then waits for the VM to
run and for SSH to answer. The resolved Target is only built once the
VM is up, so it carries the new address.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from easygce.adapters.registry import AdapterSet, build_adapters
from easygce.core.engine.resolver import wait_for_host
from easygce.core.errors import ControlPlaneError, NotFound, RemoteExecutionError
from easygce.core.models.report import Report
from easygce.core.models.settings import Settings
from easygce.core.models.target import Target
from easygce.core.use_cases.run import run_suite

logger = logging.getLogger(__name__)

SSH_READY_COMMAND = "echo 'SSH connection successful'"


@dataclass
class ProvisionResult:
    """Result of provisioning."""

    vm_name: str = ""
    report: Report | None = None
    target: Target | None = None
    ssh_ready: bool = False
    error: str | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.error else 0

    def to_dict(self) -> dict:
        result: dict = {"vm_name": self.vm_name}
        if self.report:
            result["report"] = self.report.to_dict()
        if self.error:
            result["error"] = self.error
            return result
        if self.target:
            result["target"] = self.target.model_dump(mode="json")
        result["ssh_ready"] = self.ssh_ready
        return result


def default_vm_name(project: str, now: float | None = None) -> str:
    """``<project>-easygce-<unix time>``."""
    return f"{project}-easygce-{int(now if now is not None else time.time())}"


def wait_for_ssh(
    adapters: AdapterSet,
    target: Target,
    attempts: int,
    interval: float,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll until an ssh session succeeds."""
    for attempt in range(1, attempts + 1):
        try:
            if adapters.shell.run(target, SSH_READY_COMMAND).ok:
                logger.info("VM is ready for SSH connections")
                return True
        except RemoteExecutionError as e:
            logger.debug("SSH not ready: %s", e)

        logger.info("Attempt %d/%d: SSH not ready yet", attempt, attempts)
        if attempt < attempts:
            sleep(interval)
    return False


def provision_vm(
    settings: Settings,
    adapters: AdapterSet | None = None,
    mock_mode: bool = False,
    audit: bool = True,
    wait: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> ProvisionResult:
    """Create (or complete) the desktop VM and wait until it is usable.

    Args:
        settings: Resolved configuration; ``vm_name`` defaults to a
            timestamped name.
        adapters: Pre-built adapters (tests).
        mock_mode: Use in-memory adapters when ``adapters`` is None.
        audit: Append the suite outcome to the audit ledger.
        wait: Wait for RUNNING and for SSH after the suite.
        sleep: Injectable sleep for the polling loops.
    """
    vm_name = settings.vm_name or default_vm_name(settings.project)
    settings = settings.model_copy(update={"vm_name": vm_name})
    result = ProvisionResult(vm_name=vm_name)

    if adapters is None:
        adapters = build_adapters(settings, mock_mode=mock_mode)

    run = run_suite("provision", settings, auto_fix=True, adapters=adapters, audit=audit)
    result.report = run.report
    if run.error:
        result.error = run.error
        return result
    if run.report is not None and not run.report.clean:
        failed = [r.name for r in run.report.results if not r.present]
        result.error = f"Provisioning incomplete: {', '.join(failed)}"
        return result

    if not wait:
        return result

    p = settings.provision
    try:
        target = wait_for_host(
            adapters.control_plane,
            settings.project,
            vm_name,
            settings.zone,
            attempts=p.wait_attempts,
            interval=p.wait_interval,
            sleep=sleep,
        )
    except (NotFound, ControlPlaneError) as e:
        result.error = f"VM failed to become ready: {e}"
        return result

    result.target = target
    result.ssh_ready = wait_for_ssh(adapters, target, p.wait_attempts, p.wait_interval, sleep)
    if not result.ssh_ready:
        result.error = f"VM {vm_name} is running but SSH never became ready"
    return result
