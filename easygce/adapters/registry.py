"""
Adapter registry — build the collaborators for one invocation.

The engine never constructs adapters itself: the CLI (or a test) asks
``build_adapters`` for a matched pair of control plane and remote shell,
real or mock, configured from an explicit Settings object.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from easygce.adapters.base import Adapter, ControlPlane, RemoteShell
from easygce.adapters.cloud.gcloud import GcloudControlPlane
from easygce.adapters.mock import MockControlPlane, MockRemoteShell
from easygce.adapters.shell.command import LocalCommandRunner
from easygce.adapters.shell.ssh import SshShell
from easygce.core.models.cloud import HostRecord
from easygce.core.models.settings import Settings
from easygce.core.reliability.circuit_breaker import CircuitBreakerRegistry

logger = logging.getLogger(__name__)

MOCK_HOST_NAME = "easygce-mock"
MOCK_HOST_ADDRESS = "203.0.113.10"


@dataclass
class AdapterSet:
    """The collaborators a run talks to."""

    control_plane: ControlPlane
    shell: RemoteShell
    runner: LocalCommandRunner
    mock: bool = False

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every adapter in the set."""
        status = {}
        for adapter in (self.control_plane, self.shell, self.runner):
            status[adapter.name] = _status(adapter)
        return status


def _status(adapter: Adapter) -> dict[str, Any]:
    try:
        available = adapter.is_available()
    except OSError:
        available = False
    return {
        "name": adapter.name,
        "available": available,
        "type": adapter.__class__.__name__,
    }


def build_adapters(
    settings: Settings,
    mock_mode: bool = False,
    breakers: CircuitBreakerRegistry | None = None,
) -> AdapterSet:
    """Create the adapters for ``settings``.

    Args:
        settings: Resolved configuration.
        mock_mode: Use the in-memory doubles instead of gcloud/ssh.
        breakers: Per-host circuit breakers for ssh; built from
            ``settings.ssh.circuit_breaker_threshold`` when omitted.

    Returns:
        AdapterSet with control plane, shell and local runner.
    """
    runner = LocalCommandRunner()

    if mock_mode:
        logger.info("Mock mode: no gcloud or ssh calls will be made")
        host = HostRecord(
            name=settings.vm_name or MOCK_HOST_NAME,
            zone=settings.zone,
            status="RUNNING",
            address=MOCK_HOST_ADDRESS,
        )
        return AdapterSet(
            control_plane=MockControlPlane(hosts=[host]),
            shell=MockRemoteShell(),
            runner=runner,
            mock=True,
        )

    if breakers is None and settings.ssh.circuit_breaker_threshold > 0:
        breakers = CircuitBreakerRegistry(
            failure_threshold=settings.ssh.circuit_breaker_threshold,
        )

    shell = SshShell(
        user=settings.ssh.user,
        key_path=settings.ssh.key_file,
        connect_timeout=settings.ssh.connect_timeout,
        command_timeout=settings.ssh.command_timeout,
        strict_host_key_checking=settings.ssh.strict_host_key_checking,
        runner=runner,
        breakers=breakers,
    )
    control_plane = GcloudControlPlane(project=settings.project, runner=runner)

    for adapter in (control_plane, shell):
        if not adapter.is_available():
            logger.warning("%s binary not found on PATH", adapter.name)

    return AdapterSet(control_plane=control_plane, shell=shell, runner=runner)
