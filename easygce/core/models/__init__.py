"""
Domain models — Pydantic types for easygce.

All models are re-exported here for convenient access:

    from easygce.core.models import Target, CheckResult, Report, Settings
"""

from easygce.core.models.check import (
    CapabilityCheck,
    CapabilityState,
    RemediationOutcome,
)
from easygce.core.models.cloud import (
    AllowedTraffic,
    FirewallRule,
    HostRecord,
    InstanceSpec,
)
from easygce.core.models.command import CommandResult
from easygce.core.models.report import CheckResult, Report
from easygce.core.models.settings import (
    DesktopSettings,
    DownloadsSettings,
    FirewallSettings,
    ProvisionSettings,
    Settings,
    SshSettings,
)
from easygce.core.models.target import Target

__all__ = [
    # cloud.py
    "AllowedTraffic",
    # check.py
    "CapabilityCheck",
    "CapabilityState",
    # report.py
    "CheckResult",
    # command.py
    "CommandResult",
    # settings.py
    "DesktopSettings",
    "DownloadsSettings",
    "FirewallRule",
    "FirewallSettings",
    "HostRecord",
    "InstanceSpec",
    "ProvisionSettings",
    "RemediationOutcome",
    "Report",
    "Settings",
    "SshSettings",
    # target.py
    "Target",
]
