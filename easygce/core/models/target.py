"""
Target — the single remote host a run operates against.

Resolved once at the start of a run and read-only afterwards.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from easygce.core.models.cloud import HostRecord


class Target(BaseModel):
    """An immutable, resolved host.

    A target with an empty ``name`` is project-scoped: it is used by
    suites that only touch the control plane (firewall, provisioning).
    """

    model_config = ConfigDict(frozen=True)

    project: str
    name: str = ""
    zone: str = ""
    address: str | None = None
    status: str = ""

    @classmethod
    def from_host(cls, project: str, host: HostRecord) -> Target:
        return cls(
            project=project,
            name=host.name,
            zone=host.zone,
            address=host.address,
            status=host.status,
        )

    @classmethod
    def for_project(cls, project: str, zone: str = "", name: str = "") -> Target:
        """A target that names a project (and optionally a planned host)."""
        return cls(project=project, name=name, zone=zone)

    @property
    def label(self) -> str:
        if not self.name:
            return f"project {self.project}"
        where = f" ({self.zone})" if self.zone else ""
        return f"{self.name}{where}"
