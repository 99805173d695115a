"""
Cloud records — what the control plane tells us about hosts and rules.

These are plain snapshots: they are re-read from the control plane on
every call and never cached across runs.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class HostRecord(BaseModel):
    """One VM instance as listed/described by the control plane."""

    name: str
    zone: str = ""
    status: str = ""                # RUNNING, TERMINATED, STAGING, ...
    address: str | None = None      # external NAT IP, if any
    service_account: str | None = None
    tags: list[str] = Field(default_factory=list)

    @property
    def running(self) -> bool:
        return self.status.upper() == "RUNNING"


class AllowedTraffic(BaseModel):
    """One entry of a firewall rule's ``allowed`` list."""

    protocol: str = "tcp"
    ports: list[str] = Field(default_factory=list)   # "22", "5900-5910"

    def covers(self, port: int, protocol: str = "tcp") -> bool:
        """Whether this entry allows ``protocol:port``.

        An ``all`` protocol, or a matching protocol with no port list,
        allows every port.
        """
        if self.protocol not in ("all", protocol):
            return False
        if self.protocol == "all" or not self.ports:
            return True
        for spec in self.ports:
            if "-" in spec:
                low, _, high = spec.partition("-")
                if low.isdigit() and high.isdigit() and int(low) <= port <= int(high):
                    return True
            elif spec.isdigit() and int(spec) == port:
                return True
        return False


class FirewallRule(BaseModel):
    """A VPC firewall rule."""

    name: str
    network: str = "default"
    direction: str = "INGRESS"
    priority: int = 1000
    source_ranges: list[str] = Field(default_factory=list)
    allowed: list[AllowedTraffic] = Field(default_factory=list)
    target_tags: list[str] = Field(default_factory=list)
    description: str = ""
    disabled: bool = False

    def allows(self, port: int, protocol: str = "tcp") -> bool:
        """Whether any allowed entry covers the port."""
        return any(a.covers(port, protocol) for a in self.allowed)

    @property
    def ports_label(self) -> str:
        parts = []
        for a in self.allowed:
            if a.ports:
                parts.extend(f"{a.protocol}:{p}" for p in a.ports)
            else:
                parts.append(a.protocol)
        return ",".join(parts)


class InstanceSpec(BaseModel):
    """Everything needed to create the VM."""

    name: str
    zone: str
    machine_type: str = "n1-standard-2"
    image_project: str = "ubuntu-os-cloud"
    image: str = "ubuntu-2004-focal-v20231101"
    boot_disk_size: str = "30GB"
    boot_disk_type: str = "pd-ssd"
    boot_disk_auto_delete: bool = False
    service_account: str | None = None
    scopes: list[str] = Field(
        default_factory=lambda: ["https://www.googleapis.com/auth/cloud-platform"]
    )
    startup_script: str = ""
    ssh_keys: str = ""               # "user:ssh-rsa AAAA... comment"
