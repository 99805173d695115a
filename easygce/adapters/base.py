"""
Adapter base — the contracts between the engine and external tools.

The engine only talks to the outside world through two collaborators:

    RemoteShell   run a command on the target host
    ControlPlane  read and change cloud resources (VMs, firewall, IAM, buckets)

Unlike a probe's exit status, failing to reach either collaborator is
exceptional: RemoteShell raises RemoteExecutionError, ControlPlane raises
ControlPlaneError (a RemoteExecutionError) or NotFound.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from easygce.core.models.cloud import FirewallRule, HostRecord, InstanceSpec
from easygce.core.models.command import CommandResult
from easygce.core.models.target import Target


class Adapter(ABC):
    """Abstract base class for all adapters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'ssh', 'gcloud')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is available.

        Should be fast and never raise.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class RemoteShell(Adapter):
    """Runs command strings on a resolved target."""

    @abstractmethod
    def run(
        self,
        target: Target,
        command: str,
        timeout: int | None = None,
    ) -> CommandResult:
        """Run ``command`` on the target.

        Args:
            target: The resolved host.
            command: A shell command string, run by the remote login shell.
            timeout: Connection-establishment timeout in seconds
                (None = the adapter's default).

        Returns:
            CommandResult; a non-zero exit status is returned, not raised.

        Raises:
            RemoteExecutionError: No session could be established in time.
        """


class ControlPlane(Adapter):
    """Cloud resource operations for one project."""

    # ── Hosts ───────────────────────────────────────────────────

    @abstractmethod
    def list_hosts(self) -> list[HostRecord]:
        """All instances, in the control plane's default listing order."""

    @abstractmethod
    def describe_host(self, name: str, zone: str) -> HostRecord:
        """Describe one instance. Raises NotFound if it does not exist."""

    @abstractmethod
    def start_host(self, name: str, zone: str) -> None:
        """Start a stopped instance."""

    @abstractmethod
    def create_host(self, spec: InstanceSpec) -> HostRecord:
        """Create an instance."""

    # ── Firewall ────────────────────────────────────────────────

    @abstractmethod
    def list_firewall_rules(self) -> list[FirewallRule]:
        """All firewall rules in the project."""

    @abstractmethod
    def describe_firewall_rule(self, name: str) -> FirewallRule | None:
        """One rule by name, or None if it does not exist."""

    @abstractmethod
    def create_firewall_rule(
        self,
        name: str,
        port: int,
        source_range: str = "0.0.0.0/0",
        direction: str = "INGRESS",
        network: str = "default",
        priority: int = 1000,
        description: str = "",
    ) -> FirewallRule:
        """Create an allow rule for ``tcp:port``."""

    # ── IAM ─────────────────────────────────────────────────────

    @abstractmethod
    def service_account_exists(self, email: str) -> bool:
        """Whether the service account exists."""

    @abstractmethod
    def create_service_account(
        self,
        name: str,
        display_name: str = "",
        description: str = "",
    ) -> None:
        """Create a service account."""

    @abstractmethod
    def add_iam_binding(self, member: str, role: str) -> None:
        """Bind ``role`` to ``member`` on the project (idempotent)."""

    @abstractmethod
    def has_iam_binding(self, member: str, role: str) -> bool:
        """Whether the project policy binds ``role`` to ``member``."""

    # ── Storage ─────────────────────────────────────────────────

    @abstractmethod
    def bucket_exists(self, bucket: str) -> bool:
        """Whether the Cloud Storage bucket exists."""

    @abstractmethod
    def create_bucket(self, bucket: str, location: str) -> None:
        """Create a STANDARD bucket in ``location``."""

    @abstractmethod
    def grant_bucket_role(self, bucket: str, member: str, role: str) -> None:
        """Grant ``role`` on the bucket to ``member``."""
