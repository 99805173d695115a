"""
Mock adapters — in-memory test doubles for the shell and control plane.

Used in mock mode (``--mock``) and throughout the tests to simulate a
project and a VM without touching gcloud or ssh. By default every
remote command succeeds; individual commands can be configured to
exit non-zero, raise, or change state when they run.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from easygce.adapters.base import ControlPlane, RemoteShell
from easygce.core.errors import ControlPlaneError, NotFound, RemoteExecutionError
from easygce.core.models.cloud import AllowedTraffic, FirewallRule, HostRecord, InstanceSpec
from easygce.core.models.command import CommandResult
from easygce.core.models.target import Target


class MockRemoteShell(RemoteShell):
    """Scriptable remote shell.

    Commands are matched against configured patterns: an exact match
    wins, otherwise the first pattern contained in the command applies.
    Unmatched commands exit with ``default_exit``.
    """

    def __init__(
        self,
        default_exit: int = 0,
        default_output: str = "",
        available: bool = True,
    ):
        self.default_exit = default_exit
        self._default_output = default_output
        self._available = available
        self.unreachable = False
        self._exits: dict[str, int] = {}
        self._outputs: dict[str, str] = {}
        self._errors: dict[str, str] = {}
        self._callbacks: dict[str, Callable[[MockRemoteShell], None]] = {}
        self._call_log: list[str] = []

    @property
    def name(self) -> str:
        return "mock-shell"

    @property
    def call_log(self) -> list[str]:
        """Every command this shell has been asked to run, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_exit(self, pattern: str, status: int, output: str = "") -> None:
        """Make commands matching ``pattern`` exit with ``status``."""
        self._exits[pattern] = status
        if output:
            self._outputs[pattern] = output

    def set_error(self, pattern: str, message: str = "Mock session failure") -> None:
        """Make commands matching ``pattern`` raise RemoteExecutionError."""
        self._errors[pattern] = message

    def clear_error(self, pattern: str) -> None:
        self._errors.pop(pattern, None)

    def on_run(self, pattern: str, callback: Callable[[MockRemoteShell], None]) -> None:
        """Call ``callback(shell)`` whenever a matching command runs.

        Lets a fix command flip the exit status its probe will see next.
        """
        self._callbacks[pattern] = callback

    def ran(self, pattern: str) -> bool:
        """Whether any command containing ``pattern`` has run."""
        return any(pattern in command for command in self._call_log)

    def _match(self, table: dict[str, Any], command: str) -> str | None:
        if command in table:
            return command
        for pattern in table:
            if pattern in command:
                return pattern
        return None

    def run(
        self,
        target: Target,
        command: str,
        timeout: int | None = None,
    ) -> CommandResult:
        self._call_log.append(command)

        if self.unreachable:
            raise RemoteExecutionError(f"ssh to {target.address} failed: Connection timed out")

        key = self._match(self._errors, command)
        if key is not None:
            raise RemoteExecutionError(self._errors[key])

        key = self._match(self._callbacks, command)
        if key is not None:
            self._callbacks[key](self)

        key = self._match(self._exits, command)
        status = self._exits[key] if key is not None else self.default_exit
        output = self._outputs.get(key, self._default_output) if key is not None else self._default_output

        if status == 0:
            return CommandResult.success(command, stdout=output)
        return CommandResult.failure(command, exit_status=status, stderr=output)

    def reset(self) -> None:
        """Clear call log and configured responses."""
        self._call_log.clear()
        self._exits.clear()
        self._outputs.clear()
        self._errors.clear()
        self._callbacks.clear()
        self.unreachable = False


class MockControlPlane(ControlPlane):
    """In-memory project: hosts, firewall rules, service accounts, buckets."""

    def __init__(
        self,
        hosts: list[HostRecord] | None = None,
        rules: list[FirewallRule] | None = None,
        available: bool = True,
    ):
        self.hosts: list[HostRecord] = list(hosts or [])
        self.rules: list[FirewallRule] = list(rules or [])
        self.service_accounts: set[str] = set()
        self.bindings: set[tuple[str, str]] = set()
        self.buckets: dict[str, str] = {}
        self.bucket_grants: set[tuple[str, str, str]] = set()
        self.created_specs: list[InstanceSpec] = []
        self._available = available
        self._errors: dict[str, str] = {}
        self._call_log: list[tuple[str, tuple[Any, ...]]] = []

    @property
    def name(self) -> str:
        return "mock-cloud"

    @property
    def call_log(self) -> list[tuple[str, tuple[Any, ...]]]:
        """(method, args) for every call, in order."""
        return self._call_log

    def calls(self, method: str) -> list[tuple[Any, ...]]:
        """Arguments of every call to ``method``."""
        return [args for name, args in self._call_log if name == method]

    def is_available(self) -> bool:
        return self._available

    def set_error(self, method: str, message: str = "Mock control plane failure") -> None:
        """Make every call to ``method`` raise ControlPlaneError."""
        self._errors[method] = message

    def _record(self, method: str, *args: Any) -> None:
        self._call_log.append((method, args))
        if method in self._errors:
            raise ControlPlaneError(self._errors[method])

    def _host(self, name: str, zone: str | None = None) -> HostRecord | None:
        for host in self.hosts:
            if host.name == name and (not zone or host.zone == zone):
                return host
        return None

    # ── Hosts ───────────────────────────────────────────────────

    def list_hosts(self) -> list[HostRecord]:
        self._record("list_hosts")
        return [h.model_copy() for h in self.hosts]

    def describe_host(self, name: str, zone: str) -> HostRecord:
        self._record("describe_host", name, zone)
        host = self._host(name, zone)
        if host is None:
            raise NotFound(f"Instance {name} not found in zone {zone}")
        return host.model_copy()

    def start_host(self, name: str, zone: str) -> None:
        self._record("start_host", name, zone)
        host = self._host(name, zone)
        if host is None:
            raise NotFound(f"Instance {name} not found in zone {zone}")
        host.status = "RUNNING"
        if not host.address:
            host.address = "203.0.113.10"

    def create_host(self, spec: InstanceSpec) -> HostRecord:
        self._record("create_host", spec.name, spec.zone)
        self.created_specs.append(spec)
        host = HostRecord(
            name=spec.name,
            zone=spec.zone,
            status="RUNNING",
            address=f"203.0.113.{10 + len(self.hosts)}",
            service_account=spec.service_account,
        )
        self.hosts.append(host)
        return host.model_copy()

    # ── Firewall ────────────────────────────────────────────────

    def list_firewall_rules(self) -> list[FirewallRule]:
        self._record("list_firewall_rules")
        return [r.model_copy() for r in self.rules]

    def describe_firewall_rule(self, name: str) -> FirewallRule | None:
        self._record("describe_firewall_rule", name)
        for rule in self.rules:
            if rule.name == name:
                return rule.model_copy()
        return None

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
        self._record("create_firewall_rule", name, port)
        rule = FirewallRule(
            name=name,
            network=network,
            direction=direction,
            priority=priority,
            source_ranges=[source_range],
            allowed=[AllowedTraffic(protocol="tcp", ports=[str(port)])],
            description=description,
        )
        self.rules.append(rule)
        return rule.model_copy()

    # ── IAM ─────────────────────────────────────────────────────

    def service_account_exists(self, email: str) -> bool:
        self._record("service_account_exists", email)
        return email.split("@", 1)[0] in self.service_accounts

    def create_service_account(
        self,
        name: str,
        display_name: str = "",
        description: str = "",
    ) -> None:
        self._record("create_service_account", name)
        self.service_accounts.add(name)

    def add_iam_binding(self, member: str, role: str) -> None:
        self._record("add_iam_binding", member, role)
        self.bindings.add((member, role))

    def has_iam_binding(self, member: str, role: str) -> bool:
        self._record("has_iam_binding", member, role)
        return (member, role) in self.bindings

    # ── Storage ─────────────────────────────────────────────────

    def bucket_exists(self, bucket: str) -> bool:
        self._record("bucket_exists", bucket)
        return bucket in self.buckets

    def create_bucket(self, bucket: str, location: str) -> None:
        self._record("create_bucket", bucket, location)
        self.buckets[bucket] = location

    def grant_bucket_role(self, bucket: str, member: str, role: str) -> None:
        self._record("grant_bucket_role", bucket, member, role)
        self.bucket_grants.add((bucket, member, role))
