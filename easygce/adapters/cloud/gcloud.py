"""
gcloud control plane — Compute Engine, IAM and Storage via the gcloud CLI.

Every call names the project explicitly (``--project``) instead of
mutating the user's active gcloud configuration, and asks for JSON so
the output can be parsed without scraping tables. Nothing is cached:
each call reads state fresh from the API.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from easygce.adapters.base import ControlPlane
from easygce.adapters.shell.command import LocalCommandRunner
from easygce.core.errors import CommandError, ControlPlaneError, NotFound
from easygce.core.models.cloud import AllowedTraffic, FirewallRule, HostRecord, InstanceSpec
from easygce.core.models.command import CommandResult

logger = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = ("not found", "notfound", "not_found", "does not exist", "404")


def _basename(url: str | None) -> str:
    """Last path segment of a GCE resource URL (zones/us-east1-c → us-east1-c)."""
    if not url:
        return ""
    return url.rstrip("/").rsplit("/", 1)[-1]


def _is_not_found(stderr: str) -> bool:
    lowered = stderr.lower()
    return any(marker in lowered for marker in _NOT_FOUND_MARKERS)


def parse_host(data: dict[str, Any]) -> HostRecord:
    """Build a HostRecord from ``instances describe/list`` JSON."""
    address = None
    for nic in data.get("networkInterfaces", []) or []:
        for access in nic.get("accessConfigs", []) or []:
            if access.get("natIP"):
                address = access["natIP"]
                break
        if address:
            break

    accounts = data.get("serviceAccounts") or []
    return HostRecord(
        name=data.get("name", ""),
        zone=_basename(data.get("zone")),
        status=data.get("status", ""),
        address=address,
        service_account=accounts[0].get("email") if accounts else None,
        tags=list((data.get("tags") or {}).get("items", []) or []),
    )


def parse_firewall_rule(data: dict[str, Any]) -> FirewallRule:
    """Build a FirewallRule from ``firewall-rules describe/list`` JSON."""
    return FirewallRule(
        name=data.get("name", ""),
        network=_basename(data.get("network")) or "default",
        direction=data.get("direction", "INGRESS"),
        priority=int(data.get("priority", 1000)),
        source_ranges=list(data.get("sourceRanges", []) or []),
        allowed=[
            AllowedTraffic(
                protocol=str(entry.get("IPProtocol", "tcp")).lower(),
                ports=[str(p) for p in entry.get("ports", []) or []],
            )
            for entry in data.get("allowed", []) or []
        ],
        target_tags=list(data.get("targetTags", []) or []),
        description=data.get("description", ""),
        disabled=bool(data.get("disabled", False)),
    )


class GcloudControlPlane(ControlPlane):
    """ControlPlane implementation backed by the ``gcloud`` CLI.

    Args:
        project: GCP project id every call is scoped to.
        runner: Local runner (injectable for tests).
        timeout: Per-call timeout in seconds.
    """

    def __init__(
        self,
        project: str,
        runner: LocalCommandRunner | None = None,
        timeout: int = 300,
    ):
        self._project = project
        self._runner = runner or LocalCommandRunner()
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "gcloud"

    @property
    def project(self) -> str:
        return self._project

    def is_available(self) -> bool:
        return self._runner.which("gcloud") is not None

    # ── Plumbing ────────────────────────────────────────────────

    def _run(self, *args: str) -> CommandResult:
        argv = ["gcloud", *args, f"--project={self._project}", "--quiet"]
        try:
            return self._runner.run(argv, timeout=self._timeout)
        except CommandError as e:
            raise ControlPlaneError(f"gcloud failed: {e}") from e

    def _check(self, result: CommandResult, what: str) -> CommandResult:
        if result.ok:
            return result
        detail = result.stderr.strip() or f"exit status {result.exit_status}"
        if _is_not_found(detail):
            raise NotFound(f"{what}: {detail}")
        raise ControlPlaneError(f"{what}: {detail}")

    def _json(self, result: CommandResult, what: str) -> Any:
        self._check(result, what)
        if not result.output:
            return None
        try:
            return json.loads(result.output)
        except json.JSONDecodeError as e:
            raise ControlPlaneError(f"{what}: unparseable gcloud output: {e}") from e

    # ── Hosts ───────────────────────────────────────────────────

    def list_hosts(self) -> list[HostRecord]:
        data = self._json(
            self._run("compute", "instances", "list", "--format=json"),
            "list instances",
        )
        return [parse_host(item) for item in data or []]

    def describe_host(self, name: str, zone: str) -> HostRecord:
        data = self._json(
            self._run(
                "compute", "instances", "describe", name,
                f"--zone={zone}", "--format=json",
            ),
            f"describe instance {name}",
        )
        if not data:
            raise NotFound(f"Instance {name} not found in zone {zone}")
        return parse_host(data)

    def start_host(self, name: str, zone: str) -> None:
        logger.info("Starting instance %s (%s)", name, zone)
        self._check(
            self._run("compute", "instances", "start", name, f"--zone={zone}"),
            f"start instance {name}",
        )

    def create_host(self, spec: InstanceSpec) -> HostRecord:
        logger.info("Creating instance %s (%s, %s)", spec.name, spec.zone, spec.machine_type)
        args = [
            "compute", "instances", "create", spec.name,
            f"--zone={spec.zone}",
            f"--machine-type={spec.machine_type}",
            f"--image-project={spec.image_project}",
            f"--image={spec.image}",
            f"--boot-disk-size={spec.boot_disk_size}",
            f"--boot-disk-type={spec.boot_disk_type}",
            "--boot-disk-auto-delete" if spec.boot_disk_auto_delete else "--no-boot-disk-auto-delete",
            f"--scopes={','.join(spec.scopes)}",
            "--format=json",
        ]
        if spec.service_account:
            args.append(f"--service-account={spec.service_account}")
        if spec.ssh_keys:
            args.append(f"--metadata=ssh-keys={spec.ssh_keys}")

        # The startup script only has to exist for the duration of the call
        with tempfile.TemporaryDirectory(prefix="easygce-") as tmp:
            if spec.startup_script:
                script = Path(tmp) / "startup.sh"
                script.write_text(spec.startup_script, encoding="utf-8")
                script.chmod(0o700)
                args.append(f"--metadata-from-file=startup-script={script}")
            data = self._json(self._run(*args), f"create instance {spec.name}")

        if isinstance(data, list) and data:
            return parse_host(data[0])
        return self.describe_host(spec.name, spec.zone)

    # ── Firewall ────────────────────────────────────────────────

    def list_firewall_rules(self) -> list[FirewallRule]:
        data = self._json(
            self._run("compute", "firewall-rules", "list", "--format=json"),
            "list firewall rules",
        )
        return [parse_firewall_rule(item) for item in data or []]

    def describe_firewall_rule(self, name: str) -> FirewallRule | None:
        try:
            data = self._json(
                self._run("compute", "firewall-rules", "describe", name, "--format=json"),
                f"describe firewall rule {name}",
            )
        except NotFound:
            return None
        return parse_firewall_rule(data) if data else None

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
        logger.info("Creating firewall rule %s for tcp:%d", name, port)
        args = [
            "compute", "firewall-rules", "create", name,
            f"--network={network}",
            "--action=allow",
            f"--rules=tcp:{port}",
            f"--direction={direction}",
            f"--priority={priority}",
            f"--source-ranges={source_range}",
            "--format=json",
        ]
        if description:
            args.append(f"--description={description}")
        data = self._json(self._run(*args), f"create firewall rule {name}")
        if isinstance(data, list) and data:
            return parse_firewall_rule(data[0])
        return FirewallRule(
            name=name,
            network=network,
            direction=direction,
            priority=priority,
            source_ranges=[source_range],
            allowed=[AllowedTraffic(protocol="tcp", ports=[str(port)])],
            description=description,
        )

    # ── IAM ─────────────────────────────────────────────────────

    def service_account_exists(self, email: str) -> bool:
        try:
            self._check(
                self._run("iam", "service-accounts", "describe", email, "--format=json"),
                f"describe service account {email}",
            )
        except NotFound:
            return False
        return True

    def create_service_account(
        self,
        name: str,
        display_name: str = "",
        description: str = "",
    ) -> None:
        logger.info("Creating service account %s", name)
        args = ["iam", "service-accounts", "create", name]
        if display_name:
            args.append(f"--display-name={display_name}")
        if description:
            args.append(f"--description={description}")
        self._check(self._run(*args), f"create service account {name}")

    def add_iam_binding(self, member: str, role: str) -> None:
        logger.info("Binding %s to %s", role, member)
        self._check(
            self._run(
                "projects", "add-iam-policy-binding", self._project,
                f"--member={member}", f"--role={role}",
                "--condition=None", "--format=json",
            ),
            f"bind {role}",
        )

    def has_iam_binding(self, member: str, role: str) -> bool:
        policy = self._json(
            self._run("projects", "get-iam-policy", self._project, "--format=json"),
            "get project IAM policy",
        ) or {}
        for binding in policy.get("bindings", []) or []:
            if binding.get("role") == role and member in (binding.get("members") or []):
                return True
        return False

    # ── Storage ─────────────────────────────────────────────────

    def bucket_exists(self, bucket: str) -> bool:
        try:
            self._check(
                self._run("storage", "buckets", "describe", f"gs://{bucket}", "--format=json"),
                f"describe bucket {bucket}",
            )
        except NotFound:
            return False
        return True

    def create_bucket(self, bucket: str, location: str) -> None:
        logger.info("Creating bucket gs://%s in %s", bucket, location)
        self._check(
            self._run(
                "storage", "buckets", "create", f"gs://{bucket}",
                f"--location={location}", "--default-storage-class=STANDARD",
            ),
            f"create bucket {bucket}",
        )

    def grant_bucket_role(self, bucket: str, member: str, role: str) -> None:
        self._check(
            self._run(
                "storage", "buckets", "add-iam-policy-binding", f"gs://{bucket}",
                f"--member={member}", f"--role={role}",
            ),
            f"grant {role} on {bucket}",
        )
