"""
Tests for domain models — targets, cloud records, results and reports.
"""

import pytest
from pydantic import ValidationError

from easygce.core.models.check import CapabilityState, RemediationOutcome
from easygce.core.models.cloud import AllowedTraffic, FirewallRule, HostRecord
from easygce.core.models.command import CommandResult
from easygce.core.models.report import CheckResult, Report
from easygce.core.models.settings import Settings
from easygce.core.models.target import Target

# ── Target ───────────────────────────────────────────────────────────


class TestTarget:
    def test_from_host(self):
        host = HostRecord(name="vm", zone="us-east1-c", status="RUNNING", address="1.2.3.4")
        target = Target.from_host("proj", host)
        assert target.project == "proj"
        assert target.name == "vm"
        assert target.address == "1.2.3.4"

    def test_immutable(self):
        target = Target(project="proj", name="vm")
        with pytest.raises(ValidationError):
            target.name = "other"

    def test_label(self):
        assert Target(project="proj", name="vm", zone="z").label == "vm (z)"
        assert Target(project="proj", name="vm").label == "vm"

    def test_project_scoped_label(self):
        target = Target.for_project("proj", "us-east1-c")
        assert target.name == ""
        assert target.label == "project proj"


# ── Cloud records ────────────────────────────────────────────────────


class TestAllowedTraffic:
    def test_single_port(self):
        entry = AllowedTraffic(protocol="tcp", ports=["22"])
        assert entry.covers(22)
        assert not entry.covers(23)

    def test_port_range(self):
        entry = AllowedTraffic(protocol="tcp", ports=["5900-5910"])
        assert entry.covers(5901)
        assert entry.covers(5910)
        assert not entry.covers(6901)

    def test_no_ports_means_all(self):
        assert AllowedTraffic(protocol="tcp").covers(3389)

    def test_all_protocol(self):
        assert AllowedTraffic(protocol="all").covers(3389)

    def test_other_protocol(self):
        assert not AllowedTraffic(protocol="udp", ports=["3389"]).covers(3389)


class TestFirewallRule:
    def test_allows_any_entry(self):
        rule = FirewallRule(
            name="r",
            allowed=[
                AllowedTraffic(protocol="udp", ports=["53"]),
                AllowedTraffic(protocol="tcp", ports=["80", "443"]),
            ],
        )
        assert rule.allows(443)
        assert not rule.allows(53)

    def test_ports_label(self):
        rule = FirewallRule(
            name="r",
            allowed=[AllowedTraffic(protocol="tcp", ports=["22"]), AllowedTraffic(protocol="icmp")],
        )
        assert rule.ports_label == "tcp:22,icmp"


class TestHostRecord:
    def test_running_is_case_insensitive(self):
        assert HostRecord(name="vm", status="running").running
        assert not HostRecord(name="vm", status="TERMINATED").running


# ── CommandResult ────────────────────────────────────────────────────


class TestCommandResult:
    def test_success(self):
        result = CommandResult.success("echo hi", stdout="hi\n")
        assert result.ok
        assert result.output == "hi"

    def test_failure(self):
        result = CommandResult.failure("false", exit_status=3, stderr="nope")
        assert not result.ok
        assert result.exit_status == 3


# ── CheckResult / Report ─────────────────────────────────────────────


def _result(name: str, state: CapabilityState, **kwargs) -> CheckResult:
    return CheckResult(name=name, state=state, **kwargs)


class TestCheckResult:
    def test_initial_state_defaults_to_state(self):
        result = _result("x", CapabilityState.MISSING)
        assert result.initial_state == CapabilityState.MISSING
        assert result.remediation == RemediationOutcome.NOT_ATTEMPTED
        assert not result.remediation_attempted

    def test_remediated(self):
        result = _result(
            "x",
            CapabilityState.PRESENT,
            initial_state=CapabilityState.MISSING,
            remediation_attempted=True,
            remediation=RemediationOutcome.SUCCEEDED,
        )
        assert result.present
        assert result.remediated


class TestReport:
    def test_counts(self):
        report = Report(results=[
            _result("a", CapabilityState.PRESENT),
            _result("b", CapabilityState.MISSING),
            _result("c", CapabilityState.ERROR, error="boom"),
        ])
        assert report.total == 3
        assert report.present == 1
        assert report.missing == 1
        assert report.errors == 1
        assert report.status == "partial"
        assert not report.clean
        assert report.exit_code == 1

    def test_clean(self):
        report = Report(results=[_result("a", CapabilityState.PRESENT)])
        assert report.clean
        assert report.status == "ok"
        assert report.exit_code == 0

    def test_all_failed(self):
        report = Report(results=[_result("a", CapabilityState.MISSING)])
        assert report.status == "failed"

    def test_get_and_names(self):
        report = Report(results=[
            _result("a", CapabilityState.PRESENT),
            _result("b", CapabilityState.MISSING),
        ])
        assert report.names() == ["a", "b"]
        assert report.get("b").state == CapabilityState.MISSING
        assert report.get("zzz") is None

    def test_to_dict(self):
        report = Report(
            operation_id="op-1",
            suite="chrome",
            target=Target(project="p", name="vm"),
            results=[_result("a", CapabilityState.PRESENT)],
        )
        data = report.to_dict()
        assert data["operation_id"] == "op-1"
        assert data["target"]["name"] == "vm"
        assert data["status"] == "ok"
        assert data["results"][0]["state"] == "present"


# ── Settings ─────────────────────────────────────────────────────────


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.zone == "us-east1-c"
        assert s.ssh.key_path == "~/.ssh/easygce_key"
        assert s.desktop.username == "ubuntu"
        assert s.firewall.desktop_ports == [22, 3389, 5901, 6901]
        assert s.ssh.circuit_breaker_threshold == 0

    def test_region_from_zone(self):
        assert Settings(zone="europe-west1-b").region == "europe-west1"

    def test_bucket_name_default(self):
        assert Settings(project="p").bucket_name == "p-easygce-downloads"

    def test_bucket_name_explicit(self):
        s = Settings.model_validate({"project": "p", "downloads": {"bucket": "mine"}})
        assert s.bucket_name == "mine"

    def test_downloads_path_follows_desktop_user(self):
        s = Settings.model_validate({"desktop": {"username": "desk"}})
        assert s.downloads_path == "/home/desk/Downloads"
        s = Settings.model_validate({"desktop": {"username": "desk"}, "downloads": {"path": "/srv/dl"}})
        assert s.downloads_path == "/srv/dl"

    def test_service_account_email(self):
        s = Settings(project="p")
        assert s.service_account_email == "easygce-service-account@p.iam.gserviceaccount.com"

    def test_public_key_file(self):
        s = Settings.model_validate({"ssh": {"key_path": "/tmp/k"}})
        assert str(s.ssh.public_key_file) == "/tmp/k.pub"
