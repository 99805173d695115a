"""
Tests for use cases — run_suite, provision_vm and connect.
"""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from easygce.adapters.registry import AdapterSet
from easygce.adapters.shell.command import LocalCommandRunner
from easygce.adapters.shell.ssh import SshShell
from easygce.core.errors import CommandError
from easygce.core.models.check import CapabilityState, RemediationOutcome
from easygce.core.models.command import CommandResult
from easygce.core.persistence.audit import AuditWriter
from easygce.core.use_cases.connect import (
    CONNECTION_PORTS,
    connect,
    connection_summary,
    connection_url,
    launch_client,
    rdp_file_content,
)
from easygce.core.use_cases.provision import default_vm_name, provision_vm, wait_for_ssh
from easygce.core.use_cases.run import firewall_inventory, run_suite


class RecordingRunner(LocalCommandRunner):
    """Records argv; writes key files for ssh-keygen."""

    def __init__(self, result: CommandResult | None = None):
        super().__init__()
        self.calls: list[list[str]] = []
        self.result = result

    def run(self, argv, timeout=None, input_text=None):
        self.calls.append(list(argv))
        if argv[0] == "ssh-keygen":
            key = Path(argv[argv.index("-f") + 1])
            key.write_text("PRIVATE")
            Path(f"{key}.pub").write_text("ssh-rsa AAAAB3 easygce\n")
        return self.result or CommandResult.success(" ".join(argv))


# ── run_suite ────────────────────────────────────────────────────────


class TestRunSuite:
    def test_clean_run(self, settings, adapters, shell):
        result = run_suite("chrome", settings, adapters=adapters)
        assert result.error is None
        assert result.report.clean
        assert result.exit_code == 0
        assert result.target.name == "demo-easygce-vm"

    def test_unknown_suite(self, settings, adapters):
        result = run_suite("bogus", settings, adapters=adapters)
        assert result.error == "Unknown suite: bogus"
        assert result.exit_code == 1

    def test_project_required(self, settings, adapters):
        result = run_suite("chrome", settings.model_copy(update={"project": ""}), adapters=adapters)
        assert "project" in result.error

    def test_unknown_name_never_reconciles(self, settings, adapters, shell):
        settings = settings.model_copy(update={"vm_name": "no-such-vm"})
        with patch("easygce.core.use_cases.run.reconcile") as mock_reconcile:
            result = run_suite("remote-desktop", settings, adapters=adapters)
        assert "no-such-vm" in result.error
        assert result.exit_code == 1
        mock_reconcile.assert_not_called()
        assert shell.call_count == 0

    def test_control_plane_unreachable(self, settings, adapters, control_plane):
        control_plane.set_error("list_hosts", "auth required")
        result = run_suite("chrome", settings, adapters=adapters)
        assert "auth required" in result.error

    def test_fix_by_default(self, settings, adapters, shell):
        shell.set_exit("command -v google-chrome", 1)
        result = run_suite("chrome", settings, adapters=adapters)
        assert result.report.auto_fix
        assert shell.ran("google-chrome-stable")
        assert result.exit_code == 1

    def test_check_only(self, settings, adapters, shell):
        shell.set_exit("command -v google-chrome", 1)
        result = run_suite("chrome", settings, auto_fix=False, adapters=adapters)
        assert not result.report.auto_fix
        assert not shell.ran("google-chrome-stable")
        assert result.report.get("chrome-installed").state == CapabilityState.MISSING

    def test_project_scoped_suite(self, settings, adapters, control_plane):
        result = run_suite("firewall", settings, adapters=adapters)
        assert result.target.name == ""
        assert control_plane.calls("list_hosts") == []
        assert result.exit_code == 1

    def test_audit_written(self, settings, adapters):
        result = run_suite("chrome", settings, adapters=adapters)
        entries = AuditWriter(state_dir=settings.state_path).read_all()
        assert result.audit_path == settings.state_path / "audit.ndjson"
        assert entries[-1].operation_id == result.report.operation_id
        assert entries[-1].suite == "chrome"

    def test_no_audit(self, settings, adapters):
        result = run_suite("chrome", settings, adapters=adapters, audit=False)
        assert result.audit_path is None
        assert not (settings.state_path / "audit.ndjson").exists()

    def test_stopped_vm_is_started_before_the_checks(
        self, settings, control_plane, host, tmp_path, monkeypatch
    ):
        monkeypatch.setattr(
            "easygce.core.catalog.remote_desktop.tcp_connect", lambda address, port: True
        )
        host.status = "TERMINATED"
        host.address = None
        key = tmp_path / "id_easygce"
        key.write_text("PRIVATE")
        runner = RecordingRunner()
        # the real ssh shell refuses targets without an address
        adapters = AdapterSet(
            control_plane=control_plane,
            shell=SshShell(user="tester", key_path=key, runner=runner),
            runner=runner,
        )

        result = run_suite(
            "remote-desktop", settings, auto_fix=True, adapters=adapters, sleep=lambda s: None
        )

        assert result.error is None
        assert result.started
        assert result.target.address == "203.0.113.10"
        assert control_plane.calls("start_host") == [(host.name, host.zone)]
        for name in ("ssh-reachable", "account-ubuntu", "xrdp-active", "tightvnc-active", "novnc-running"):
            assert result.report.get(name).state == CapabilityState.PRESENT, name
        assert result.report.get("vm-running").remediation == RemediationOutcome.NOT_ATTEMPTED
        assert result.exit_code == 0
        assert any(argv[0] == "ssh" and argv[-2] == "tester@203.0.113.10" for argv in runner.calls)

    def test_stopped_vm_left_alone_when_checking(self, settings, adapters, control_plane, host):
        host.status = "TERMINATED"
        host.address = None
        result = run_suite("remote-desktop", settings, auto_fix=False, adapters=adapters)
        assert not result.started
        assert control_plane.calls("start_host") == []
        assert result.report.get("vm-running").state == CapabilityState.MISSING

    def test_stopped_vm_never_ready(self, settings, adapters, control_plane, host, monkeypatch):
        host.status = "TERMINATED"
        monkeypatch.setattr(control_plane, "start_host", lambda name, zone: None)
        result = run_suite("chrome", settings, adapters=adapters, sleep=lambda s: None)
        assert "did not become ready" in result.error
        assert result.report is None

    def test_to_dict(self, settings, adapters):
        data = run_suite("chrome", settings, adapters=adapters).to_dict()
        assert data["suite"] == "chrome"
        assert data["report"]["status"] == "ok"
        assert data["target"]["name"] == "demo-easygce-vm"


class TestFirewallInventory:
    def test_lists_rules_and_tags(self, settings, adapters, control_plane):
        control_plane.create_firewall_rule("a", 22)
        control_plane.create_firewall_rule("b", 80, network="other")
        inventory = firewall_inventory(settings, adapters)
        assert [r.name for r in inventory.rules] == ["a"]
        assert [h.name for h in inventory.hosts] == ["demo-easygce-vm"]

    def test_error(self, settings, adapters, control_plane):
        control_plane.set_error("list_firewall_rules")
        assert "Could not list" in firewall_inventory(settings, adapters).error


# ── provision ────────────────────────────────────────────────────────


class TestProvision:
    def test_default_vm_name(self):
        assert default_vm_name("proj", now=1700000000) == "proj-easygce-1700000000"

    def test_provision_from_nothing(self, settings, adapters, control_plane, shell):
        adapters.runner = RecordingRunner()
        control_plane.hosts.clear()
        settings = settings.model_copy(update={"vm_name": "fresh-vm"})

        result = provision_vm(settings, adapters=adapters, audit=False, sleep=lambda s: None)

        assert result.error is None
        assert result.exit_code == 0
        assert result.report.clean
        assert result.target.name == "fresh-vm"
        assert result.target.address
        assert result.ssh_ready
        assert control_plane.created_specs[0].zone == settings.zone
        assert shell.ran("SSH connection successful")

    def test_generated_name(self, settings, adapters, control_plane):
        adapters.runner = RecordingRunner()
        result = provision_vm(settings, adapters=adapters, audit=False, wait=False)
        assert result.vm_name.startswith(f"{settings.project}-easygce-")
        assert control_plane.created_specs[0].name == result.vm_name

    def test_incomplete(self, settings, adapters, control_plane):
        adapters.runner = RecordingRunner()
        control_plane.set_error("create_host", "quota exceeded")
        result = provision_vm(settings, adapters=adapters, audit=False)
        assert result.error.startswith("Provisioning incomplete: ")
        assert "vm-instance" in result.error
        assert result.exit_code == 1

    def test_ssh_never_ready(self, settings, adapters, shell):
        adapters.runner = RecordingRunner()
        shell.unreachable = True
        result = provision_vm(settings, adapters=adapters, audit=False, sleep=lambda s: None)
        assert not result.ssh_ready
        assert "SSH never became ready" in result.error

    def test_wait_for_ssh_retries(self, adapters, target, shell):
        attempts = []

        def sleep(seconds):
            attempts.append(seconds)
            shell.unreachable = False

        shell.unreachable = True
        assert wait_for_ssh(adapters, target, attempts=3, interval=2, sleep=sleep)
        assert attempts == [2]


# ── connect ──────────────────────────────────────────────────────────


class TestConnectHelpers:
    def test_urls(self):
        assert connection_url("web", "1.2.3.4") == "http://1.2.3.4:6901"
        assert connection_url("vnc", "1.2.3.4") == "vnc://1.2.3.4:5901"
        assert connection_url("rdp", "1.2.3.4").startswith("rdp://")

    def test_ports(self):
        assert CONNECTION_PORTS == {"rdp": 3389, "vnc": 5901, "web": 6901}

    def test_connection_summary(self, settings):
        lines = dict(connection_summary(settings, "1.2.3.4"))
        assert list(lines) == ["SSH", "VNC", "RDP", "Web"]
        assert lines["SSH"] == f"ssh -i {settings.ssh.key_path} tester@1.2.3.4"
        assert lines["VNC"] == "open vnc://1.2.3.4:5901 (password: ubuntu123)"
        assert lines["RDP"] == "1.2.3.4:3389 (username: ubuntu, password: ubuntu123)"

    def test_rdp_file(self):
        content = rdp_file_content("1.2.3.4", "ubuntu")
        assert "full address:s:1.2.3.4:3389" in content
        assert "username:s:ubuntu" in content

    def test_launch_vnc(self, settings, adapters):
        adapters.runner = RecordingRunner()
        launch_client("vnc", "1.2.3.4", settings, adapters)
        assert adapters.runner.calls[0][-1] == "vnc://1.2.3.4:5901"

    def test_launch_rdp_uses_a_scoped_file(self, settings, adapters, monkeypatch):
        monkeypatch.setattr(sys, "platform", "darwin")
        adapters.runner = RecordingRunner()
        launch_client("rdp", "1.2.3.4", settings, adapters)
        argv = adapters.runner.calls[0]
        assert argv[:4] == ["open", "-W", "-a", "Microsoft Remote Desktop"]
        assert argv[-1].endswith(".rdp")
        assert not Path(argv[-1]).exists()

    def test_launch_failure(self, settings, adapters):
        adapters.runner = RecordingRunner(CommandResult.failure("open", stderr="no handler"))
        with pytest.raises(CommandError, match="no handler"):
            launch_client("web", "1.2.3.4", settings, adapters)


class TestConnect:
    def test_running_vm(self, settings, adapters):
        adapters.runner = RecordingRunner()
        result = connect(settings, "web", adapters=adapters, port_check=lambda a, p: True)
        assert result.error is None
        assert result.port == 6901
        assert result.url == "http://198.51.100.7:6901"
        assert result.launched
        assert not result.started

    def test_stopped_vm_is_started(self, settings, adapters, control_plane, host):
        host.status = "TERMINATED"
        host.address = None
        result = connect(
            settings,
            "vnc",
            adapters=adapters,
            launch=False,
            sleep=lambda s: None,
            port_check=lambda a, p: True,
        )
        assert result.started
        assert result.target.status == "RUNNING"
        assert result.target.address == "203.0.113.10"
        assert control_plane.calls("start_host")

    def test_port_closed(self, settings, adapters):
        result = connect(settings, "vnc", adapters=adapters, launch=False, port_check=lambda a, p: False)
        assert "Port 5901 is not accessible" in result.error
        assert result.exit_code == 1

    def test_invalid_type(self, settings, adapters):
        result = connect(settings, "ftp", adapters=adapters)
        assert "Invalid connection type" in result.error

    def test_no_vm(self, settings, adapters, control_plane):
        control_plane.hosts.clear()
        result = connect(settings, "vnc", adapters=adapters, launch=False)
        assert "No instance" in result.error
