"""
Tests for CLI commands — global options, suite commands, provision, connect, history.
"""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from easygce.main import cli


@pytest.fixture
def config(tmp_path: Path) -> Path:
    """A config pointing state and keys into tmp_path."""
    keys = tmp_path / "keys"
    keys.mkdir()
    (keys / "easygce_key").write_text("PRIVATE")
    (keys / "easygce_key.pub").write_text("ssh-rsa AAAAB3 test\n")
    content = textwrap.dedent(f"""\
        easygce:
          project: demo-project
          state_dir: {tmp_path / "state"}
          ssh:
            key_path: {keys / "easygce_key"}
            user: tester
          provision:
            wait_attempts: 2
            wait_interval: 0
    """)
    path = tmp_path / "easygce.yml"
    path.write_text(content)
    return path


@pytest.fixture
def closed_ports(monkeypatch):
    monkeypatch.setattr(
        "easygce.core.catalog.remote_desktop.tcp_connect", lambda address, port: False
    )


def _invoke(config: Path, *args: str):
    return CliRunner().invoke(cli, ["--config", str(config), *args])


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "EasyGCE" in result.output
        for command in ("diagnose", "firewall", "clipboard", "provision", "connect", "history"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_config(self, tmp_path: Path):
        path = tmp_path / "easygce.yml"
        path.write_text("project: [oops\n")
        result = _invoke(path, "chrome", "--mock")
        assert result.exit_code == 1
        assert "Invalid YAML" in result.output

    def test_missing_project(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(cli, ["chrome", "--mock"])
        assert result.exit_code == 1
        assert "project name is required" in result.output

    def test_usage_error(self, config: Path):
        result = _invoke(config, "connect", "--type", "ftp")
        assert result.exit_code == 2


class TestSuiteCommands:
    def test_chrome_mock(self, config: Path):
        result = _invoke(config, "chrome", "--mock")
        assert result.exit_code == 0
        assert "chrome-installed" in result.output
        assert "Result: 3/3 present" in result.output

    def test_chrome_json(self, config: Path):
        result = _invoke(config, "chrome", "--mock", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["suite"] == "chrome"
        assert data["report"]["auto_fix"] is True
        assert [r["name"] for r in data["report"]["results"]] == [
            "chrome-installed",
            "chrome-policy",
            "chrome-shortcut",
        ]

    def test_clipboard_check_only(self, config: Path):
        result = _invoke(config, "clipboard", "--mock", "--check-only", "--json")
        data = json.loads(result.stdout)
        assert data["report"]["auto_fix"] is False
        assert result.exit_code == 0

    def test_downloads_bucket_option(self, config: Path):
        result = _invoke(config, "downloads", "--mock", "--bucket", "my-bucket", "--json")
        data = json.loads(result.stdout)
        gcs = data["report"]["results"][0]
        assert gcs["name"] == "gcs-bucket"
        assert "my-bucket" in gcs["description"]

    def test_diagnose_reports_gaps(self, config: Path, closed_ports):
        result = _invoke(config, "diagnose", "--mock")
        assert result.exit_code == 1
        assert "✓ vm-running" in result.output
        assert "✗ firewall-tcp-3389" in result.output
        assert "✗ port-open-3389" in result.output
        assert "ssh -i " in result.output
        assert "tester@203.0.113.10" in result.output
        assert "http://203.0.113.10:6901 (password: ubuntu123)" in result.output
        assert "Re-run with fixes: easygce diagnose -p demo-project" in result.output

    def test_diagnose_named_vm(self, config: Path, closed_ports):
        result = _invoke(config, "diagnose", "--mock", "-n", "desk", "--json")
        data = json.loads(result.stdout)
        assert data["target"]["name"] == "desk"
        assert data["target"]["address"] == "203.0.113.10"

    def test_firewall_fix(self, config: Path):
        result = _invoke(config, "firewall", "--mock", "--fix", "--json")
        data = json.loads(result.stdout)
        created = [r for r in data["report"]["results"] if r["remediation"] == "succeeded"]
        assert len(created) == 8
        # default rules are audit-only, so the run is still not clean
        assert result.exit_code == 1

    def test_firewall_verbose_lists_rules(self, config: Path):
        result = CliRunner().invoke(
            cli, ["--config", str(config), "-v", "firewall", "--mock", "--fix"]
        )
        assert "Firewall rules:" in result.output
        assert "easygce-allow-22" in result.output

    def test_no_audit(self, config: Path, tmp_path: Path):
        _invoke(config, "chrome", "--mock", "--no-audit")
        assert not (tmp_path / "state" / "audit.ndjson").exists()


class TestProvisionCommand:
    def test_provision_mock(self, config: Path):
        result = _invoke(config, "provision", "--mock", "-n", "desk", "-m", "e2-standard-4")
        assert result.exit_code == 0, result.output
        assert "desk is ready" in result.output

    def test_provision_json(self, config: Path):
        result = _invoke(config, "provision", "--mock", "-n", "desk", "--json", "--no-wait")
        data = json.loads(result.stdout)
        assert data["vm_name"] == "desk"
        assert data["report"]["suite"] == "provision"


class TestConnectCommand:
    def test_connect_mock(self, config: Path):
        result = _invoke(config, "connect", "--mock", "-t", "web")
        assert result.exit_code == 0
        assert "Port 6901 is open" in result.output
        assert "http://203.0.113.10:6901" in result.output

    def test_connect_json(self, config: Path):
        result = _invoke(config, "connect", "--mock", "--json")
        data = json.loads(result.stdout)
        assert data["connection_type"] == "vnc"
        assert data["port_open"] is True
        assert data["launched"] is False


class TestIntrospection:
    def test_suites(self, config: Path):
        result = _invoke(config, "suites")
        assert result.exit_code == 0
        assert "remote-desktop" in result.output
        assert "tigervnc-active" in result.output

    def test_suites_json(self, config: Path):
        result = _invoke(config, "suites", "--json")
        data = json.loads(result.stdout)
        by_name = {s["name"]: s for s in data}
        assert by_name["firewall"]["host_scoped"] is False
        chrome = by_name["chrome"]["checks"][0]
        assert chrome["probe"] == "command -v google-chrome > /dev/null"

    def test_history(self, config: Path):
        _invoke(config, "chrome", "--mock")
        _invoke(config, "clipboard", "--mock")
        result = _invoke(config, "history", "--json")
        data = json.loads(result.stdout)
        assert [e["suite"] for e in data] == ["chrome", "clipboard"]

        result = _invoke(config, "history", "-n", "1")
        assert "clipboard" in result.output
        assert "chrome " not in result.output

    def test_empty_history(self, config: Path):
        result = _invoke(config, "history")
        assert result.exit_code == 0
        assert "No runs recorded yet." in result.output
