"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from easygce.adapters.mock import MockControlPlane, MockRemoteShell
from easygce.adapters.registry import AdapterSet
from easygce.adapters.shell.command import LocalCommandRunner
from easygce.core.engine.steps import CheckContext
from easygce.core.models.cloud import HostRecord
from easygce.core.models.settings import Settings
from easygce.core.models.target import Target

PROJECT = "demo-project"
ZONE = "us-east1-c"
VM_NAME = "demo-easygce-vm"
ADDRESS = "198.51.100.7"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's EASYGCE_* environment out of the tests."""
    for var in (
        "EASYGCE_PROJECT",
        "EASYGCE_ZONE",
        "EASYGCE_VM_NAME",
        "EASYGCE_SSH_KEY",
        "EASYGCE_SSH_USER",
        "EASYGCE_STATE_DIR",
        "EASYGCE_LOG_LEVEL",
        "EASYGCE_LOG_FILE",
        "EASYGCE_LOG_FILE_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def settings(tmp_path: Path, tmp_state_dir: Path) -> Settings:
    """Settings for a demo project with keys and state under tmp_path."""
    return Settings.model_validate({
        "project": PROJECT,
        "zone": ZONE,
        "state_dir": str(tmp_state_dir),
        "ssh": {"key_path": str(tmp_path / "keys" / "easygce_key"), "user": "tester"},
        "provision": {"wait_attempts": 3, "wait_interval": 0},
    })


@pytest.fixture
def host() -> HostRecord:
    return HostRecord(
        name=VM_NAME,
        zone=ZONE,
        status="RUNNING",
        address=ADDRESS,
        service_account=f"easygce-service-account@{PROJECT}.iam.gserviceaccount.com",
    )


@pytest.fixture
def target(host: HostRecord) -> Target:
    return Target.from_host(PROJECT, host)


@pytest.fixture
def shell() -> MockRemoteShell:
    return MockRemoteShell()


@pytest.fixture
def control_plane(host: HostRecord) -> MockControlPlane:
    return MockControlPlane(hosts=[host])


@pytest.fixture
def adapters(control_plane: MockControlPlane, shell: MockRemoteShell) -> AdapterSet:
    return AdapterSet(
        control_plane=control_plane,
        shell=shell,
        runner=LocalCommandRunner(),
        mock=True,
    )


@pytest.fixture
def ctx(target, shell, control_plane, settings) -> CheckContext:
    return CheckContext(
        target=target,
        shell=shell,
        control_plane=control_plane,
        settings=settings,
    )
