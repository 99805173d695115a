"""
Settings — the explicit configuration passed into every layer.

Loaded from easygce.yml (see ``easygce.core.config.loader``), then
overlaid with environment variables and CLI flags. Nothing reads
process-wide defaults after this object is built.
"""

from __future__ import annotations

import getpass
from pathlib import Path

from pydantic import BaseModel, Field

# Ports the remote-desktop stack needs (SSH, RDP, VNC :1, noVNC).
DESKTOP_PORTS: list[int] = [22, 3389, 5901, 6901]

# Ports the firewall audit expects, with what they are for.
REQUIRED_PORTS: dict[int, str] = {
    22: "SSH - Secure Shell access",
    80: "HTTP - Web server access",
    443: "HTTPS - Secure web server access",
    3389: "RDP - Remote Desktop Protocol (Windows/XRDP)",
    5900: "VNC - Virtual Network Computing base port",
    5901: "VNC - TightVNC Display :1 (macOS Screen Sharing)",
    5902: "VNC - TightVNC Display :2 (optional)",
    6901: "noVNC - Web-based VNC client",
}

DEFAULT_RULES: list[str] = [
    "default-allow-ssh",
    "default-allow-http",
    "default-allow-https",
    "default-allow-internal",
    "default-allow-rdp",
]


def _login_name() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "ubuntu"


class SshSettings(BaseModel):
    """How to reach the target over ssh."""

    key_path: str = "~/.ssh/easygce_key"
    user: str = Field(default_factory=_login_name)
    connect_timeout: int = 10           # seconds, session establishment
    command_timeout: int = 1800         # seconds, whole ssh process
    strict_host_key_checking: bool = False
    circuit_breaker_threshold: int = 0  # 0 = disabled

    @property
    def key_file(self) -> Path:
        return Path(self.key_path).expanduser()

    @property
    def public_key_file(self) -> Path:
        return Path(f"{self.key_file}.pub")


class DesktopSettings(BaseModel):
    """The desktop account and VNC display configured on the VM."""

    username: str = "ubuntu"
    password: str = "ubuntu123"
    vnc_display: int = 1
    vnc_geometry: str = "1024x768"
    clipboard_geometry: str = "1280x1024"

    @property
    def home(self) -> str:
        return f"/home/{self.username}"


class FirewallSettings(BaseModel):
    """VPC firewall expectations."""

    network: str = "default"
    source_range: str = "0.0.0.0/0"
    priority: int = 1000
    rule_prefix: str = "easygce-inbound-tcp-"
    audit_rule_prefix: str = "easygce-allow-"
    desktop_ports: list[int] = Field(default_factory=lambda: list(DESKTOP_PORTS))
    required_ports: dict[int, str] = Field(default_factory=lambda: dict(REQUIRED_PORTS))
    default_rules: list[str] = Field(default_factory=lambda: list(DEFAULT_RULES))


class ProvisionSettings(BaseModel):
    """VM and service-account creation defaults."""

    service_account: str = "easygce-service-account"
    service_account_display_name: str = "EasyGCE Service Account"
    service_account_description: str = "Service account for EasyGCE VM operations"
    roles: list[str] = Field(
        default_factory=lambda: [
            "roles/compute.instanceAdmin",
            "roles/compute.securityAdmin",
        ]
    )
    machine_type: str = "n1-standard-2"
    image_project: str = "ubuntu-os-cloud"
    image: str = "ubuntu-2004-focal-v20231101"
    boot_disk_size: str = "30GB"
    boot_disk_type: str = "pd-ssd"
    boot_disk_auto_delete: bool = False
    open_ports: list[int] = Field(default_factory=lambda: [22, 80, 443, 3389, 5901, 6901])
    wait_attempts: int = 30
    wait_interval: float = 10.0


class DownloadsSettings(BaseModel):
    """Cloud Storage backed Downloads folder."""

    bucket: str | None = None           # default: <project>-easygce-downloads
    path: str | None = None             # default: <desktop home>/Downloads


class Settings(BaseModel):
    """Root configuration for one invocation."""

    project: str = ""
    zone: str = "us-east1-c"
    vm_name: str | None = None
    name_fragment: str = "easygce"
    state_dir: str = "~/.easygce"

    ssh: SshSettings = Field(default_factory=SshSettings)
    desktop: DesktopSettings = Field(default_factory=DesktopSettings)
    firewall: FirewallSettings = Field(default_factory=FirewallSettings)
    provision: ProvisionSettings = Field(default_factory=ProvisionSettings)
    downloads: DownloadsSettings = Field(default_factory=DownloadsSettings)

    @property
    def state_path(self) -> Path:
        return Path(self.state_dir).expanduser()

    @property
    def bucket_name(self) -> str:
        return self.downloads.bucket or f"{self.project}-easygce-downloads"

    @property
    def downloads_path(self) -> str:
        return self.downloads.path or f"{self.desktop.home}/Downloads"

    @property
    def service_account_email(self) -> str:
        return f"{self.provision.service_account}@{self.project}.iam.gserviceaccount.com"

    @property
    def region(self) -> str:
        """Region derived from the zone (us-east1-c → us-east1)."""
        if self.zone.count("-") >= 2:
            return self.zone.rsplit("-", 1)[0]
        return self.zone
