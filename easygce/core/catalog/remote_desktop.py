"""
Remote-desktop suite — the full diagnosis of the desktop VM.

Order matters only for readability of the report: VM state, firewall,
ssh, the desktop account, XFCE, XRDP, TightVNC, noVNC, and finally a
TCP connect from this machine to each desktop port.
"""

from __future__ import annotations

import logging
import shlex
import socket

from easygce.core.catalog import templates
from easygce.core.catalog.firewall import port_check
from easygce.core.engine.steps import (
    CheckContext,
    ControlPlaneCall,
    LocalCall,
    RemoteCommand,
    RemoteScript,
    as_user,
    write_remote_file,
)
from easygce.core.models.check import CapabilityCheck
from easygce.core.models.settings import DesktopSettings, Settings

logger = logging.getLogger(__name__)

APT_INSTALL = "sudo DEBIAN_FRONTEND=noninteractive apt-get -y install"
PORT_TIMEOUT = 5.0


# ── VM ──────────────────────────────────────────────────────────


def _vm_running(ctx: CheckContext) -> bool:
    host = ctx.control_plane.describe_host(ctx.target.name, ctx.target.zone)
    logger.debug("%s status %s, address %s", host.name, host.status, host.address)
    return host.running


def _start_vm(ctx: CheckContext) -> None:
    ctx.control_plane.start_host(ctx.target.name, ctx.target.zone)


def vm_running_check() -> CapabilityCheck:
    return CapabilityCheck(
        name="vm-running",
        description="VM instance is RUNNING",
        category="vm",
        probe=ControlPlaneCall(_vm_running, label="describe instance status"),
        fix=ControlPlaneCall(_start_vm, label="start instance"),
    )


# ── Remote shell ────────────────────────────────────────────────


def ssh_check() -> CapabilityCheck:
    return CapabilityCheck(
        name="ssh-reachable",
        description="SSH session can be established",
        category="ssh",
        probe=RemoteCommand("echo 'SSH connection successful'", label="ssh echo"),
    )


def account_check(desktop: DesktopSettings) -> CapabilityCheck:
    user = shlex.quote(desktop.username)
    credentials = shlex.quote(f"{desktop.username}:{desktop.password}")
    return CapabilityCheck(
        name=f"account-{desktop.username}",
        description=f"Desktop user {desktop.username} exists",
        category="accounts",
        probe=RemoteCommand(f"id {user} > /dev/null 2>&1"),
        fix=RemoteScript(
            (
                f"id {user} > /dev/null 2>&1 || sudo useradd -m -s /bin/bash {user}",
                f"echo {credentials} | sudo chpasswd",
                f"sudo usermod -aG sudo {user}",
            ),
            label=f"create user {desktop.username}, set password, add to sudo",
        ),
    )


def xfce_check() -> CapabilityCheck:
    return CapabilityCheck(
        name="desktop-xfce",
        description="XFCE desktop environment is installed",
        category="desktop",
        probe=RemoteCommand("dpkg -s xfce4 > /dev/null 2>&1"),
        fix=RemoteCommand(
            f"sudo apt-get update && {APT_INSTALL} xfce4 xfce4-goodies",
            label="apt-get install xfce4 xfce4-goodies",
        ),
    )


def xrdp_check(desktop: DesktopSettings) -> CapabilityCheck:
    xsession = f"{desktop.home}/.xsession"
    return CapabilityCheck(
        name="xrdp-active",
        description="XRDP service is active",
        category="desktop",
        probe=RemoteCommand("systemctl is-active --quiet xrdp"),
        fix=RemoteScript(
            (
                f"dpkg -s xrdp > /dev/null 2>&1 || {APT_INSTALL} xrdp",
                as_user(
                    desktop.username,
                    f"[ -f {xsession} ] || echo xfce4-session > {xsession}",
                ),
                "sudo systemctl enable xrdp",
                "sudo systemctl start xrdp",
            ),
            label="install, enable and start xrdp",
        ),
    )


def vnc_password_command(desktop: DesktopSettings) -> str:
    """Store the VNC password without leaving a world-readable temp file."""
    passwd = f"{desktop.home}/.vnc/passwd"
    user = desktop.username
    return (
        'tmp=$(mktemp) && trap \'rm -f "$tmp"\' EXIT && '
        f'echo {shlex.quote(desktop.password)} | vncpasswd -f > "$tmp" && '
        f'sudo install -o {user} -g {user} -m 600 "$tmp" {passwd}'
    )


def tightvnc_check(desktop: DesktopSettings) -> CapabilityCheck:
    user = shlex.quote(desktop.username)
    service = templates.TIGHTVNC_SERVICE.format(
        display=desktop.vnc_display,
        geometry=desktop.vnc_geometry,
        user=desktop.username,
    )
    return CapabilityCheck(
        name="tightvnc-active",
        description=f"VNC server (TightVNC or TigerVNC) serves :{desktop.vnc_display}",
        category="desktop",
        # the clipboard suite replaces TightVNC with tigervnc@N; either one counts
        probe=RemoteCommand(
            "systemctl is-active --quiet tightvncserver || "
            f"systemctl is-active --quiet tigervnc@{desktop.vnc_display}",
            label="tightvncserver or tigervnc is active",
        ),
        fix=RemoteScript(
            (
                f"dpkg -s tightvncserver > /dev/null 2>&1 || {APT_INSTALL} tightvncserver",
                f"id {user} > /dev/null 2>&1 || sudo useradd -m -s /bin/bash {user}",
                as_user(desktop.username, f"mkdir -p {desktop.home}/.vnc"),
                vnc_password_command(desktop),
                write_remote_file(
                    f"{desktop.home}/.vnc/xstartup",
                    templates.VNC_XSTARTUP,
                    mode="755",
                    owner=desktop.username,
                ),
                write_remote_file("/lib/systemd/system/tightvncserver.service", service),
                "sudo systemctl daemon-reload",
                "sudo systemctl enable tightvncserver",
                "sudo systemctl start tightvncserver",
            ),
            label="install and configure tightvncserver as a systemd service",
        ),
    )


def novnc_check() -> CapabilityCheck:
    # Bracketed first letter keeps pgrep from matching this command line
    return CapabilityCheck(
        name="novnc-running",
        description="Web VNC (noVNC) is listening on 6901",
        category="desktop",
        probe=RemoteCommand("pgrep -f '[p]ython.*6901' > /dev/null"),
    )


# ── Reachability from here ──────────────────────────────────────


def tcp_connect(address: str | None, port: int, timeout: float = PORT_TIMEOUT) -> bool:
    """Whether a TCP connection to ``address:port`` succeeds."""
    if not address:
        return False
    try:
        with socket.create_connection((address, port), timeout=timeout):
            return True
    except OSError:
        return False


def _port_reachable(port: int):
    def probe(ctx: CheckContext) -> bool:
        return tcp_connect(ctx.target.address, port)

    return probe


def port_open_check(port: int) -> CapabilityCheck:
    return CapabilityCheck(
        name=f"port-open-{port}",
        description=f"tcp:{port} accepts connections from this machine",
        category="network",
        probe=LocalCall(_port_reachable(port), label=f"TCP connect to port {port}"),
    )


def build_remote_desktop_suite(settings: Settings) -> list[CapabilityCheck]:
    fw = settings.firewall
    desktop = settings.desktop
    return [
        vm_running_check(),
        *(port_check(settings, port, rule_prefix=fw.rule_prefix) for port in fw.desktop_ports),
        ssh_check(),
        account_check(desktop),
        xfce_check(),
        xrdp_check(desktop),
        tightvnc_check(desktop),
        novnc_check(),
        *(port_open_check(port) for port in fw.desktop_ports),
    ]
