"""Clipboard suite — bidirectional clipboard over RDP and VNC."""

from __future__ import annotations

from easygce.core.catalog import templates
from easygce.core.catalog.remote_desktop import APT_INSTALL, vnc_password_command
from easygce.core.engine.steps import (
    HEREDOC_MARKER,
    RemoteCommand,
    RemoteScript,
    as_user,
    write_remote_file,
)
from easygce.core.models.check import CapabilityCheck
from easygce.core.models.settings import Settings

CATEGORY = "clipboard"

CLIPBOARD_PACKAGES = "xsel xclip autocutsel parcellite tigervnc-tools"
XRDP_INI = "/etc/xrdp/xrdp.ini"


def build_clipboard_suite(settings: Settings) -> list[CapabilityCheck]:
    desktop = settings.desktop
    xstartup = f"{desktop.home}/.vnc/xstartup"
    xsession = f"{desktop.home}/.xsession"
    display = desktop.vnc_display
    service = templates.TIGERVNC_SERVICE.format(
        user=desktop.username,
        geometry=desktop.clipboard_geometry,
    )

    return [
        CapabilityCheck(
            name="clipboard-utilities",
            description="Clipboard tools (autocutsel, parcellite, xclip, xsel) installed",
            category=CATEGORY,
            probe=RemoteCommand(f"dpkg -s {CLIPBOARD_PACKAGES} > /dev/null 2>&1"),
            fix=RemoteCommand(
                f"sudo apt-get update && {APT_INSTALL} {CLIPBOARD_PACKAGES}",
                label=f"apt-get install {CLIPBOARD_PACKAGES}",
            ),
        ),
        CapabilityCheck(
            name="vnc-clipboard-xstartup",
            description="VNC session starts clipboard synchronisation",
            category=CATEGORY,
            probe=RemoteCommand(f"grep -q autocutsel {xstartup}"),
            fix=RemoteScript(
                (
                    as_user(desktop.username, f"mkdir -p {desktop.home}/.vnc"),
                    write_remote_file(
                        xstartup,
                        templates.VNC_XSTARTUP_CLIPBOARD,
                        mode="755",
                        owner=desktop.username,
                    ),
                ),
                label=f"write {xstartup}",
            ),
        ),
        CapabilityCheck(
            name="xrdp-clipboard",
            description="XRDP has clipboard redirection enabled",
            category=CATEGORY,
            probe=RemoteCommand(f"grep -q '^clipboard=true' {XRDP_INI}"),
            fix=RemoteScript(
                (
                    f"grep -q '^clipboard=true' {XRDP_INI} || "
                    f"sudo tee -a {XRDP_INI} > /dev/null << '{HEREDOC_MARKER}'\n"
                    f"{templates.XRDP_CLIPBOARD_INI}{HEREDOC_MARKER}",
                    "sudo systemctl restart xrdp",
                ),
                label=f"append clipboard=true to {XRDP_INI}",
            ),
        ),
        CapabilityCheck(
            name="xsession-clipboard",
            description="RDP session starts clipboard synchronisation",
            category=CATEGORY,
            probe=RemoteCommand(f"grep -q autocutsel {xsession}"),
            fix=RemoteScript(
                (
                    write_remote_file(
                        xsession,
                        templates.XSESSION_CLIPBOARD,
                        mode="755",
                        owner=desktop.username,
                    ),
                    "sudo systemctl restart xrdp",
                ),
                label=f"write {xsession}",
            ),
        ),
        CapabilityCheck(
            name="tigervnc-active",
            description=f"TigerVNC serves display :{display}",
            category=CATEGORY,
            probe=RemoteCommand(f"systemctl is-active --quiet tigervnc@{display}"),
            fix=RemoteScript(
                (
                    f"{APT_INSTALL} tigervnc-standalone-server tigervnc-common",
                    as_user(desktop.username, f"mkdir -p {desktop.home}/.vnc"),
                    vnc_password_command(desktop),
                    write_remote_file("/etc/systemd/system/tigervnc@.service", service),
                    "sudo systemctl daemon-reload",
                    "sudo systemctl stop tightvncserver || true",
                    "sudo systemctl disable tightvncserver || true",
                    f"sudo systemctl enable tigervnc@{display}",
                    f"sudo systemctl start tigervnc@{display}",
                ),
                label="replace TightVNC with a TigerVNC systemd service",
            ),
        ),
    ]
