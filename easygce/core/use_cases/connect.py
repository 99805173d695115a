"""
Connect use case — open a remote-desktop client to the VM.

Resolves the VM, starts it if it is stopped (and re-resolves it so the
new address is used), checks the service port answers, then launches
the matching client: Microsoft Remote Desktop for RDP, the system VNC
handler for VNC, or the browser for noVNC.
"""

from __future__ import annotations

import logging
import sys
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from easygce.adapters.registry import AdapterSet, build_adapters
from easygce.core.catalog import templates
from easygce.core.catalog.remote_desktop import tcp_connect
from easygce.core.engine.resolver import ensure_running, resolve_target
from easygce.core.errors import CommandError, ControlPlaneError, NotFound
from easygce.core.models.settings import Settings
from easygce.core.models.target import Target

logger = logging.getLogger(__name__)

CONNECTION_PORTS: dict[str, int] = {"rdp": 3389, "vnc": 5901, "web": 6901}

RDP_APP = "Microsoft Remote Desktop"
RDP_APP_PATH = Path("/Applications/Microsoft Remote Desktop.app")
RDP_APP_STORE_URL = "https://apps.apple.com/us/app/microsoft-remote-desktop/id1295203466"

# ``open -W`` blocks for the whole session; the .rdp file lives until then
RDP_SESSION_TIMEOUT = 12 * 60 * 60


@dataclass
class ConnectResult:
    """Result of a connection attempt."""

    connection_type: str = ""
    target: Target | None = None
    port: int = 0
    url: str = ""
    started: bool = False
    port_open: bool = False
    launched: bool = False
    error: str | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.error else 0

    def to_dict(self) -> dict:
        result: dict = {"connection_type": self.connection_type}
        if self.target:
            result["target"] = self.target.model_dump(mode="json")
        result.update(
            port=self.port,
            url=self.url,
            started=self.started,
            port_open=self.port_open,
            launched=self.launched,
        )
        if self.error:
            result["error"] = self.error
        return result


def connection_url(connection_type: str, address: str) -> str:
    port = CONNECTION_PORTS[connection_type]
    if connection_type == "web":
        return f"http://{address}:{port}"
    if connection_type == "vnc":
        return f"vnc://{address}:{port}"
    return f"rdp://full%20address=s:{address}:{port}"


def connection_summary(settings: Settings, address: str) -> list[tuple[str, str]]:
    """Ready-to-use connection lines for a desktop VM at ``address``."""
    desktop = settings.desktop
    password = desktop.password
    return [
        ("SSH", f"ssh -i {settings.ssh.key_path} {settings.ssh.user}@{address}"),
        ("VNC", f"open {connection_url('vnc', address)} (password: {password})"),
        (
            "RDP",
            f"{address}:{CONNECTION_PORTS['rdp']} "
            f"(username: {desktop.username}, password: {password})",
        ),
        ("Web", f"{connection_url('web', address)} (password: {password})"),
    ]


def rdp_file_content(address: str, username: str, port: int = 3389) -> str:
    """The .rdp connection file for Microsoft Remote Desktop."""
    return templates.RDP_FILE.format(address=address, port=port, username=username)


def _opener() -> str:
    return "open" if sys.platform == "darwin" else "xdg-open"


def launch_client(
    connection_type: str,
    address: str,
    settings: Settings,
    adapters: AdapterSet,
) -> None:
    """Open the client for ``connection_type``.

    Raises:
        CommandError: The client could not be started.
    """
    runner = adapters.runner

    if connection_type != "rdp":
        url = connection_url(connection_type, address)
        result = runner.run([_opener(), url])
        if not result.ok:
            raise CommandError(f"Could not open {url}: {result.stderr.strip()}")
        return

    content = rdp_file_content(address, settings.desktop.username, CONNECTION_PORTS["rdp"])
    with tempfile.TemporaryDirectory(prefix="easygce-") as tmp:
        rdp_file = Path(tmp) / "easygce_connection.rdp"
        rdp_file.write_text(content, encoding="utf-8")
        if sys.platform == "darwin":
            argv = ["open", "-W", "-a", RDP_APP, str(rdp_file)]
        else:
            argv = ["xdg-open", str(rdp_file)]
        result = runner.run(argv, timeout=RDP_SESSION_TIMEOUT)
    if not result.ok:
        raise CommandError(f"Could not open {RDP_APP}: {result.stderr.strip()}")


def connect(
    settings: Settings,
    connection_type: str = "vnc",
    adapters: AdapterSet | None = None,
    mock_mode: bool = False,
    launch: bool = True,
    sleep: Callable[[float], None] = time.sleep,
    port_check: Callable[[str | None, int], bool] = tcp_connect,
) -> ConnectResult:
    """Resolve (and if needed start) the VM, test the port, open the client."""
    result = ConnectResult(connection_type=connection_type)

    if connection_type not in CONNECTION_PORTS:
        result.error = "Invalid connection type. Must be rdp, vnc, or web"
        return result
    if not settings.project:
        result.error = "GCE project name is required (-p, EASYGCE_PROJECT or easygce.yml)"
        return result

    if launch and connection_type == "rdp" and sys.platform == "darwin" and not RDP_APP_PATH.is_dir():
        result.error = (
            f"{RDP_APP} is not installed. Install it from the Mac App Store: "
            f"{RDP_APP_STORE_URL} (or connect with -t vnc / -t web)"
        )
        return result

    if adapters is None:
        adapters = build_adapters(settings, mock_mode=mock_mode)
    cp = adapters.control_plane

    try:
        target = resolve_target(
            cp,
            settings.project,
            name=settings.vm_name,
            zone=settings.zone,
            name_fragment=settings.name_fragment,
        )
        target, result.started = ensure_running(
            cp,
            target,
            attempts=settings.provision.wait_attempts,
            interval=settings.provision.wait_interval,
            sleep=sleep,
        )
    except (NotFound, ControlPlaneError) as e:
        result.error = str(e)
        return result

    result.target = target
    if not target.address:
        result.error = f"Could not retrieve an IP address for {target.label}"
        return result

    result.port = CONNECTION_PORTS[connection_type]
    result.url = connection_url(connection_type, target.address)

    result.port_open = port_check(target.address, result.port)
    if not result.port_open:
        result.error = (
            f"Port {result.port} is not accessible on {target.address} "
            f"(run easygce diagnose -f to find out why)"
        )
        return result

    if launch:
        try:
            launch_client(connection_type, target.address, settings, adapters)
        except CommandError as e:
            result.error = str(e)
            return result
        result.launched = True

    return result
