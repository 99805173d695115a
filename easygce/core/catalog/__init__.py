"""
Check catalog — the statically enumerated suites.

Each suite is a fixed, ordered list of capability checks built from
Settings. Nothing is discovered at runtime:

    from easygce.core.catalog import get_suite
    checks = get_suite("remote-desktop").build(settings)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from easygce.core.catalog.chrome import build_chrome_suite
from easygce.core.catalog.clipboard import build_clipboard_suite
from easygce.core.catalog.downloads import build_downloads_suite
from easygce.core.catalog.firewall import build_firewall_suite, covering_rules
from easygce.core.catalog.provision import build_provision_suite
from easygce.core.catalog.remote_desktop import build_remote_desktop_suite
from easygce.core.models.check import CapabilityCheck
from easygce.core.models.settings import Settings


@dataclass(frozen=True)
class Suite:
    """A named list of checks.

    ``host_scoped`` suites resolve a VM first; the others run against
    the project. ``fix_by_default`` suites apply fixes unless the user
    asks for check-only.
    """

    name: str
    description: str
    build: Callable[[Settings], list[CapabilityCheck]]
    host_scoped: bool = True
    fix_by_default: bool = False


SUITES: dict[str, Suite] = {
    suite.name: suite
    for suite in (
        Suite(
            "remote-desktop",
            "Diagnose the VM, firewall, desktop and remote-desktop servers",
            build_remote_desktop_suite,
        ),
        Suite(
            "firewall",
            "Audit VPC firewall rules for the remote-desktop ports",
            build_firewall_suite,
            host_scoped=False,
        ),
        Suite(
            "clipboard",
            "Enable clipboard sharing over RDP and VNC",
            build_clipboard_suite,
            fix_by_default=True,
        ),
        Suite(
            "downloads",
            "Mount a Cloud Storage bucket as the Downloads folder",
            build_downloads_suite,
            fix_by_default=True,
        ),
        Suite(
            "chrome",
            "Install Google Chrome for the desktop user",
            build_chrome_suite,
            fix_by_default=True,
        ),
        Suite(
            "provision",
            "Create the SSH key, service account, firewall rules and VM",
            build_provision_suite,
            host_scoped=False,
            fix_by_default=True,
        ),
    )
}


def get_suite(name: str) -> Suite | None:
    """Look up a suite by name."""
    return SUITES.get(name)


__all__ = [
    "SUITES",
    "Suite",
    "covering_rules",
    "get_suite",
]
