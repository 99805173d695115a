"""
Target resolver — pick exactly one host to operate on.

Resolution order:

    1. An explicit name: describe it in the explicit zone. A host the
       control plane cannot find raises NotFound; a stopped host still
       resolves (its address may be empty).
    2. Otherwise the first listed host whose name contains the naming
       fragment (case-insensitive).
    3. Otherwise the first RUNNING host in the explicit zone.
    4. Otherwise NotFound.

Only read-only control-plane queries are issued. Listing order is the
control plane's own and is never re-sorted.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from easygce.adapters.base import ControlPlane
from easygce.core.errors import NotFound
from easygce.core.models.target import Target

logger = logging.getLogger(__name__)

DEFAULT_NAME_FRAGMENT = "easygce"


def resolve_target(
    control_plane: ControlPlane,
    project: str,
    name: str | None = None,
    zone: str | None = None,
    name_fragment: str = DEFAULT_NAME_FRAGMENT,
) -> Target:
    """Resolve the target host for a run.

    Args:
        control_plane: Where to look.
        project: GCP project id.
        name: Explicit host name, if the user gave one.
        zone: Explicit zone (required to describe an explicit name, and
            the zone searched for a RUNNING fallback host).
        name_fragment: Substring that marks hosts this tool manages.

    Returns:
        An immutable Target.

    Raises:
        NotFound: No host could be resolved.
        ControlPlaneError: The control plane could not be queried.
    """
    if name:
        if not zone:
            raise NotFound(f"Cannot look up instance {name}: no zone given")
        host = control_plane.describe_host(name, zone)
        logger.info("Resolved %s (%s, %s)", host.name, host.zone, host.status)
        return Target.from_host(project, host)

    hosts = control_plane.list_hosts()

    fragment = name_fragment.lower()
    if fragment:
        for host in hosts:
            if fragment in host.name.lower():
                logger.info("Resolved %s by name fragment %r", host.name, name_fragment)
                return Target.from_host(project, host)

    if zone:
        for host in hosts:
            if host.zone == zone and host.running:
                logger.info("Resolved %s as the running host in %s", host.name, zone)
                return Target.from_host(project, host)

    where = f" or running in {zone}" if zone else ""
    raise NotFound(
        f"No instance in project {project} matching {name_fragment!r}{where}"
    )


def wait_for_host(
    control_plane: ControlPlane,
    project: str,
    name: str,
    zone: str,
    attempts: int = 30,
    interval: float = 10.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Target:
    """Poll until ``name`` is RUNNING with an address.

    Returns:
        A freshly resolved Target.

    Raises:
        NotFound: The host never became ready within ``attempts`` polls.
    """
    for attempt in range(1, attempts + 1):
        try:
            host = control_plane.describe_host(name, zone)
        except NotFound:
            host = None

        if host is not None and host.running and host.address:
            logger.info("Instance %s is running at %s", name, host.address)
            return Target.from_host(project, host)

        status = host.status if host is not None else "absent"
        logger.info("Waiting for %s (%s), attempt %d/%d", name, status, attempt, attempts)
        if attempt < attempts:
            sleep(interval)

    raise NotFound(f"Instance {name} did not become ready after {attempts} attempts")


def ensure_running(
    control_plane: ControlPlane,
    target: Target,
    attempts: int = 30,
    interval: float = 10.0,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[Target, bool]:
    """Start a stopped host and re-resolve it once it has an address.

    The returned Target replaces the stale one; a stopped host has no
    external address until it is running again.

    Returns:
        ``(target, started)``; ``started`` is False when the host was
        already running.

    Raises:
        NotFound: The host never became ready.
        ControlPlaneError: The start request failed.
    """
    if target.status.upper() == "RUNNING" and target.address:
        return target, False

    started = False
    if target.status.upper() != "RUNNING":
        logger.warning("VM %s is not running (status: %s); starting it", target.name, target.status)
        control_plane.start_host(target.name, target.zone)
        started = True

    fresh = wait_for_host(
        control_plane,
        target.project,
        target.name,
        target.zone,
        attempts=attempts,
        interval=interval,
        sleep=sleep,
    )
    return fresh, started
