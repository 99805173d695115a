"""
Provision suite — everything that must exist before the VM can be used.

Runs against a project-scoped target whose ``name``/``zone`` name the VM
to create. Order: local SSH key, service account with its roles,
firewall ports, then the VM itself (created with the public key in its
metadata and a startup script).
"""

from __future__ import annotations

import logging

from easygce.adapters.shell.command import LocalCommandRunner
from easygce.core.catalog import templates
from easygce.core.catalog.firewall import port_check
from easygce.core.engine.steps import CheckContext, ControlPlaneCall, LocalCall
from easygce.core.errors import NotFound
from easygce.core.models.check import CapabilityCheck
from easygce.core.models.cloud import InstanceSpec
from easygce.core.models.settings import Settings

logger = logging.getLogger(__name__)

CATEGORY = "provision"


# ── SSH key ─────────────────────────────────────────────────────


def _key_exists(ctx: CheckContext) -> bool:
    ssh = ctx.settings.ssh
    return ssh.key_file.is_file() and ssh.public_key_file.is_file()


def _generate_key(ctx: CheckContext) -> bool:
    ssh = ctx.settings.ssh
    if ssh.key_file.is_file():
        logger.warning("%s exists without a public key; not overwriting it", ssh.key_file)
        return False
    ssh.key_file.parent.mkdir(parents=True, exist_ok=True)
    runner = ctx.runner or LocalCommandRunner()
    result = runner.run([
        "ssh-keygen", "-t", "rsa", "-b", "4096",
        "-f", str(ssh.key_file), "-N", "", "-C", f"easygce-{ssh.user}",
    ])
    return result.ok


def ssh_key_check() -> CapabilityCheck:
    return CapabilityCheck(
        name="ssh-key",
        description="Local SSH key pair exists",
        category=CATEGORY,
        probe=LocalCall(_key_exists, label="private and public key files exist"),
        fix=LocalCall(_generate_key, label="ssh-keygen -t rsa -b 4096"),
    )


# ── Service account ─────────────────────────────────────────────


def _service_account_ready(ctx: CheckContext) -> bool:
    s = ctx.settings
    email = s.service_account_email
    if not ctx.control_plane.service_account_exists(email):
        return False
    member = f"serviceAccount:{email}"
    return all(ctx.control_plane.has_iam_binding(member, role) for role in s.provision.roles)


def _ensure_service_account(ctx: CheckContext) -> None:
    s = ctx.settings
    cp = ctx.control_plane
    if not cp.service_account_exists(s.service_account_email):
        cp.create_service_account(
            s.provision.service_account,
            display_name=s.provision.service_account_display_name,
            description=s.provision.service_account_description,
        )
    member = f"serviceAccount:{s.service_account_email}"
    for role in s.provision.roles:
        cp.add_iam_binding(member, role)


def service_account_check(settings: Settings) -> CapabilityCheck:
    roles = ", ".join(settings.provision.roles)
    return CapabilityCheck(
        name="service-account",
        description=f"Service account {settings.provision.service_account} has {roles}",
        category=CATEGORY,
        probe=ControlPlaneCall(_service_account_ready, label="describe account and IAM policy"),
        fix=ControlPlaneCall(_ensure_service_account, label="create account and bind roles"),
    )


# ── VM ──────────────────────────────────────────────────────────


def _vm_exists(ctx: CheckContext) -> bool:
    try:
        ctx.control_plane.describe_host(ctx.target.name, ctx.target.zone)
    except NotFound:
        return False
    return True


def instance_spec(settings: Settings, name: str, zone: str) -> InstanceSpec:
    """The InstanceSpec for the VM, with the local public key as ssh-keys."""
    p = settings.provision
    ssh_keys = ""
    pub = settings.ssh.public_key_file
    if pub.is_file():
        ssh_keys = f"{settings.ssh.user}:{pub.read_text(encoding='utf-8').strip()}"
    else:
        logger.warning("No public key at %s; the VM will not accept ssh", pub)

    return InstanceSpec(
        name=name,
        zone=zone,
        machine_type=p.machine_type,
        image_project=p.image_project,
        image=p.image,
        boot_disk_size=p.boot_disk_size,
        boot_disk_type=p.boot_disk_type,
        boot_disk_auto_delete=p.boot_disk_auto_delete,
        service_account=settings.service_account_email,
        startup_script=templates.STARTUP_SCRIPT,
        ssh_keys=ssh_keys,
    )


def _create_vm(ctx: CheckContext) -> None:
    spec = instance_spec(ctx.settings, ctx.target.name, ctx.target.zone)
    ctx.control_plane.create_host(spec)


def vm_instance_check(settings: Settings) -> CapabilityCheck:
    return CapabilityCheck(
        name="vm-instance",
        description="VM instance exists",
        category=CATEGORY,
        probe=ControlPlaneCall(_vm_exists, label="describe instance"),
        fix=ControlPlaneCall(
            _create_vm,
            label=f"create a {settings.provision.machine_type} instance from {settings.provision.image}",
        ),
    )


def build_provision_suite(settings: Settings) -> list[CapabilityCheck]:
    return [
        ssh_key_check(),
        service_account_check(settings),
        *(
            port_check(settings, port, rule_prefix=settings.firewall.rule_prefix)
            for port in settings.provision.open_ports
        ),
        vm_instance_check(settings),
    ]
