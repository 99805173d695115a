"""
Downloads suite — a Cloud Storage bucket mounted as the desktop's
Downloads folder with gcsfuse, remounted on boot by a systemd unit.
"""

from __future__ import annotations

import logging
import shlex

from easygce.core.catalog import templates
from easygce.core.catalog.remote_desktop import APT_INSTALL
from easygce.core.engine.steps import (
    CheckContext,
    ControlPlaneCall,
    RemoteCommand,
    RemoteScript,
    as_user,
    write_remote_file,
)
from easygce.core.models.check import CapabilityCheck
from easygce.core.models.settings import Settings

logger = logging.getLogger(__name__)

CATEGORY = "downloads"

MOUNT_SCRIPT_PATH = "/usr/local/bin/mount-gcs-downloads.sh"
UNMOUNT_SCRIPT_PATH = "/usr/local/bin/unmount-gcs-downloads.sh"
AUTOMOUNT_UNIT = "gcsfuse-downloads.service"
BUCKET_ROLE = "roles/storage.objectAdmin"


def _bucket_exists(bucket: str):
    def probe(ctx: CheckContext) -> bool:
        return ctx.control_plane.bucket_exists(bucket)

    return probe


def _ensure_bucket(bucket: str):
    def fix(ctx: CheckContext) -> None:
        cp = ctx.control_plane
        if not cp.bucket_exists(bucket):
            cp.create_bucket(bucket, ctx.settings.region)

        host = cp.describe_host(ctx.target.name, ctx.target.zone)
        if host.service_account:
            cp.grant_bucket_role(bucket, f"serviceAccount:{host.service_account}", BUCKET_ROLE)
        else:
            logger.warning("%s has no service account; bucket access not granted", host.name)

    return fix


def build_downloads_suite(settings: Settings) -> list[CapabilityCheck]:
    desktop = settings.desktop
    user = desktop.username
    bucket = settings.bucket_name
    path = settings.downloads_path
    qpath = shlex.quote(path)
    shortcut = f"{desktop.home}/Desktop/Downloads.desktop"
    bucket_marker = shlex.quote(f'BUCKET_NAME="{bucket}"')

    mount_script = templates.MOUNT_SCRIPT.format(bucket=bucket, mount_point=path, user=user)
    unmount_script = templates.UNMOUNT_SCRIPT.format(mount_point=path)
    unit = templates.GCSFUSE_SERVICE.format(
        mount_script=MOUNT_SCRIPT_PATH,
        unmount_script=UNMOUNT_SCRIPT_PATH,
    )

    return [
        CapabilityCheck(
            name="gcs-bucket",
            description=f"Bucket gs://{bucket} exists",
            category=CATEGORY,
            probe=ControlPlaneCall(_bucket_exists(bucket), label=f"describe gs://{bucket}"),
            fix=ControlPlaneCall(
                _ensure_bucket(bucket),
                label=f"create gs://{bucket} and grant the VM service account access",
            ),
        ),
        CapabilityCheck(
            name="gcsfuse-installed",
            description="gcsfuse is installed",
            category=CATEGORY,
            probe=RemoteCommand("command -v gcsfuse > /dev/null"),
            fix=RemoteScript(
                (
                    'echo "deb https://packages.cloud.google.com/apt gcsfuse-$(lsb_release -c -s) main" '
                    "| sudo tee /etc/apt/sources.list.d/gcsfuse.list > /dev/null",
                    "curl -fsSL https://packages.cloud.google.com/apt/doc/apt-key.gpg "
                    "| sudo apt-key add -",
                    f"sudo apt-get update && {APT_INSTALL} gcsfuse",
                ),
                label="add the gcsfuse apt repository and install gcsfuse",
            ),
        ),
        CapabilityCheck(
            name="downloads-folder",
            description=f"{path} exists and belongs to {user}",
            category=CATEGORY,
            probe=RemoteCommand(f'[ -d {qpath} ] && [ "$(stat -c %U {qpath})" = {user} ]'),
            fix=RemoteScript(
                (
                    f"mountpoint -q {qpath} || [ -z \"$(ls -A {qpath} 2>/dev/null)\" ] || "
                    + as_user(user, f"mkdir -p {qpath}.backup && cp -r {qpath}/. {qpath}.backup/"),
                    as_user(user, f"mkdir -p {qpath}"),
                    f"sudo chown {user}:{user} {qpath}",
                    f"sudo chmod 755 {qpath}",
                ),
                label=f"create {path} (backing up existing content)",
            ),
        ),
        CapabilityCheck(
            name="mount-scripts",
            description="Mount and unmount helper scripts are installed",
            category=CATEGORY,
            probe=RemoteCommand(
                f"[ -x {MOUNT_SCRIPT_PATH} ] && [ -x {UNMOUNT_SCRIPT_PATH} ] && "
                f"grep -q {bucket_marker} {MOUNT_SCRIPT_PATH}"
            ),
            fix=RemoteScript(
                (
                    write_remote_file(MOUNT_SCRIPT_PATH, mount_script, mode="755"),
                    write_remote_file(UNMOUNT_SCRIPT_PATH, unmount_script, mode="755"),
                ),
                label=f"write {MOUNT_SCRIPT_PATH} and {UNMOUNT_SCRIPT_PATH}",
            ),
        ),
        CapabilityCheck(
            name="downloads-mounted",
            description=f"gs://{bucket} is mounted at {path}",
            category=CATEGORY,
            probe=RemoteCommand(f"mountpoint -q {qpath}"),
            fix=RemoteCommand(f"sudo {MOUNT_SCRIPT_PATH}", label="run the mount script"),
        ),
        CapabilityCheck(
            name="downloads-automount",
            description="The bucket is remounted on boot",
            category=CATEGORY,
            probe=RemoteCommand(f"systemctl is-enabled --quiet {AUTOMOUNT_UNIT}"),
            fix=RemoteScript(
                (
                    write_remote_file(f"/etc/systemd/system/{AUTOMOUNT_UNIT}", unit),
                    "sudo systemctl daemon-reload",
                    f"sudo systemctl enable {AUTOMOUNT_UNIT}",
                ),
                label=f"install and enable {AUTOMOUNT_UNIT}",
            ),
        ),
        CapabilityCheck(
            name="downloads-shortcut",
            description="Desktop shortcut to the Downloads folder",
            category=CATEGORY,
            probe=RemoteCommand(f"[ -f {shortcut} ]"),
            fix=RemoteScript(
                (
                    as_user(user, f"mkdir -p {desktop.home}/Desktop"),
                    write_remote_file(
                        shortcut,
                        templates.DOWNLOADS_DESKTOP.format(path=path),
                        mode="755",
                        owner=user,
                    ),
                ),
                label=f"write {shortcut}",
            ),
        ),
    ]
