"""Chrome suite — Google Chrome, a remote-desktop policy, and a desktop icon."""

from __future__ import annotations

from easygce.core.catalog import templates
from easygce.core.catalog.remote_desktop import APT_INSTALL
from easygce.core.engine.steps import RemoteCommand, RemoteScript, as_user, write_remote_file
from easygce.core.models.check import CapabilityCheck
from easygce.core.models.settings import Settings

CATEGORY = "chrome"

KEYRING = "/etc/apt/keyrings/google-chrome.gpg"
POLICY_FILE = "/etc/opt/chrome/policies/managed/remote_desktop.json"
DEB_URL = "https://dl.google.com/linux/direct/google-chrome-stable_current_amd64.deb"
DESKTOP_FILE = "/usr/share/applications/google-chrome.desktop"

# Falls back to the standalone .deb when the apt repository install fails
_DEB_FALLBACK = (
    "tmp=$(mktemp -d) && trap 'rm -rf \"$tmp\"' EXIT && "
    f'wget -q -O "$tmp/chrome.deb" {DEB_URL} && '
    '(sudo dpkg -i "$tmp/chrome.deb" || sudo apt-get install -f -y)'
)


def build_chrome_suite(settings: Settings) -> list[CapabilityCheck]:
    desktop = settings.desktop
    shortcut = f"{desktop.home}/Desktop/google-chrome.desktop"

    return [
        CapabilityCheck(
            name="chrome-installed",
            description="Google Chrome is installed",
            category=CATEGORY,
            probe=RemoteCommand("command -v google-chrome > /dev/null"),
            fix=RemoteScript(
                (
                    f"sudo apt-get update && {APT_INSTALL} wget gnupg2 "
                    "software-properties-common apt-transport-https ca-certificates curl",
                    "sudo mkdir -p /etc/apt/keyrings",
                    "wget -q -O - https://dl.google.com/linux/linux_signing_key.pub "
                    f"| sudo gpg --dearmor --yes -o {KEYRING}",
                    f'echo "deb [arch=amd64 signed-by={KEYRING}] '
                    'http://dl.google.com/linux/chrome/deb/ stable main" '
                    "| sudo tee /etc/apt/sources.list.d/google-chrome.list > /dev/null",
                    f"(sudo apt-get update && {APT_INSTALL} google-chrome-stable) || ({_DEB_FALLBACK})",
                ),
                label="install google-chrome-stable from Google's apt repository",
            ),
        ),
        CapabilityCheck(
            name="chrome-policy",
            description="Chrome policy for remote-desktop use is installed",
            category=CATEGORY,
            probe=RemoteCommand(f"[ -f {POLICY_FILE} ]"),
            fix=RemoteCommand(
                write_remote_file(POLICY_FILE, templates.CHROME_POLICY.format(), mode="644"),
                label=f"write {POLICY_FILE}",
            ),
        ),
        CapabilityCheck(
            name="chrome-shortcut",
            description=f"Chrome icon on {desktop.username}'s desktop",
            category=CATEGORY,
            probe=RemoteCommand(f"[ -f {shortcut} ]"),
            fix=RemoteCommand(
                as_user(
                    desktop.username,
                    f"mkdir -p {desktop.home}/Desktop && cp {DESKTOP_FILE} {shortcut} "
                    f"&& chmod +x {shortcut}",
                ),
                label=f"copy {DESKTOP_FILE} to the desktop",
            ),
        ),
    ]
