"""
Static file templates written to the VM (and, for RDP, locally).

Each template is a ``str.format`` string; literal braces are doubled.
Fix actions own these contents: they are written verbatim through a
quoted heredoc, so ``$`` and backslashes reach the VM unexpanded.
"""

VNC_XSTARTUP = """\
#!/bin/bash
xrdb $HOME/.Xresources
startxfce4 &
"""

TIGHTVNC_SERVICE = """\
[Unit]
Description=TightVNC remote desktop server
After=sshd.service

[Service]
Type=forking
ExecStart=/usr/bin/tightvncserver :{display} -geometry {geometry} -depth 24
ExecStop=/usr/bin/tightvncserver -kill :{display}
User={user}
Restart=on-failure

[Install]
WantedBy=multi-user.target
"""

VNC_XSTARTUP_CLIPBOARD = """\
#!/bin/bash
unset SESSION_MANAGER
unset DBUS_SESSION_BUS_ADDRESS

# Load X resources
[ -r $HOME/.Xresources ] && xrdb $HOME/.Xresources

# Start clipboard synchronization
autocutsel -fork
autocutsel -selection PRIMARY -fork

# Start clipboard manager
parcellite &

# Start XFCE desktop environment
exec startxfce4
"""

TIGERVNC_SERVICE = """\
[Unit]
Description=TigerVNC Server
After=syslog.target network.target

[Service]
Type=forking
User={user}
ExecStartPre=/bin/bash -c '/usr/bin/vncserver -kill :%i > /dev/null 2>&1 || :'
ExecStart=/usr/bin/vncserver :%i -geometry {geometry} -depth 24 -dpi 96 -localhost no
ExecStop=/usr/bin/vncserver -kill :%i
Restart=on-failure
RestartSec=5

[Install]
WantedBy=multi-user.target
"""

XRDP_CLIPBOARD_INI = """\

[Globals]
clipboard=true
"""

XSESSION_CLIPBOARD = """\
#!/bin/bash
# Start clipboard utilities
autocutsel -fork
autocutsel -selection PRIMARY -fork
parcellite &

# Start XFCE
exec startxfce4
"""

MOUNT_SCRIPT = """\
#!/bin/bash

BUCKET_NAME="{bucket}"
MOUNT_POINT="{mount_point}"
LOG_FILE="/var/log/gcsfuse-downloads.log"

log_message() {{
    echo "$(date '+%Y-%m-%d %H:%M:%S') - $1" | tee -a "$LOG_FILE"
}}

if mountpoint -q "$MOUNT_POINT"; then
    log_message "GCS bucket already mounted at $MOUNT_POINT"
    exit 0
fi

sudo -u {user} mkdir -p "$MOUNT_POINT"

log_message "Mounting GCS bucket gs://$BUCKET_NAME to $MOUNT_POINT"

if gcsfuse \\
    --log-file="$LOG_FILE" \\
    --log-format="text" \\
    --dir-mode=0755 \\
    --file-mode=0644 \\
    --uid=$(id -u {user}) \\
    --gid=$(id -g {user}) \\
    "$BUCKET_NAME" "$MOUNT_POINT"; then
    log_message "Successfully mounted GCS bucket"
else
    log_message "Failed to mount GCS bucket"
    exit 1
fi
"""

UNMOUNT_SCRIPT = """\
#!/bin/bash

MOUNT_POINT="{mount_point}"
LOG_FILE="/var/log/gcsfuse-downloads.log"

log_message() {{
    echo "$(date '+%Y-%m-%d %H:%M:%S') - $1" | tee -a "$LOG_FILE"
}}

if mountpoint -q "$MOUNT_POINT"; then
    log_message "Unmounting GCS bucket from $MOUNT_POINT"
    if fusermount -u "$MOUNT_POINT"; then
        log_message "Successfully unmounted GCS bucket"
    else
        log_message "Failed to unmount GCS bucket"
        exit 1
    fi
else
    log_message "GCS bucket not mounted at $MOUNT_POINT"
fi
"""

GCSFUSE_SERVICE = """\
[Unit]
Description=Mount GCS bucket to Downloads folder
After=network-online.target
Wants=network-online.target

[Service]
Type=oneshot
RemainAfterExit=yes
ExecStart={mount_script}
ExecStop={unmount_script}
User=root

[Install]
WantedBy=multi-user.target
"""

DOWNLOADS_DESKTOP = """\
[Desktop Entry]
Version=1.0
Type=Link
Name=Downloads (Cloud Storage)
Comment=Downloads folder synced to Google Cloud Storage
URL=file://{path}
Icon=folder-download
"""

CHROME_POLICY = """\
{{
  "CommandLineFlagSecurityWarningsEnabled": false,
  "DefaultBrowserSettingEnabled": false,
  "MetricsReportingEnabled": false,
  "SafeBrowsingProtectionLevel": 1,
  "PasswordManagerEnabled": true,
  "AutofillAddressEnabled": true,
  "AutofillCreditCardEnabled": true,
  "DefaultSearchProviderEnabled": true,
  "DefaultSearchProviderName": "Google",
  "DefaultSearchProviderKeyword": "google.com",
  "DefaultSearchProviderSearchURL": "https://www.google.com/search?q={{searchTerms}}",
  "ExtensionInstallBlocklist": ["*"],
  "ExtensionInstallAllowlist": []
}}
"""

STARTUP_SCRIPT = """\
#!/bin/bash
# Update system
apt-get update && apt-get -y upgrade

# Install essential packages
apt-get -y install git curl wget unzip

mkdir -p /opt/easygce

echo "VM startup complete. Ready for EasyGCE installation."
"""

RDP_FILE = """\
screen mode id:i:2
use multimon:i:0
desktopwidth:i:1920
desktopheight:i:1080
session bpp:i:32
winposstr:s:0,3,0,0,800,600
compression:i:1
keyboardhook:i:2
audiocapturemode:i:0
videoplaybackmode:i:1
connection type:i:7
networkautodetect:i:1
bandwidthautodetect:i:1
displayconnectionbar:i:1
enableworkspacereconnect:i:0
disable wallpaper:i:0
allow font smoothing:i:0
allow desktop composition:i:0
disable full window drag:i:1
disable menu anims:i:1
disable themes:i:0
disable cursor setting:i:0
bitmapcachepersistenable:i:1
full address:s:{address}:{port}
audiomode:i:0
redirectprinters:i:1
redirectcomports:i:0
redirectsmartcards:i:1
redirectclipboard:i:1
redirectposdevices:i:0
autoreconnection enabled:i:1
authentication level:i:2
prompt for credentials:i:0
negotiate security layer:i:1
remoteapplicationmode:i:0
alternate shell:s:
shell working directory:s:
gatewayhostname:s:
gatewayusagemethod:i:4
gatewaycredentialssource:i:4
gatewayprofileusagemethod:i:0
promptcredentialonce:i:0
gatewaybrokeringtype:i:0
use redirection server name:i:0
rdgiskdcproxy:i:0
kdcproxyname:s:
username:s:{username}
"""
