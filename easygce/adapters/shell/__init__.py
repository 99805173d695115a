"""Shell adapters — local subprocess runner and the ssh remote shell."""

from easygce.adapters.shell.command import LocalCommandRunner
from easygce.adapters.shell.ssh import SshShell

__all__ = ["LocalCommandRunner", "SshShell"]
