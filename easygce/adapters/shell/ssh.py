"""
SSH remote shell — run commands on the target with the system ``ssh``.

Every command opens a fresh, non-interactive session:

    ssh -i KEY -o ConnectTimeout=10 -o StrictHostKeyChecking=no \
        -o BatchMode=yes USER@ADDRESS COMMAND

ssh reserves exit status 255 for its own failures (connection refused,
timeout, authentication). Those, plus a missing key, a missing ssh
binary or a target without an address, raise RemoteExecutionError.
Any other status belongs to the remote command and is returned as-is.
"""

from __future__ import annotations

import logging
from pathlib import Path

from easygce.adapters.base import RemoteShell
from easygce.adapters.shell.command import LocalCommandRunner
from easygce.core.errors import CommandError, RemoteExecutionError
from easygce.core.models.command import CommandResult
from easygce.core.models.target import Target
from easygce.core.reliability.circuit_breaker import CircuitBreakerRegistry

logger = logging.getLogger(__name__)

SSH_FAILURE_STATUS = 255


class SshShell(RemoteShell):
    """Remote shell over OpenSSH.

    Args:
        user: Login user on the target.
        key_path: Private key file.
        connect_timeout: Default ConnectTimeout in seconds.
        command_timeout: Upper bound for the whole ssh process.
        strict_host_key_checking: Passed through to ssh.
        runner: Local runner (injectable for tests).
        breakers: Optional per-host circuit breakers.
    """

    def __init__(
        self,
        user: str,
        key_path: Path,
        connect_timeout: int = 10,
        command_timeout: int = 1800,
        strict_host_key_checking: bool = False,
        runner: LocalCommandRunner | None = None,
        breakers: CircuitBreakerRegistry | None = None,
    ):
        self._user = user
        self._key_path = Path(key_path).expanduser()
        self._connect_timeout = connect_timeout
        self._command_timeout = command_timeout
        self._strict = strict_host_key_checking
        self._runner = runner or LocalCommandRunner()
        self._breakers = breakers

    @property
    def name(self) -> str:
        return "ssh"

    @property
    def key_path(self) -> Path:
        return self._key_path

    def is_available(self) -> bool:
        return self._runner.which("ssh") is not None

    def build_argv(self, target: Target, command: str, timeout: int | None = None) -> list[str]:
        """The ssh argv for ``command`` on ``target``."""
        return [
            "ssh",
            "-i", str(self._key_path),
            "-o", f"ConnectTimeout={timeout or self._connect_timeout}",
            "-o", f"StrictHostKeyChecking={'yes' if self._strict else 'no'}",
            "-o", "BatchMode=yes",
            f"{self._user}@{target.address}",
            command,
        ]

    def run(
        self,
        target: Target,
        command: str,
        timeout: int | None = None,
    ) -> CommandResult:
        if not target.address:
            raise RemoteExecutionError(
                f"{target.label} has no network address (is the VM running?)"
            )
        if not self._key_path.is_file():
            raise RemoteExecutionError(
                f"SSH key not found at: {self._key_path} "
                f"(run: ssh-keygen -t rsa -b 4096 -f {self._key_path} -N '')"
            )

        breaker = self._breakers.get_or_create(target.address) if self._breakers else None
        if breaker is not None and not breaker.allow_request():
            raise RemoteExecutionError(
                f"Circuit open for {target.address}: too many failed ssh sessions"
            )

        argv = self.build_argv(target, command, timeout)
        logger.debug("ssh %s@%s: %s", self._user, target.address, command)

        try:
            result = self._runner.run(argv, timeout=self._command_timeout)
        except CommandError as e:
            if breaker is not None:
                breaker.record_failure()
            raise RemoteExecutionError(f"ssh to {target.address} failed: {e}") from e

        if result.exit_status == SSH_FAILURE_STATUS:
            if breaker is not None:
                breaker.record_failure()
            detail = result.stderr.strip() or "connection failed"
            raise RemoteExecutionError(f"ssh to {target.address} failed: {detail}")

        if breaker is not None:
            breaker.record_success()

        # Report the remote command, not the ssh wrapper
        return result.model_copy(update={"command": command})
