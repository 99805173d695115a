"""
Local command runner — execute a command on this machine.

This is the most fundamental adapter: the ssh and gcloud adapters are
both built on it. It captures output and converts the ways a command
can fail to *run* (missing binary, timeout) into CommandError. A
non-zero exit status is returned in the CommandResult, never raised.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import time

from easygce.adapters.base import Adapter
from easygce.core.errors import CommandError
from easygce.core.models.command import CommandResult

logger = logging.getLogger(__name__)


class LocalCommandRunner(Adapter):
    """Run argv lists with subprocess and capture output.

    Args:
        default_timeout: Timeout in seconds when a call does not pass one.
    """

    def __init__(self, default_timeout: int = 300):
        self._default_timeout = default_timeout

    @property
    def name(self) -> str:
        return "local"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def which(self, program: str) -> str | None:
        """Resolve a program on PATH (None if missing)."""
        return shutil.which(program)

    def run(
        self,
        argv: list[str],
        timeout: int | None = None,
        input_text: str | None = None,
    ) -> CommandResult:
        """Run ``argv`` and return its result.

        Raises:
            CommandError: The program does not exist or timed out.
        """
        timeout = timeout or self._default_timeout
        display = shlex.join(argv)

        logger.debug("Executing: %s", display)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=timeout,
                input=input_text,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandError(
                f"Command timed out after {timeout}s: {display}",
                timed_out=True,
            ) from e
        except FileNotFoundError as e:
            raise CommandError(f"Command not found: {argv[0]}") from e
        except OSError as e:
            raise CommandError(f"Command execution error: {e}") from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("Exit %d after %dms: %s", result.returncode, elapsed_ms, display)

        return CommandResult(
            command=display,
            exit_status=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            duration_ms=elapsed_ms,
        )
