"""
CommandResult — the outcome of one local or remote command.

Adapters hand these back to the engine. A non-zero exit status is a
perfectly normal result (it usually means "capability absent"); only a
failure to run the command at all raises.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class CommandResult(BaseModel):
    """Exit status and captured output of a command."""

    command: str
    exit_status: int = 0
    stdout: str = ""
    stderr: str = ""

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.exit_status == 0

    @property
    def output(self) -> str:
        """Stripped stdout, the form most callers want."""
        return self.stdout.strip()

    @classmethod
    def success(cls, command: str, stdout: str = "", **kwargs) -> CommandResult:
        return cls(command=command, exit_status=0, stdout=stdout, **kwargs)

    @classmethod
    def failure(
        cls,
        command: str,
        exit_status: int = 1,
        stderr: str = "",
        **kwargs,
    ) -> CommandResult:
        return cls(command=command, exit_status=exit_status, stderr=stderr, **kwargs)
