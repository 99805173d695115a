"""
Engine steps — the probes and fixes a capability check is made of.

A step runs against a CheckContext and answers one question: did it
succeed? For probes that means "the capability is present", for fixes
"the action completed". Four kinds exist:

    RemoteCommand     one shell command on the target (exit 0 = success)
    RemoteScript      ordered commands, stops at the first non-zero exit
    ControlPlaneCall  a function over the control plane (gcloud)
    LocalCall         a function that runs on this machine

A step that cannot determine its outcome raises RemoteExecutionError;
it never swallows a session failure into a plain ``False``.
"""

from __future__ import annotations

import logging
import shlex
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import PurePosixPath

from easygce.adapters.base import ControlPlane, RemoteShell
from easygce.adapters.shell.command import LocalCommandRunner
from easygce.core.errors import CommandError, ControlPlaneError, NotFound
from easygce.core.models.settings import Settings
from easygce.core.models.target import Target

logger = logging.getLogger(__name__)

HEREDOC_MARKER = "EASYGCE_EOF"


@dataclass
class CheckContext:
    """Everything a step may touch during one run."""

    target: Target
    shell: RemoteShell
    control_plane: ControlPlane
    settings: Settings
    runner: LocalCommandRunner | None = None
    connect_timeout: int | None = None

    def remote(self, command: str) -> bool:
        """Run ``command`` on the target; True on exit status 0."""
        result = self.shell.run(self.target, command, timeout=self.connect_timeout)
        if not result.ok:
            logger.debug("exit %d: %s", result.exit_status, command.splitlines()[0])
        return result.ok


class Step(ABC):
    """A single probe or fix action."""

    @abstractmethod
    def run(self, ctx: CheckContext) -> bool:
        """Execute the step.

        Returns:
            True on success, False on a clean negative (non-zero exit).

        Raises:
            RemoteExecutionError: The outcome could not be determined.
        """

    @abstractmethod
    def describe(self) -> str:
        """One-line, human-readable summary for ``easygce suites``."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.describe()!r}>"


@dataclass(frozen=True, repr=False)
class RemoteCommand(Step):
    """One command string run by the target's login shell."""

    command: str
    label: str = ""

    def run(self, ctx: CheckContext) -> bool:
        return ctx.remote(self.command)

    def describe(self) -> str:
        return self.label or self.command.splitlines()[0]


@dataclass(frozen=True, repr=False)
class RemoteScript(Step):
    """Ordered remote commands; the first non-zero exit ends the script."""

    commands: tuple[str, ...]
    label: str = ""

    def run(self, ctx: CheckContext) -> bool:
        for command in self.commands:
            if not ctx.remote(command):
                return False
        return True

    def describe(self) -> str:
        if self.label:
            return self.label
        return f"{len(self.commands)} remote commands"


@dataclass(frozen=True, repr=False)
class ControlPlaneCall(Step):
    """A call into the control plane.

    ``fn`` returns a bool for probes; fixes may return None, which
    counts as success. A resource vanishing mid-run is reported as a
    control-plane failure for this check only.
    """

    fn: Callable[[CheckContext], bool | None]
    label: str

    def run(self, ctx: CheckContext) -> bool:
        try:
            result = self.fn(ctx)
        except NotFound as e:
            raise ControlPlaneError(str(e)) from e
        return True if result is None else bool(result)

    def describe(self) -> str:
        return self.label


@dataclass(frozen=True, repr=False)
class LocalCall(Step):
    """A function run on this machine (key files, TCP connects, ssh-keygen).

    A local tool that cannot run reads as a negative, like a remote
    command that is not on PATH.
    """

    fn: Callable[[CheckContext], bool | None]
    label: str

    def run(self, ctx: CheckContext) -> bool:
        try:
            result = self.fn(ctx)
        except CommandError as e:
            logger.warning("%s: %s", self.label, e)
            return False
        return True if result is None else bool(result)

    def describe(self) -> str:
        return self.label


# ── Command builders ────────────────────────────────────────────


def write_remote_file(
    path: str,
    content: str,
    mode: str | None = None,
    owner: str | None = None,
) -> str:
    """A command that (re)writes ``path`` with ``content`` via sudo.

    The content travels in a quoted heredoc, so nothing in it is
    expanded by the remote shell. Parent directories are created.
    """
    quoted = shlex.quote(path)
    parent = shlex.quote(str(PurePosixPath(path).parent))
    head = f"sudo mkdir -p {parent} && sudo tee {quoted} > /dev/null << '{HEREDOC_MARKER}'"
    if mode:
        head += f" && sudo chmod {mode} {quoted}"
    if owner:
        head += f" && sudo chown {owner}:{owner} {quoted}"
    body = content if content.endswith("\n") else content + "\n"
    return f"{head}\n{body}{HEREDOC_MARKER}"


def as_user(user: str, command: str) -> str:
    """Run ``command`` as ``user`` in a login-less bash."""
    return f"sudo -u {shlex.quote(user)} bash -c {shlex.quote(command)}"
