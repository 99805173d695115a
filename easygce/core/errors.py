"""
Error hierarchy — what can go wrong, and who is expected to handle it.

    EasyGceError
    ├── NotFound              fatal: no target host, abort before any check
    ├── RemoteExecutionError  per-check: could not determine state (ssh/session)
    │   └── ControlPlaneError     same, but the cloud API call failed
    └── CommandError          a local binary is missing or timed out

A non-zero exit from a probe or fix command is NOT an error — it is a
MISSING observation and never raises.
"""

from __future__ import annotations


class EasyGceError(Exception):
    """Base class for all easygce errors."""


class NotFound(EasyGceError):
    """No resolvable target host (or cloud resource) was found."""


class RemoteExecutionError(EasyGceError):
    """The remote shell could not establish a session or finish in time."""


class ControlPlaneError(RemoteExecutionError):
    """A control-plane (gcloud) call failed for reasons other than absence."""


class CommandError(EasyGceError):
    """A local command could not be run at all (missing binary, timeout)."""

    def __init__(self, message: str, *, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out
