"""
Circuit breaker — stop dialling a host that keeps refusing sessions.

When a VM is down, every ssh probe burns its full connect timeout.
With a breaker enabled, once ``failure_threshold`` consecutive session
failures are recorded for a host, further calls fail fast with
RemoteExecutionError until ``recovery_timeout`` has elapsed; then one
trial session is let through.

States:
    CLOSED    → sessions allowed, failures counted
    OPEN      → sessions rejected until the recovery timeout elapses
    HALF_OPEN → one trial session allowed

A threshold of 0 disables the breaker entirely (the default), which
keeps each capability check independent of the others.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitState(StrEnum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Session breaker for one host.

    Args:
        name: Identifier (the host address or name).
        failure_threshold: Consecutive failures before opening; 0 disables.
        recovery_timeout: Seconds before a trial session is allowed.
    """

    name: str
    failure_threshold: int = 0
    recovery_timeout: float = 60.0

    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    opened_at: float = 0.0
    total_rejections: int = 0

    @property
    def enabled(self) -> bool:
        return self.failure_threshold > 0

    def allow_request(self) -> bool:
        """Whether a new session may be attempted now."""
        if not self.enabled or self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            if time.monotonic() - self.opened_at >= self.recovery_timeout:
                self._transition(CircuitState.HALF_OPEN)
                return True
            self.total_rejections += 1
            return False

        return True  # HALF_OPEN: the trial session

    def record_success(self) -> None:
        """A session was established (whatever the command's exit status)."""
        self.failure_count = 0
        if self.state != CircuitState.CLOSED:
            self._transition(CircuitState.CLOSED)

    def record_failure(self) -> None:
        """A session could not be established."""
        if not self.enabled:
            return
        self.failure_count += 1
        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.opened_at = time.monotonic()
            if self.state != CircuitState.OPEN:
                self._transition(CircuitState.OPEN)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "total_rejections": self.total_rejections,
            "failure_threshold": self.failure_threshold,
        }

    def _transition(self, new_state: CircuitState) -> None:
        old = self.state
        self.state = new_state
        logger.info("Circuit '%s': %s → %s", self.name, old.value, new_state.value)


@dataclass
class CircuitBreakerRegistry:
    """One breaker per host, created on first use."""

    failure_threshold: int = 0
    recovery_timeout: float = 60.0
    breakers: dict[str, CircuitBreaker] = field(default_factory=dict)

    def get_or_create(self, name: str) -> CircuitBreaker:
        if name not in self.breakers:
            self.breakers[name] = CircuitBreaker(
                name=name,
                failure_threshold=self.failure_threshold,
                recovery_timeout=self.recovery_timeout,
            )
        return self.breakers[name]

    def get_status(self) -> dict[str, dict[str, Any]]:
        return {name: cb.to_dict() for name, cb in self.breakers.items()}
