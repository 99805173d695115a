"""Engine — target resolution, probing and reconciliation."""

from easygce.core.engine.prober import CapabilityProber
from easygce.core.engine.reconciler import generate_operation_id, reconcile, reconcile_check
from easygce.core.engine.resolver import resolve_target, wait_for_host
from easygce.core.engine.steps import (
    CheckContext,
    ControlPlaneCall,
    LocalCall,
    RemoteCommand,
    RemoteScript,
    Step,
)

__all__ = [
    "CapabilityProber",
    "CheckContext",
    "ControlPlaneCall",
    "LocalCall",
    "RemoteCommand",
    "RemoteScript",
    "Step",
    "generate_operation_id",
    "reconcile",
    "reconcile_check",
    "resolve_target",
    "wait_for_host",
]
