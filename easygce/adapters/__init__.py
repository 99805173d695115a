"""Adapters — bindings for the external tools easygce drives (gcloud, ssh).

    from easygce.adapters import build_adapters, RemoteShell, ControlPlane
"""

from easygce.adapters.base import Adapter, ControlPlane, RemoteShell
from easygce.adapters.mock import MockControlPlane, MockRemoteShell
from easygce.adapters.registry import AdapterSet, build_adapters

__all__ = [
    "Adapter",
    "AdapterSet",
    "ControlPlane",
    "MockControlPlane",
    "MockRemoteShell",
    "RemoteShell",
    "build_adapters",
]
