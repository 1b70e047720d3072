"""Core linode-machine functionality."""

from __future__ import annotations

from linode_machine.core.interfaces import ComputeAPI, KeyMaterialProvider
from linode_machine.core.signals import CancelOnSignals

__all__ = [
    "ComputeAPI",
    "KeyMaterialProvider",
    "CancelOnSignals",
]
