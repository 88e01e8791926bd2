"""6502 machine assembly helpers."""

from __future__ import annotations

from .machine import MachineConfig, create_machine

__all__ = [
    "MachineConfig",
    "create_machine",
]
