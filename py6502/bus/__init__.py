"""Memory bus for the 6502 emulator."""

from .memory import ADDRESS_SPACE, BusError, Memory

__all__ = [
    "ADDRESS_SPACE",
    "BusError",
    "Memory",
]
