"""Python emulator for the MOS 6502 instruction set.

``cpu`` holds the opcode catalog, addressing-mode resolver and execution
engine, ``bus`` the 64KB memory, ``system`` configuration and the machine
factory, and ``utils`` debug logging and tracing.
"""

from __future__ import annotations

from . import bus, cpu, system, utils

__all__: list[str] = [
    "cpu",
    "bus",
    "system",
    "utils",
]
