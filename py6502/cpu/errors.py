"""Exception hierarchy for the 6502 CPU core."""

from __future__ import annotations


class CPUError(Exception):
    """Base error for CPU-related failures."""


class IllegalOpcodeError(CPUError):
    """The byte at the program counter has no entry in the opcode table."""

    def __init__(self, opcode: int, address: int) -> None:
        super().__init__(f"illegal opcode {opcode:#04x} at {address:#06x}")
        self.opcode = opcode
        self.address = address


class OpcodeConflictError(CPUError):
    """Two catalog entries claim the same opcode byte."""

    def __init__(self, opcode: int, existing: str, duplicate: str) -> None:
        super().__init__(
            f"opcode {opcode:#04x} already registered as {existing}, refusing {duplicate}")
        self.opcode = opcode
        self.existing = existing
        self.duplicate = duplicate


class AddressingModeError(CPUError):
    """An addressing mode reached the resolver without a decode rule."""
