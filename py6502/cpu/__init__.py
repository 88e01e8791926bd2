"""CPU package for the 6502 emulator."""

from .core import MOS6502, CPUState, StepResult, StepStatus
from .errors import AddressingModeError, CPUError, IllegalOpcodeError, OpcodeConflictError
from . import addressing, opcodes

__all__ = [
    "MOS6502",
    "CPUState",
    "StepResult",
    "StepStatus",
    "CPUError",
    "IllegalOpcodeError",
    "OpcodeConflictError",
    "AddressingModeError",
    "addressing",
    "opcodes",
]
