"""Configuration and factory for a ready-to-step 6502."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from py6502.bus import Memory
from py6502.cpu import MOS6502, CPUState
from py6502.cpu.core import DEFAULT_LOAD_ADDRESS, DEFAULT_STACK_POINTER, DEFAULT_STATUS
from py6502.cpu.opcodes import OPCODE_TABLE, Instruction
from py6502.utils import TraceSink


@dataclass
class MachineConfig:
    """Runtime configuration for a 6502 instance.

    The defaults are the emulator's reset convention rather than a read of the
    hardware reset vector: programs are expected at ``0x0600`` with an empty
    stack.
    """

    load_address: int = DEFAULT_LOAD_ADDRESS
    stack_pointer: int = DEFAULT_STACK_POINTER
    status: int = DEFAULT_STATUS
    instruction_table: Sequence[Instruction | None] = field(default=OPCODE_TABLE)
    trace: Optional[TraceSink] = None

    def __post_init__(self) -> None:
        if not 0 <= self.load_address <= 0xFFFF:
            raise ValueError(f"load_address out of range: {self.load_address:#x}")
        if not 0 <= self.stack_pointer <= 0xFF:
            raise ValueError(f"stack_pointer out of range: {self.stack_pointer:#x}")
        if not 0 <= self.status <= 0xFF:
            raise ValueError(f"status out of range: {self.status:#x}")

    def reset_state(self) -> CPUState:
        return CPUState(sp=self.stack_pointer, p=self.status, pc=self.load_address)


def create_machine(config: MachineConfig | None = None, memory: Memory | None = None) -> MOS6502:
    """Instantiate a 6502 with the requested configuration."""

    config = config or MachineConfig()
    cpu = MOS6502(
        memory=memory if memory is not None else Memory(),
        instruction_table=config.instruction_table,
        trace=config.trace,
        reset_state=config.reset_state(),
    )
    cpu.reset()
    return cpu
