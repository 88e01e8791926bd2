"""Tests for machine configuration and the factory."""

from __future__ import annotations

import pytest

from py6502.bus import Memory
from py6502.cpu import MOS6502, StepStatus
from py6502.cpu.opcodes import AddressingMode, CatalogEntry, Operation, build_instruction_table
from py6502.system import MachineConfig, create_machine
from py6502.utils import TraceRecorder


def test_default_machine_matches_reset_posture() -> None:
    cpu = create_machine()

    assert isinstance(cpu, MOS6502)
    assert cpu.state.pc == 0x0600
    assert cpu.state.sp == 0xFF
    assert cpu.state.p == 0x30


def test_custom_posture_survives_reset() -> None:
    cpu = create_machine(MachineConfig(load_address=0xC000, stack_pointer=0xFD, status=0x34))
    cpu.state.pc = 0x1234

    cpu.reset()

    assert cpu.state.pc == 0xC000
    assert cpu.state.sp == 0xFD
    assert cpu.state.p == 0x34


@pytest.mark.parametrize(
    "kwargs",
    [{"load_address": 0x10000}, {"stack_pointer": 0x100}, {"status": -1}],
)
def test_config_validates_ranges(kwargs) -> None:
    with pytest.raises(ValueError):
        MachineConfig(**kwargs)


def test_supplied_memory_is_used() -> None:
    memory = Memory()
    memory.write(0x0600, bytes([0xA9, 0x07, 0x00]))

    cpu = create_machine(memory=memory)
    result = cpu.run()

    assert cpu.memory is memory
    assert result.status is StepStatus.HALTED
    assert cpu.state.a == 0x07


def test_trace_sink_from_config() -> None:
    recorder = TraceRecorder(4)
    cpu = create_machine(MachineConfig(trace=recorder))
    cpu.memory.write(0x0600, bytes([0xEA, 0x00]))

    cpu.run()

    assert [entry.mnemonic for entry in recorder.entries()] == ["NOP", "BRK"]


def test_custom_instruction_table() -> None:
    table = build_instruction_table([
        CatalogEntry(Operation.BRK, {AddressingMode.IMPLIED: 0x00}),
        CatalogEntry(Operation.INX, {AddressingMode.IMPLIED: 0x01}),
    ])
    cpu = create_machine(MachineConfig(instruction_table=table))
    cpu.memory.write(0x0600, bytes([0x01, 0x01, 0xE8]))

    result = cpu.run()

    assert cpu.state.x == 0x02
    assert result.status is StepStatus.FAULTED
    assert result.error.opcode == 0xE8


def test_instances_do_not_share_state() -> None:
    first = create_machine()
    second = create_machine()

    first.memory.store8(0x0000, 0xFF)
    first.state.a = 0x10

    assert second.memory.load8(0x0000) == 0x00
    assert second.state.a == 0x00
    assert first.instruction_table is second.instruction_table
