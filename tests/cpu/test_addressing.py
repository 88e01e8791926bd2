"""Addressing-mode resolution tests."""

from __future__ import annotations

import pytest

from py6502.bus import Memory
from py6502.cpu import AddressingModeError
from py6502.cpu.addressing import Operand, resolve_operand
from py6502.cpu.opcodes import AddressingMode


PC = 0x0601


def memory_with(operand: bytes, **cells: int) -> Memory:
    memory = Memory()
    memory.write(PC, operand)
    for name, value in cells.items():
        memory.store8(int(name[1:], 16), value)
    return memory


def test_immediate_returns_literal() -> None:
    memory = memory_with(bytes([0x42]))

    assert resolve_operand(memory, PC, AddressingMode.IMMEDIATE, 0, 0) == Operand(0x42, None, 1)


def test_relative_returns_raw_displacement() -> None:
    memory = memory_with(bytes([0xFE]))

    assert resolve_operand(memory, PC, AddressingMode.RELATIVE, 0, 0) == Operand(0xFE, None, 1)


def test_implied_consumes_nothing() -> None:
    operand = resolve_operand(Memory(), PC, AddressingMode.IMPLIED, 0, 0)

    assert operand.size == 0
    assert operand.value is None
    assert operand.address is None


def test_zero_page() -> None:
    memory = memory_with(bytes([0x80]), a0080=0x99)

    assert resolve_operand(memory, PC, AddressingMode.ZERO_PAGE, 0, 0) == Operand(0x99, 0x0080, 1)


def test_zero_page_x_wraps_within_page_zero() -> None:
    memory = memory_with(bytes([0xF0]), a0010=0x11, a0110=0x22)

    operand = resolve_operand(memory, PC, AddressingMode.ZERO_PAGE_X, 0x20, 0)

    assert operand == Operand(0x11, 0x0010, 1)


def test_zero_page_y_wraps_within_page_zero() -> None:
    memory = memory_with(bytes([0xFF]), a0000=0x33)

    operand = resolve_operand(memory, PC, AddressingMode.ZERO_PAGE_Y, 0, 0x01)

    assert operand == Operand(0x33, 0x0000, 1)


def test_absolute_is_little_endian() -> None:
    memory = memory_with(bytes([0x34, 0x12]), a1234=0x56)

    assert resolve_operand(memory, PC, AddressingMode.ABSOLUTE, 0, 0) == Operand(0x56, 0x1234, 2)


def test_absolute_x_crosses_pages() -> None:
    memory = memory_with(bytes([0xF0, 0x12]), a1310=0x01)

    operand = resolve_operand(memory, PC, AddressingMode.ABSOLUTE_X, 0x20, 0)

    assert operand == Operand(0x01, 0x1310, 2)


def test_absolute_y_wraps_address_space() -> None:
    memory = memory_with(bytes([0xFF, 0xFF]), a0001=0x07)

    operand = resolve_operand(memory, PC, AddressingMode.ABSOLUTE_Y, 0, 0x02)

    assert operand == Operand(0x07, 0x0001, 2)


def test_indirect_reads_pointer_target() -> None:
    memory = memory_with(bytes([0x00, 0x02]), a0200=0xCD, a0201=0xAB)

    operand = resolve_operand(memory, PC, AddressingMode.INDIRECT, 0, 0)

    assert operand.address == 0xABCD
    assert operand.size == 2


def test_indexed_indirect_pointer_wraps() -> None:
    memory = memory_with(bytes([0xFF]), a0001=0x34, a0002=0x12, a0101=0x78, a0102=0x56, a1234=0x77)

    operand = resolve_operand(memory, PC, AddressingMode.INDEXED_INDIRECT, 0x02, 0)

    assert operand == Operand(0x77, 0x1234, 1)


def test_indexed_indirect_high_byte_stays_in_page_zero() -> None:
    memory = memory_with(bytes([0xFF]), a00ff=0x00, a0000=0x40, a0100=0x99, a4000=0x5A)

    operand = resolve_operand(memory, PC, AddressingMode.INDEXED_INDIRECT, 0x00, 0)

    assert operand == Operand(0x5A, 0x4000, 1)


def test_indirect_indexed_adds_y_after_lookup() -> None:
    memory = memory_with(bytes([0x40]), a0040=0xF0, a0041=0x20, a2110=0x66)

    operand = resolve_operand(memory, PC, AddressingMode.INDIRECT_INDEXED, 0xFF, 0x20)

    assert operand == Operand(0x66, 0x2110, 1)


def test_unknown_mode_is_an_internal_error() -> None:
    with pytest.raises(AddressingModeError):
        resolve_operand(Memory(), PC, "BOGUS", 0, 0)  # type: ignore[arg-type]
