"""Operand resolution for the 6502 addressing modes."""

from __future__ import annotations

from dataclasses import dataclass

from py6502.bus import Memory

from .errors import AddressingModeError
from .opcodes import AddressingMode


@dataclass(frozen=True)
class Operand:
    """Result of decoding an instruction's operand bytes.

    ``value`` is the byte the instruction works on (``None`` for implied
    instructions), ``address`` the effective address for modes that have one,
    and ``size`` how many bytes after the opcode were consumed.
    """

    value: int | None
    address: int | None
    size: int


IMPLIED_OPERAND = Operand(None, None, 0)


def _zero_page_word(memory: Memory, pointer: int) -> int:
    # The pointer's high byte is fetched from the same page.
    low = memory.load8(pointer & 0xFF)
    high = memory.load8((pointer + 1) & 0xFF)
    return (high << 8) | low


def resolve_operand(memory: Memory, pc: int, mode: AddressingMode, x: int, y: int) -> Operand:
    """Decode the operand that starts at ``pc`` for ``mode``."""

    if mode is AddressingMode.IMPLIED:
        return IMPLIED_OPERAND
    if mode is AddressingMode.IMMEDIATE or mode is AddressingMode.RELATIVE:
        return Operand(memory.load8(pc), None, 1)

    if mode is AddressingMode.ZERO_PAGE:
        address = memory.load8(pc)
        size = 1
    elif mode is AddressingMode.ZERO_PAGE_X:
        address = (memory.load8(pc) + x) & 0xFF
        size = 1
    elif mode is AddressingMode.ZERO_PAGE_Y:
        address = (memory.load8(pc) + y) & 0xFF
        size = 1
    elif mode is AddressingMode.ABSOLUTE:
        address = memory.load16(pc)
        size = 2
    elif mode is AddressingMode.ABSOLUTE_X:
        address = (memory.load16(pc) + x) & 0xFFFF
        size = 2
    elif mode is AddressingMode.ABSOLUTE_Y:
        address = (memory.load16(pc) + y) & 0xFFFF
        size = 2
    elif mode is AddressingMode.INDIRECT:
        address = memory.load16(memory.load16(pc))
        size = 2
    elif mode is AddressingMode.INDEXED_INDIRECT:
        address = _zero_page_word(memory, memory.load8(pc) + x)
        size = 1
    elif mode is AddressingMode.INDIRECT_INDEXED:
        address = (_zero_page_word(memory, memory.load8(pc)) + y) & 0xFFFF
        size = 1
    else:
        raise AddressingModeError(f"unsupported addressing mode: {mode}")

    return Operand(memory.load8(address), address, size)
