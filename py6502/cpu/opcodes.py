"""Instruction catalog and opcode table for the 6502 CPU."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from types import MappingProxyType
from typing import Final, Iterable, List, Mapping, Sequence

from .errors import OpcodeConflictError


class AddressingMode(Enum):
    """Supported addressing modes for the 6502 instruction set."""

    IMMEDIATE = auto()
    ZERO_PAGE = auto()
    ZERO_PAGE_X = auto()
    ZERO_PAGE_Y = auto()
    ABSOLUTE = auto()
    ABSOLUTE_X = auto()
    ABSOLUTE_Y = auto()
    INDIRECT = auto()
    INDEXED_INDIRECT = auto()
    INDIRECT_INDEXED = auto()
    IMPLIED = auto()
    RELATIVE = auto()

    @property
    def operand_size(self) -> int:
        """Number of operand bytes following the opcode."""

        return _OPERAND_SIZES[self]


_OPERAND_SIZES: Final[Mapping[AddressingMode, int]] = MappingProxyType({
    AddressingMode.IMMEDIATE: 1,
    AddressingMode.ZERO_PAGE: 1,
    AddressingMode.ZERO_PAGE_X: 1,
    AddressingMode.ZERO_PAGE_Y: 1,
    AddressingMode.ABSOLUTE: 2,
    AddressingMode.ABSOLUTE_X: 2,
    AddressingMode.ABSOLUTE_Y: 2,
    AddressingMode.INDIRECT: 2,
    AddressingMode.INDEXED_INDIRECT: 1,
    AddressingMode.INDIRECT_INDEXED: 1,
    AddressingMode.IMPLIED: 0,
    AddressingMode.RELATIVE: 1,
})


class Operation(Enum):
    """Canonical 6502 operations.

    Each member carries its mnemonic, the name of the CPU method that executes
    it and, for operations shared across registers, the register it acts on.
    """

    ADC = ("ADC", "op_adc")
    AND = ("AND", "op_and")
    ASL = ("ASL", "op_asl")
    BCC = ("BCC", "op_branch_bcc")
    BCS = ("BCS", "op_branch_bcs")
    BEQ = ("BEQ", "op_branch_beq")
    BIT = ("BIT", "op_bit")
    BMI = ("BMI", "op_branch_bmi")
    BNE = ("BNE", "op_branch_bne")
    BPL = ("BPL", "op_branch_bpl")
    BRK = ("BRK", "op_brk")
    BVC = ("BVC", "op_branch_bvc")
    BVS = ("BVS", "op_branch_bvs")
    CLC = ("CLC", "op_clc")
    CLD = ("CLD", "op_cld")
    CLI = ("CLI", "op_cli")
    CLV = ("CLV", "op_clv")
    CMP = ("CMP", "op_compare", "a")
    CPX = ("CPX", "op_compare", "x")
    CPY = ("CPY", "op_compare", "y")
    DEC = ("DEC", "op_dec_memory")
    DEX = ("DEX", "op_dec_register", "x")
    DEY = ("DEY", "op_dec_register", "y")
    EOR = ("EOR", "op_eor")
    INC = ("INC", "op_inc_memory")
    INX = ("INX", "op_inc_register", "x")
    INY = ("INY", "op_inc_register", "y")
    JMP = ("JMP", "op_jmp")
    JSR = ("JSR", "op_jsr")
    LDA = ("LDA", "op_load", "a")
    LDX = ("LDX", "op_load", "x")
    LDY = ("LDY", "op_load", "y")
    LSR = ("LSR", "op_lsr")
    NOP = ("NOP", "op_nop")
    ORA = ("ORA", "op_ora")
    PHA = ("PHA", "op_pha")
    PHP = ("PHP", "op_php")
    PLA = ("PLA", "op_pla")
    PLP = ("PLP", "op_plp")
    ROL = ("ROL", "op_rol")
    ROR = ("ROR", "op_ror")
    RTI = ("RTI", "op_rti")
    RTS = ("RTS", "op_rts")
    SBC = ("SBC", "op_sbc")
    SEC = ("SEC", "op_sec")
    SED = ("SED", "op_sed")
    SEI = ("SEI", "op_sei")
    STA = ("STA", "op_store", "a")
    STX = ("STX", "op_store", "x")
    STY = ("STY", "op_store", "y")
    TAX = ("TAX", "op_transfer", "a", "x")
    TAY = ("TAY", "op_transfer", "a", "y")
    TSX = ("TSX", "op_transfer", "sp", "x")
    TXA = ("TXA", "op_transfer", "x", "a")
    TXS = ("TXS", "op_txs")
    TYA = ("TYA", "op_transfer", "y", "a")

    def __init__(self, mnemonic: str, handler: str, register: str | None = None,
                 target: str | None = None) -> None:
        self.mnemonic = mnemonic
        self.handler = handler
        self.register = register
        self.target = target


@dataclass(frozen=True)
class CatalogEntry:
    """One canonical operation and the opcode selecting each supported mode.

    A mode is supported exactly when it appears as a key in ``opcodes``.
    """

    operation: Operation
    opcodes: Mapping[AddressingMode, int]

    def __post_init__(self) -> None:
        for mode, opcode in self.opcodes.items():
            if not isinstance(mode, AddressingMode):
                raise TypeError(f"{self.operation.mnemonic}: not an addressing mode: {mode!r}")
            if not 0 <= opcode <= 0xFF:
                raise ValueError(f"{self.operation.mnemonic}: opcode out of range: {opcode}")
        object.__setattr__(self, "opcodes", MappingProxyType(dict(self.opcodes)))

    def instructions(self) -> Iterable["Instruction"]:
        for mode, opcode in self.opcodes.items():
            yield Instruction(opcode, self.operation, mode)


@dataclass(frozen=True)
class Instruction:
    """Opcode table entry: the operation and addressing mode an opcode selects."""

    opcode: int
    operation: Operation
    mode: AddressingMode

    def __post_init__(self) -> None:
        if not 0 <= self.opcode <= 0xFF:
            raise ValueError(f"opcode out of range: {self.opcode}")

    @property
    def mnemonic(self) -> str:
        return self.operation.mnemonic

    @property
    def size(self) -> int:
        return 1 + self.mode.operand_size


class OpcodeTable:
    """Mutable builder for the 256-entry instruction table."""

    _TABLE_SIZE: Final[int] = 0x100

    def __init__(self) -> None:
        self._table: List[Instruction | None] = [None] * self._TABLE_SIZE

    def register(self, instruction: Instruction) -> None:
        opcode = instruction.opcode
        existing = self._table[opcode]
        if existing is not None:
            raise OpcodeConflictError(opcode, existing.mnemonic, instruction.mnemonic)
        self._table[opcode] = instruction

    def register_all(self, instructions: Iterable[Instruction]) -> None:
        for instruction in instructions:
            self.register(instruction)

    def register_catalog(self, catalog: Iterable[CatalogEntry]) -> None:
        for entry in catalog:
            self.register_all(entry.instructions())

    def freeze(self) -> Sequence[Instruction | None]:
        return tuple(self._table)


def build_instruction_table(catalog: Iterable[CatalogEntry]) -> Sequence[Instruction | None]:
    """Build a 256-entry instruction lookup table from catalog entries."""

    table = OpcodeTable()
    table.register_catalog(catalog)
    return table.freeze()


def lookup(table: Sequence[Instruction | None], opcode: int) -> Instruction | None:
    """Return the instruction for ``opcode`` or ``None`` when it is undefined."""

    return table[opcode & 0xFF]


_M = AddressingMode
_O = Operation

DEFAULT_CATALOG: Sequence[CatalogEntry] = (
    # Loads and stores
    CatalogEntry(_O.LDA, {_M.IMMEDIATE: 0xA9, _M.ZERO_PAGE: 0xA5, _M.ZERO_PAGE_X: 0xB5,
                          _M.ABSOLUTE: 0xAD, _M.ABSOLUTE_X: 0xBD, _M.ABSOLUTE_Y: 0xB9,
                          _M.INDEXED_INDIRECT: 0xA1, _M.INDIRECT_INDEXED: 0xB1}),
    CatalogEntry(_O.LDX, {_M.IMMEDIATE: 0xA2, _M.ZERO_PAGE: 0xA6, _M.ZERO_PAGE_Y: 0xB6,
                          _M.ABSOLUTE: 0xAE, _M.ABSOLUTE_Y: 0xBE}),
    CatalogEntry(_O.LDY, {_M.IMMEDIATE: 0xA0, _M.ZERO_PAGE: 0xA4, _M.ZERO_PAGE_X: 0xB4,
                          _M.ABSOLUTE: 0xAC, _M.ABSOLUTE_X: 0xBC}),
    CatalogEntry(_O.STA, {_M.ZERO_PAGE: 0x85, _M.ZERO_PAGE_X: 0x95, _M.ABSOLUTE: 0x8D,
                          _M.ABSOLUTE_X: 0x9D, _M.ABSOLUTE_Y: 0x99,
                          _M.INDEXED_INDIRECT: 0x81, _M.INDIRECT_INDEXED: 0x91}),
    CatalogEntry(_O.STX, {_M.ZERO_PAGE: 0x86, _M.ZERO_PAGE_Y: 0x96, _M.ABSOLUTE: 0x8E}),
    CatalogEntry(_O.STY, {_M.ZERO_PAGE: 0x84, _M.ZERO_PAGE_X: 0x94, _M.ABSOLUTE: 0x8C}),
    # Arithmetic
    CatalogEntry(_O.ADC, {_M.IMMEDIATE: 0x69, _M.ZERO_PAGE: 0x65, _M.ZERO_PAGE_X: 0x75,
                          _M.ABSOLUTE: 0x6D, _M.ABSOLUTE_X: 0x7D, _M.ABSOLUTE_Y: 0x79,
                          _M.INDEXED_INDIRECT: 0x61, _M.INDIRECT_INDEXED: 0x71}),
    CatalogEntry(_O.SBC, {_M.IMMEDIATE: 0xE9, _M.ZERO_PAGE: 0xE5, _M.ZERO_PAGE_X: 0xF5,
                          _M.ABSOLUTE: 0xED, _M.ABSOLUTE_X: 0xFD, _M.ABSOLUTE_Y: 0xF9,
                          _M.INDEXED_INDIRECT: 0xE1, _M.INDIRECT_INDEXED: 0xF1}),
    CatalogEntry(_O.CMP, {_M.IMMEDIATE: 0xC9, _M.ZERO_PAGE: 0xC5, _M.ZERO_PAGE_X: 0xD5,
                          _M.ABSOLUTE: 0xCD, _M.ABSOLUTE_X: 0xDD, _M.ABSOLUTE_Y: 0xD9,
                          _M.INDEXED_INDIRECT: 0xC1, _M.INDIRECT_INDEXED: 0xD1}),
    CatalogEntry(_O.CPX, {_M.IMMEDIATE: 0xE0, _M.ZERO_PAGE: 0xE4, _M.ABSOLUTE: 0xEC}),
    CatalogEntry(_O.CPY, {_M.IMMEDIATE: 0xC0, _M.ZERO_PAGE: 0xC4, _M.ABSOLUTE: 0xCC}),
    # Increment / decrement
    CatalogEntry(_O.INC, {_M.ZERO_PAGE: 0xE6, _M.ZERO_PAGE_X: 0xF6, _M.ABSOLUTE: 0xEE,
                          _M.ABSOLUTE_X: 0xFE}),
    CatalogEntry(_O.DEC, {_M.ZERO_PAGE: 0xC6, _M.ZERO_PAGE_X: 0xD6, _M.ABSOLUTE: 0xCE,
                          _M.ABSOLUTE_X: 0xDE}),
    CatalogEntry(_O.INX, {_M.IMPLIED: 0xE8}),
    CatalogEntry(_O.INY, {_M.IMPLIED: 0xC8}),
    CatalogEntry(_O.DEX, {_M.IMPLIED: 0xCA}),
    CatalogEntry(_O.DEY, {_M.IMPLIED: 0x88}),
    # Logic
    CatalogEntry(_O.AND, {_M.IMMEDIATE: 0x29, _M.ZERO_PAGE: 0x25, _M.ZERO_PAGE_X: 0x35,
                          _M.ABSOLUTE: 0x2D, _M.ABSOLUTE_X: 0x3D, _M.ABSOLUTE_Y: 0x39,
                          _M.INDEXED_INDIRECT: 0x21, _M.INDIRECT_INDEXED: 0x31}),
    CatalogEntry(_O.ORA, {_M.IMMEDIATE: 0x09, _M.ZERO_PAGE: 0x05, _M.ZERO_PAGE_X: 0x15,
                          _M.ABSOLUTE: 0x0D, _M.ABSOLUTE_X: 0x1D, _M.ABSOLUTE_Y: 0x19,
                          _M.INDEXED_INDIRECT: 0x01, _M.INDIRECT_INDEXED: 0x11}),
    CatalogEntry(_O.EOR, {_M.IMMEDIATE: 0x49, _M.ZERO_PAGE: 0x45, _M.ZERO_PAGE_X: 0x55,
                          _M.ABSOLUTE: 0x4D, _M.ABSOLUTE_X: 0x5D, _M.ABSOLUTE_Y: 0x59,
                          _M.INDEXED_INDIRECT: 0x41, _M.INDIRECT_INDEXED: 0x51}),
    CatalogEntry(_O.BIT, {_M.ZERO_PAGE: 0x24, _M.ABSOLUTE: 0x2C}),
    # Shifts and rotates; the implied form acts on the accumulator
    CatalogEntry(_O.ASL, {_M.IMPLIED: 0x0A, _M.ZERO_PAGE: 0x06, _M.ZERO_PAGE_X: 0x16,
                          _M.ABSOLUTE: 0x0E, _M.ABSOLUTE_X: 0x1E}),
    CatalogEntry(_O.LSR, {_M.IMPLIED: 0x4A, _M.ZERO_PAGE: 0x46, _M.ZERO_PAGE_X: 0x56,
                          _M.ABSOLUTE: 0x4E, _M.ABSOLUTE_X: 0x5E}),
    CatalogEntry(_O.ROL, {_M.IMPLIED: 0x2A, _M.ZERO_PAGE: 0x26, _M.ZERO_PAGE_X: 0x36,
                          _M.ABSOLUTE: 0x2E, _M.ABSOLUTE_X: 0x3E}),
    CatalogEntry(_O.ROR, {_M.IMPLIED: 0x6A, _M.ZERO_PAGE: 0x66, _M.ZERO_PAGE_X: 0x76,
                          _M.ABSOLUTE: 0x6E, _M.ABSOLUTE_X: 0x7E}),
    # Transfers
    CatalogEntry(_O.TAX, {_M.IMPLIED: 0xAA}),
    CatalogEntry(_O.TAY, {_M.IMPLIED: 0xA8}),
    CatalogEntry(_O.TXA, {_M.IMPLIED: 0x8A}),
    CatalogEntry(_O.TYA, {_M.IMPLIED: 0x98}),
    CatalogEntry(_O.TSX, {_M.IMPLIED: 0xBA}),
    CatalogEntry(_O.TXS, {_M.IMPLIED: 0x9A}),
    # Stack
    CatalogEntry(_O.PHA, {_M.IMPLIED: 0x48}),
    CatalogEntry(_O.PHP, {_M.IMPLIED: 0x08}),
    CatalogEntry(_O.PLA, {_M.IMPLIED: 0x68}),
    CatalogEntry(_O.PLP, {_M.IMPLIED: 0x28}),
    # Branches
    CatalogEntry(_O.BCC, {_M.RELATIVE: 0x90}),
    CatalogEntry(_O.BCS, {_M.RELATIVE: 0xB0}),
    CatalogEntry(_O.BEQ, {_M.RELATIVE: 0xF0}),
    CatalogEntry(_O.BNE, {_M.RELATIVE: 0xD0}),
    CatalogEntry(_O.BMI, {_M.RELATIVE: 0x30}),
    CatalogEntry(_O.BPL, {_M.RELATIVE: 0x10}),
    CatalogEntry(_O.BVC, {_M.RELATIVE: 0x50}),
    CatalogEntry(_O.BVS, {_M.RELATIVE: 0x70}),
    # Jumps and subroutines
    CatalogEntry(_O.JMP, {_M.ABSOLUTE: 0x4C, _M.INDIRECT: 0x6C}),
    CatalogEntry(_O.JSR, {_M.ABSOLUTE: 0x20}),
    CatalogEntry(_O.RTS, {_M.IMPLIED: 0x60}),
    CatalogEntry(_O.RTI, {_M.IMPLIED: 0x40}),
    # Status flags
    CatalogEntry(_O.CLC, {_M.IMPLIED: 0x18}),
    CatalogEntry(_O.SEC, {_M.IMPLIED: 0x38}),
    CatalogEntry(_O.CLI, {_M.IMPLIED: 0x58}),
    CatalogEntry(_O.SEI, {_M.IMPLIED: 0x78}),
    CatalogEntry(_O.CLV, {_M.IMPLIED: 0xB8}),
    CatalogEntry(_O.CLD, {_M.IMPLIED: 0xD8}),
    CatalogEntry(_O.SED, {_M.IMPLIED: 0xF8}),
    # System
    CatalogEntry(_O.NOP, {_M.IMPLIED: 0xEA}),
    CatalogEntry(_O.BRK, {_M.IMPLIED: 0x00}),
)


OPCODE_TABLE: Sequence[Instruction | None] = build_instruction_table(DEFAULT_CATALOG)
