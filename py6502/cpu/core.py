"""MOS 6502 execution engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, ClassVar, Dict, Sequence

from py6502.bus import Memory
from py6502.utils import TraceEntry, TraceSink, debug_enabled, debug_log

from .addressing import Operand, resolve_operand
from .errors import AddressingModeError, CPUError, IllegalOpcodeError, OpcodeConflictError
from .opcodes import OPCODE_TABLE, AddressingMode, Instruction, Operation, lookup

__all__ = [
    "AddressingModeError",
    "CPUError",
    "CPUState",
    "IllegalOpcodeError",
    "MOS6502",
    "OpcodeConflictError",
    "StepResult",
    "StepStatus",
]


FLAG_N = 0x80
FLAG_V = 0x40
FLAG_U = 0x20
FLAG_B = 0x10
FLAG_D = 0x08
FLAG_I = 0x04
FLAG_Z = 0x02
FLAG_C = 0x01

DEFAULT_LOAD_ADDRESS = 0x0600
DEFAULT_STACK_POINTER = 0xFF
DEFAULT_STATUS = FLAG_U | FLAG_B


@dataclass
class CPUState:
    """Snapshot of the 6502 register file."""

    a: int = 0x00
    x: int = 0x00
    y: int = 0x00
    sp: int = DEFAULT_STACK_POINTER
    p: int = DEFAULT_STATUS
    pc: int = DEFAULT_LOAD_ADDRESS

    def clone(self) -> "CPUState":
        return CPUState(self.a, self.x, self.y, self.sp, self.p, self.pc)


class StepStatus(Enum):
    RUNNING = auto()
    HALTED = auto()
    FAULTED = auto()


@dataclass(frozen=True)
class StepResult:
    """Outcome of a single :meth:`MOS6502.step` call."""

    status: StepStatus
    address: int
    opcode: int | None = None
    instruction: Instruction | None = None
    error: CPUError | None = None

    @property
    def ok(self) -> bool:
        return self.status is not StepStatus.FAULTED

    @property
    def mnemonic(self) -> str:
        return "" if self.instruction is None else self.instruction.mnemonic

    def raise_for_status(self) -> None:
        """Raise the carried error if the step faulted."""

        if self.error is not None:
            raise self.error


Handler = Callable[[Instruction, Operand], None]


@dataclass
class MOS6502:
    """6502 CPU: register file, memory and the fetch-decode-execute loop."""

    memory: Memory = field(default_factory=Memory)
    instruction_table: Sequence[Instruction | None] = field(default=OPCODE_TABLE)
    trace: TraceSink | None = None
    reset_state: CPUState = field(default_factory=CPUState)

    STACK_PAGE: ClassVar[int] = 0x0100
    _REGISTERS: ClassVar[tuple[str, ...]] = ("a", "x", "y", "sp")

    state: CPUState = field(init=False)
    halted: bool = field(default=False, init=False)
    fault: CPUError | None = field(default=None, init=False)
    instruction_count: int = field(default=0, init=False)
    _handlers: Dict[Operation, Handler] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.instruction_table) != 0x100:
            raise ValueError(f"instruction table must have 256 slots, got {len(self.instruction_table)}")
        handlers: Dict[Operation, Handler] = {}
        for operation in Operation:
            handler = getattr(self, operation.handler, None)
            if handler is None:
                raise CPUError(f"handler '{operation.handler}' not implemented for {operation.mnemonic}")
            handlers[operation] = handler
        self._handlers = handlers
        self.state = self.reset_state.clone()

    def reset(self) -> None:
        """Restore the reset posture. Memory is left untouched."""

        self.state = self.reset_state.clone()
        self.halted = False
        self.fault = None
        self.instruction_count = 0

    @property
    def running(self) -> bool:
        return not self.halted and self.fault is None

    def step(self) -> StepResult:
        """Execute a single instruction and report how it went."""

        if self.fault is not None:
            return StepResult(StepStatus.FAULTED, self.state.pc, error=self.fault)
        if self.halted:
            return StepResult(StepStatus.HALTED, self.state.pc)

        address = self.state.pc
        opcode = self._fetch_byte()
        instruction = lookup(self.instruction_table, opcode)
        if instruction is None:
            return self._fail(IllegalOpcodeError(opcode, address), address, opcode, None)

        try:
            operand = resolve_operand(
                self.memory, self.state.pc, instruction.mode, self.state.x, self.state.y)
            self.state.pc = (self.state.pc + operand.size) & 0xFFFF
            self._handlers[instruction.operation](instruction, operand)
        except CPUError as exc:
            return self._fail(exc, address, opcode, instruction)

        self.instruction_count += 1
        if debug_enabled("cpu"):
            debug_log(
                "cpu",
                "addr=%04x opcode=%02x %s pc=%04x",
                address,
                opcode,
                instruction.mnemonic,
                self.state.pc,
            )
        self._emit_trace(address, opcode, instruction, operand)
        status = StepStatus.HALTED if self.halted else StepStatus.RUNNING
        return StepResult(status, address, opcode, instruction)

    def run(self, max_steps: int | None = None) -> StepResult:
        """Step until the CPU halts or faults, or ``max_steps`` have run."""

        if max_steps is not None and max_steps <= 0:
            raise ValueError("max_steps must be positive")
        executed = 0
        while True:
            result = self.step()
            executed += 1
            if result.status is not StepStatus.RUNNING:
                return result
            if max_steps is not None and executed >= max_steps:
                return result

    def _fail(self, error: CPUError, address: int, opcode: int,
              instruction: Instruction | None) -> StepResult:
        self.fault = error
        self.state.pc = address
        debug_log("cpu", "fault at %04x: %s", address, error)
        if self.trace is not None:
            self.trace(TraceEntry.capture(
                self.state,
                address,
                opcode,
                mnemonic="" if instruction is None else instruction.mnemonic,
                mode="" if instruction is None else instruction.mode.name,
                note="fault",
            ))
        return StepResult(StepStatus.FAULTED, address, opcode, instruction, error)

    def _emit_trace(self, address: int, opcode: int, instruction: Instruction,
                    operand: Operand) -> None:
        if self.trace is None:
            return
        self.trace(TraceEntry.capture(
            self.state,
            address,
            opcode,
            mnemonic=instruction.mnemonic,
            mode=instruction.mode.name,
            operand=operand.value,
            effective_address=operand.address,
            halted=self.halted,
        ))

    # ------------------------------------------------------------------
    # Loads, stores and transfers

    def op_load(self, instruction: Instruction, operand: Operand) -> None:
        register = self._require_register(instruction)
        self._set_register(register, operand.value)
        self._update_nz_flags(operand.value)

    def op_store(self, instruction: Instruction, operand: Operand) -> None:
        register = self._require_register(instruction)
        self._write_byte(self._require_address(instruction, operand), self._get_register(register))

    def op_transfer(self, instruction: Instruction, _: Operand) -> None:
        source = self._require_register(instruction)
        target = instruction.operation.target
        if target is None:
            raise CPUError(f"instruction {instruction.mnemonic} missing target register")
        value = self._get_register(source)
        self._set_register(target, value)
        self._update_nz_flags(value)

    def op_txs(self, _: Instruction, __: Operand) -> None:
        self.state.sp = self.state.x

    # ------------------------------------------------------------------
    # Arithmetic

    def op_adc(self, _: Instruction, operand: Operand) -> None:
        self.state.a = self._add8(self.state.a, operand.value)

    def op_sbc(self, _: Instruction, operand: Operand) -> None:
        # Binary mode only: A - M - !C == A + ~M + C
        self.state.a = self._add8(self.state.a, operand.value ^ 0xFF)

    def op_compare(self, instruction: Instruction, operand: Operand) -> None:
        register = self._get_register(self._require_register(instruction))
        value = operand.value & 0xFF
        self._set_flag(FLAG_C, register >= value)
        self._update_nz_flags((register - value) & 0xFF)

    def op_inc_register(self, instruction: Instruction, _: Operand) -> None:
        register = self._require_register(instruction)
        result = (self._get_register(register) + 1) & 0xFF
        self._set_register(register, result)
        self._update_nz_flags(result)

    def op_dec_register(self, instruction: Instruction, _: Operand) -> None:
        register = self._require_register(instruction)
        result = (self._get_register(register) - 1) & 0xFF
        self._set_register(register, result)
        self._update_nz_flags(result)

    def op_inc_memory(self, instruction: Instruction, operand: Operand) -> None:
        self._modify_memory(instruction, operand, self._op_inc)

    def op_dec_memory(self, instruction: Instruction, operand: Operand) -> None:
        self._modify_memory(instruction, operand, self._op_dec)

    # ------------------------------------------------------------------
    # Logic

    def op_and(self, _: Instruction, operand: Operand) -> None:
        self.state.a = (self.state.a & operand.value) & 0xFF
        self._update_nz_flags(self.state.a)

    def op_ora(self, _: Instruction, operand: Operand) -> None:
        self.state.a = (self.state.a | operand.value) & 0xFF
        self._update_nz_flags(self.state.a)

    def op_eor(self, _: Instruction, operand: Operand) -> None:
        self.state.a = (self.state.a ^ operand.value) & 0xFF
        self._update_nz_flags(self.state.a)

    def op_bit(self, _: Instruction, operand: Operand) -> None:
        value = operand.value & 0xFF
        self._set_flag(FLAG_Z, (self.state.a & value) == 0)
        self._set_flag(FLAG_N, (value & 0x80) != 0)
        self._set_flag(FLAG_V, (value & 0x40) != 0)

    # ------------------------------------------------------------------
    # Shifts and rotates

    def op_asl(self, instruction: Instruction, operand: Operand) -> None:
        self._shift(instruction, operand, self._op_asl)

    def op_lsr(self, instruction: Instruction, operand: Operand) -> None:
        self._shift(instruction, operand, self._op_lsr)

    def op_rol(self, instruction: Instruction, operand: Operand) -> None:
        self._shift(instruction, operand, self._op_rol)

    def op_ror(self, instruction: Instruction, operand: Operand) -> None:
        self._shift(instruction, operand, self._op_ror)

    # ------------------------------------------------------------------
    # Branches

    def op_branch_bne(self, _: Instruction, operand: Operand) -> None:
        if not self._get_flag(FLAG_Z):
            self._branch(operand.value)

    def op_branch_beq(self, _: Instruction, operand: Operand) -> None:
        if self._get_flag(FLAG_Z):
            self._branch(operand.value)

    def op_branch_bcc(self, _: Instruction, operand: Operand) -> None:
        if not self._get_flag(FLAG_C):
            self._branch(operand.value)

    def op_branch_bcs(self, _: Instruction, operand: Operand) -> None:
        if self._get_flag(FLAG_C):
            self._branch(operand.value)

    def op_branch_bpl(self, _: Instruction, operand: Operand) -> None:
        if not self._get_flag(FLAG_N):
            self._branch(operand.value)

    def op_branch_bmi(self, _: Instruction, operand: Operand) -> None:
        if self._get_flag(FLAG_N):
            self._branch(operand.value)

    def op_branch_bvc(self, _: Instruction, operand: Operand) -> None:
        if not self._get_flag(FLAG_V):
            self._branch(operand.value)

    def op_branch_bvs(self, _: Instruction, operand: Operand) -> None:
        if self._get_flag(FLAG_V):
            self._branch(operand.value)

    # ------------------------------------------------------------------
    # Jumps, subroutines and the stack

    def op_jmp(self, instruction: Instruction, operand: Operand) -> None:
        self.state.pc = self._require_address(instruction, operand)

    def op_jsr(self, instruction: Instruction, operand: Operand) -> None:
        # The return address pushed is that of the last JSR byte.
        self._push_word((self.state.pc - 1) & 0xFFFF)
        self.state.pc = self._require_address(instruction, operand)

    def op_rts(self, _: Instruction, __: Operand) -> None:
        self.state.pc = (self._pull_word() + 1) & 0xFFFF

    def op_rti(self, _: Instruction, __: Operand) -> None:
        self.state.p = self._pull_byte()
        self.state.pc = self._pull_word()

    def op_pha(self, _: Instruction, __: Operand) -> None:
        self._push_byte(self.state.a)

    def op_php(self, _: Instruction, __: Operand) -> None:
        self._push_byte(self.state.p | FLAG_B | FLAG_U)

    def op_pla(self, _: Instruction, __: Operand) -> None:
        self.state.a = self._pull_byte()
        self._update_nz_flags(self.state.a)

    def op_plp(self, _: Instruction, __: Operand) -> None:
        self.state.p = self._pull_byte()

    # ------------------------------------------------------------------
    # Status flags and system

    def op_clc(self, _: Instruction, __: Operand) -> None:
        self._set_flag(FLAG_C, False)

    def op_sec(self, _: Instruction, __: Operand) -> None:
        self._set_flag(FLAG_C, True)

    def op_cli(self, _: Instruction, __: Operand) -> None:
        self._set_flag(FLAG_I, False)

    def op_sei(self, _: Instruction, __: Operand) -> None:
        self._set_flag(FLAG_I, True)

    def op_clv(self, _: Instruction, __: Operand) -> None:
        self._set_flag(FLAG_V, False)

    def op_cld(self, _: Instruction, __: Operand) -> None:
        self._set_flag(FLAG_D, False)

    def op_sed(self, _: Instruction, __: Operand) -> None:
        self._set_flag(FLAG_D, True)

    def op_nop(self, _: Instruction, __: Operand) -> None:
        """No operation."""

    def op_brk(self, _: Instruction, __: Operand) -> None:
        """Stop execution; no interrupt vector is taken."""

        self.halted = True

    # ------------------------------------------------------------------
    # Fetch and memory helpers

    def _fetch_byte(self) -> int:
        value = self._read_byte(self.state.pc)
        self.state.pc = (self.state.pc + 1) & 0xFFFF
        return value

    def _read_byte(self, address: int) -> int:
        return self.memory.load8(address & 0xFFFF)

    def _write_byte(self, address: int, value: int) -> None:
        self.memory.store8(address & 0xFFFF, value & 0xFF)

    def _modify_memory(self, instruction: Instruction, operand: Operand,
                       mutate: Callable[[int], int]) -> int:
        address = self._require_address(instruction, operand)
        result = mutate(operand.value & 0xFF) & 0xFF
        self._write_byte(address, result)
        return result

    def _shift(self, instruction: Instruction, operand: Operand,
               mutate: Callable[[int], int]) -> None:
        if instruction.mode is AddressingMode.IMPLIED:
            self.state.a = mutate(self.state.a) & 0xFF
        else:
            self._modify_memory(instruction, operand, mutate)

    def _require_address(self, instruction: Instruction, operand: Operand) -> int:
        if operand.address is None:
            raise AddressingModeError(
                f"instruction {instruction.mnemonic} needs an address, mode {instruction.mode.name} has none")
        return operand.address

    # ------------------------------------------------------------------
    # Register helpers

    def _get_register(self, which: str) -> int:
        if which not in self._REGISTERS:
            raise CPUError(f"unknown register {which}")
        return getattr(self.state, which)

    def _set_register(self, which: str, value: int) -> None:
        if which not in self._REGISTERS:
            raise CPUError(f"unknown register {which}")
        setattr(self.state, which, value & 0xFF)

    def _require_register(self, instruction: Instruction) -> str:
        register = instruction.operation.register
        if register is None:
            raise CPUError(f"instruction {instruction.mnemonic} missing register metadata")
        return register

    # ------------------------------------------------------------------
    # Flag helpers

    def _set_flag(self, flag: int, enabled: bool) -> None:
        if enabled:
            self.state.p |= flag
        else:
            self.state.p &= ~flag & 0xFF

    def _get_flag(self, flag: int) -> bool:
        return (self.state.p & flag) != 0

    def _update_nz_flags(self, value: int) -> None:
        value &= 0xFF
        self._set_flag(FLAG_N, (value & 0x80) != 0)
        self._set_flag(FLAG_Z, value == 0)

    def _add8(self, x: int, y: int) -> int:
        x &= 0xFF
        y &= 0xFF
        carry = 1 if self._get_flag(FLAG_C) else 0
        total = x + y + carry
        result = total & 0xFF
        # Overflow: both addends share a sign that the result does not.
        overflow = (~(x ^ y) & (x ^ result) & 0x80) != 0
        self._set_flag(FLAG_V, overflow)
        self._set_flag(FLAG_C, total > 0xFF)
        self._update_nz_flags(result)
        return result

    def _branch(self, displacement: int) -> None:
        displacement &= 0xFF
        if displacement >= 0x80:
            self.state.pc = (self.state.pc - (0x100 - displacement)) & 0xFFFF
        else:
            self.state.pc = (self.state.pc + displacement) & 0xFFFF

    # ------------------------------------------------------------------
    # 8-bit operation helpers

    def _op_inc(self, value: int) -> int:
        result = (value + 1) & 0xFF
        self._update_nz_flags(result)
        return result

    def _op_dec(self, value: int) -> int:
        result = (value - 1) & 0xFF
        self._update_nz_flags(result)
        return result

    def _op_asl(self, value: int) -> int:
        total = (value << 1) & 0x1FF
        result = total & 0xFF
        self._set_flag(FLAG_C, (total & 0x100) != 0)
        self._update_nz_flags(result)
        return result

    def _op_lsr(self, value: int) -> int:
        result = (value >> 1) & 0x7F
        self._set_flag(FLAG_C, (value & 0x01) != 0)
        self._update_nz_flags(result)
        return result

    def _op_rol(self, value: int) -> int:
        carry_in = 1 if self._get_flag(FLAG_C) else 0
        total = ((value << 1) | carry_in) & 0x1FF
        result = total & 0xFF
        self._set_flag(FLAG_C, (total & 0x100) != 0)
        self._update_nz_flags(result)
        return result

    def _op_ror(self, value: int) -> int:
        carry_in = 0x80 if self._get_flag(FLAG_C) else 0
        result = ((value >> 1) | carry_in) & 0xFF
        self._set_flag(FLAG_C, (value & 0x01) != 0)
        self._update_nz_flags(result)
        return result

    # ------------------------------------------------------------------
    # Stack helpers

    def _push_byte(self, value: int) -> None:
        self._write_byte(self.STACK_PAGE | self.state.sp, value)
        self.state.sp = (self.state.sp - 1) & 0xFF

    def _push_word(self, value: int) -> None:
        self._push_byte((value >> 8) & 0xFF)
        self._push_byte(value & 0xFF)

    def _pull_byte(self) -> int:
        self.state.sp = (self.state.sp + 1) & 0xFF
        return self._read_byte(self.STACK_PAGE | self.state.sp)

    def _pull_word(self) -> int:
        low = self._pull_byte()
        high = self._pull_byte()
        return (high << 8) | low
