"""Per-step execution trace for diagnostics.

The CPU hands one :class:`TraceEntry` per executed instruction to whatever sink
the host installed. :class:`TraceRecorder` is the stock sink: a ring buffer of
recent steps that can be formatted or dumped through the debug log.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Protocol, Sequence

from .debug import debug_log


@dataclass(frozen=True)
class TraceEntry:
    address: int
    opcode: int | None
    mnemonic: str
    mode: str
    operand: int | None
    effective_address: int | None
    a: int
    x: int
    y: int
    sp: int
    p: int
    pc: int
    halted: bool
    note: str = ""

    @classmethod
    def capture(
        cls,
        cpu_state,
        address: int,
        opcode: int | None,
        *,
        mnemonic: str = "",
        mode: str = "",
        operand: int | None = None,
        effective_address: int | None = None,
        halted: bool = False,
        note: str = "",
    ) -> "TraceEntry":
        """Build an entry from the register file as it stands after the step."""

        return cls(
            address=address & 0xFFFF,
            opcode=None if opcode is None else opcode & 0xFF,
            mnemonic=mnemonic,
            mode=mode,
            operand=None if operand is None else operand & 0xFF,
            effective_address=None if effective_address is None else effective_address & 0xFFFF,
            a=cpu_state.a & 0xFF,
            x=cpu_state.x & 0xFF,
            y=cpu_state.y & 0xFF,
            sp=cpu_state.sp & 0xFF,
            p=cpu_state.p & 0xFF,
            pc=cpu_state.pc & 0xFFFF,
            halted=halted,
            note=note,
        )


class TraceSink(Protocol):
    """Anything that accepts trace entries, e.g. ``list.append``."""

    def __call__(self, entry: TraceEntry) -> None:  # pragma: no cover - interface
        ...


class TraceRecorder:
    """Ring buffer that stores recent CPU snapshots."""

    def __init__(self, capacity: int = 256) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: List[TraceEntry | None] = [None] * capacity
        self._index = 0
        self._size = 0

    def __call__(self, entry: TraceEntry) -> None:
        self._append(entry)

    def __len__(self) -> int:
        return self._size

    def record_step(self, cpu_state, address: int, opcode: int | None, **details) -> None:
        self._append(TraceEntry.capture(cpu_state, address, opcode, **details))

    def entries(self, limit: int | None = None) -> Iterable[TraceEntry]:
        count = self._size if limit is None else min(self._size, max(limit, 0))
        for offset in range(count):
            index = (self._index - count + offset) % self._capacity
            entry = self._entries[index]
            if entry is not None:
                yield entry

    def last_entry(self) -> TraceEntry | None:
        if self._size == 0:
            return None
        index = (self._index - 1) % self._capacity
        return self._entries[index]

    def clear(self) -> None:
        self._entries = [None] * self._capacity
        self._index = 0
        self._size = 0

    def format_entries(self, limit: int | None = None) -> Sequence[str]:
        lines: list[str] = []
        for entry in self.entries(limit):
            opcode = "--" if entry.opcode is None else f"{entry.opcode:02X}"
            mnemonic = entry.mnemonic or "?"
            operand = "--" if entry.operand is None else f"{entry.operand:02X}"
            target = "----" if entry.effective_address is None else f"{entry.effective_address:04X}"
            flags: list[str] = []
            if entry.halted:
                flags.append("HALT")
            if entry.note:
                flags.append(entry.note)
            flag_repr = ",".join(flags) if flags else "-"
            line = (
                f"addr={entry.address:04X} opcode={opcode} {mnemonic:<3} {entry.mode or '-':<16} "
                f"operand={operand} ea={target} "
                f"A={entry.a:02X} X={entry.x:02X} Y={entry.y:02X} SP={entry.sp:02X} P={entry.p:02X} "
                f"PC={entry.pc:04X} flags={flag_repr}"
            )
            lines.append(line)
        return lines

    def dump(self, category: str, limit: int | None = None) -> None:
        for line in self.format_entries(limit):
            debug_log(category, line)

    def _append(self, entry: TraceEntry) -> None:
        self._entries[self._index] = entry
        self._index = (self._index + 1) % self._capacity
        if self._size < self._capacity:
            self._size += 1
