"""Flat 64KB memory for the 6502 emulator.

The 6502 sees a single 16-bit address space with no protection model, so the
whole space is one zero-initialised ``bytearray``. The CPU goes through
``load8``/``store8``/``load16``; the controlling host uses ``read``/``write`` to
place programs and inspect results between steps.
"""

from __future__ import annotations

ADDRESS_SPACE = 0x10000


def _mask16(value: int) -> int:
    """Clamp ``value`` to the 16-bit address space."""

    return value & 0xFFFF


class BusError(Exception):
    """Raised when the host addresses memory outside the 16-bit space."""


class Memory:
    """Byte-addressable 64KB memory owned by a single CPU instance."""

    def __init__(self) -> None:
        self._data = bytearray(ADDRESS_SPACE)

    def __len__(self) -> int:
        return len(self._data)

    def load8(self, address: int) -> int:
        return self._data[_mask16(address)]

    def store8(self, address: int, value: int) -> None:
        self._data[_mask16(address)] = value & 0xFF

    def load16(self, address: int) -> int:
        low = self.load8(address)
        high = self.load8(_mask16(address + 1))
        return (high << 8) | low

    def store16(self, address: int, value: int) -> None:
        self.store8(address, value & 0xFF)
        self.store8(_mask16(address + 1), (value >> 8) & 0xFF)

    # ------------------------------------------------------------------
    # Host access

    def read(self, address: int, length: int) -> bytes:
        start, end = self._check_range(address, length)
        return bytes(self._data[start:end])

    def write(self, address: int, data: bytes | bytearray | list[int]) -> None:
        payload = bytes(data)
        start, end = self._check_range(address, len(payload))
        self._data[start:end] = payload

    def snapshot(self) -> bytes:
        return bytes(self._data)

    def clear(self) -> None:
        self._data[:] = bytes(len(self._data))

    def _check_range(self, address: int, length: int) -> tuple[int, int]:
        if length < 0:
            raise BusError(f"negative length {length}")
        end = address + length
        if address < 0 or address >= len(self._data) or end > len(self._data):
            raise BusError(
                f"range {address:#06x}+{length} outside memory 0x0000-{len(self._data) - 1:#06x}")
        return address, end
