"""Unit tests for the flat 6502 memory."""

import pytest

from py6502.bus import ADDRESS_SPACE, BusError, Memory


def test_memory_is_zero_initialised() -> None:
    memory = Memory()

    assert len(memory) == ADDRESS_SPACE
    assert memory.snapshot() == bytes(ADDRESS_SPACE)


def test_store_load_round_trip_every_address() -> None:
    memory = Memory()

    for address in range(ADDRESS_SPACE):
        memory.store8(address, address ^ 0xA5)

    for address in range(ADDRESS_SPACE):
        assert memory.load8(address) == (address ^ 0xA5) & 0xFF


def test_store_masks_value_to_byte() -> None:
    memory = Memory()

    memory.store8(0x0010, 0x1FF)

    assert memory.load8(0x0010) == 0xFF


def test_word_access_is_little_endian() -> None:
    memory = Memory()

    memory.store16(0x0200, 0xABCD)

    assert memory.load8(0x0200) == 0xCD
    assert memory.load8(0x0201) == 0xAB
    assert memory.load16(0x0200) == 0xABCD


def test_word_access_wraps_at_top_of_memory() -> None:
    memory = Memory()
    memory.store8(0xFFFF, 0x34)
    memory.store8(0x0000, 0x12)

    assert memory.load16(0xFFFF) == 0x1234


def test_host_write_and_read() -> None:
    memory = Memory()

    memory.write(0x0600, [0xA9, 0x01, 0x00])

    assert memory.read(0x0600, 3) == bytes([0xA9, 0x01, 0x00])
    assert memory.read(0x0603, 0) == b""


@pytest.mark.parametrize("address,length", [(-1, 1), (0xFFFF, 2), (0x10000, 0), (0, -1)])
def test_host_access_out_of_range(address: int, length: int) -> None:
    memory = Memory()

    with pytest.raises(BusError):
        memory.read(address, length)


def test_host_write_rejects_overflowing_block() -> None:
    memory = Memory()

    with pytest.raises(BusError):
        memory.write(0xFFFE, b"\x01\x02\x03")


def test_clear_zeroes_memory() -> None:
    memory = Memory()
    memory.write(0x1000, b"\xFF" * 16)

    memory.clear()

    assert memory.read(0x1000, 16) == bytes(16)
