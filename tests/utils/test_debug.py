"""Tests for the environment-driven debug logging."""

from __future__ import annotations

import pytest

from py6502.utils import debug_enabled, debug_log, reload_categories
from py6502.utils.debug import ENV_VAR


@pytest.fixture
def categories(monkeypatch):
    def configure(value: str) -> None:
        monkeypatch.setenv(ENV_VAR, value)
        reload_categories()

    yield configure
    monkeypatch.delenv(ENV_VAR, raising=False)
    reload_categories()


def test_disabled_without_environment(monkeypatch) -> None:
    monkeypatch.delenv(ENV_VAR, raising=False)
    reload_categories()

    assert not debug_enabled()
    assert not debug_enabled("cpu")


def test_selected_categories(categories) -> None:
    categories("CPU, trace")

    assert debug_enabled("cpu")
    assert debug_enabled("trace")
    assert not debug_enabled("bus")
    assert debug_enabled()


def test_all_enables_everything(categories) -> None:
    categories("all")

    assert debug_enabled("anything")


def test_debug_log_formats_arguments(categories, capsys) -> None:
    categories("cpu")

    debug_log("cpu", "pc=%04x", 0x0600)
    debug_log("bus", "hidden")

    assert capsys.readouterr().out == "[PY6502][cpu] pc=0600\n"


def test_debug_log_survives_bad_format(categories, capsys) -> None:
    categories("cpu")

    debug_log("cpu", "no placeholders", 1)

    assert capsys.readouterr().out == "[PY6502][cpu] no placeholders (1,)\n"


def test_cpu_step_logs_under_cpu_category(categories, capsys) -> None:
    from py6502.cpu import MOS6502

    categories("cpu")
    cpu = MOS6502()
    cpu.memory.write(0x0600, bytes([0xEA]))

    cpu.step()

    assert "[PY6502][cpu] addr=0600 opcode=ea NOP pc=0601" in capsys.readouterr().out
