"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from nesdbg.config.model import RuntimeConfig
from nesdbg.config.settings import build_runtime_config, load_runtime_config
from nesdbg.const import DEFAULT_ROM_CHUNK_SIZE, DEFAULT_SERIAL_BAUD


def test_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    config = load_runtime_config()

    assert isinstance(config, RuntimeConfig)
    assert config.serial_baud == DEFAULT_SERIAL_BAUD == 38400
    assert config.serial_bytesize == 8
    assert config.serial_parity == "O"
    assert config.serial_stopbits == 1
    assert config.serial_settle_delay == pytest.approx(0.2)
    assert config.rom_chunk_size == DEFAULT_ROM_CHUNK_SIZE
    assert config.halt_poll_interval == pytest.approx(0.01)
    assert config.halt_wait_timeout == 0
    assert config.log_file is None
    assert not config.metrics_enabled


def test_toml_file_and_overrides(tmp_path: Path) -> None:
    config_file = tmp_path / "nesdbg.toml"
    config_file.write_text(
        """
[nesdbg]
serial_port = "/dev/ttyUSB1"
serial_parity = "even"
halt_wait_timeout = 2.5
metrics_enabled = true
""",
        encoding="utf-8",
    )

    config = load_runtime_config(config_file, {"serial_port": "/dev/ttyUSB7", "serial_baud": None})

    assert config.serial_port == "/dev/ttyUSB7"
    assert config.serial_baud == 38400
    assert config.serial_parity == "E"
    assert config.halt_wait_timeout == pytest.approx(2.5)
    assert config.metrics_enabled


def test_implicit_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "nesdbg.toml").write_text('script_dir = "tests/hw"\n', encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert load_runtime_config().script_dir == "tests/hw"


def test_missing_explicit_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Cannot read config file"):
        load_runtime_config(tmp_path / "absent.toml")


def test_invalid_toml(tmp_path: Path) -> None:
    bad = tmp_path / "bad.toml"
    bad.write_text("serial_port = \n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid TOML"):
        load_runtime_config(bad)


@pytest.mark.parametrize(
    ("raw", "field"),
    [
        ({"serial_baud": 10}, "serial_baud"),
        ({"serial_parity": "X"}, "serial_parity"),
        ({"serial_bytesize": 9}, "serial_bytesize"),
        ({"serial_stopbits": 3}, "serial_stopbits"),
        ({"rom_chunk_size": 0}, "rom_chunk_size"),
        ({"halt_poll_interval": -1}, "halt_poll_interval"),
        ({"metrics_port": 70000}, "metrics_port"),
        ({"log_file": "  "}, "log_file"),
        ({"no_such_option": 1}, "no_such_option"),
    ],
)
def test_invalid_values_name_the_field(raw: dict, field: str) -> None:
    with pytest.raises(ValueError, match=field):
        build_runtime_config(raw)


def test_paths_expand_user(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", "/home/tester")
    config = build_runtime_config({"asm_dir": "~/asm", "log_file": "~/nesdbg.log"})
    assert config.asm_dir == "/home/tester/asm"
    assert config.log_file == "/home/tester/nesdbg.log"


def test_fractional_stop_bits_kept() -> None:
    assert build_runtime_config({"serial_stopbits": 1.5}).serial_stopbits == 1.5
    assert build_runtime_config({"serial_stopbits": 2}).serial_stopbits == 2
