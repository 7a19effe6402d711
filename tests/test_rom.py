import logging

import pytest

from chip8vm.constants import PROGRAM_CAPACITY
from chip8vm.rom import read_program


def test_reads_whole_small_file(tmp_path):
    path = tmp_path / "game.ch8"
    path.write_bytes(bytes([0x12, 0x00]))
    assert read_program(path) == bytes([0x12, 0x00])


def test_truncates_large_file(tmp_path, caplog):
    path = tmp_path / "big.ch8"
    path.write_bytes(bytes(PROGRAM_CAPACITY + 10))
    with caplog.at_level(logging.WARNING, logger="chip8vm.rom"):
        data = read_program(str(path))
    assert len(data) == PROGRAM_CAPACITY
    assert "big.ch8" in caplog.text


def test_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        read_program(tmp_path / "missing.ch8")
