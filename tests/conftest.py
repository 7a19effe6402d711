import random

import pytest

from chip8vm.machine import Machine

NO_KEYS = [False] * 16


def write_word(machine, address, word):
    machine.memory[address] = (word >> 8) & 0xFF
    machine.memory[address + 1] = word & 0xFF


def execute(machine, word, keys=NO_KEYS):
    """Place ``word`` at the program counter and run one tick"""
    write_word(machine, machine.program_counter, word)
    return machine.tick(keys)


def press(*keys):
    snapshot = [False] * 16
    for k in keys:
        snapshot[k] = True
    return snapshot


@pytest.fixture
def machine():
    return Machine(rng=random.Random(1234))
