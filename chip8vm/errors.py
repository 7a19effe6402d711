"""
Conditions reported by the machine at tick granularity.

None of these is fatal: ``Machine.tick`` logs them, returns them in the
tick output and keeps accepting ticks.
"""


class Chip8Error(Exception):
    """Base class for machine conditions"""


class UnrecognizedInstruction(Chip8Error):
    """The decoder found no instruction matching a word"""

    def __init__(self, word: int):
        super().__init__(f"unrecognized instruction ${word:04X}")
        self.word = word


class StackError(Chip8Error):
    """Call stack misuse by the running program"""


class StackOverflow(StackError):
    def __init__(self):
        super().__init__("call with a full stack")


class StackUnderflow(StackError):
    def __init__(self):
        super().__init__("return with an empty stack")
