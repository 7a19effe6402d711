"""
Reading program images from storage.
"""

import logging
from pathlib import Path
from typing import Union

from .constants import PROGRAM_CAPACITY

logger = logging.getLogger(__name__)


def read_program(path: Union[str, Path]) -> bytes:
    """Read a ROM file, keeping only what fits above the load origin"""
    path = Path(path)
    data = path.read_bytes()
    if len(data) > PROGRAM_CAPACITY:
        logger.warning(f"{path.name} is {len(data)} bytes; only the first {PROGRAM_CAPACITY} are loaded.")
        data = data[:PROGRAM_CAPACITY]
    logger.debug(f"Read {len(data)} bytes from {path}.")
    return data
