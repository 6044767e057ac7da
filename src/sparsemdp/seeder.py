"""
Process wide seeds for random number generators.

Each model draws its seed from here once, when it's created,
so setting the root seed makes a whole run reproducible.
"""

import random
from typing import Optional

_MAX_SEED = 2**32 - 1

_root = random.Random()


def set_root_seed(seed: Optional[int]) -> None:
    """
    Resets the root generator. `None` reseeds it from system entropy.
    """
    _root.seed(seed)


def get_seed() -> int:
    """
    Returns a new seed from the root generator.
    """
    return _root.randint(0, _MAX_SEED)
