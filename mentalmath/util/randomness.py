from __future__ import annotations

"""Randomness helpers: one shared RNG, seedable through the SEED env var."""

import os
import random
from typing import Optional

_shared: Optional[random.Random] = None


def _env_seed() -> Optional[int]:
    seed = os.environ.get("SEED")
    if seed is None:
        return None
    try:
        return int(seed)
    except ValueError:
        return None


def seed_if_needed() -> Optional[int]:
    """Re-seed the shared RNG if SEED is set. Returns the seed used."""
    global _shared
    s = _env_seed()
    if s is not None:
        _shared = random.Random(s)
    return s


def shared_rng() -> random.Random:
    global _shared
    if _shared is None:
        _shared = random.Random(_env_seed())
    return _shared
