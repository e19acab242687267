from __future__ import annotations

"""Randomness helpers: seeding and injectable uniform random sources.

The engine takes a zero-argument callable returning a float in [0, 1) wherever
it draws; these helpers build such callables.
"""

import os
import random
from typing import Callable, Iterable, Optional

import numpy as np


RandomSource = Callable[[], float]


def seed_if_needed() -> Optional[int]:
    """Seed RNGs if the SEED env var is set; returns the seed used."""
    seed = os.environ.get("SEED")
    if seed is None:
        return None
    try:
        s = int(seed)
    except ValueError:
        return None
    random.seed(s)
    np.random.seed(s)
    return s


def make_rng(seed: Optional[int] = None) -> RandomSource:
    """Independent uniform source; unseeded when `seed` is None."""
    return random.Random(seed).random


def sequence_rng(values: Iterable[float]) -> RandomSource:
    """Replay fixed draws in order, cycling when exhausted."""
    fixed = [float(v) for v in values]
    if not fixed:
        raise ValueError("sequence_rng needs at least one value")
    for v in fixed:
        if not 0.0 <= v < 1.0:
            raise ValueError(f"random draw out of range [0, 1): {v}")
    state = {"i": 0}

    def _next() -> float:
        v = fixed[state["i"] % len(fixed)]
        state["i"] += 1
        return v

    return _next
