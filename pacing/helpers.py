from __future__ import annotations

from collections.abc import Callable, Iterable
from itertools import cycle
from math import floor

import numpy as np

from pacing.constants import NOISE_AMPLITUDE, TOTAL_PERIOD

NoiseSource = Callable[[], float]


# ════════════════════════════════════════════════════════════════════════
#  SHARED HELPERS
# ════════════════════════════════════════════════════════════════════════


def normalize(v: float) -> float:
    """Clamp a pacing factor into [0, 1]."""
    if v > 1:
        return 1.0
    if v < 0:
        return 0.0
    return v


def sign(v: float) -> float:
    if v > 0:
        return 1.0
    if v < 0:
        return -1.0
    return 0.0


def noise(rng: np.random.Generator, v: int = NOISE_AMPLITUDE) -> float:
    """Signed integer noise in [-v, -1] or [1, v].

    Magnitude and sign are drawn independently, so the result is never 0 and
    is not uniform over [-v, v].
    """
    n = floor(rng.random() * v) + 1
    if rng.random() > 0.5:
        return float(n)
    return float(-n)


def rng_noise(seed: int | None = None, amplitude: int = NOISE_AMPLITUDE) -> NoiseSource:
    rng = np.random.default_rng(seed)
    return lambda: noise(rng, amplitude)


def fixed_noise(values: float | Iterable[float] = 0.0) -> NoiseSource:
    """Replay a constant or a repeating sequence of noise values."""
    if isinstance(values, (int, float)):
        values = [float(values)]
    it = cycle(list(values))
    return lambda: next(it)


def cumulative_reference(target: float, period: int, total: int = TOTAL_PERIOD) -> float:
    # linear forecast of today's budget
    return target * period / total


def next_setpoint(target: float, cumulative: float, remaining: int) -> float:
    return max(0.0, (target - cumulative) / remaining)
