from __future__ import annotations

from collections.abc import Callable

import numpy as np

# Demand profiles scale the spend available per period. ``flat`` leaves the
# base rate untouched.

DemandProfile = Callable[[int, int], float]


# ════════════════════════════════════════════════════════════════════════
#  DEMAND PROFILES
# ════════════════════════════════════════════════════════════════════════


def _flat(_period, _total):
    return 1.0


def _morning_peak(period, total):
    x = period / total
    return 0.6 + 0.9 * float(np.exp(-((x - 0.3) ** 2) / 0.01))


def _evening_ramp(period, total):
    x = period / total
    return 0.4 + 1.2 / (1 + float(np.exp(-(x - 0.6) * 12)))


def _decay(period, total):
    """Most of the demand early, then it dries up."""
    return 1.8 * float(np.exp(-3 * period / total)) + 0.1


def _lunch_dip(period, total):
    x = period / total
    return 1.2 - 0.8 * float(np.exp(-((x - 0.5) ** 2) / 0.005))


def _scarce(_period, _total):
    """Supply cannot cover the target even at full pacing."""
    return 0.5


PROFILES: dict[str, DemandProfile] = {
    "Flat": _flat, "Morning peak": _morning_peak, "Evening ramp": _evening_ramp,
    "Decay": _decay, "Lunch dip": _lunch_dip, "STRESS Scarce": _scarce,
}
