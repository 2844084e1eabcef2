from __future__ import annotations

from collections.abc import Callable

from pacing.constants import Mode, PacingConfig
from pacing.helpers import normalize, sign


# ════════════════════════════════════════════════════════════════════════
#  PACING POLICIES: controller output -> next pacing factor
# ════════════════════════════════════════════════════════════════════════


def pid_factor(current: float, control_value: float, cfg: PacingConfig) -> float:
    """Additive update: shift the factor by the scaled control value."""
    return normalize(current + control_value / cfg.pid_divisor)


def multiplicative_factor(current: float, control_value: float, cfg: PacingConfig) -> float:
    """LinkedIn-style update: +/- a fixed fraction keyed on the sign only.

    The magnitude of the control value is ignored.
    """
    return normalize((1 + sign(control_value) * cfg.multiplicative_step) * current)


PACING_POLICIES: dict[Mode, Callable[[float, float, PacingConfig], float]] = {
    Mode.PID: pid_factor,
    Mode.MULTIPLICATIVE: multiplicative_factor,
}


def next_pacing_factor(
    current: float, control_value: float, mode: Mode, cfg: PacingConfig | None = None,
) -> float:
    policy = PACING_POLICIES.get(mode)
    if policy is None:
        return current
    return policy(current, control_value, cfg or PacingConfig())
