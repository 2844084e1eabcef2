from __future__ import annotations

from dataclasses import dataclass, replace

from pacing.constants import DEFAULT_KD, DEFAULT_KI, DEFAULT_KP, DEFAULT_SETPOINT


@dataclass(frozen=True, slots=True)
class ControllerState:
    """PID gains plus the error terms carried between periods.

    ``control_value`` is output only: it is rebuilt by :func:`compute` from the
    gains and the error terms and never written by anything else.
    """
    kp: float = DEFAULT_KP
    ki: float = DEFAULT_KI
    kd: float = DEFAULT_KD
    last_setpoint: float = DEFAULT_SETPOINT
    sum_error: float = 0.0
    last_error: float = 0.0
    control_value: float = 0.0


def compute(c: ControllerState, measured: float) -> ControllerState:
    error = c.last_setpoint - measured
    sum_error = c.sum_error + error  # no anti-windup
    d_error = error - c.last_error
    return replace(
        c,
        sum_error=sum_error,
        last_error=error,
        control_value=c.kp * error + c.ki * sum_error + c.kd * d_error,
    )


def setpoint(c: ControllerState, value: float) -> ControllerState:
    return replace(c, last_setpoint=value)


def with_gains(c: ControllerState, kp: float, ki: float, kd: float) -> ControllerState:
    return replace(c, kp=kp, ki=ki, kd=kd)
