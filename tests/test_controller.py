import math

import pytest

from pacing.controller import ControllerState, compute, setpoint, with_gains


def test_defaults():
    c = ControllerState()
    assert (c.kp, c.ki, c.kd) == (1.0, 0.0, 0.0)
    assert c.last_setpoint == 6000.0
    assert c.sum_error == c.last_error == c.control_value == 0.0


def test_compute_proportional_only():
    c = compute(ControllerState(), 1000.0)
    assert c.last_error == 5000.0
    assert c.sum_error == 5000.0
    assert c.control_value == 5000.0


def test_compute_full_pid():
    c = ControllerState(kp=0.5, ki=0.1, kd=2.0, last_setpoint=100.0,
                        sum_error=40.0, last_error=10.0)
    out = compute(c, 70.0)
    # error 30, integral 70, derivative 20
    assert out.sum_error == 70.0
    assert out.last_error == 30.0
    assert out.control_value == pytest.approx(0.5 * 30 + 0.1 * 70 + 2.0 * 20)


def test_compute_keeps_setpoint_and_gains():
    c = ControllerState(kp=2.0, ki=0.3, kd=0.1, last_setpoint=1234.0)
    for x in (0.0, 1234.0, 99999.0, -5.0):
        out = compute(c, x)
        assert out.last_setpoint == c.last_setpoint
        assert (out.kp, out.ki, out.kd) == (c.kp, c.ki, c.kd)


def test_compute_does_not_mutate_input():
    c = ControllerState()
    compute(c, 10.0)
    assert c == ControllerState()


def test_integral_has_no_windup_limit():
    c = ControllerState(ki=1.0)
    for _ in range(1000):
        c = compute(c, 0.0)
    assert c.sum_error == 6000.0 * 1000


def test_setpoint_replaces_only_setpoint():
    computed = compute(ControllerState(kp=1.5), 2500.0)
    out = setpoint(computed, 42.0)
    assert out.last_setpoint == 42.0
    assert out.sum_error == computed.sum_error
    assert out.last_error == computed.last_error
    assert out.control_value == computed.control_value
    assert out.kp == computed.kp


def test_nan_propagates():
    out = compute(ControllerState(), float("nan"))
    assert math.isnan(out.control_value)


def test_with_gains():
    c = with_gains(ControllerState(sum_error=3.0), 0.2, 0.3, 0.4)
    assert (c.kp, c.ki, c.kd) == (0.2, 0.3, 0.4)
    assert c.sum_error == 3.0
