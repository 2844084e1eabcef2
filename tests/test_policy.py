import numpy as np
import pytest

from pacing.constants import Mode, PacingConfig
from pacing.helpers import fixed_noise, noise, normalize, rng_noise, sign
from pacing.policy import multiplicative_factor, next_pacing_factor, pid_factor


@pytest.mark.parametrize("v, expected", [
    (-3.0, 0.0), (-0.0001, 0.0), (0.0, 0.0), (0.25, 0.25), (1.0, 1.0), (1.5, 1.0), (1e9, 1.0),
])
def test_normalize(v, expected):
    assert normalize(v) == expected


def test_normalize_idempotent_and_bounded():
    for v in np.linspace(-5, 5, 101):
        once = normalize(float(v))
        assert 0.0 <= once <= 1.0
        assert normalize(once) == once


def test_sign():
    assert sign(3.2) == 1.0
    assert sign(-0.1) == -1.0
    assert sign(0.0) == 0.0


def test_pid_factor_uses_divisor():
    assert pid_factor(0.1, 5000.0, PacingConfig()) == pytest.approx(0.6)
    assert pid_factor(0.1, 5000.0, PacingConfig(pid_divisor=50000.0)) == pytest.approx(0.2)


def test_pid_factor_clamps():
    assert pid_factor(0.5, 1e6, PacingConfig()) == 1.0
    assert pid_factor(0.5, -1e6, PacingConfig()) == 0.0


def test_multiplicative_moves_ten_percent_by_sign():
    cfg = PacingConfig()
    assert multiplicative_factor(0.5, 3.0, cfg) == pytest.approx(0.55)
    assert multiplicative_factor(0.5, 1e9, cfg) == pytest.approx(0.55)
    assert multiplicative_factor(0.5, -0.001, cfg) == pytest.approx(0.45)
    assert multiplicative_factor(0.5, 0.0, cfg) == 0.5


def test_multiplicative_clamps_at_one():
    assert multiplicative_factor(0.95, 1.0, PacingConfig()) == 1.0


def test_multiplicative_custom_step():
    assert multiplicative_factor(0.5, 1.0, PacingConfig(multiplicative_step=0.2)) == pytest.approx(0.6)


def test_next_pacing_factor_dispatch():
    assert next_pacing_factor(0.1, 5000.0, Mode.PID) == pytest.approx(0.6)
    assert next_pacing_factor(0.1, 5000.0, Mode.MULTIPLICATIVE) == pytest.approx(0.11)


def test_next_pacing_factor_unknown_mode_is_identity():
    assert next_pacing_factor(0.3, 5000.0, "bogus") == 0.3


def test_noise_range_and_sign():
    rng = np.random.default_rng(7)
    vals = [noise(rng, 1000) for _ in range(2000)]
    assert all(1 <= abs(v) <= 1000 for v in vals)
    assert all(v == int(v) for v in vals)
    assert any(v > 0 for v in vals) and any(v < 0 for v in vals)


def test_rng_noise_is_seeded():
    a, b = rng_noise(3), rng_noise(3)
    assert [a() for _ in range(20)] == [b() for _ in range(20)]


def test_fixed_noise_cycles():
    n = fixed_noise([1.0, -2.0])
    assert [n() for _ in range(5)] == [1.0, -2.0, 1.0, -2.0, 1.0]
    zero = fixed_noise()
    assert zero() == 0.0 and zero() == 0.0
