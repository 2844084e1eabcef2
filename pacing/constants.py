from __future__ import annotations

import multiprocessing
import os
from dataclasses import dataclass
from enum import StrEnum

# ── Constants ───────────────────────────────────────────────────────────

TOTAL_PERIOD = 100
INTERVAL = 100  # ms per tick
DEFAULT_KP = 1.0
DEFAULT_KI = 0.0
DEFAULT_KD = 0.0
DEFAULT_SETPOINT = 6000.0
DEFAULT_TARGET = 800000.0
DEFAULT_PACING_FACTOR = 0.1
BASE_RATE = 10000.0  # spend per period at pacing factor 1
NOISE_AMPLITUDE = 1000
PID_DIVISOR = 10000.0  # controller units -> factor units
MULTIPLICATIVE_STEP = 0.1
N_REPORT_RUNS = 50
N_WORKERS = min(os.cpu_count() or 4, 8)
MP_CTX = multiprocessing.get_context("fork")


class Mode(StrEnum):
    PID = "pid"
    MULTIPLICATIVE = "multiplicative"


class Status(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"


@dataclass(slots=True)
class PacingConfig:
    base_rate: float = BASE_RATE
    noise_amplitude: int = NOISE_AMPLITUDE
    pid_divisor: float = PID_DIVISOR
    multiplicative_step: float = MULTIPLICATIVE_STEP
    total_periods: int = TOTAL_PERIOD


# ── Data ────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ComparePoint:
    period: int
    reference: float
    actual: float


@dataclass(frozen=True, slots=True)
class Point:
    period: int
    value: float
