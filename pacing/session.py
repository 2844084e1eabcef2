from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

import numpy as np

from pacing.constants import (
    DEFAULT_KD, DEFAULT_KI, DEFAULT_KP, DEFAULT_PACING_FACTOR, DEFAULT_TARGET, ComparePoint, Mode,
    PacingConfig, Point, Status,
)
from pacing.controller import ControllerState, compute, setpoint, with_gains
from pacing.helpers import NoiseSource, cumulative_reference, next_setpoint
from pacing.policy import next_pacing_factor
from pacing.profiles import DemandProfile

logger = logging.getLogger(__name__)


class SimulationComplete(RuntimeError):
    """Raised when stepping a simulation that already reached its last period."""


class ParameterLocked(ValueError):
    """Raised when editing a parameter the current state does not allow."""


# ── State ───────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SimulationState:
    period: int = 0
    pacing_factor: float = DEFAULT_PACING_FACTOR
    cumulative_input: float = 0.0
    mode: Mode = Mode.PID
    target: float = DEFAULT_TARGET


@dataclass(frozen=True, slots=True)
class History:
    """Append-only plot series, one entry per completed period."""
    current: tuple[ComparePoint, ...] = ()
    cumulative: tuple[ComparePoint, ...] = ()
    pacing_factors: tuple[Point, ...] = ()

    def __len__(self) -> int:
        return len(self.pacing_factors)

    def append(self, current: ComparePoint, cumulative: ComparePoint, factor: Point) -> History:
        return History(
            current=self.current + (current,),
            cumulative=self.cumulative + (cumulative,),
            pacing_factors=self.pacing_factors + (factor,),
        )

    def arrays(self) -> dict[str, np.ndarray]:
        return {
            "period": np.array([p.period for p in self.pacing_factors], dtype=int),
            "reference": np.array([p.reference for p in self.current]),
            "actual": np.array([p.actual for p in self.current]),
            "cum_reference": np.array([p.reference for p in self.cumulative]),
            "cum_actual": np.array([p.actual for p in self.cumulative]),
            "factor": np.array([p.value for p in self.pacing_factors]),
        }


@dataclass(frozen=True, slots=True)
class StepResult:
    sim: SimulationState
    controller: ControllerState
    current: ComparePoint
    cumulative: ComparePoint
    factor: Point


# ════════════════════════════════════════════════════════════════════════
#  ONE-PERIOD STEP
# ════════════════════════════════════════════════════════════════════════


def tune_pid(
    sim: SimulationState,
    controller: ControllerState,
    noise: float,
    cfg: PacingConfig | None = None,
    demand: DemandProfile | None = None,
) -> StepResult:
    cfg = cfg or PacingConfig()
    total = cfg.total_periods
    if sim.period >= total:
        raise SimulationComplete(f"period {sim.period} already reached {total}")

    new_period = sim.period + 1
    rate = cfg.base_rate * (demand(new_period, total) if demand else 1.0)
    measured = max(0.0, rate * sim.pacing_factor + noise)
    new_cumulative = sim.cumulative_input + measured
    current = ComparePoint(new_period, controller.last_setpoint, measured)

    ctrl = compute(controller, measured)
    new_factor = next_pacing_factor(sim.pacing_factor, ctrl.control_value, sim.mode, cfg)

    # No setpoint follows the last period
    remaining = total - new_period
    if remaining > 0:
        ctrl = setpoint(ctrl, next_setpoint(sim.target, new_cumulative, remaining))

    return StepResult(
        sim=replace(
            sim, period=new_period, pacing_factor=new_factor, cumulative_input=new_cumulative,
        ),
        controller=ctrl,
        current=current,
        cumulative=ComparePoint(
            new_period, cumulative_reference(sim.target, new_period, total), new_cumulative,
        ),
        factor=Point(new_period, new_factor),
    )


# ════════════════════════════════════════════════════════════════════════
#  COMMANDS
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Start:
    pass


@dataclass(frozen=True, slots=True)
class Stop:
    pass


@dataclass(frozen=True, slots=True)
class Reset:
    pass


@dataclass(frozen=True, slots=True)
class Tick:
    noise: float = 0.0


@dataclass(frozen=True, slots=True)
class SetGains:
    kp: float
    ki: float
    kd: float


@dataclass(frozen=True, slots=True)
class SetTarget:
    target: float


@dataclass(frozen=True, slots=True)
class SetMode:
    mode: Mode


Command = Start | Stop | Reset | Tick | SetGains | SetTarget | SetMode


@dataclass(frozen=True, slots=True)
class Session:
    sim: SimulationState = field(default_factory=SimulationState)
    controller: ControllerState = field(default_factory=ControllerState)
    history: History = field(default_factory=History)
    status: Status = Status.IDLE


def apply(
    session: Session,
    command: Command,
    cfg: PacingConfig | None = None,
    demand: DemandProfile | None = None,
) -> Session:
    """Return the session that results from applying ``command``.

    Commands that make no sense in the current status (start on a finished
    run, tick while idle) leave the session unchanged. Parameter edits outside
    their window raise :class:`ParameterLocked`.
    """
    cfg = cfg or PacingConfig()
    sim = session.sim
    running = session.status is Status.RUNNING

    if isinstance(command, Tick):
        if not running:
            return session
        if sim.period >= cfg.total_periods:
            return replace(session, status=Status.COMPLETE)
        res = tune_pid(sim, session.controller, command.noise, cfg, demand)
        status = Status.COMPLETE if res.sim.period >= cfg.total_periods else Status.RUNNING
        if status is Status.COMPLETE:
            logger.info("simulation complete: spent %.0f of %.0f",
                        res.sim.cumulative_input, sim.target)
        return Session(
            sim=res.sim,
            controller=res.controller,
            history=session.history.append(res.current, res.cumulative, res.factor),
            status=status,
        )

    if isinstance(command, Start):
        if running or sim.period >= cfg.total_periods:
            return session
        logger.debug("start at period %d", sim.period)
        return replace(session, status=Status.RUNNING)

    if isinstance(command, Stop):
        if not running:
            return session
        logger.debug("stop at period %d", sim.period)
        return replace(session, status=Status.IDLE)

    if isinstance(command, Reset):
        logger.debug("reset")
        return Session()

    if isinstance(command, SetGains):
        if sim.period != 0:
            raise ParameterLocked("gains can only change before the first period")
        return replace(
            session,
            controller=with_gains(session.controller, command.kp, command.ki, command.kd),
        )

    if isinstance(command, SetTarget):
        if running:
            raise ParameterLocked("target cannot change while running")
        return replace(session, sim=replace(sim, target=command.target))

    if isinstance(command, SetMode):
        if running or sim.period != 0:
            raise ParameterLocked("mode can only change before the first period")
        return replace(session, sim=replace(sim, mode=Mode(command.mode)))

    raise TypeError(f"unknown command: {command!r}")


def run_session(
    noise: NoiseSource,
    *,
    kp: float = DEFAULT_KP,
    ki: float = DEFAULT_KI,
    kd: float = DEFAULT_KD,
    mode: Mode = Mode.PID,
    target: float = DEFAULT_TARGET,
    cfg: PacingConfig | None = None,
    demand: DemandProfile | None = None,
) -> Session:
    """Configure a fresh session and tick it to completion."""
    s = Session()
    for cmd in (SetGains(kp, ki, kd), SetTarget(target), SetMode(mode), Start()):
        s = apply(s, cmd, cfg, demand)
    while s.status is Status.RUNNING:
        s = apply(s, Tick(noise()), cfg, demand)
    return s
