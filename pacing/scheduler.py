from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from pacing.constants import INTERVAL, PacingConfig, Status
from pacing.helpers import NoiseSource, rng_noise
from pacing.profiles import DemandProfile
from pacing.session import Command, Session, Start, Stop, Tick, apply

logger = logging.getLogger(__name__)

Observer = Callable[[Session], None]


class RepeatingTask:
    """Call ``callback`` every ``interval`` seconds until cancelled.

    Calls are strictly sequential: the next wait starts only after the
    previous callback returned.
    """

    def __init__(self, interval: float, callback: Callable[[], None]):
        self.interval = interval
        self.callback = callback
        self._cancelled = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        self._cancelled.set()

    def run(self):
        while not self._cancelled.wait(self.interval):
            self.callback()

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: float | None = None):
        if self._thread is not None:
            self._thread.join(timeout)


class Runner:
    """Drive a session with ticks and publish each new session to observers."""

    def __init__(
        self,
        session: Session | None = None,
        noise: NoiseSource | None = None,
        interval: float = INTERVAL / 1000,
        cfg: PacingConfig | None = None,
        demand: DemandProfile | None = None,
    ):
        self.session = session or Session()
        self.noise = noise or rng_noise()
        self.interval = interval
        self.cfg = cfg or PacingConfig()
        self.demand = demand
        self.observers: list[Observer] = []
        self._task: RepeatingTask | None = None
        self._lock = threading.RLock()

    def subscribe(self, observer: Observer):
        self.observers.append(observer)

    def send(self, command: Command) -> Session:
        with self._lock:
            self.session = apply(self.session, command, self.cfg, self.demand)
            for obs in self.observers:
                obs(self.session)
            return self.session

    def _tick(self, task: RepeatingTask):
        with self._lock:
            if task.cancelled or self.session.status is not Status.RUNNING:
                task.cancel()
                return
            self.send(Tick(self.noise()))
            if self.session.status is not Status.RUNNING:
                logger.debug("ticker cancelled at period %d", self.session.sim.period)
                task.cancel()

    def start(self, block: bool = False) -> Session:
        """Start ticking; a runner that is already ticking is left alone."""
        with self._lock:
            if self._task is not None and not self._task.cancelled:
                return self.session
            self.send(Start())
            if self.session.status is not Status.RUNNING:
                return self.session
            task = RepeatingTask(self.interval, lambda: self._tick(task))
            self._task = task
        if block:
            task.run()
        else:
            task.start()
        return self.session

    def stop(self) -> Session:
        with self._lock:
            if self._task is not None:
                self._task.cancel()
            return self.send(Stop())

    def join(self, timeout: float | None = None):
        if self._task is not None:
            self._task.join(timeout)
