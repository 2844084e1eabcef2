__version__ = "0.1.0"

from .constants import TOTAL_PERIOD, Mode, PacingConfig, Status
from .controller import ControllerState, compute, setpoint
from .policy import next_pacing_factor
from .session import Session, SimulationState, apply, run_session, tune_pid
