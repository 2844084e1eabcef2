from __future__ import annotations

import matplotlib.pyplot as plt

from pacing.constants import TOTAL_PERIOD
from pacing.session import History, Session

PANELS = (
    ("Cumulative Reference vs Actual", "cumulative"),
    ("Current Reference vs Actual", "current"),
    ("Pacing Factor", "pacing_factors"),
)
REFERENCE_COLOR = "#8884d8"
ACTUAL_COLOR = "#82ca9d"


def _style(ax, title: str, total: int):
    ax.set_title(title, fontsize=12, fontweight="bold")
    ax.set_xlim(0, total)
    ax.set_xlabel("Period")
    ax.grid(True, alpha=0.4, linestyle="--")


def make_figure(total: int = TOTAL_PERIOD):
    """Three stacked panels with empty lines, keyed by series name."""
    fig, axs = plt.subplots(3, 1, figsize=(10, 11), constrained_layout=True)
    lines = {}
    for ax, (title, key) in zip(axs, PANELS):
        _style(ax, title, total)
        if key == "pacing_factors":
            ax.set_ylim(0, 1)
            (lines["factor"],) = ax.plot([], [], color=REFERENCE_COLOR, label="value")
        else:
            (lines[f"{key}_reference"],) = ax.plot([], [], color=REFERENCE_COLOR, label="reference")
            (lines[f"{key}_actual"],) = ax.plot([], [], color=ACTUAL_COLOR, label="actual")
        ax.legend(fontsize=9, loc="upper left")
    return fig, axs, lines


def update_lines(axs, lines, history: History):
    for key in ("current", "cumulative"):
        pts = getattr(history, key)
        periods = [p.period for p in pts]
        lines[f"{key}_reference"].set_data(periods, [p.reference for p in pts])
        lines[f"{key}_actual"].set_data(periods, [p.actual for p in pts])
    lines["factor"].set_data(
        [p.period for p in history.pacing_factors],
        [p.value for p in history.pacing_factors],
    )
    # y axes start at 0 and grow with the data, except the factor panel
    for ax in axs[:2]:
        ax.relim()
        ax.autoscale_view(scalex=False)
        ax.set_ylim(bottom=0, auto=None)


def plot_history(history: History, total: int = TOTAL_PERIOD):
    fig, axs, lines = make_figure(total)
    update_lines(axs, lines, history)
    return fig


class LivePlot:
    """Observer that redraws the figure after every published session."""

    def __init__(self, total: int = TOTAL_PERIOD, pause: float = 0.001):
        self.fig, self.axs, self.lines = make_figure(total)
        self.pause = pause
        self.frames = 0

    def __call__(self, session: Session):
        update_lines(self.axs, self.lines, session.history)
        self.fig.suptitle(f"Period {session.sim.period} · {session.status}")
        self.fig.canvas.draw_idle()
        self.frames += 1
        if self.pause:
            plt.pause(self.pause)
