from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from pacing.constants import TOTAL_PERIOD
from pacing.session import Session


# ════════════════════════════════════════════════════════════════════════
#  PER-RUN ANALYSIS
# ════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class RunStats:
    final_ratio: float  # cumulative / target
    final_error_pct: float  # |1 - ratio| * 100
    tracking_rmse_pct: float  # cumulative vs linear reference, % of target
    factor_smoothness: float  # mean |Δfactor|
    saturation_pct: float  # factor pegged at 0 or 1
    reach_95: float  # first period with >= 95% of target, NaN if never


@dataclass(slots=True)
class RunAgg:
    mean_ratio: float
    std_ratio: float
    p10_ratio: float
    p90_ratio: float
    final_error_pct: float
    tracking_rmse_pct: float
    factor_smoothness: float
    saturation_pct: float
    reach_95: float


def compute_run_stats(session: Session) -> RunStats | None:
    if len(session.history) == 0:
        return None
    target = session.sim.target
    a = session.history.arrays()
    f = a["factor"]

    ratio = float(a["cum_actual"][-1] / target) if target else float("nan")
    rmse = float(np.sqrt(np.mean((a["cum_actual"] - a["cum_reference"]) ** 2)))
    smooth = float(np.mean(np.abs(np.diff(f)))) if len(f) > 1 else 0.0
    saturation = float(np.mean((f <= 0.0) | (f >= 1.0)) * 100)

    hit = np.nonzero(a["cum_actual"] >= 0.95 * target)[0]
    reach = float(a["period"][hit[0]]) if len(hit) else float("nan")

    return RunStats(
        final_ratio=ratio,
        final_error_pct=abs(1 - ratio) * 100,
        tracking_rmse_pct=rmse / target * 100 if target else float("nan"),
        factor_smoothness=smooth,
        saturation_pct=saturation,
        reach_95=reach,
    )


def aggregate(stats_list: list[RunStats], total: int = TOTAL_PERIOD) -> RunAgg | None:
    if not stats_list:
        return None
    ratios = [s.final_ratio for s in stats_list]
    reach = [s.reach_95 for s in stats_list]
    return RunAgg(
        mean_ratio=float(np.mean(ratios)),
        std_ratio=float(np.std(ratios)),
        p10_ratio=float(np.percentile(ratios, 10)),
        p90_ratio=float(np.percentile(ratios, 90)),
        final_error_pct=float(np.mean([s.final_error_pct for s in stats_list])),
        tracking_rmse_pct=float(np.mean([s.tracking_rmse_pct for s in stats_list])),
        factor_smoothness=float(np.mean([s.factor_smoothness for s in stats_list])),
        saturation_pct=float(np.mean([s.saturation_pct for s in stats_list])),
        # runs that never get there count as one period past the horizon
        reach_95=float(np.mean(np.nan_to_num(reach, nan=total + 1))),
    )


# ════════════════════════════════════════════════════════════════════════
#  OUTPUT / FORMATTING
# ════════════════════════════════════════════════════════════════════════


def _off_one(v: float) -> float:
    return abs(1 - v)


def _as_is(v: float) -> float:
    return v


# (name, attr, format, score) -- lower score is better
METRICS: list[tuple[str, str, str, Callable[[float], float]]] = [
    ("Final spend / target", "mean_ratio", ".3f", _off_one),
    ("Final ratio (P10)", "p10_ratio", ".3f", _off_one),
    ("Final ratio (P90)", "p90_ratio", ".3f", _off_one),
    ("Final ratio (std)", "std_ratio", ".4f", _as_is),
    ("Final |error| %", "final_error_pct", ".2f", _as_is),
    ("Tracking RMSE %", "tracking_rmse_pct", ".2f", _as_is),
    ("Factor smoothness", "factor_smoothness", ".4f", _as_is),
    ("Saturation %", "saturation_pct", ".1f", _as_is),
    ("Period to 95%", "reach_95", ".1f", _as_is),
]


def _esc(s: str) -> str:
    return s.replace("|", "\\|")


def print_table(label: str, results: dict[str, RunAgg | None]):
    names = [n for n in results if results[n] is not None]
    if not names:
        return

    print(f"\n### {label}\n")
    print("| Metric | " + " | ".join(_esc(n) for n in names) + " |")
    print("|--------|" + "-------:|" * len(names))

    for name, attr, fmt, score in METRICS:
        vals = [getattr(results[n], attr) for n in names]
        scores = [score(v) for v in vals]
        best = min(scores)
        cells = []
        for v, sc in zip(vals, scores):
            s = f"{v:{fmt}}"
            cells.append(f"**{s}**" if sc == best and scores.count(best) == 1 else s)
        print(f"| {_esc(name)} | " + " | ".join(cells) + " |")

    print()


def print_verdict(overall: dict[str, RunAgg | None]):
    names = [n for n in overall if overall[n] is not None]
    if not names:
        return

    print("\n### Verdict\n")
    print("| Metric | Best | Value |")
    print("|--------|------|-------|")
    for name, attr, fmt, score in METRICS:
        best = min(names, key=lambda n: score(getattr(overall[n], attr)))
        print(f"| {_esc(name)} | **{_esc(best)}** | {getattr(overall[best], attr):{fmt}} |")
    print()
