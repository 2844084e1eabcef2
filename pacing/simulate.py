"""
Budget pacing simulator.

run:     one seeded session, markdown summary (optionally plotted / live)
report:  Monte Carlo comparison of pacing policies and gain presets

Run:  pacing-sim report
"""

from __future__ import annotations

import argparse
import io
import logging
import sys
import time
from datetime import datetime
from pathlib import Path

from pacing.analysis import aggregate, compute_run_stats, print_table, print_verdict
from pacing.constants import (
    BASE_RATE, DEFAULT_KD, DEFAULT_KI, DEFAULT_KP, DEFAULT_TARGET, INTERVAL, MP_CTX,
    MULTIPLICATIVE_STEP, N_REPORT_RUNS, N_WORKERS, NOISE_AMPLITUDE, PID_DIVISOR, TOTAL_PERIOD,
    Mode, PacingConfig, Status,
)
from pacing.helpers import rng_noise
from pacing.profiles import PROFILES
from pacing.session import Session, SetGains, SetMode, SetTarget, run_session

logger = logging.getLogger("pacing")

# name -> (mode, kp, ki, kd)
STRATEGIES: dict[str, tuple[Mode, float, float, float]] = {
    "P": (Mode.PID, 1.0, 0.0, 0.0),
    "PI": (Mode.PID, 0.6, 0.05, 0.0),
    "PID": (Mode.PID, 0.6, 0.05, 0.2),
    "Mult P": (Mode.MULTIPLICATIVE, 1.0, 0.0, 0.0),
    "Mult PI": (Mode.MULTIPLICATIVE, 0.6, 0.05, 0.0),
}


def setup_logging(level=logging.WARNING):
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    logger.setLevel(level)
    if not logger.handlers:
        logger.addHandler(handler)
    return logger


# ════════════════════════════════════════════════════════════════════════
#  SINGLE RUN
# ════════════════════════════════════════════════════════════════════════


def print_summary(session: Session, total: int = TOTAL_PERIOD):
    sim, c = session.sim, session.controller
    st = compute_run_stats(session)
    print("| Parameter | Value |")
    print("|-----------|-------|")
    print(f"| Mode | {sim.mode} |")
    print(f"| Gains | kp={c.kp:g} ki={c.ki:g} kd={c.kd:g} |")
    print(f"| Target | {sim.target:.0f} |")
    print(f"| Periods | {sim.period}/{total} ({session.status}) |")
    print(f"| Spent | {sim.cumulative_input:.0f} |")
    print(f"| Final pacing factor | {sim.pacing_factor:.4f} |")
    if st is not None:
        print(f"| Spend / target | {st.final_ratio:.4f} |")
        print(f"| Tracking RMSE | {st.tracking_rmse_pct:.2f}% |")
        print(f"| Saturation | {st.saturation_pct:.1f}% |")
    print()


def cmd_run(args, cfg: PacingConfig) -> int:
    demand = PROFILES[args.profile]
    noise = rng_noise(args.seed, cfg.noise_amplitude)

    if args.live:
        from pacing.plotting import LivePlot
        from pacing.scheduler import Runner

        runner = Runner(noise=noise, interval=args.interval / 1000, cfg=cfg, demand=demand)
        for cmd in (SetGains(args.kp, args.ki, args.kd), SetTarget(args.target),
                    SetMode(Mode(args.mode))):
            runner.send(cmd)
        runner.subscribe(LivePlot(cfg.total_periods))
        try:
            runner.start(block=True)
        except KeyboardInterrupt:
            runner.stop()
        session = runner.session
    else:
        session = run_session(
            noise, kp=args.kp, ki=args.ki, kd=args.kd, mode=Mode(args.mode),
            target=args.target, cfg=cfg, demand=demand,
        )

    print_summary(session, cfg.total_periods)

    if args.plot or args.live:
        import matplotlib.pyplot as plt

        from pacing.plotting import plot_history

        if args.plot:
            plot_history(session.history, cfg.total_periods)
        plt.show()
    return 0 if session.status is Status.COMPLETE else 1


# ════════════════════════════════════════════════════════════════════════
#  MONTE CARLO REPORT
# ════════════════════════════════════════════════════════════════════════


def _worker(args):
    """One (profile, seed, target, cfg), all strategies."""
    pname, seed, target, cfg = args
    demand = PROFILES[pname]
    results = {}
    for sname, (mode, kp, ki, kd) in STRATEGIES.items():
        session = run_session(
            rng_noise(seed, cfg.noise_amplitude), kp=kp, ki=ki, kd=kd, mode=mode,
            target=target, cfg=cfg, demand=demand,
        )
        results[sname] = compute_run_stats(session)
    return pname, results


def run_report(n_runs: int, target: float, cfg: PacingConfig, workers: int = N_WORKERS):
    n_profiles = len(PROFILES)
    tasks = [(pname, seed, target, cfg) for pname in PROFILES for seed in range(n_runs)]
    n_total = len(tasks) * len(STRATEGIES)

    print("## Pacing Policy Comparison\n")
    print(f"{n_profiles} profiles x {n_runs} seeds x {len(STRATEGIES)} strategies"
          f" = {n_total} sessions ({workers} workers)\n")
    print("| Strategy | Mode | Kp | Ki | Kd |")
    print("|----------|------|----|----|----|")
    for sname, (mode, kp, ki, kd) in STRATEGIES.items():
        print(f"| {sname} | {mode} | {kp:g} | {ki:g} | {kd:g} |")
    print()

    t0 = time.monotonic()
    per_profile = {pname: {s: [] for s in STRATEGIES} for pname in PROFILES}
    done = 0

    with MP_CTX.Pool(workers) as pool:
        for pname, results in pool.imap_unordered(_worker, tasks, chunksize=10):
            done += 1
            if done % 20 == 0 or done == len(tasks):
                elapsed = time.monotonic() - t0
                rate = done / elapsed if elapsed > 0 else 0
                eta = (len(tasks) - done) / rate if rate > 0 else 0
                sys.stderr.write(
                    f"\r  MC [{done}/{len(tasks)}] "
                    f"{elapsed:.0f}s elapsed, ~{eta:.0f}s remaining"
                )
                sys.stderr.flush()
            for sname, st in results.items():
                if st:
                    per_profile[pname][sname].append(st)

    sys.stderr.write("\r" + " " * 72 + "\r")
    sys.stderr.flush()
    wall = time.monotonic() - t0
    print(f"_Completed in {wall:.1f}s ({n_total / max(wall, 1e-9):.0f} sessions/s)_\n")

    for pname, per_strategy in per_profile.items():
        print_table(
            f"{pname}  ({n_runs} runs)",
            {s: aggregate(sl, cfg.total_periods) for s, sl in per_strategy.items()},
        )

    overall = {
        s: aggregate(
            [st for pname in per_profile for st in per_profile[pname][s]], cfg.total_periods
        )
        for s in STRATEGIES
    }
    print_table(f"OVERALL  ({n_profiles} profiles × {n_runs} runs)", overall)
    print_verdict(overall)
    return overall


class _Tee:
    """Write to both stdout and a buffer."""
    def __init__(self, out, buf):
        self._out, self._buf = out, buf
    def write(self, s):
        self._out.write(s)
        self._buf.write(s)
    def flush(self):
        self._out.flush()
        self._buf.flush()


def cmd_report(args, cfg: PacingConfig) -> int:
    now = datetime.now()
    outdir = Path(args.out) if args.out else Path.cwd()
    outpath = outdir / f"results_{now.strftime('%Y-%m-%d_%H%M')}.md"

    buf = io.StringIO()
    orig_stdout = sys.stdout
    sys.stdout = _Tee(orig_stdout, buf)
    try:
        print("# Budget Pacing Battle Royale\n")
        print(f"**{now.strftime('%Y-%m-%d %H:%M')}**\n")
        print("| Parameter | Value |")
        print("|-----------|-------|")
        print(f"| Target | {args.target:.0f} |")
        print(f"| Periods | {cfg.total_periods} |")
        print(f"| Base rate | {cfg.base_rate:.0f} |")
        print(f"| Noise amplitude | ±{cfg.noise_amplitude} |")
        print(f"| PID divisor | {cfg.pid_divisor:g} |")
        print(f"| Multiplicative step | {cfg.multiplicative_step:g} |")
        print(f"| Workers | {args.workers} |")
        print()
        run_report(args.runs, args.target, cfg, args.workers)
    finally:
        sys.stdout = orig_stdout

    outpath.write_text(buf.getvalue())
    print(f"\nResults saved to {outpath}")
    return 0


# ════════════════════════════════════════════════════════════════════════
#  MAIN
# ════════════════════════════════════════════════════════════════════════


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pacing-sim", description=__doc__.strip().splitlines()[0])
    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("--base-rate", type=float, default=BASE_RATE)
    parser.add_argument("--noise", type=int, default=NOISE_AMPLITUDE, help="noise amplitude")
    parser.add_argument("--divisor", type=float, default=PID_DIVISOR)
    parser.add_argument("--step", type=float, default=MULTIPLICATIVE_STEP,
                        help="multiplicative step")
    parser.add_argument("--periods", type=int, default=TOTAL_PERIOD, help="simulation horizon")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="simulate one session")
    run.add_argument("--kp", type=float, default=DEFAULT_KP)
    run.add_argument("--ki", type=float, default=DEFAULT_KI)
    run.add_argument("--kd", type=float, default=DEFAULT_KD)
    run.add_argument("--target", type=float, default=DEFAULT_TARGET)
    run.add_argument("--mode", choices=[m.value for m in Mode], default=Mode.PID.value)
    run.add_argument("--profile", choices=list(PROFILES), default="Flat")
    run.add_argument("--seed", type=int, default=None)
    run.add_argument("--plot", action="store_true")
    run.add_argument("--live", action="store_true")
    run.add_argument("--interval", type=float, default=INTERVAL, help="ms per tick (--live)")
    run.set_defaults(func=cmd_run)

    report = sub.add_parser("report", help="Monte Carlo policy comparison")
    report.add_argument("--runs", type=int, default=N_REPORT_RUNS)
    report.add_argument("--target", type=float, default=DEFAULT_TARGET)
    report.add_argument("--workers", type=int, default=N_WORKERS)
    report.add_argument("--out", default=None, help="directory for results_*.md")
    report.set_defaults(func=cmd_report)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose > 1 else
                  logging.INFO if args.verbose else logging.WARNING)
    cfg = PacingConfig(
        base_rate=args.base_rate, noise_amplitude=args.noise,
        pid_divisor=args.divisor, multiplicative_step=args.step, total_periods=args.periods,
    )
    return args.func(args, cfg)


if __name__ == "__main__":
    sys.exit(main())
