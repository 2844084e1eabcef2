import matplotlib

matplotlib.use("Agg")

import pytest  # noqa: E402

from pacing import simulate  # noqa: E402
from pacing.constants import DEFAULT_KD, DEFAULT_KI, DEFAULT_KP, PacingConfig  # noqa: E402
from pacing.profiles import PROFILES  # noqa: E402


def test_run_prints_summary(capsys):
    assert simulate.main(["run", "--seed", "1"]) == 0
    out = capsys.readouterr().out
    assert "| Mode | pid |" in out
    assert "| Periods | 100/100 (complete) |" in out
    assert "Spend / target" in out


def test_run_multiplicative_with_profile(capsys):
    rc = simulate.main(["--step", "0.2", "run", "--mode", "multiplicative",
                        "--profile", "Decay", "--seed", "3", "--kp", "0.5"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "| Mode | multiplicative |" in out
    assert "kp=0.5" in out


def test_bad_mode_rejected():
    with pytest.raises(SystemExit):
        simulate.main(["run", "--mode", "bang-bang"])


def test_worker_covers_every_strategy():
    pname, results = simulate._worker(("Flat", 0, 800000.0, PacingConfig()))
    assert pname == "Flat"
    assert set(results) == set(simulate.STRATEGIES)
    assert all(st is not None for st in results.values())


def test_report_writes_results(tmp_path, capsys):
    rc = simulate.main(["report", "--runs", "1", "--workers", "1", "--out", str(tmp_path)])
    assert rc == 0
    files = list(tmp_path.glob("results_*.md"))
    assert len(files) == 1
    text = files[0].read_text()
    assert text.startswith("# Budget Pacing Battle Royale")
    for pname in PROFILES:
        assert f"### {pname}  (1 runs)" in text
    assert "### Verdict" in text
    assert "Results saved to" in capsys.readouterr().out


def test_run_summary_uses_configured_horizon(capsys):
    rc = simulate.main(["--periods", "10", "run", "--seed", "1", "--target", "10000"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "| Periods | 10/10 (complete) |" in out
    assert "/100" not in out


def test_run_gain_defaults_match_constants():
    args = simulate.build_parser().parse_args(["run"])
    assert (args.kp, args.ki, args.kd) == (DEFAULT_KP, DEFAULT_KI, DEFAULT_KD)
