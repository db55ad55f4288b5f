from pathlib import Path

import pytest

from laser_anchor import run


@pytest.mark.system
def test_cli_system_run_creates_outputs(tmp_path, capsys):
    """Run the CLI entrypoint on synthetic frames and check the session artifacts."""
    args = [
        "--dry-run",
        "--fps",
        "0",
        "--width",
        "320",
        "--height",
        "240",
        "--max-frames",
        "4",
        "--save-annotated",
        "--out",
        str(tmp_path),
    ]

    assert run.main(args) == 0
    out = capsys.readouterr().out
    assert "SessionSummary" in out

    sessions = list(Path(tmp_path).glob("hololens_session_*"))
    assert sessions, "No session directory created by CLI run"
    session_dir = sessions[0]

    rows = (session_dir / "hits.csv").read_text().strip().splitlines()
    assert len(rows) == 5
    assert (session_dir / "config.json").exists()
    assert (session_dir / "logs" / "session.log").exists()
    assert len(list((session_dir / "annotated").iterdir())) == 4


@pytest.mark.system
def test_cli_system_run_with_config_file(tmp_path, capsys):
    """A config file with a wall plane yields surface hits at the wall distance."""
    cfg_path = tmp_path / "anchor.yaml"
    cfg_path.write_text(
        "source_name: wallcam\n"
        "fps: 0\n"
        "width: 320\n"
        "height: 240\n"
        "tick_sec: 0.001\n"
        "planes:\n"
        "  - point: [0, 0, -2]\n"
        "    normal: [0, 0, 1]\n",
        encoding="utf-8",
    )

    assert run.main(["--config", str(cfg_path), "--dry-run", "--max-frames", "2", "--out", str(tmp_path)]) == 0
    capsys.readouterr()

    session_dir = next(Path(tmp_path).glob("wallcam_session_*"))
    rows = (session_dir / "hits.csv").read_text().strip().splitlines()[1:]
    assert len(rows) == 2
    for row in rows:
        cols = row.split(",")
        assert cols[8] == "1"
        assert float(cols[7]) == pytest.approx(-2.0)
