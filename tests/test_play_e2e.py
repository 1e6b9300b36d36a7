from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

from conftest import build_tree, write_spot
from spottrainer.cli import main

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"


def run_cli(args: list[str], input_text: str | None = None) -> subprocess.CompletedProcess:
    env = os.environ.copy()
    env["PYTHONPATH"] = str(SRC_DIR)
    cmd = [sys.executable, "-m", "spottrainer", *args]
    return subprocess.run(
        cmd,
        input=(input_text or "").encode(),
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        cwd=PROJECT_ROOT,
        env=env,
        check=False,
    )


def test_drill_answers_then_quits(tmp_path):
    write_spot(tmp_path, "final_table", "speed32", build_tree())
    cp = run_cli(
        ["--spots", str(tmp_path), "--type", "RFI", "--spots-count", "2", "--seed", "5", "--no-color"],
        input_text="1\nq\n",
    )
    out = cp.stdout.decode()
    assert cp.returncode == 0, out
    assert "Session Guide" in out
    assert "RFI" in out
    assert "Feedback" in out
    assert "Session Summary" in out
    summary_line = next(line for line in out.splitlines() if "Spots answered:" in line)
    assert "1" in summary_line


def test_invalid_input_is_reprompted(tmp_path, capsys):
    write_spot(tmp_path, "final_table", "speed32", build_tree())
    answers = iter(["9", "x", "2"])
    main(
        ["--spots", str(tmp_path), "--type", "vs Shove", "--spots-count", "1", "--seed", "3", "--no-color"],
        input_fn=lambda prompt: next(answers),
    )
    out = capsys.readouterr().out
    assert out.count("Invalid input") == 2
    assert "Session Summary" in out


def test_empty_catalog_reports_errors(tmp_path, capsys):
    main(["--spots", str(tmp_path), "--spots-count", "1", "--no-color"], input_fn=lambda prompt: "q")
    out = capsys.readouterr().out
    assert "could not generate a spot" in out
    assert "No spots answered." in out
