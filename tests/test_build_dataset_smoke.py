import json
import subprocess
import sys
from pathlib import Path

import pandas as pd


def test_build_dataset_smoke(raw_dir: Path, tmp_path: Path):
    repo_root = Path(__file__).resolve().parents[1]

    processed_dir = tmp_path / "processed"
    outdir = tmp_path / "outputs"

    cmd = [
        sys.executable,
        str(repo_root / "scripts" / "01_build_dataset.py"),
        "--raw-dir",
        str(raw_dir),
        "--processed-dir",
        str(processed_dir),
        "--outdir",
        str(outdir),
    ]
    proc = subprocess.run(cmd, cwd=repo_root, check=True, capture_output=True, text=True)
    assert "lahman_course.build_dataset - INFO - Built 330 batting stints" in proc.stdout

    players = pd.read_parquet(processed_dir / "player_seasons.parquet")
    teams = pd.read_parquet(processed_dir / "team_seasons.parquet")
    stints = pd.read_parquet(processed_dir / "batting_stints.parquet")

    assert players.columns[:6].tolist() == ["playerID", "name", "yearID", "teamID", "lgID", "stints"]
    for col in ["X2B", "X3B", "X1B", "AVG", "OBP", "SLG", "OPS", "salary"]:
        assert col in players.columns
    # Stints are combined: one row per player-season.
    assert not players.duplicated(["playerID", "yearID"]).any()
    assert players["stints"].max() == 2
    assert players["IBB"].isna().sum() == 0
    assert ((players["AVG"] >= 0) & (players["AVG"] <= 1)).all()
    # Stint rows keep each team and league; their at-bats add up to the player-season totals.
    assert len(stints) == len(pd.read_csv(raw_dir / "Batting.csv"))
    assert stints["AB"].sum() == players["AB"].sum()

    assert teams.columns[:5].tolist() == ["yearID", "lgID", "teamID", "name", "decade"]
    assert teams["W"].isna().sum() == 0
    assert len(teams) == 159
    assert set(teams["decade"].unique().tolist()) == {1990, 2000, 2010}
    for col in ["win_pct", "run_diff", "pyth_pct", "pyth_W"]:
        assert col in teams.columns

    assert (outdir / "tables" / "modeling_table_audit.csv").exists()
    assert (outdir / "tables" / "missingness_player_seasons.csv").exists()
    assert (outdir / "tables" / "missingness_team_seasons.csv").exists()

    payload = json.loads((outdir / "logs" / "decisions.json").read_text(encoding="utf-8"))
    assert payload["target"] == "W"
    assert payload["salaries_joined"] is True
    filters = {f["rule"]: f for f in payload["row_filters"]}
    assert filters["drop_missing_target"]["dropped_rows"] == 1
    assert filters["min_year"]["dropped_rows"] == 0


def test_build_dataset_reports_missing_tables(tmp_path: Path):
    repo_root = Path(__file__).resolve().parents[1]

    cmd = [
        sys.executable,
        str(repo_root / "scripts" / "01_build_dataset.py"),
        "--raw-dir",
        str(tmp_path / "empty"),
        "--processed-dir",
        str(tmp_path / "processed"),
        "--outdir",
        str(tmp_path / "outputs"),
    ]
    proc = subprocess.run(cmd, cwd=repo_root, capture_output=True, text=True)

    assert proc.returncode != 0
    assert "Raw tables not found" in proc.stderr
