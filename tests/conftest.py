"""Synthetic Lahman-shaped inputs so the scripts can run without the real database."""

import subprocess
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]

TEAM_YEARS = list(range(1995, 2015))
TEAMS_BY_LEAGUE = {"AL": ["BOS", "NYA", "CLE", "OAK"], "NL": ["ATL", "LAN", "SFN", "CHN"]}
BATTING_YEARS = list(range(2010, 2015))
N_PLAYERS = 60

POSITIVE_LINE = "the team had a great win and the fans were happy with the strong finish"
NEGATIVE_LINE = "a bad loss left the tired players angry after another terrible error"
NEUTRAL_LINE = "the pitcher threw a curveball and the runner stood on second base"


def make_teams(seed: int = 7) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    rows = []
    for year in TEAM_YEARS:
        for lg, team_ids in TEAMS_BY_LEAGUE.items():
            for team_id in team_ids:
                runs = int(rng.normal(720, 70))
                runs_against = int(rng.normal(720, 70))
                pyth = runs**2 / (runs**2 + runs_against**2)
                wins = int(np.clip(round(162 * pyth + rng.normal(0, 4)), 40, 120))
                hits = int(1100 + 0.6 * runs + rng.normal(0, 30))
                rows.append(
                    {
                        "yearID": year,
                        "lgID": lg,
                        "teamID": team_id,
                        "franchID": team_id,
                        "name": f"Club {team_id}",
                        "G": 162,
                        "W": wins,
                        "L": 162 - wins,
                        "R": runs,
                        "AB": 5500,
                        "H": hits,
                        "2B": int(hits * 0.2),
                        "3B": int(rng.integers(15, 45)),
                        "HR": int(0.22 * runs + rng.normal(0, 15)),
                        "BB": int(rng.normal(520, 50)),
                        "SO": int(rng.normal(1100, 120)),
                        "SB": int(rng.integers(40, 160)),
                        "RA": runs_against,
                        "ERA": round(runs_against * 0.92 * 9 / 1450, 2),
                        "E": int(rng.integers(70, 130)),
                        "FP": round(float(rng.uniform(0.978, 0.988)), 3),
                        "HA": int(1100 + 0.6 * runs_against + rng.normal(0, 30)),
                        "BBA": int(rng.normal(520, 50)),
                        "SOA": int(rng.normal(1100, 120)),
                    }
                )
    df = pd.DataFrame(rows)
    # One unrecorded predictor and one team without a win total.
    df["SO"] = df["SO"].astype(float)
    df.loc[3, "SO"] = np.nan
    df["W"] = df["W"].astype(float)
    df.loc[10, "W"] = np.nan
    return df


def make_people() -> pd.DataFrame:
    ids = [f"plyr{i:02d}01" for i in range(N_PLAYERS)]
    return pd.DataFrame(
        {
            "playerID": ids,
            "nameFirst": [f"First{i}" for i in range(N_PLAYERS)],
            "nameLast": [f"Last{i}" for i in range(N_PLAYERS)],
            "birthYear": [1975 + i % 15 for i in range(N_PLAYERS)],
            "bats": ["R", "L", "B"] * (N_PLAYERS // 3),
            "throws": ["R", "L"] * (N_PLAYERS // 2),
        }
    )


def _batting_line(rng, player_id, year, stint, team_id, lg):
    ab = int(rng.integers(40, 620))
    hits = int(rng.binomial(ab, 0.26))
    hr = int(rng.binomial(hits, 0.12))
    doubles = int(rng.binomial(hits - hr, 0.2))
    triples = int(rng.binomial(hits - hr - doubles, 0.03))
    return {
        "playerID": player_id,
        "yearID": year,
        "stint": stint,
        "teamID": team_id,
        "lgID": lg,
        "G": int(min(162, ab // 3 + 5)),
        "AB": ab,
        "R": int(hits * 0.5),
        "H": hits,
        "2B": doubles,
        "3B": triples,
        "HR": hr,
        "RBI": int(hits * 0.5 + hr),
        "SB": int(rng.integers(0, 20)),
        "CS": int(rng.integers(0, 8)),
        "BB": int(rng.binomial(ab, 0.09)),
        "SO": int(rng.binomial(ab, 0.2)),
        "IBB": int(rng.integers(0, 10)),
        "HBP": int(rng.integers(0, 8)),
        "SH": int(rng.integers(0, 5)),
        "SF": int(rng.integers(0, 7)),
        "GIDP": int(rng.integers(0, 15)),
    }


def make_batting(seed: int = 11) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    leagues = [(lg, t) for lg, ts in TEAMS_BY_LEAGUE.items() for t in ts]
    rows = []
    for year in BATTING_YEARS:
        for i in range(N_PLAYERS):
            player_id = f"plyr{i:02d}01"
            lg, team_id = leagues[(i + year) % len(leagues)]
            rows.append(_batting_line(rng, player_id, year, 1, team_id, lg))
            if i % 10 == 0:
                lg2, team2 = leagues[(i + year + 1) % len(leagues)]
                rows.append(_batting_line(rng, player_id, year, 2, team2, lg2))
    df = pd.DataFrame(rows)
    # Intentional walks were not always recorded.
    df["IBB"] = df["IBB"].astype(float)
    df.loc[df["yearID"] == BATTING_YEARS[0], "IBB"] = np.nan
    return df


def make_salaries(batting: pd.DataFrame) -> pd.DataFrame:
    # One row per stint: a traded player draws a salary from each team.
    out = batting[["yearID", "teamID", "lgID", "playerID"]].copy()
    out["salary"] = 500000 + 10000 * np.arange(len(out))
    return out.reset_index(drop=True)


def make_corpus() -> pd.DataFrame:
    rows = []
    for doc, pattern in [("spring", [POSITIVE_LINE, NEUTRAL_LINE]), ("autumn", [NEGATIVE_LINE, NEUTRAL_LINE])]:
        for i in range(40):
            rows.append({"document": doc, "text": f"{pattern[i % 2]} in game {i}"})
    return pd.DataFrame(rows)


def write_raw_inputs(raw_dir: Path) -> Path:
    raw_dir.mkdir(parents=True, exist_ok=True)
    batting = make_batting()
    make_teams().to_csv(raw_dir / "Teams.csv", index=False)
    batting.to_csv(raw_dir / "Batting.csv", index=False)
    make_people().to_csv(raw_dir / "People.csv", index=False)
    make_salaries(batting).to_csv(raw_dir / "Salaries.csv", index=False)
    make_corpus().to_csv(raw_dir / "corpus.csv", index=False)
    return raw_dir


def run_script(name: str, *args) -> subprocess.CompletedProcess:
    cmd = [sys.executable, str(REPO_ROOT / "scripts" / name), *[str(a) for a in args]]
    return subprocess.run(cmd, cwd=REPO_ROOT, check=True, capture_output=True, text=True)


@pytest.fixture
def raw_dir(tmp_path: Path) -> Path:
    return write_raw_inputs(tmp_path / "raw")


@pytest.fixture(scope="session")
def built_dirs(tmp_path_factory):
    """Raw inputs plus processed parquet tables, built once per session by the build script."""

    root = tmp_path_factory.mktemp("built")
    raw = write_raw_inputs(root / "raw")
    processed = root / "processed"
    run_script("01_build_dataset.py", "--raw-dir", raw, "--processed-dir", processed, "--outdir", root / "build_outputs")
    return {"root": root, "raw": raw, "processed": processed}


@pytest.fixture
def teams() -> pd.DataFrame:
    return make_teams()


@pytest.fixture
def batting() -> pd.DataFrame:
    return make_batting()


@pytest.fixture
def people() -> pd.DataFrame:
    return make_people()


@pytest.fixture
def salaries(batting: pd.DataFrame) -> pd.DataFrame:
    return make_salaries(batting)


@pytest.fixture
def corpus() -> pd.DataFrame:
    df = make_corpus()
    df["line"] = df.groupby("document").cumcount() + 1
    return df
