from __future__ import annotations

import argparse
import os
import sys
import tempfile
from pathlib import Path

_mpl_cache_dir = Path(tempfile.gettempdir()) / "matplotlib"
_mpl_cache_dir.mkdir(parents=True, exist_ok=True)
os.environ.setdefault("MPLCONFIGDIR", str(_mpl_cache_dir))

import pandas as pd
import matplotlib

matplotlib.use("Agg")


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.analysis.iteration import map_groups  # noqa: E402
from src.analysis.weighted import weighted_mean_ci  # noqa: E402
from src.config import (  # noqa: E402
    BATTING_STINTS_FILE,
    MIN_AB,
    OUTPUTS_DIR,
    PLAYER_SEASONS_FILE,
    PROCESSED_DIR,
    TEAM_SEASONS_FILE,
)
from src.data.validate import assert_required_columns  # noqa: E402
from src.data.wrangle import count_by, league_year_summary, to_long, to_wide, top_n_by  # noqa: E402
from src.reporting import figures  # noqa: E402
from src.utils.logging import configure_logging, get_logger, run_metadata, write_json  # noqa: E402

logger = get_logger("eda")


PLAYER_REQUIRED = ["playerID", "name", "yearID", "lgID", "AB", "H", "X2B", "X3B", "HR", "BB", "AVG", "OPS"]
STINT_REQUIRED = ["playerID", "yearID", "stint", "lgID", "AB", "H", "X2B", "X3B", "HR", "BB", "AVG"]
TEAM_REQUIRED = ["yearID", "lgID", "teamID", "W", "R", "RA", "HR", "win_pct", "run_diff", "pyth_W", "decade"]
TEAM_LONG_STATS = ["R", "RA", "HR"]


def _league_avg_with_ci(group: pd.DataFrame) -> dict:
    weight_sum, mean, ci_low, ci_high = weighted_mean_ci(group["AVG"], group["AB"])
    return {
        "players": int(group["playerID"].nunique()),
        "AB": round(weight_sum, 1),
        "weighted_avg": round(mean, 6) if not pd.isna(mean) else mean,
        "ci95_low_approx": round(ci_low, 6) if not pd.isna(ci_low) else ci_low,
        "ci95_high_approx": round(ci_high, 6) if not pd.isna(ci_high) else ci_high,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Data manipulation + visualization chapter: leaderboards, reshapes, figures.")
    parser.add_argument("--processed-dir", type=Path, default=PROCESSED_DIR, help="Directory with the built parquet tables.")
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory (default: outputs/).")
    parser.add_argument("--nrows", type=int, default=None, help="Use only the first N rows of each table.")
    parser.add_argument("--top-n", type=int, default=10, help="Leaderboard length.")
    parser.add_argument("--min-ab", type=int, default=MIN_AB, help="At-bats needed to qualify for rate leaderboards.")
    args = parser.parse_args()

    configure_logging()
    stints_path = args.processed_dir / BATTING_STINTS_FILE.name
    players_path = args.processed_dir / PLAYER_SEASONS_FILE.name
    teams_path = args.processed_dir / TEAM_SEASONS_FILE.name
    for path in (stints_path, players_path, teams_path):
        if not path.exists():
            raise SystemExit(f"Modeling table not found: {path}. Run scripts/01_build_dataset.py first.")
    if args.nrows is not None and args.nrows <= 0:
        raise SystemExit("--nrows must be a positive integer.")
    if args.top_n <= 0:
        raise SystemExit("--top-n must be a positive integer.")

    stints = pd.read_parquet(stints_path)
    players = pd.read_parquet(players_path)
    teams = pd.read_parquet(teams_path)
    try:
        assert_required_columns(stints, STINT_REQUIRED)
        assert_required_columns(players, PLAYER_REQUIRED)
        assert_required_columns(teams, TEAM_REQUIRED)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    if args.nrows is not None:
        stints = stints.head(args.nrows).copy()
        players = players.head(args.nrows).copy()
        teams = teams.head(args.nrows).copy()

    tables_dir = args.outdir / "tables"
    figures_dir = args.outdir / "figures"
    logs_dir = args.outdir / "logs"
    tables_dir.mkdir(parents=True, exist_ok=True)
    figures_dir.mkdir(parents=True, exist_ok=True)

    # Leaderboards
    hr_leaders = top_n_by(players, "HR", args.top_n)
    hr_leaders.to_csv(tables_dir / "leaders_hr.csv", index=False)
    ops_leaders = top_n_by(players, "OPS", args.top_n, min_col="AB", min_value=args.min_ab)
    ops_leaders.to_csv(tables_dir / "leaders_ops_qualified.csv", index=False)
    top_n_by(players, "HR", 1, by="yearID").to_csv(tables_dir / "hr_leader_by_year.csv", index=False)

    # League summaries and an AB-weighted league average with an approximate CI. These run
    # on stints so a player traded between leagues counts in both.
    league = league_year_summary(stints)
    logger.info("League summary: %d league-seasons from %d batting stints", len(league), len(stints))
    league.to_csv(tables_dir / "league_year_summary.csv", index=False)
    league_avg = map_groups(stints.loc[stints["AB"] > 0], ["yearID", "lgID"], _league_avg_with_ci)
    league_avg.to_csv(tables_dir / "league_avg_weighted_ci.csv", index=False)

    # Tidy reshaping: long format for plotting, wide again for display
    team_long = to_long(teams, ["yearID", "teamID"], TEAM_LONG_STATS)
    team_long.to_csv(tables_dir / "team_stats_long.csv", index=False)
    to_wide(team_long, ["yearID", "teamID"], "stat", "value").to_csv(tables_dir / "team_stats_wide.csv", index=False)
    count_by(teams, ["decade", "lgID"]).to_csv(tables_dir / "team_counts_by_decade.csv", index=False)

    # Figures
    figures.save_figure(
        figures.scatter_with_trend(teams, "run_diff", "W", color="lgID", title="Wins vs run differential"),
        figures_dir / "wins_vs_run_diff.png",
    )
    figures.save_figure(
        figures.scatter_with_trend(teams, "pyth_W", "W", title="Actual vs Pythagorean wins"),
        figures_dir / "wins_vs_pythagorean.png",
    )
    qualified = players.loc[players["AB"] >= args.min_ab]
    figures.save_figure(
        figures.histogram(qualified, "OPS", bins=30, title=f"OPS of qualified hitters (AB >= {args.min_ab})"),
        figures_dir / "ops_histogram.png",
    )
    figures.save_figure(
        figures.boxplot_by_group(teams, "HR", "decade", title="Team home runs by decade"),
        figures_dir / "team_hr_by_decade.png",
    )
    figures.save_figure(
        figures.line_by_group(league, "yearID", "HR_per_AB", group="lgID", title="Home runs per at-bat"),
        figures_dir / "league_hr_rate.png",
    )
    figures.save_figure(
        figures.facet_lines(league, "yearID", "AVG", facet="lgID", ncols=2, title="League batting average"),
        figures_dir / "league_avg_facets.png",
    )
    figures.save_figure(
        figures.bar_top_n(hr_leaders.assign(label=hr_leaders["name"] + " (" + hr_leaders["yearID"].astype(str) + ")"),
                          "label", "HR", title=f"Top {args.top_n} home-run seasons"),
        figures_dir / "leaders_hr.png",
    )

    write_json(
        logs_dir / "eda_run_metadata.json",
        run_metadata(
            PROJECT_ROOT,
            inputs={"batting_stints": str(stints_path), "player_seasons": str(players_path), "team_seasons": str(teams_path)},
            nrows=args.nrows,
            min_ab=args.min_ab,
            notes=["League average CIs treat at-bats as frequency weights; they are approximate."],
        ),
    )
    print(f"Wrote EDA artifacts to {args.outdir}/")


if __name__ == "__main__":
    main()
