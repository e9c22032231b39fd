import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import argparse
import hashlib

import pandas as pd

from src.config import (
    BATTING_STINTS_FILE,
    DATASET_VERSION,
    MIN_YEAR,
    OUTPUTS_DIR,
    PLAYER_SEASONS_FILE,
    PROCESSED_DIR,
    RAW_DIR,
    RAW_TABLES,
    TARGET_COL,
    TEAM_SEASONS_FILE,
)
from src.data.build import build_batting_stints, build_player_seasons, build_team_seasons
from src.data.coding import summarize_missingness
from src.data.ingest import load_table
from src.utils.logging import configure_logging, get_logger, run_metadata, write_json


REQUIRED_TABLES = ["batting", "people", "teams"]

logger = get_logger("build_dataset")


def _sha256_df(df: pd.DataFrame) -> str:
    h = hashlib.sha256()
    h.update("||".join(df.columns.astype(str).tolist()).encode("utf-8"))
    h.update("||".join(map(str, df.dtypes.tolist())).encode("utf-8"))
    row_hashes = pd.util.hash_pandas_object(df, index=True).to_numpy()
    h.update(row_hashes.tobytes())
    return h.hexdigest()


def main() -> None:
    parser = argparse.ArgumentParser(description="Build player-season and team-season tables from Lahman CSVs.")
    parser.add_argument("--raw-dir", type=Path, default=RAW_DIR, help="Directory holding Batting.csv, People.csv, ...")
    parser.add_argument("--processed-dir", type=Path, default=PROCESSED_DIR, help="Where parquet tables are written.")
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory (default: outputs/).")
    parser.add_argument("--nrows", type=int, default=None, help="Optional: read only the first N rows of each table.")
    parser.add_argument("--min-year", type=int, default=MIN_YEAR, help="First season kept in both tables.")
    args = parser.parse_args()

    configure_logging()
    if args.nrows is not None and args.nrows <= 0:
        raise SystemExit("--nrows must be a positive integer.")

    missing = [RAW_TABLES[t] for t in REQUIRED_TABLES if not (args.raw_dir / RAW_TABLES[t]).exists()]
    if missing:
        raise SystemExit(f"Raw tables not found in {args.raw_dir}: {missing}")

    raw = {t: load_table(t, args.raw_dir, nrows=args.nrows) for t in REQUIRED_TABLES}
    salaries_path = args.raw_dir / RAW_TABLES["salaries"]
    salaries = load_table("salaries", args.raw_dir, nrows=args.nrows) if salaries_path.exists() else None

    try:
        stints = build_batting_stints(raw["batting"], min_year=args.min_year)
        players = build_player_seasons(raw["batting"], raw["people"], salaries, min_year=args.min_year)
        teams, decisions = build_team_seasons(raw["teams"], min_year=args.min_year)
    except ValueError as exc:
        raise SystemExit(f"Could not build modeling tables: {exc}") from exc
    logger.info(
        "Built %d batting stints, %d player-seasons and %d team-seasons (min_year=%d)",
        len(stints),
        len(players),
        len(teams),
        args.min_year,
    )

    tables_dir = args.outdir / "tables"
    logs_dir = args.outdir / "logs"
    tables_dir.mkdir(parents=True, exist_ok=True)
    args.processed_dir.mkdir(parents=True, exist_ok=True)

    stints_path = args.processed_dir / BATTING_STINTS_FILE.name
    players_path = args.processed_dir / PLAYER_SEASONS_FILE.name
    teams_path = args.processed_dir / TEAM_SEASONS_FILE.name
    stints.to_parquet(stints_path, index=False)
    players.to_parquet(players_path, index=False)
    teams.to_parquet(teams_path, index=False)

    summarize_missingness(players).to_csv(tables_dir / "missingness_player_seasons.csv", index=False)
    summarize_missingness(teams).to_csv(tables_dir / "missingness_team_seasons.csv", index=False)

    audit = pd.DataFrame(
        [
            {
                "table": "player_seasons",
                "raw_rows": len(raw["batting"]),
                "rows": len(players),
                "cols": players.shape[1],
                "first_year": int(players["yearID"].min()) if len(players) else None,
                "last_year": int(players["yearID"].max()) if len(players) else None,
                "content_hash_sha256": _sha256_df(players),
            },
            {
                "table": "team_seasons",
                "raw_rows": len(raw["teams"]),
                "rows": len(teams),
                "cols": teams.shape[1],
                "first_year": int(teams["yearID"].min()) if len(teams) else None,
                "last_year": int(teams["yearID"].max()) if len(teams) else None,
                "content_hash_sha256": _sha256_df(teams),
            },
        ]
    )
    audit.to_csv(tables_dir / "modeling_table_audit.csv", index=False)

    decisions_payload = {
        **decisions,
        "dataset_version": DATASET_VERSION,
        "raw_dir": str(args.raw_dir),
        "min_year": args.min_year,
        "salaries_joined": salaries is not None,
        "stint_rule": "player-seasons sum counting stats over stints and keep the last stint's team/league; league totals use batting_stints",
        "target_mean": round(float(teams[TARGET_COL].mean()), 6) if len(teams) else None,
        "outputs": {"batting_stints": str(stints_path), "player_seasons": str(players_path), "team_seasons": str(teams_path)},
        "runtime": run_metadata(PROJECT_ROOT),
    }
    write_json(logs_dir / "decisions.json", decisions_payload)

    print(f"Wrote {stints_path}")
    print(f"Wrote {players_path}")
    print(f"Wrote {teams_path}")
    print(f"Wrote {tables_dir / 'modeling_table_audit.csv'}")
    print(f"Wrote {logs_dir / 'decisions.json'}")


if __name__ == "__main__":
    main()
