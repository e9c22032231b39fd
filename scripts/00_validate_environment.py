import argparse
import sys

from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.config import CORPUS_FILE, LOGS_DIR, RAW_DIR, RAW_TABLES  # noqa: E402
from src.utils.logging import configure_logging, get_logger, run_metadata, write_json  # noqa: E402

logger = get_logger("validate_environment")


def main() -> None:
    parser = argparse.ArgumentParser(description="Record interpreter/library versions and which raw inputs are present.")
    parser.add_argument("--raw-dir", type=Path, default=RAW_DIR, help="Directory holding the Lahman CSV exports.")
    parser.add_argument("--corpus", type=Path, default=CORPUS_FILE, help="Text-analysis corpus CSV.")
    parser.add_argument("--outdir", type=Path, default=LOGS_DIR.parent, help="Output directory (default: outputs/).")
    args = parser.parse_args()

    configure_logging()
    info = run_metadata(
        PROJECT_ROOT,
        raw_dir=str(args.raw_dir),
        raw_files_exist={name: (args.raw_dir / fname).exists() for name, fname in RAW_TABLES.items()},
        corpus_exists=args.corpus.exists(),
    )
    missing = [p for p, v in info["packages"].items() if v is None]
    info["missing_packages"] = missing

    out_path = args.outdir / "logs" / "environment_check.json"
    write_json(out_path, info)
    print(f"Wrote {out_path}")
    if missing:
        logger.warning("Missing packages: %s", missing)


if __name__ == "__main__":
    main()
