from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
RAW_DIR = DATA_DIR / "raw"
PROCESSED_DIR = DATA_DIR / "processed"

OUTPUTS_DIR = PROJECT_ROOT / "outputs"
LOGS_DIR = OUTPUTS_DIR / "logs"

# Lahman-style raw tables (file names as distributed with the database CSV export)
RAW_TABLES = {
    "batting": "Batting.csv",
    "people": "People.csv",
    "teams": "Teams.csv",
    "salaries": "Salaries.csv",
}
CORPUS_FILE = RAW_DIR / "corpus.csv"

BATTING_STINTS_FILE = PROCESSED_DIR / "batting_stints.parquet"
PLAYER_SEASONS_FILE = PROCESSED_DIR / "player_seasons.parquet"
TEAM_SEASONS_FILE = PROCESSED_DIR / "team_seasons.parquet"

# Dataset and experiment identifiers (used in outputs/ metadata)
DATASET_VERSION = "lahman_modeling_v1"
EXPERIMENT_NAMESPACE = "team_wins_tuning_v1"

# Analysis window; earlier seasons have too many unrecorded counting stats.
MIN_YEAR = 1961

# Counting stats summed when a player's stints are combined into one season.
BATTING_COUNT_COLS = [
    "G", "AB", "R", "H", "X2B", "X3B", "HR", "RBI", "SB", "CS",
    "BB", "SO", "IBB", "HBP", "SH", "SF", "GIDP",
]
RATE_COLS = ["AVG", "OBP", "SLG", "OPS"]

# Leaderboards only rank players with at least this many at-bats.
MIN_AB = 300

# Modeling: predict team wins from season-level team statistics.
TARGET_COL = "W"
NUMERIC_FEATURES = ["R", "RA", "H", "X2B", "X3B", "HR", "BB", "SO", "SB", "ERA", "E", "FP", "HA", "BBA", "SOA"]
CATEGORICAL_FEATURES = ["lgID"]
FEATURE_COLS = NUMERIC_FEATURES + CATEGORICAL_FEATURES

# Frozen validation protocol
TEST_SIZE = 0.25
STRATA_BINS = 4
CV_FOLDS = 10
TUNING_GRID_SIZE = 20
RANDOM_SEEDS = [2024, 2025, 2026]
METRICS = ["rmse", "rsq", "mae"]
SELECTION_METRIC = "rmse"
N_JOBS = -1
MODEL_NAMES = ["linear_reg", "elastic_net", "random_forest", "boosted_trees"]

# Error slices / per-group models
MIN_GROUP_N = 20
GROUP_COL = "decade"

# Text-analysis unit
DOC_COL = "document"
TEXT_COL = "text"
LINE_COL = "line"
SENTIMENT_CHUNK_LINES = 80
TOP_N_WORDS = 15
EXTRA_STOP_WORDS = ["said", "just", "like"]
