"""Text-analysis chapter: tidy tokens, word counts, tf-idf and sentiment through each document."""

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

from src.config import (  # noqa: E402
    CORPUS_FILE,
    DOC_COL,
    EXTRA_STOP_WORDS,
    OUTPUTS_DIR,
    SENTIMENT_CHUNK_LINES,
    TOP_N_WORDS,
)
from src.data.ingest import load_corpus  # noqa: E402
from src.reporting import figures  # noqa: E402
from src.text.lexicon import load_sentiment_lexicon  # noqa: E402
from src.text.tidy_text import (  # noqa: E402
    bind_tf_idf,
    count_words,
    remove_stop_words,
    sentiment_by_chunk,
    unnest_tokens,
)
from src.utils.logging import configure_logging, get_logger, run_metadata, write_json  # noqa: E402

logger = get_logger("text_analysis")


def main() -> None:
    parser = argparse.ArgumentParser(description="Tidy text analysis of a document corpus.")
    parser.add_argument("--corpus", type=Path, default=CORPUS_FILE, help="CSV with document and text columns.")
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory (default: outputs/).")
    parser.add_argument("--nrows", type=int, default=None, help="Use only the first N lines of the corpus.")
    parser.add_argument("--top-n", type=int, default=TOP_N_WORDS, help="Words shown in frequency tables and plots.")
    parser.add_argument("--chunk-lines", type=int, default=SENTIMENT_CHUNK_LINES, help="Lines per sentiment block.")
    args = parser.parse_args()

    if args.nrows is not None and args.nrows <= 0:
        raise SystemExit("--nrows must be a positive integer.")
    if args.top_n <= 0:
        raise SystemExit("--top-n must be a positive integer.")
    if args.chunk_lines <= 0:
        raise SystemExit("--chunk-lines must be a positive integer.")

    configure_logging()
    try:
        corpus = load_corpus(args.corpus, nrows=args.nrows)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc

    tables_dir = args.outdir / "tables"
    figures_dir = args.outdir / "figures"
    tables_dir.mkdir(parents=True, exist_ok=True)

    words = unnest_tokens(corpus)
    content_words = remove_stop_words(words, extra=EXTRA_STOP_WORDS)
    logger.info(
        "%s documents, %s tokens, %s after stop-word removal",
        corpus[DOC_COL].nunique(), len(words), len(content_words),
    )

    overall = count_words(content_words)
    overall.head(args.top_n).to_csv(tables_dir / "word_counts_top.csv", index=False)
    per_doc = count_words(content_words, by=DOC_COL)
    per_doc.to_csv(tables_dir / "word_counts_by_document.csv", index=False)

    bigrams = remove_stop_words(unnest_tokens(corpus, token="ngrams", n=2), col="ngram", extra=EXTRA_STOP_WORDS)
    bigram_counts = count_words(bigrams, col="ngram")
    bigram_counts.head(args.top_n).to_csv(tables_dir / "bigram_counts_top.csv", index=False)

    # tf-idf over all words; stop words score near zero on their own
    tf_idf = bind_tf_idf(count_words(words, by=DOC_COL))
    tf_idf = tf_idf.sort_values(
        [DOC_COL, "tf_idf", "word"], ascending=[True, False, True], kind="mergesort"
    ).reset_index(drop=True)
    tf_idf.to_csv(tables_dir / "tf_idf_by_document.csv", index=False)
    tf_idf.groupby(DOC_COL, sort=True).head(args.top_n).to_csv(tables_dir / "tf_idf_top_by_document.csv", index=False)

    sentiment = sentiment_by_chunk(words, load_sentiment_lexicon(), chunk_lines=args.chunk_lines)
    sentiment.to_csv(tables_dir / "sentiment_by_chunk.csv", index=False)
    totals = (
        sentiment.groupby(DOC_COL, sort=True)[["negative", "positive", "sentiment"]].sum().reset_index()
        if not sentiment.empty
        else pd.DataFrame(columns=[DOC_COL, "negative", "positive", "sentiment"])
    )
    totals.to_csv(tables_dir / "sentiment_by_document.csv", index=False)

    if not overall.empty:
        figures.save_figure(
            figures.word_frequency_bar(overall, n=args.top_n, title=f"Top {args.top_n} words"),
            figures_dir / "word_frequency.png",
        )
    if not bigram_counts.empty:
        figures.save_figure(
            figures.word_frequency_bar(bigram_counts, "ngram", n=args.top_n, title=f"Top {args.top_n} bigrams"),
            figures_dir / "bigram_frequency.png",
        )
    if not sentiment.empty:
        figures.save_figure(
            figures.sentiment_trajectory(sentiment, DOC_COL, title=f"Net sentiment per {args.chunk_lines} lines"),
            figures_dir / "sentiment_trajectory.png",
        )

    write_json(
        args.outdir / "logs" / "text_run_metadata.json",
        run_metadata(
            PROJECT_ROOT,
            corpus=str(args.corpus),
            nrows=args.nrows,
            documents=int(corpus[DOC_COL].nunique()),
            tokens=int(len(words)),
            content_tokens=int(len(content_words)),
            chunk_lines=args.chunk_lines,
            extra_stop_words=list(EXTRA_STOP_WORDS),
        ),
    )
    print(f"Wrote text-analysis artifacts to {args.outdir}/")


if __name__ == "__main__":
    main()
