"""A compact positive/negative opinion lexicon.

Entries are a hand-picked subset in the style of the Hu & Liu (Bing) opinion lexicon,
restricted to words common in sports writing and narrative prose. Each word carries
exactly one label.

This is a teaching subset of about 150 words, not the full lexicon of roughly 6,800
entries, so sentiment on real prose is sparse and many chunks score near zero. Any
``word``/``sentiment`` frame can be passed to ``sentiment_by_chunk`` in its place.
"""

import pandas as pd

POSITIVE_WORDS = (
    "amazing", "awesome", "beautiful", "best", "better", "bright", "brilliant", "calm",
    "celebrate", "champion", "clean", "clever", "comfortable", "confident", "dominant",
    "easy", "effective", "elegant", "excellent", "exciting", "fair", "fantastic", "fast",
    "favorite", "fine", "fortunate", "fresh", "glad", "glorious", "good", "graceful",
    "great", "happy", "hero", "honest", "hope", "impressive", "incredible", "joy",
    "kind", "legendary", "like", "love", "lucky", "magnificent", "nice", "perfect",
    "pleasant", "powerful", "praise", "pretty", "proud", "quick", "remarkable", "reliable",
    "reward", "rich", "smart", "smooth", "solid", "splendid", "steady", "strong",
    "stunning", "success", "successful", "superb", "support", "sure", "talented",
    "terrific", "thrilled", "top", "triumph", "victory", "warm", "well", "win",
    "winner", "wonderful", "worthy",
)

NEGATIVE_WORDS = (
    "afraid", "angry", "awful", "bad", "blame", "broken", "careless", "collapse",
    "crash", "cruel", "damage", "dark", "dead", "defeat", "difficult", "disappoint",
    "disappointed", "disappointing", "disaster", "doubt", "dreadful", "dull", "error",
    "fail", "failed", "failure", "fear", "foul", "fragile", "frustrated", "grim",
    "hard", "hate", "horrible", "hurt", "injury", "injured", "lose", "loser", "losing",
    "loss", "lost", "mistake", "miserable", "pain", "poor", "problem", "sad", "scared",
    "slow", "slump", "sorry", "strike", "struggle", "struggled", "suffer", "terrible",
    "tired", "tragic", "trouble", "ugly", "unfortunate", "upset", "weak", "worn",
    "worried", "worse", "worst", "wrong",
)


def load_sentiment_lexicon() -> pd.DataFrame:
    df = pd.DataFrame(
        {
            "word": list(POSITIVE_WORDS) + list(NEGATIVE_WORDS),
            "sentiment": ["positive"] * len(POSITIVE_WORDS) + ["negative"] * len(NEGATIVE_WORDS),
        }
    )
    return df.sort_values("word", kind="mergesort").reset_index(drop=True)
