"""Keyword extraction by token frequency."""

import re
from collections import Counter

# Unicode-aware: accented Spanish letters are word characters
TOKEN_SPLIT = re.compile(r"\W+")

STOP_WORDS = frozenset(
    {
        "el", "la", "de", "que", "y", "a", "en", "un", "es", "se",
        "no", "te", "lo", "le", "da", "su", "por", "son", "con", "para",
        "al", "del", "está", "muy", "me", "pero", "todo", "mi", "fue", "era",
    }
)

MIN_TOKEN_LENGTH = 4


class KeywordExtractor:
    """Pick the most frequent meaningful tokens of a complaint."""

    def __init__(self, stop_words: frozenset[str] = STOP_WORDS) -> None:
        self.stop_words = stop_words

    def tokenize(self, text: str | None) -> list[str]:
        """Lowercase and split, dropping short, stop-word and numeric tokens."""
        tokens = []
        for token in TOKEN_SPLIT.split((text or "").lower()):
            if len(token) < MIN_TOKEN_LENGTH:
                continue
            if token in self.stop_words or token.isdigit():
                continue
            tokens.append(token)
        return tokens

    def extract(self, text: str | None, top_n: int = 5) -> list[str]:
        """
        Return up to top_n keywords, most frequent first.

        Ties keep the order of first occurrence in the text.
        """
        if top_n <= 0:
            return []
        # Counter preserves insertion order and most_common() is a stable sort
        counts = Counter(self.tokenize(text))
        return [token for token, _ in counts.most_common(top_n)]
