from __future__ import annotations

import re
from collections.abc import Iterable

_PUNCTUATION = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")
_WHITESPACE = re.compile(r"\s+")

MIN_KEYWORD_LENGTH = 4

STOPWORDS: dict[str, frozenset[str]] = {
    "en": frozenset(
        {
            "a", "about", "above", "after", "again", "against", "all", "also", "an",
            "and", "any", "are", "because", "been", "before", "being", "below",
            "between", "both", "but", "by", "can", "could", "did", "does", "doing",
            "down", "during", "each", "even", "every", "from", "further", "had",
            "have", "having", "here", "hers", "herself", "himself", "into", "itself",
            "just", "more", "most", "much", "must", "myself", "only", "other", "ours",
            "ourselves", "over", "same", "shall", "should", "some", "such", "than",
            "that", "their", "theirs", "them", "themselves", "then", "there", "these",
            "they", "this", "those", "through", "under", "until", "very", "were",
            "what", "when", "where", "which", "while", "whom", "whose", "will",
            "with", "would", "your", "yours", "yourself", "yourselves",
        }
    ),
    "tr": frozenset(
        {
            "bir", "ve", "veya", "da", "de", "bu", "şu", "o", "için", "ile", "gibi",
            "kadar", "mi", "mı", "mu", "mü", "ne", "nasıl", "neden", "hangi", "kim",
            "kime", "nerede", "ne zaman", "acaba", "belki", "evet", "hayır", "tamam",
            "değil", "var", "yok",
        }
    ),
}


def get_stopwords(language: str) -> frozenset[str]:
    try:
        return STOPWORDS[language]
    except KeyError:
        raise ValueError(f"No stopword list for language '{language}'") from None


def extract_keywords(text: str, stopwords: Iterable[str] | None = None) -> list[str]:
    """Return the significant terms of *text*, in first-seen order without repeats.

    Words shorter than four characters and stopwords are dropped. An empty
    list is a valid result and means the text carries no ranking signal.
    """
    excluded = frozenset(stopwords) if stopwords is not None else STOPWORDS["en"]
    cleaned = _PUNCTUATION.sub("", text.lower())

    keywords: dict[str, None] = {}
    for word in _WHITESPACE.split(cleaned):
        if len(word) < MIN_KEYWORD_LENGTH or word in excluded:
            continue
        keywords.setdefault(word, None)
    return list(keywords)
