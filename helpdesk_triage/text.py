"""Tokenisation, stemming and string similarity helpers shared by the engine."""
from __future__ import annotations

import re
from collections import Counter
from functools import lru_cache
from typing import Any, Iterable, List, Sequence

from nltk.stem import PorterStemmer
from rapidfuzz.distance import JaroWinkler

TOKEN_PATTERN = re.compile(r"[a-z0-9]+")
_APOSTROPHES = re.compile(r"['’]")
_WHITESPACE = re.compile(r"\s+")

STOP_WORDS = frozenset(
    {
        "the", "is", "at", "which", "on", "a", "an", "and", "or", "but",
        "in", "with", "to", "for", "of", "my", "i", "me",
    }
)

_STEMMER = PorterStemmer()


def tokenize(text: Any) -> List[str]:
    """Split text into lowercase word tokens.

    Apostrophes are dropped before splitting so contractions collapse into a
    single token ("can't" -> "cant"). Anything that is not a non-empty string
    produces an empty list.
    """
    if not isinstance(text, str) or not text:
        return []
    lowered = _APOSTROPHES.sub("", text.lower())
    return TOKEN_PATTERN.findall(lowered)


def normalize(text: Any) -> str:
    return " ".join(tokenize(text))


@lru_cache(maxsize=8192)
def stem(token: str) -> str:
    """Porter stem of a single lowercase token."""
    if not token:
        return token
    return _STEMMER.stem(token)


def stem_tokens(tokens: Iterable[str]) -> List[str]:
    return [stem(token) for token in tokens]


def remove_stop_words(tokens: Iterable[str]) -> List[str]:
    return [token for token in tokens if token not in STOP_WORDS]


def extract_keywords(text: Any, *, limit: int = 10) -> List[str]:
    """Return distinct content words (longer than two characters) in first-seen order."""
    keywords: List[str] = []
    seen: set[str] = set()
    for token in remove_stop_words(tokenize(text)):
        if len(token) <= 2 or token in seen:
            continue
        seen.add(token)
        keywords.append(token)
        if len(keywords) >= limit:
            break
    return keywords


def ngrams(tokens: Sequence[str], size: int) -> List[str]:
    if size <= 0 or size > len(tokens):
        return []
    return [" ".join(tokens[index : index + size]) for index in range(len(tokens) - size + 1)]


def _char_bigrams(value: str) -> Counter[str]:
    cleaned = _WHITESPACE.sub(" ", value.lower()).strip()
    return Counter(cleaned[index : index + 2] for index in range(len(cleaned) - 1))


def dice_coefficient(left: Any, right: Any) -> float:
    """Sorensen-Dice coefficient over character bigrams, in ``[0, 1]``."""
    left_text = str(left or "")
    right_text = str(right or "")
    if not left_text or not right_text:
        return 0.0
    if left_text.lower() == right_text.lower():
        return 1.0
    left_bigrams = _char_bigrams(left_text)
    right_bigrams = _char_bigrams(right_text)
    total = sum(left_bigrams.values()) + sum(right_bigrams.values())
    if total == 0:
        return 0.0
    overlap = sum((left_bigrams & right_bigrams).values())
    return 2.0 * overlap / total


def jaro_winkler(left: Any, right: Any) -> float:
    """Jaro-Winkler similarity of the lowercased strings, in ``[0, 1]``."""
    left_text = str(left or "").lower()
    right_text = str(right or "").lower()
    if not left_text or not right_text:
        return 0.0
    return float(JaroWinkler.normalized_similarity(left_text, right_text))
