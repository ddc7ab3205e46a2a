"""Tiered keyword scoring per category with near-match support."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from .text import dice_coefficient, ngrams, stem, stem_tokens, tokenize
from .vocabulary import KeywordTiers, TriageVocabulary

LOGGER = logging.getLogger(__name__)

PHRASE_WEIGHT = 5.0
STRONG_WEIGHT = 3.0
WEAK_WEIGHT = 1.0
FUZZY_THRESHOLD = 0.7
FUZZY_MULTIPLIER = 3.0


@dataclass(frozen=True)
class TextFeatures:
    """Precomputed views of a query used by the term matchers."""

    text: str
    tokens: Tuple[str, ...]
    token_set: FrozenSet[str]
    stem_set: FrozenSet[str]
    windows: Tuple[str, ...]

    @classmethod
    def from_text(cls, text: Any) -> "TextFeatures":
        tokens = tokenize(text)
        windows = ngrams(tokens, 2) + ngrams(tokens, 3)
        return cls(
            text=" ".join(tokens),
            tokens=tuple(tokens),
            token_set=frozenset(tokens),
            stem_set=frozenset(stem_tokens(tokens)),
            windows=tuple(windows),
        )

    def contains(self, term: str) -> bool:
        """Single words match a token or its stem; phrases match whole-word token runs."""
        if not term:
            return False
        if " " in term:
            return f" {term} " in f" {self.text} "
        return term in self.token_set or stem(term) in self.stem_set


@dataclass(frozen=True)
class KeywordMatch:
    term: str
    weight: float
    kind: str


@dataclass
class KeywordScore:
    category: str
    score: float = 0.0
    matches: List[KeywordMatch] = field(default_factory=list)

    def add(self, term: str, weight: float, kind: str) -> None:
        self.score += weight
        self.matches.append(KeywordMatch(term=term, weight=weight, kind=kind))

    @property
    def terms(self) -> List[str]:
        return [match.term for match in self.matches]


class KeywordScorer:
    """Score text against each category's phrase, strong and weak keyword tiers."""

    def __init__(self, vocabulary: TriageVocabulary) -> None:
        self.vocabulary = vocabulary
        self._tiers: Dict[str, KeywordTiers] = {
            label: vocabulary.keyword_tiers[label]
            for label in vocabulary.labels
            if label in vocabulary.keyword_tiers
        }

    def _best_window(self, phrase: str, features: TextFeatures) -> float:
        best = 0.0
        for window in features.windows:
            similarity = dice_coefficient(window, phrase)
            if similarity > best:
                best = similarity
        return best

    def _score_category(self, category: str, tiers: KeywordTiers, features: TextFeatures) -> KeywordScore:
        result = KeywordScore(category=category)
        near_candidates: List[str] = []
        for phrase in tiers.phrases:
            if features.contains(phrase):
                result.add(phrase, PHRASE_WEIGHT, "phrase")
            else:
                near_candidates.append(phrase)
        for term in tiers.strong:
            if features.contains(term):
                result.add(term, STRONG_WEIGHT, "strong")
        for term in tiers.weak:
            if features.contains(term):
                result.add(term, WEAK_WEIGHT, "weak")
        if features.windows:
            for phrase in near_candidates:
                similarity = self._best_window(phrase, features)
                if similarity > FUZZY_THRESHOLD:
                    result.add(phrase, round(similarity * FUZZY_MULTIPLIER, 4), "fuzzy")
        return result

    def score(self, text: Any) -> Dict[str, KeywordScore]:
        """Return a score for every category that owns keyword tiers, in label order."""
        features = text if isinstance(text, TextFeatures) else TextFeatures.from_text(text)
        scores: Dict[str, KeywordScore] = {}
        for category, tiers in self._tiers.items():
            scores[category] = self._score_category(category, tiers, features)
        if LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug(
                "Keyword scores: %s",
                {category: round(score.score, 2) for category, score in scores.items() if score.score},
            )
        return scores


def best_keyword_score(scores: Mapping[str, KeywordScore]) -> Optional[KeywordScore]:
    """Highest scoring category; earlier categories win ties; ``None`` when nothing matched."""
    best: Optional[KeywordScore] = None
    for score in scores.values():
        if score.score <= 0:
            continue
        if best is None or score.score > best.score:
            best = score
    return best
