"""Multinomial naive Bayes category classifier trained on the labelled corpus."""
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, NamedTuple, Sequence, Tuple

from .text import stem_tokens, tokenize
from .vocabulary import TrainingExample

LOGGER = logging.getLogger(__name__)


class Prediction(NamedTuple):
    label: str
    probability: float


def _document_variants(text: str) -> Tuple[List[str], List[str]]:
    tokens = tokenize(text)
    return tokens, stem_tokens(tokens)


def query_features(text: Any) -> List[str]:
    """Raw and stemmed tokens of ``text``; the features scored at inference time."""
    tokens = tokenize(text)
    return tokens + stem_tokens(tokens)


@dataclass(frozen=True)
class ClassifierModel:
    """Frequency tables of a trained classifier. Never mutated after construction."""

    labels: Tuple[str, ...]
    doc_counts: Dict[str, int]
    term_counts: Dict[str, Dict[str, int]]
    sample_count: int
    alpha: float = 1.0
    _term_totals: Dict[str, int] = field(init=False, repr=False, compare=False)
    _vocabulary: FrozenSet[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        totals = {label: sum(self.term_counts.get(label, {}).values()) for label in self.labels}
        vocabulary = frozenset(
            term for counts in self.term_counts.values() for term in counts
        )
        object.__setattr__(self, "_term_totals", totals)
        object.__setattr__(self, "_vocabulary", vocabulary)

    @property
    def vocabulary_size(self) -> int:
        return len(self._vocabulary)

    def _uniform(self) -> List[Prediction]:
        share = 1.0 / len(self.labels)
        return [Prediction(label, share) for label in self.labels]

    def predict(self, text: Any) -> List[Prediction]:
        """Return a probability for every label, highest first.

        Tokens never seen during training are ignored. When nothing in the text
        is known (including empty input) the distribution is uniform.
        """
        features = [token for token in query_features(text) if token in self._vocabulary]
        if not features:
            return self._uniform()

        total_docs = sum(self.doc_counts.values())
        vocabulary_size = self.vocabulary_size
        log_scores: Dict[str, float] = {}
        for label in self.labels:
            docs = self.doc_counts.get(label, 0)
            if docs == 0:
                continue
            counts = self.term_counts.get(label, {})
            denominator = self._term_totals[label] + self.alpha * vocabulary_size
            score = math.log(docs / total_docs)
            for token in features:
                score += math.log((counts.get(token, 0) + self.alpha) / denominator)
            log_scores[label] = score
        if not log_scores:
            return self._uniform()

        peak = max(log_scores.values())
        weights = {label: math.exp(value - peak) for label, value in log_scores.items()}
        norm = sum(weights.values())
        predictions = [
            Prediction(label, weights.get(label, 0.0) / norm) for label in self.labels
        ]
        predictions.sort(key=lambda item: item.probability, reverse=True)
        return predictions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "labels": list(self.labels),
            "alpha": self.alpha,
            "sample_count": self.sample_count,
            "doc_counts": dict(self.doc_counts),
            "term_counts": {label: dict(counts) for label, counts in self.term_counts.items()},
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ClassifierModel":
        labels = tuple(str(label) for label in payload["labels"])
        doc_counts = {str(label): int(count) for label, count in payload["doc_counts"].items()}
        term_counts = {
            str(label): {str(term): int(count) for term, count in counts.items()}
            for label, counts in payload["term_counts"].items()
        }
        unknown = (set(doc_counts) | set(term_counts)) - set(labels)
        if unknown:
            raise ValueError(f"Model references unknown labels: {sorted(unknown)}")
        return cls(
            labels=labels,
            doc_counts=doc_counts,
            term_counts=term_counts,
            sample_count=int(payload.get("sample_count", 0)),
            alpha=float(payload.get("alpha", 1.0)),
        )


def train_model(
    examples: Iterable[TrainingExample],
    *,
    labels: Sequence[str],
    alpha: float = 1.0,
) -> ClassifierModel:
    """Train a classifier in a single deterministic pass.

    Each example contributes two documents to its category: the normalised
    token sequence and its stemmed form.
    """
    label_set = set(labels)
    doc_counts: Counter[str] = Counter()
    term_counts: Dict[str, Counter[str]] = {label: Counter() for label in labels}
    sample_count = 0

    for example in examples:
        if example.category not in label_set:
            raise ValueError(f"Training example uses unknown category '{example.category}'")
        raw_tokens, stemmed_tokens = _document_variants(example.text)
        if not raw_tokens:
            LOGGER.debug("Skipping training example without tokens: %r", example.text)
            continue
        for document in (raw_tokens, stemmed_tokens):
            doc_counts[example.category] += 1
            term_counts[example.category].update(document)
        sample_count += 1

    if sample_count == 0:
        raise ValueError("Cannot train a classifier without any usable training examples")

    model = ClassifierModel(
        labels=tuple(labels),
        doc_counts={label: doc_counts.get(label, 0) for label in labels},
        term_counts={label: dict(counts) for label, counts in term_counts.items() if counts},
        sample_count=sample_count,
        alpha=alpha,
    )
    LOGGER.info(
        "Trained classifier on %s examples across %s categories (vocabulary %s terms)",
        sample_count,
        sum(1 for count in model.doc_counts.values() if count),
        model.vocabulary_size,
    )
    return model
