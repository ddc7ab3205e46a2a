"""Process-level handle tying the classifier, decision engine and search together."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from .config import ConfigError, resolve_path
from .decision import ClassificationResult, DecisionThresholds, HybridClassifier
from .errors import ModelUnavailableError
from .persistence import ModelSnapshot, ModelStore, load_or_train, train_snapshot
from .search import KnowledgeArticle, KnowledgeBaseSearch, ScoredArticle, SearchResponse, SearchSettings
from .text import extract_keywords
from .vocabulary import TrainingExample, TriageVocabulary, load_vocabulary

LOGGER = logging.getLogger(__name__)

ExampleLike = Union[TrainingExample, Mapping[str, Any]]
ArticleLike = Union[KnowledgeArticle, Mapping[str, Any]]


@dataclass(frozen=True)
class RetrainResult:
    success: bool
    sample_count: int


def _as_articles(candidates: Optional[Iterable[ArticleLike]]) -> List[KnowledgeArticle]:
    articles: List[KnowledgeArticle] = []
    for candidate in candidates or ():
        if isinstance(candidate, KnowledgeArticle):
            articles.append(candidate)
        else:
            articles.append(KnowledgeArticle.from_mapping(candidate))
    return articles


class TriageEngine:
    """Serve classification and search over a shared, swappable model.

    ``classify`` and ``search`` read the current classifier once per call and
    never mutate it, so they can run concurrently. ``retrain`` is serialised by
    a lock and replaces the classifier with a fully built one in a single
    assignment.
    """

    def __init__(
        self,
        vocabulary: TriageVocabulary,
        snapshot: ModelSnapshot,
        *,
        store: Optional[ModelStore] = None,
        thresholds: Optional[DecisionThresholds] = None,
        search_settings: Optional[SearchSettings] = None,
    ) -> None:
        self.vocabulary = vocabulary
        self.store = store
        self.thresholds = thresholds or DecisionThresholds()
        self.searcher = KnowledgeBaseSearch(search_settings, fallback_label=vocabulary.fallback_label)
        self._retrain_lock = threading.Lock()
        self._snapshot = snapshot
        self._classifier = self._build_classifier(snapshot)

    def _build_classifier(self, snapshot: ModelSnapshot) -> HybridClassifier:
        return HybridClassifier(snapshot.model, self.vocabulary, thresholds=self.thresholds)

    @property
    def snapshot(self) -> ModelSnapshot:
        return self._snapshot

    @property
    def sample_count(self) -> int:
        return self._snapshot.sample_count

    def classify(self, text: Any) -> ClassificationResult:
        return self._classifier.classify(text)

    def classify_many(self, texts: Iterable[Any]) -> List[ClassificationResult]:
        classifier = self._classifier
        return [classifier.classify(text) for text in texts]

    def search(self, query: Any, candidates: Optional[Sequence[ArticleLike]]) -> List[ScoredArticle]:
        classifier = self._classifier
        return self.searcher.search(query, _as_articles(candidates), classify=classifier.classify)

    def search_with_suggestion(
        self, query: Any, candidates: Optional[Sequence[ArticleLike]]
    ) -> SearchResponse:
        """Search and also report the category suggested for the query."""
        classifier = self._classifier
        classification = classifier.classify(query)
        results = self.searcher.search(
            query,
            _as_articles(candidates),
            classify=classifier.classify,
            classification=classification,
        )
        return SearchResponse(
            results=results,
            suggested_category=classification.category,
            confidence=classification.confidence,
        )

    def extract_keywords(self, text: Any, *, limit: int = 10) -> List[str]:
        return extract_keywords(text, limit=limit)

    def _validated_examples(self, examples: Iterable[ExampleLike]) -> List[TrainingExample]:
        trainable = set(self.vocabulary.trainable_labels)
        accepted: List[TrainingExample] = []
        for entry in examples:
            if isinstance(entry, TrainingExample):
                example = entry
            elif isinstance(entry, Mapping):
                example = TrainingExample.from_mapping(entry)
            else:
                LOGGER.warning("Skipping retrain example of type %s", type(entry).__name__)
                continue
            text = "" if example.text is None else str(example.text).strip()
            if example.category not in trainable:
                LOGGER.warning(
                    "Skipping retrain example with unsupported category '%s'", example.category
                )
                continue
            if not text:
                LOGGER.warning("Skipping retrain example with empty text for '%s'", example.category)
                continue
            accepted.append(TrainingExample(text=text, category=example.category))
        return accepted

    def retrain(self, additional_examples: Optional[Iterable[ExampleLike]] = None) -> RetrainResult:
        """Rebuild the model from the corpus plus appended examples and swap it in."""
        with self._retrain_lock:
            current = self._snapshot
            extras = current.additional_examples + tuple(
                self._validated_examples(additional_examples or ())
            )
            try:
                fresh = train_snapshot(self.vocabulary, extras)
            except ValueError:
                LOGGER.exception("Retraining failed; keeping the current classifier")
                return RetrainResult(success=False, sample_count=current.sample_count)

            classifier = self._build_classifier(fresh)
            self._snapshot = fresh
            self._classifier = classifier
            LOGGER.info(
                "Retrained classifier with %s samples (%s appended)",
                fresh.sample_count,
                len(fresh.additional_examples),
            )
            if self.store is not None:
                self.store.save(fresh)
            return RetrainResult(success=True, sample_count=fresh.sample_count)


def initialize(
    config: Optional[Mapping[str, Any]] = None,
    *,
    base_dir: Optional[Path] = None,
    vocabulary: Optional[TriageVocabulary] = None,
    store: Optional[ModelStore] = None,
) -> TriageEngine:
    """Build the engine once at process start.

    The model is loaded from ``model.snapshot_path`` when a compatible snapshot
    exists, otherwise trained from the vocabulary corpus. Raises
    :class:`ModelUnavailableError` when neither is possible.
    """
    config = config or {}
    model_cfg = config.get("model") or {}
    vocabulary_cfg = config.get("vocabulary") or {}

    if vocabulary is None:
        vocabulary_path = vocabulary_cfg.get("path")
        try:
            vocabulary = load_vocabulary(
                resolve_path(vocabulary_path, base=base_dir) if vocabulary_path else None
            )
        except (ConfigError, OSError, ValueError) as exc:
            raise ModelUnavailableError(f"Unable to load triage vocabulary: {exc}") from exc

    if store is None and model_cfg.get("snapshot_path"):
        store = ModelStore(resolve_path(model_cfg["snapshot_path"], base=base_dir))

    snapshot = load_or_train(vocabulary, store)
    engine = TriageEngine(
        vocabulary,
        snapshot,
        store=store,
        thresholds=DecisionThresholds.from_config(config.get("decision")),
        search_settings=SearchSettings.from_config(config.get("search")),
    )
    LOGGER.info(
        "Triage engine ready: %s categories, %s training samples",
        len(vocabulary.labels),
        engine.sample_count,
    )
    return engine
