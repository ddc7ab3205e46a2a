"""Hybrid decision engine reconciling classifier output with keyword evidence.

The category decision is an ordered cascade of :class:`DecisionRule` objects.
Rules are evaluated in sequence and the first guard that accepts the
:class:`DecisionContext` produces the decision, so the order of
``DECISION_RULES`` is part of the behaviour.

Priority is derived independently of category from weighted priority-keyword
tiers, and the routing team is a static lookup on the final category.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .classifier import ClassifierModel, Prediction
from .keywords import KeywordScore, KeywordScorer, TextFeatures, best_keyword_score
from .vocabulary import PriorityTier, TriageVocabulary

LOGGER = logging.getLogger(__name__)

MAX_KEYWORD_MATCHES = 5
MAX_TOP_PREDICTIONS = 3
PRIORITY_STRONG_WEIGHT = 2
PRIORITY_NORMAL_WEIGHT = 1


@dataclass(frozen=True)
class DecisionThresholds:
    keyword_strong: float = 5.0
    ml_confidence: float = 0.35
    keyword_support: float = 2.0
    ml_keyword_support: float = 1.0
    ml_gap: float = 0.1
    fallback_ml_confidence: float = 0.25
    fallback_confidence: float = 0.48

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> "DecisionThresholds":
        if not config:
            return cls()
        known = set(cls.__dataclass_fields__)
        unknown = set(config) - known
        if unknown:
            raise ValueError(f"Unknown decision settings: {', '.join(sorted(unknown))}")
        return cls(**{key: float(value) for key, value in config.items()})


@dataclass(frozen=True)
class DecisionContext:
    ml_category: str
    ml_confidence: float
    ml_gap: float
    keyword_scores: Mapping[str, float]
    best_keyword_category: Optional[str]
    best_keyword_score: float
    fallback_label: str
    thresholds: DecisionThresholds = field(default_factory=DecisionThresholds)

    @property
    def ml_keyword_score(self) -> float:
        return self.keyword_scores.get(self.ml_category, 0.0)

    @property
    def any_keyword_hit(self) -> bool:
        return any(score > 0 for score in self.keyword_scores.values())


@dataclass(frozen=True)
class Decision:
    category: str
    confidence: float
    method: str


@dataclass(frozen=True)
class DecisionRule:
    method: str
    guard: Callable[[DecisionContext], bool]
    action: Callable[[DecisionContext], Decision]

    def applies(self, context: DecisionContext) -> bool:
        return self.guard(context)


def _keyword_strong(ctx: DecisionContext) -> Decision:
    confidence = min(0.75 + 0.02 * ctx.best_keyword_score, 0.95)
    return Decision(ctx.best_keyword_category or ctx.fallback_label, confidence, "keyword-strong")


def _hybrid_boosted(ctx: DecisionContext) -> Decision:
    confidence = min(0.55 + 0.05 * ctx.ml_keyword_score, 0.85)
    return Decision(ctx.ml_category, confidence, "hybrid-boosted")


def _hybrid_keyword(ctx: DecisionContext) -> Decision:
    confidence = min(0.50 + 0.05 * ctx.best_keyword_score, 0.80)
    return Decision(ctx.best_keyword_category or ctx.fallback_label, confidence, "hybrid-keyword")


def _ml_boosted(ctx: DecisionContext) -> Decision:
    confidence = min(ctx.ml_confidence + 0.03 * ctx.ml_keyword_score, 0.98)
    return Decision(ctx.ml_category, confidence, "ml-boosted")


def _ml(ctx: DecisionContext) -> Decision:
    return Decision(ctx.ml_category, ctx.ml_confidence, "ml")


def _fallback(ctx: DecisionContext) -> Decision:
    return Decision(ctx.fallback_label, ctx.thresholds.fallback_confidence, "fallback")


def _ml_supported(ctx: DecisionContext) -> Decision:
    confidence = min(ctx.ml_confidence + 0.02 * ctx.best_keyword_score, 0.90)
    method = "ml-supported" if ctx.any_keyword_hit else "ml"
    return Decision(ctx.ml_category, confidence, method)


DECISION_RULES: Tuple[DecisionRule, ...] = (
    DecisionRule(
        "keyword-strong",
        lambda ctx: ctx.best_keyword_score >= ctx.thresholds.keyword_strong,
        _keyword_strong,
    ),
    DecisionRule(
        "hybrid-boosted",
        lambda ctx: ctx.ml_confidence < ctx.thresholds.ml_confidence
        and ctx.ml_keyword_score >= ctx.thresholds.keyword_support,
        _hybrid_boosted,
    ),
    DecisionRule(
        "hybrid-keyword",
        lambda ctx: ctx.ml_confidence < ctx.thresholds.ml_confidence
        and ctx.best_keyword_score >= ctx.thresholds.keyword_support,
        _hybrid_keyword,
    ),
    DecisionRule(
        "ml-boosted",
        lambda ctx: ctx.ml_confidence >= ctx.thresholds.ml_confidence
        and ctx.ml_keyword_score >= ctx.thresholds.ml_keyword_support,
        _ml_boosted,
    ),
    DecisionRule(
        "ml",
        lambda ctx: ctx.ml_confidence >= ctx.thresholds.ml_confidence
        and ctx.ml_gap > ctx.thresholds.ml_gap,
        _ml,
    ),
    DecisionRule(
        "fallback",
        lambda ctx: ctx.ml_confidence < ctx.thresholds.fallback_ml_confidence
        and ctx.best_keyword_score < ctx.thresholds.keyword_support,
        _fallback,
    ),
    DecisionRule("ml-supported", lambda ctx: True, _ml_supported),
)


def decide(context: DecisionContext, rules: Sequence[DecisionRule] = DECISION_RULES) -> Decision:
    """Apply the first rule whose guard accepts ``context``."""
    for rule in rules:
        if rule.applies(context):
            return rule.action(context)
    # The bundled cascade ends in a catch-all; custom rule lists may not.
    return _ml_supported(context)


def derive_priority(
    features: TextFeatures,
    tiers: Sequence[PriorityTier],
    *,
    default: str = "medium",
) -> str:
    """Pick the priority tier with the highest weighted keyword hits.

    Strong terms count twice, normal terms once. Earlier tiers win ties and a
    text without any hit gets ``default``.
    """
    best_label = default
    best_score = 0
    for tier in tiers:
        score = sum(PRIORITY_STRONG_WEIGHT for term in tier.strong if features.contains(term))
        score += sum(PRIORITY_NORMAL_WEIGHT for term in tier.normal if features.contains(term))
        if score > best_score:
            best_score = score
            best_label = tier.label
    return best_label


def _as_percent(value: float) -> int:
    return int(round(max(0.0, min(value, 1.0)) * 100))


@dataclass(frozen=True)
class ClassificationResult:
    category: str
    priority: str
    confidence: int
    assigned_team: str
    method: str
    ml_confidence: int = 0
    keyword_score: float = 0.0
    keyword_matches: Tuple[str, ...] = ()
    top_predictions: Tuple[Tuple[str, int], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "priority": self.priority,
            "confidence": self.confidence,
            "assignedTeam": self.assigned_team,
            "method": self.method,
            "mlConfidence": self.ml_confidence,
            "keywordScore": self.keyword_score,
            "keywordMatches": list(self.keyword_matches),
            "topPredictions": [
                {"label": label, "confidence": confidence}
                for label, confidence in self.top_predictions
            ],
        }


class HybridClassifier:
    """Classify free text into category, priority and team."""

    def __init__(
        self,
        model: ClassifierModel,
        vocabulary: TriageVocabulary,
        *,
        thresholds: Optional[DecisionThresholds] = None,
        rules: Sequence[DecisionRule] = DECISION_RULES,
    ) -> None:
        self.model = model
        self.vocabulary = vocabulary
        self.thresholds = thresholds or DecisionThresholds()
        self.rules = tuple(rules)
        self.keyword_scorer = KeywordScorer(vocabulary)

    def _fallback_result(self) -> ClassificationResult:
        label = self.vocabulary.fallback_label
        return ClassificationResult(
            category=label,
            priority=self.vocabulary.default_priority,
            confidence=0,
            assigned_team=self.vocabulary.team_for(label),
            method="fallback",
        )

    def build_context(
        self,
        predictions: List[Prediction],
        keyword_scores: Mapping[str, KeywordScore],
    ) -> DecisionContext:
        top = predictions[0]
        runner_up = predictions[1].probability if len(predictions) > 1 else 0.0
        best = best_keyword_score(keyword_scores)
        return DecisionContext(
            ml_category=top.label,
            ml_confidence=top.probability,
            ml_gap=top.probability - runner_up,
            keyword_scores={label: score.score for label, score in keyword_scores.items()},
            best_keyword_category=best.category if best else None,
            best_keyword_score=best.score if best else 0.0,
            fallback_label=self.vocabulary.fallback_label,
            thresholds=self.thresholds,
        )

    def classify(self, text: Any) -> ClassificationResult:
        features = TextFeatures.from_text(text)
        if not features.tokens:
            return self._fallback_result()

        predictions = self.model.predict(text)
        keyword_scores = self.keyword_scorer.score(features)
        context = self.build_context(predictions, keyword_scores)
        decision = decide(context, self.rules)

        reported = keyword_scores.get(decision.category)
        if reported is None or reported.score <= 0:
            reported = best_keyword_score(keyword_scores)
        priority = derive_priority(
            features,
            self.vocabulary.priority_tiers,
            default=self.vocabulary.default_priority,
        )
        result = ClassificationResult(
            category=decision.category,
            priority=priority,
            confidence=_as_percent(decision.confidence),
            assigned_team=self.vocabulary.team_for(decision.category),
            method=decision.method,
            ml_confidence=_as_percent(context.ml_confidence),
            keyword_score=round(reported.score, 2) if reported else 0.0,
            keyword_matches=tuple(reported.terms[:MAX_KEYWORD_MATCHES]) if reported else (),
            top_predictions=tuple(
                (prediction.label, _as_percent(prediction.probability))
                for prediction in predictions[:MAX_TOP_PREDICTIONS]
            ),
        )
        LOGGER.debug(
            "Classified %r as %s (confidence %s, method %s, ml %s%%, keywords %s)",
            features.text[:120],
            result.category,
            result.confidence,
            result.method,
            result.ml_confidence,
            result.keyword_score,
        )
        return result
