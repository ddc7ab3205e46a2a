"""Loading and validation of the triage vocabulary (labels, keywords, corpus)."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .config import read_yaml
from .text import normalize

LOGGER = logging.getLogger(__name__)

DEFAULT_VOCABULARY_PATH = Path(__file__).resolve().parent / "data" / "vocabulary.yaml"

CATEGORY_LABELS: Tuple[str, ...] = (
    "Password Reset",
    "VPN Issues",
    "Software Installation",
    "Hardware Issues",
    "Network Issues",
    "Email Issues",
    "Other",
)
FALLBACK_CATEGORY = "Other"
PRIORITY_LABELS: Tuple[str, ...] = ("urgent", "high", "medium", "low")
DEFAULT_PRIORITY = "medium"


@dataclass(frozen=True)
class TrainingExample:
    text: str
    category: str

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "TrainingExample":
        return cls(text=str(payload.get("text") or ""), category=str(payload.get("category") or ""))


@dataclass(frozen=True)
class KeywordTiers:
    """Normalised keyword tiers for a single category."""

    phrases: Tuple[str, ...] = ()
    strong: Tuple[str, ...] = ()
    weak: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PriorityTier:
    label: str
    strong: Tuple[str, ...] = ()
    normal: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TriageVocabulary:
    labels: Tuple[str, ...]
    fallback_label: str
    examples: Tuple[TrainingExample, ...]
    keyword_tiers: Dict[str, KeywordTiers] = field(default_factory=dict)
    priority_tiers: Tuple[PriorityTier, ...] = ()
    teams: Dict[str, str] = field(default_factory=dict)
    default_team: str = "Support"
    default_priority: str = DEFAULT_PRIORITY

    @property
    def trainable_labels(self) -> Tuple[str, ...]:
        return tuple(label for label in self.labels if label != self.fallback_label)

    def team_for(self, category: str) -> str:
        return self.teams.get(category, self.default_team)


def _normalise_terms(values: Any, *, context: str) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str) or not isinstance(values, (list, tuple)):
        raise ValueError(f"{context} must be a list of strings")
    terms: List[str] = []
    seen: set[str] = set()
    for value in values:
        term = normalize(str(value))
        if not term:
            LOGGER.warning("Ignoring empty term in %s", context)
            continue
        if term not in seen:
            seen.add(term)
            terms.append(term)
    return tuple(terms)


def _parse_categories(
    entries: Mapping[str, Any], *, labels: Sequence[str], fallback_label: str
) -> Tuple[Dict[str, KeywordTiers], List[TrainingExample]]:
    keyword_tiers: Dict[str, KeywordTiers] = {}
    examples: List[TrainingExample] = []
    for category, entry in entries.items():
        if category not in labels:
            raise ValueError(f"Vocabulary category '{category}' is not one of the configured labels")
        if category == fallback_label:
            raise ValueError(f"The fallback label '{fallback_label}' cannot carry keywords or examples")
        entry = entry or {}
        keyword_tiers[category] = KeywordTiers(
            phrases=_normalise_terms(entry.get("phrases"), context=f"{category}.phrases"),
            strong=_normalise_terms(entry.get("strong"), context=f"{category}.strong"),
            weak=_normalise_terms(entry.get("weak"), context=f"{category}.weak"),
        )
        for text in entry.get("examples") or []:
            text = str(text).strip()
            if text:
                examples.append(TrainingExample(text=text, category=category))
    return keyword_tiers, examples


def _parse_priorities(entries: Mapping[str, Any]) -> Tuple[PriorityTier, ...]:
    tiers: List[PriorityTier] = []
    for label in PRIORITY_LABELS:
        entry = entries.get(label) or {}
        tiers.append(
            PriorityTier(
                label=label,
                strong=_normalise_terms(entry.get("strong"), context=f"priorities.{label}.strong"),
                normal=_normalise_terms(entry.get("normal"), context=f"priorities.{label}.normal"),
            )
        )
    unknown = set(entries) - set(PRIORITY_LABELS)
    if unknown:
        raise ValueError(f"Unknown priority tiers: {', '.join(sorted(unknown))}")
    return tuple(tiers)


def build_vocabulary(config: Optional[Mapping[str, Any]]) -> TriageVocabulary:
    """Construct a :class:`TriageVocabulary` from configuration data."""

    if not config:
        raise ValueError("Vocabulary configuration is empty")

    labels = tuple(str(label) for label in config.get("labels") or CATEGORY_LABELS)
    if len(set(labels)) != len(labels):
        raise ValueError("Vocabulary labels must be unique")
    fallback_label = str(config.get("fallback_label") or FALLBACK_CATEGORY)
    if fallback_label not in labels:
        raise ValueError(f"Fallback label '{fallback_label}' must be listed in labels")

    categories = config.get("categories")
    if not isinstance(categories, Mapping) or not categories:
        raise ValueError("vocabulary.categories must be a non-empty mapping")
    keyword_tiers, examples = _parse_categories(
        categories, labels=labels, fallback_label=fallback_label
    )

    teams = {str(key): str(value) for key, value in (config.get("teams") or {}).items()}
    for category in teams:
        if category not in labels:
            LOGGER.warning("Team mapping for unknown category '%s' will never be used", category)

    default_priority = str(config.get("default_priority") or DEFAULT_PRIORITY)
    if default_priority not in PRIORITY_LABELS:
        raise ValueError(f"Default priority '{default_priority}' is not a known priority")

    vocabulary = TriageVocabulary(
        labels=labels,
        fallback_label=fallback_label,
        examples=tuple(examples),
        keyword_tiers=keyword_tiers,
        priority_tiers=_parse_priorities(config.get("priorities") or {}),
        teams=teams,
        default_team=str(config.get("default_team") or "Support"),
        default_priority=default_priority,
    )
    LOGGER.debug(
        "Built vocabulary with %s labels, %s training examples",
        len(vocabulary.labels),
        len(vocabulary.examples),
    )
    return vocabulary


def load_vocabulary(path: str | Path | None = None) -> TriageVocabulary:
    """Load the bundled vocabulary, or a replacement YAML file when ``path`` is given."""
    vocabulary_path = Path(path) if path else DEFAULT_VOCABULARY_PATH
    LOGGER.info("Loading triage vocabulary from %s", vocabulary_path)
    data = read_yaml(vocabulary_path)
    if not isinstance(data, Mapping):
        raise ValueError(f"Vocabulary file {vocabulary_path} must contain a mapping")
    return build_vocabulary(data)
