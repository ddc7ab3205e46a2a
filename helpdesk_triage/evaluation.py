"""Accuracy and confidence summaries for batches of classifications."""
from __future__ import annotations

import csv
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .decision import ClassificationResult
from .vocabulary import TrainingExample

LOGGER = logging.getLogger(__name__)

HIGH_CONFIDENCE = 70
MEDIUM_CONFIDENCE = 50


@dataclass
class EvaluationSummary:
    total: int
    average_confidence: float
    method_counts: Dict[str, int] = field(default_factory=dict)
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0
    fallback_count: int = 0
    correct: Optional[int] = None
    labelled: int = 0
    status: str = ""

    @property
    def accuracy(self) -> Optional[float]:
        if self.correct is None or not self.labelled:
            return None
        return self.correct / self.labelled


def overall_status(average_confidence: float, fallback_count: int) -> str:
    if average_confidence >= 70 and fallback_count <= 2:
        return "EXCELLENT"
    if average_confidence >= 60 and fallback_count <= 4:
        return "GOOD"
    if average_confidence >= 50:
        return "ACCEPTABLE"
    return "NEEDS IMPROVEMENT"


def summarize(
    results: Sequence[ClassificationResult],
    expected: Optional[Sequence[Optional[str]]] = None,
    *,
    fallback_label: str = "Other",
) -> EvaluationSummary:
    """Summarise a batch of results, scoring accuracy when expected labels are given.

    Entries of ``expected`` that are empty or ``None`` are left out of the
    accuracy count.
    """
    total = len(results)
    if expected is not None and len(expected) != total:
        raise ValueError("Expected labels must line up with the classification results")

    average = sum(result.confidence for result in results) / total if total else 0.0
    methods = Counter(result.method for result in results)
    summary = EvaluationSummary(
        total=total,
        average_confidence=round(average, 1),
        method_counts=dict(sorted(methods.items(), key=lambda item: (-item[1], item[0]))),
        high_confidence=sum(1 for r in results if r.confidence >= HIGH_CONFIDENCE),
        medium_confidence=sum(
            1 for r in results if MEDIUM_CONFIDENCE <= r.confidence < HIGH_CONFIDENCE
        ),
        low_confidence=sum(1 for r in results if r.confidence < MEDIUM_CONFIDENCE),
        fallback_count=sum(1 for r in results if r.category == fallback_label),
    )
    if expected is not None:
        labelled = [(result, label) for result, label in zip(results, expected) if label]
        if labelled:
            summary.correct = sum(1 for result, label in labelled if result.category == label)
            summary.labelled = len(labelled)
    summary.status = overall_status(summary.average_confidence, summary.fallback_count)
    LOGGER.info(
        "Evaluated %s queries: average confidence %.1f, status %s",
        total,
        summary.average_confidence,
        summary.status,
    )
    return summary


def render_summary(summary: EvaluationSummary) -> List[str]:
    """Format a summary into console lines."""
    rows: List[Tuple[str, str]] = [
        ("Queries", str(summary.total)),
        ("Average confidence", f"{summary.average_confidence:.1f}%"),
        (f"High confidence (>={HIGH_CONFIDENCE}%)", str(summary.high_confidence)),
        (f"Medium confidence ({MEDIUM_CONFIDENCE}-{HIGH_CONFIDENCE - 1}%)", str(summary.medium_confidence)),
        (f"Low confidence (<{MEDIUM_CONFIDENCE}%)", str(summary.low_confidence)),
        ("Fallback to Other", str(summary.fallback_count)),
    ]
    if summary.accuracy is not None:
        rows.append(("Accuracy", f"{summary.correct}/{summary.labelled} ({summary.accuracy * 100:.1f}%)"))
    for method, count in summary.method_counts.items():
        rows.append((f"Method {method}", str(count)))
    rows.append(("Overall status", summary.status))

    label_width = max(len(label) for label, _ in rows)
    return [f"{label.ljust(label_width)}  {value}" for label, value in rows]


def load_labelled_queries(path: Path) -> List[TrainingExample]:
    """Read ``text,category`` rows from a CSV file; category may be blank."""
    examples: List[TrainingExample] = []
    with Path(path).open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames or "text" not in reader.fieldnames:
            raise ValueError(f"{path} must have a 'text' column")
        for row in reader:
            text = (row.get("text") or "").strip()
            if not text:
                LOGGER.debug("Skipping blank row in %s", path)
                continue
            examples.append(TrainingExample(text=text, category=(row.get("category") or "").strip()))
    LOGGER.info("Loaded %s labelled queries from %s", len(examples), path)
    return examples
