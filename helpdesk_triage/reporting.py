"""Write classification results to CSV for offline review."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Optional, Sequence

from .decision import ClassificationResult

LOGGER = logging.getLogger(__name__)


class ClassificationReportWriter:
    """Persist per-query classification output."""

    HEADERS: Sequence[str] = (
        "text",
        "expected_category",
        "category",
        "priority",
        "confidence",
        "assigned_team",
        "method",
        "ml_confidence",
        "keyword_score",
        "keyword_matches",
        "top_predictions",
        "correct",
    )

    def __init__(self, *, output_directory: Path, report_name: str) -> None:
        self.output_directory = output_directory
        self.report_name = report_name
        self.output_directory.mkdir(parents=True, exist_ok=True)

    def write_results(
        self,
        texts: Sequence[str],
        results: Sequence[ClassificationResult],
        expected: Optional[Sequence[Optional[str]]] = None,
    ) -> Path:
        if len(texts) != len(results):
            raise ValueError("Each text needs exactly one classification result")
        report_path = self.output_directory / self.report_name
        LOGGER.info("Writing classification report to %s", report_path)
        with report_path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(self.HEADERS)
            for index, (text, result) in enumerate(zip(texts, results)):
                label = (expected[index] if expected else None) or ""
                writer.writerow(
                    [
                        text,
                        label,
                        result.category,
                        result.priority,
                        result.confidence,
                        result.assigned_team,
                        result.method,
                        result.ml_confidence,
                        result.keyword_score,
                        "; ".join(result.keyword_matches),
                        "; ".join(f"{name} {value}%" for name, value in result.top_predictions),
                        ("yes" if result.category == label else "no") if label else "",
                    ]
                )
        return report_path
