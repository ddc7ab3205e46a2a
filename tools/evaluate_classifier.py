#!/usr/bin/env python3
"""Run the classifier over a labelled query set and summarise how it did."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, List

BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = BASE_DIR / "config" / "config.yaml"
DEFAULT_QUERIES_PATH = BASE_DIR / "helpdesk_triage" / "data" / "evaluation_queries.csv"
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from helpdesk_triage.config import load_config  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.engine import initialize  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.errors import ModelUnavailableError  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.evaluation import load_labelled_queries, render_summary, summarize  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.logging_setup import configure_logging  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.reporting import ClassificationReportWriter  # type: ignore  # pylint: disable=import-error

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Evaluate classification accuracy and confidence on labelled queries.",
    )
    parser.add_argument(
        "--queries",
        help=f"CSV file with 'text' and 'category' columns. Defaults to {DEFAULT_QUERIES_PATH}.",
    )
    parser.add_argument(
        "--config",
        help=(
            "Path to configuration YAML file. Defaults to "
            f"{DEFAULT_CONFIG_PATH} or config/config.yaml if present."
        ),
    )
    parser.add_argument(
        "--report-dir",
        help="Optional directory for a per-query CSV report.",
    )
    return parser


def run(
    config_path: str | None,
    *,
    queries_path: str | None = None,
    report_dir: str | None = None,
) -> List[str]:
    config = load_config(config_path)
    configure_logging(config, base_dir=BASE_DIR)

    try:
        engine = initialize(config, base_dir=BASE_DIR)
    except ModelUnavailableError as exc:
        LOGGER.exception("Unable to start the triage engine: %s", exc)
        raise SystemExit(1) from exc

    queries = load_labelled_queries(Path(queries_path) if queries_path else DEFAULT_QUERIES_PATH)
    texts = [query.text for query in queries]
    expected = [query.category or None for query in queries]
    results = engine.classify_many(texts)
    summary = summarize(results, expected, fallback_label=engine.vocabulary.fallback_label)

    if report_dir:
        writer = ClassificationReportWriter(
            output_directory=Path(report_dir),
            report_name=f"classification_report_{datetime.now():%Y%m%d_%H%M%S}.csv",
        )
        writer.write_results(texts, results, expected)

    lines = render_summary(summary)
    for line in lines:
        print(line)
    return lines


def main(argv: Iterable[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    run(args.config, queries_path=args.queries, report_dir=args.report_dir)


if __name__ == "__main__":
    main()
