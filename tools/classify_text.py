#!/usr/bin/env python3
"""Classify helpdesk ticket text into category, priority and team."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = BASE_DIR / "config" / "config.yaml"
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from helpdesk_triage.config import load_config  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.engine import initialize  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.errors import ModelUnavailableError  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.logging_setup import configure_logging  # type: ignore  # pylint: disable=import-error

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Classify one or more ticket descriptions.",
    )
    parser.add_argument("text", nargs="*", help="Ticket text to classify.")
    parser.add_argument(
        "--input",
        help="Optional file with one ticket description per line.",
    )
    parser.add_argument(
        "--config",
        help=(
            "Path to configuration YAML file. Defaults to "
            f"{DEFAULT_CONFIG_PATH} or config/config.yaml if present."
        ),
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print full classification results as JSON instead of a table.",
    )
    return parser


def _collect_texts(texts: Sequence[str], input_path: str | None) -> List[str]:
    collected = [text for text in texts if text.strip()]
    if input_path:
        with Path(input_path).open("r", encoding="utf-8") as handle:
            collected.extend(line.strip() for line in handle if line.strip())
    return collected


def _render_table(rows: Sequence[Tuple[str, ...]]) -> List[str]:
    headers = ("Text", "Category", "Priority", "Confidence", "Team", "Method")
    widths = [len(header) for header in headers]
    for row in rows:
        widths = [max(width, len(value)) for width, value in zip(widths, row)]

    lines = ["  ".join(header.ljust(width) for header, width in zip(headers, widths)).rstrip()]
    lines.append("  ".join("-" * width for width in widths))
    for row in rows:
        lines.append("  ".join(value.ljust(width) for value, width in zip(row, widths)).rstrip())
    return lines


def _shorten(text: str, limit: int = 48) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def run(
    config_path: str | None,
    *,
    texts: Sequence[str],
    input_path: str | None = None,
    as_json: bool = False,
) -> List[str]:
    config = load_config(config_path)
    configure_logging(config, base_dir=BASE_DIR)

    queries = _collect_texts(texts, input_path)
    if not queries:
        LOGGER.error("No ticket text supplied; pass text arguments or --input")
        raise SystemExit(2)

    try:
        engine = initialize(config, base_dir=BASE_DIR)
    except ModelUnavailableError as exc:
        LOGGER.exception("Unable to start the triage engine: %s", exc)
        raise SystemExit(1) from exc

    results = engine.classify_many(queries)
    if as_json:
        payload = [dict(result.to_dict(), text=text) for text, result in zip(queries, results)]
        lines = json.dumps(payload, indent=2).splitlines()
    else:
        lines = _render_table(
            [
                (
                    _shorten(text),
                    result.category,
                    result.priority,
                    f"{result.confidence}%",
                    result.assigned_team,
                    result.method,
                )
                for text, result in zip(queries, results)
            ]
        )
    for line in lines:
        print(line)
    return lines


def main(argv: Iterable[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    run(args.config, texts=args.text, input_path=args.input, as_json=args.json)


if __name__ == "__main__":
    main()
