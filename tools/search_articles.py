#!/usr/bin/env python3
"""Search knowledge-base articles for a ticket description."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, List

BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = BASE_DIR / "config" / "config.yaml"
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from helpdesk_triage.articles import SAMPLE_ARTICLES_PATH, load_articles  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.config import ConfigError, load_config  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.engine import initialize  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.errors import ModelUnavailableError  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.logging_setup import configure_logging  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.search import SearchResponse  # type: ignore  # pylint: disable=import-error

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rank knowledge-base articles against a ticket description.",
    )
    parser.add_argument("query", help="Ticket text to search for.")
    parser.add_argument(
        "--articles",
        help=f"YAML or JSON file of articles. Defaults to {SAMPLE_ARTICLES_PATH}.",
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
        help="Print the search response as JSON.",
    )
    return parser


def _render_response(response: SearchResponse) -> List[str]:
    lines = [
        f"Suggested category: {response.suggested_category} ({response.confidence}%)",
    ]
    if not response.results:
        lines.append("No matching articles.")
        return lines

    title_width = max(len(item.article.title) for item in response.results)
    title_width = max(title_width, len("Title"))
    lines.append(f"{'Relevance':>9}  {'Title'.ljust(title_width)}  Category")
    lines.append(f"{'-' * 9}  {'-' * title_width}  --------")
    for item in response.results:
        lines.append(
            f"{item.relevance * 100:>8.0f}%  {item.article.title.ljust(title_width)}  {item.article.category}"
        )
    return lines


def run(
    config_path: str | None,
    *,
    query: str,
    articles_path: str | None = None,
    as_json: bool = False,
) -> List[str]:
    config = load_config(config_path)
    configure_logging(config, base_dir=BASE_DIR)

    try:
        articles = load_articles(articles_path)
    except (ConfigError, OSError, ValueError) as exc:
        LOGGER.exception("Unable to load knowledge-base articles: %s", exc)
        raise SystemExit(1) from exc

    try:
        engine = initialize(config, base_dir=BASE_DIR)
    except ModelUnavailableError as exc:
        LOGGER.exception("Unable to start the triage engine: %s", exc)
        raise SystemExit(1) from exc

    response = engine.search_with_suggestion(query, articles)
    if as_json:
        lines = json.dumps(response.to_dict(), indent=2).splitlines()
    else:
        lines = _render_response(response)
    for line in lines:
        print(line)
    return lines


def main(argv: Iterable[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    run(args.config, query=args.query, articles_path=args.articles, as_json=args.json)


if __name__ == "__main__":
    main()
