#!/usr/bin/env python3
"""Append labelled examples to the classifier and persist the retrained model."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, List

BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = BASE_DIR / "config" / "config.yaml"
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from helpdesk_triage.config import ConfigError, load_config, read_yaml  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.engine import initialize  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.errors import ModelUnavailableError  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.evaluation import load_labelled_queries  # type: ignore  # pylint: disable=import-error
from helpdesk_triage.logging_setup import configure_logging  # type: ignore  # pylint: disable=import-error

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Retrain the category classifier with additional labelled examples.",
    )
    parser.add_argument(
        "examples",
        nargs="?",
        help="CSV (text,category) or YAML list of {text, category} examples to append.",
    )
    parser.add_argument(
        "--config",
        help=(
            "Path to configuration YAML file. Defaults to "
            f"{DEFAULT_CONFIG_PATH} or config/config.yaml if present."
        ),
    )
    return parser


def _load_examples(path: Path) -> List[Any]:
    """Read raw examples; the engine skips entries it cannot use."""
    if path.suffix.lower() == ".csv":
        return list(load_labelled_queries(path))
    payload = read_yaml(path) or []
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a list of examples")
    return payload


def run(config_path: str | None, *, examples_path: str | None = None) -> List[str]:
    config = load_config(config_path)
    configure_logging(config, base_dir=BASE_DIR)

    examples: List[Any] = []
    if examples_path:
        try:
            examples = _load_examples(Path(examples_path))
        except (ConfigError, OSError, ValueError) as exc:
            LOGGER.exception("Unable to read training examples: %s", exc)
            raise SystemExit(1) from exc

    try:
        engine = initialize(config, base_dir=BASE_DIR)
    except ModelUnavailableError as exc:
        LOGGER.exception("Unable to start the triage engine: %s", exc)
        raise SystemExit(1) from exc

    before = engine.sample_count
    result = engine.retrain(examples)
    if not result.success:
        LOGGER.error("Retraining failed; the previous model is still in use")
        raise SystemExit(1)

    lines = [
        f"Samples before: {before}",
        f"Samples after:  {result.sample_count}",
    ]
    if engine.store is not None:
        lines.append(f"Snapshot:       {engine.store.path}")
    for line in lines:
        print(line)
    return lines


def main(argv: Iterable[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    run(args.config, examples_path=args.examples)


if __name__ == "__main__":
    main()
