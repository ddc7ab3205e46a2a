"""Read knowledge-base article collections from YAML or JSON files."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Mapping

from .config import ConfigError, read_yaml
from .search import KnowledgeArticle

LOGGER = logging.getLogger(__name__)

SAMPLE_ARTICLES_PATH = Path(__file__).resolve().parent / "data" / "articles.yaml"


def articles_from_payload(payload: Any) -> List[KnowledgeArticle]:
    """Accept either a list of article mappings or ``{"articles": [...]}``."""
    if isinstance(payload, Mapping):
        payload = payload.get("articles")
    if not isinstance(payload, list):
        raise ValueError("Article data must be a list of articles or contain an 'articles' list")
    articles: List[KnowledgeArticle] = []
    for index, entry in enumerate(payload):
        if not isinstance(entry, Mapping):
            raise ValueError(f"Article entry {index} is not a mapping")
        article = KnowledgeArticle.from_mapping(entry)
        if not article.title:
            LOGGER.warning("Skipping article entry %s without a title", index)
            continue
        articles.append(article)
    return articles


def load_articles(path: str | Path | None = None) -> List[KnowledgeArticle]:
    article_path = Path(path) if path else SAMPLE_ARTICLES_PATH
    if article_path.suffix.lower() == ".json":
        try:
            payload = json.loads(article_path.read_text(encoding="utf-8"))
        except ValueError as exc:
            raise ConfigError(f"Unable to parse JSON file {article_path}") from exc
    else:
        payload = read_yaml(article_path)
    articles = articles_from_payload(payload)
    LOGGER.info("Loaded %s knowledge-base articles from %s", len(articles), article_path)
    return articles
