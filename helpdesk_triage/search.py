"""Multi-signal relevance ranking of knowledge-base articles."""
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .decision import ClassificationResult
from .text import dice_coefficient, jaro_winkler, ngrams, normalize, stem, stem_tokens, tokenize

LOGGER = logging.getLogger(__name__)


def _int_counter(value: Any) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


def _string_items(value: Any, *, separator: Optional[str] = None) -> Tuple[str, ...]:
    """Coerce a list field; a bare string is one item, or split on ``separator``."""
    if not value:
        return ()
    if isinstance(value, str):
        parts = value.split(separator) if separator else [value]
        return tuple(part.strip() for part in parts if part.strip())
    if not isinstance(value, (list, tuple)):
        return (str(value),)
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class KnowledgeArticle:
    id: str
    title: str
    category: str
    keywords: Tuple[str, ...] = ()
    problem: str = ""
    solution: str = ""
    steps: Tuple[str, ...] = ()
    views: int = 0
    helpful: int = 0
    not_helpful: int = 0

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "KnowledgeArticle":
        article_id = payload.get("id", payload.get("_id", ""))
        return cls(
            id=str(article_id if article_id is not None else ""),
            title=str(payload.get("title") or ""),
            category=str(payload.get("category") or ""),
            keywords=_string_items(payload.get("keywords"), separator=","),
            problem=str(payload.get("problem") or ""),
            solution=str(payload.get("solution") or ""),
            steps=_string_items(payload.get("steps")),
            views=_int_counter(payload.get("views")),
            helpful=_int_counter(payload.get("helpful")),
            not_helpful=_int_counter(payload.get("not_helpful", payload.get("notHelpful"))),
        )

    @property
    def search_text(self) -> str:
        return " ".join([self.title, self.problem, self.solution, " ".join(self.keywords)])

    @property
    def helpful_ratio(self) -> float:
        return self.helpful / (self.helpful + self.not_helpful + 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "keywords": list(self.keywords),
            "problem": self.problem,
            "solution": self.solution,
            "steps": list(self.steps),
            "views": self.views,
            "helpful": self.helpful,
            "notHelpful": self.not_helpful,
        }


@dataclass(frozen=True)
class MatchDetails:
    lexical_score: float
    title_similarity_pct: int
    problem_similarity_pct: int
    keyword_match_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lexicalScore": self.lexical_score,
            "titleSimilarityPct": self.title_similarity_pct,
            "problemSimilarityPct": self.problem_similarity_pct,
            "keywordMatchCount": self.keyword_match_count,
        }


@dataclass(frozen=True)
class ScoredArticle:
    article: KnowledgeArticle
    relevance: float
    score: float
    match_details: MatchDetails

    def to_dict(self) -> Dict[str, Any]:
        payload = self.article.to_dict()
        payload["relevance"] = self.relevance
        payload["matchDetails"] = self.match_details.to_dict()
        return payload


@dataclass(frozen=True)
class SearchResponse:
    results: List[ScoredArticle]
    suggested_category: str
    confidence: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [item.to_dict() for item in self.results],
            "suggestedCategory": self.suggested_category,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class SearchSettings:
    prefilter_confidence: float = 40.0
    top_n: int = 5
    min_score: float = 0.5
    relevance_scale: float = 60.0
    tfidf_weight: float = 10.0
    title_weight: float = 20.0
    problem_weight: float = 15.0
    keyword_exact_bonus: float = 10.0
    keyword_fuzzy_threshold: float = 0.6
    keyword_fuzzy_weight: float = 6.0
    token_overlap_bonus: float = 3.0
    stem_overlap_bonus: float = 2.0
    overlap_min_length: int = 4
    bigram_bonus: float = 4.0
    views_weight: float = 0.5
    helpful_weight: float = 3.0

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> "SearchSettings":
        if not config:
            return cls()
        known = cls.__dataclass_fields__
        unknown = set(config) - set(known)
        if unknown:
            raise ValueError(f"Unknown search settings: {', '.join(sorted(unknown))}")
        values: Dict[str, Any] = {}
        for key, value in config.items():
            values[key] = int(value) if known[key].type in ("int", int) else float(value)
        return cls(**values)


@dataclass
class _Document:
    article: KnowledgeArticle
    tokens: List[str]
    token_set: frozenset
    stem_set: frozenset
    term_counts: Counter
    bigrams: frozenset
    normalized_keywords: List[str] = field(default_factory=list)


class _TfidfIndex:
    """Term frequency times smoothed inverse document frequency over the candidate set."""

    def __init__(self, documents: Sequence[_Document]) -> None:
        self.document_count = len(documents)
        self.doc_freq: Counter[str] = Counter()
        for document in documents:
            self.doc_freq.update(document.token_set)

    def idf(self, term: str) -> float:
        return 1.0 + math.log(self.document_count / (1 + self.doc_freq.get(term, 0)))

    def score(self, query_tokens: Sequence[str], document: _Document) -> float:
        total = 0.0
        for term in query_tokens:
            count = document.term_counts.get(term, 0)
            if count:
                total += count * self.idf(term)
        return total


def _build_document(article: KnowledgeArticle) -> _Document:
    tokens = tokenize(article.search_text)
    return _Document(
        article=article,
        tokens=tokens,
        token_set=frozenset(tokens),
        stem_set=frozenset(stem_tokens(tokens)),
        term_counts=Counter(tokens),
        bigrams=frozenset(ngrams(tokens, 2)),
        normalized_keywords=[keyword for keyword in (normalize(k) for k in article.keywords) if keyword],
    )


class ArticleRanker:
    """Score and order candidate articles for a query."""

    def __init__(self, settings: Optional[SearchSettings] = None) -> None:
        self.settings = settings or SearchSettings()

    def _keyword_signal(
        self, document: _Document, query_text: str, query_tokens: Sequence[str], query_bigrams: Sequence[str]
    ) -> Tuple[float, int]:
        settings = self.settings
        score = 0.0
        matched = 0
        for keyword in document.normalized_keywords:
            if keyword in query_text:
                score += settings.keyword_exact_bonus
                matched += 1
                continue
            windows = query_bigrams if " " in keyword else query_tokens
            best = max((dice_coefficient(keyword, window) for window in windows), default=0.0)
            if best > settings.keyword_fuzzy_threshold:
                score += best * settings.keyword_fuzzy_weight
                matched += 1
        return score, matched

    def _overlap_signal(self, document: _Document, query_tokens: Sequence[str]) -> float:
        settings = self.settings
        score = 0.0
        for token in dict.fromkeys(query_tokens):
            if len(token) < settings.overlap_min_length:
                continue
            if token in document.token_set:
                score += settings.token_overlap_bonus
            elif stem(token) in document.stem_set:
                score += settings.stem_overlap_bonus
        return score

    def _popularity_signal(self, article: KnowledgeArticle) -> float:
        settings = self.settings
        return (
            math.log10(article.views + 1) * settings.views_weight
            + article.helpful_ratio * settings.helpful_weight
        )

    def rank(self, query: Any, candidates: Sequence[KnowledgeArticle]) -> List[ScoredArticle]:
        """Score every candidate, drop weak matches and return the best ``top_n``."""
        query_tokens = tokenize(query)
        if not query_tokens or not candidates:
            return []
        settings = self.settings
        query_text = " ".join(query_tokens)
        query_bigrams = ngrams(query_tokens, 2)
        query_bigram_set = set(query_bigrams)

        documents = [_build_document(article) for article in candidates]
        index = _TfidfIndex(documents)

        scored: List[ScoredArticle] = []
        for document in documents:
            article = document.article
            lexical = index.score(query_tokens, document)
            title_similarity = jaro_winkler(query_text, normalize(article.title))
            problem_similarity = dice_coefficient(query_text, normalize(article.problem))
            keyword_score, keyword_matches = self._keyword_signal(
                document, query_text, query_tokens, query_bigrams
            )
            total = (
                lexical * settings.tfidf_weight
                + title_similarity * settings.title_weight
                + problem_similarity * settings.problem_weight
                + keyword_score
                + self._overlap_signal(document, query_tokens)
                + len(query_bigram_set & document.bigrams) * settings.bigram_bonus
                + self._popularity_signal(article)
            )
            if total <= settings.min_score:
                continue
            scored.append(
                ScoredArticle(
                    article=article,
                    relevance=round(min(total / settings.relevance_scale, 1.0), 4),
                    score=round(total, 4),
                    match_details=MatchDetails(
                        lexical_score=round(lexical, 2),
                        title_similarity_pct=int(round(title_similarity * 100)),
                        problem_similarity_pct=int(round(problem_similarity * 100)),
                        keyword_match_count=keyword_matches,
                    ),
                )
            )

        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[: settings.top_n]


def prefilter_candidates(
    candidates: Sequence[KnowledgeArticle],
    classification: ClassificationResult,
    *,
    min_confidence: float,
    fallback_label: str,
) -> List[KnowledgeArticle]:
    """Restrict candidates to the detected category when the detection is confident.

    The restriction is skipped when it would leave no candidates.
    """
    articles = list(candidates)
    if classification.confidence <= min_confidence or classification.category == fallback_label:
        return articles
    filtered = [article for article in articles if article.category == classification.category]
    if not filtered:
        LOGGER.debug(
            "No articles in detected category %s; searching all %s candidates",
            classification.category,
            len(articles),
        )
        return articles
    return filtered


class KnowledgeBaseSearch:
    """Classify-then-rank search over a caller supplied article set."""

    def __init__(self, settings: Optional[SearchSettings] = None, *, fallback_label: str = "Other") -> None:
        self.settings = settings or SearchSettings()
        self.fallback_label = fallback_label
        self.ranker = ArticleRanker(self.settings)

    def search(
        self,
        query: Any,
        candidates: Sequence[KnowledgeArticle],
        *,
        classify: Callable[[Any], ClassificationResult],
        classification: Optional[ClassificationResult] = None,
    ) -> List[ScoredArticle]:
        if not tokenize(query) or not candidates:
            return []
        if classification is None:
            classification = classify(query)
        filtered = prefilter_candidates(
            candidates,
            classification,
            min_confidence=self.settings.prefilter_confidence,
            fallback_label=self.fallback_label,
        )
        results = self.ranker.rank(query, filtered)
        LOGGER.debug(
            "Search %r: %s candidates, %s after category filter, %s results",
            query,
            len(candidates),
            len(filtered),
            len(results),
        )
        return results
