"""Ticket triage: category/priority classification and knowledge-base search."""

from .config import ConfigError, load_config, resolve_path
from .logging_setup import configure_logging
from .decision import ClassificationResult, DecisionThresholds, HybridClassifier
from .engine import RetrainResult, TriageEngine, initialize
from .errors import ModelUnavailableError, SnapshotError, TriageError
from .persistence import ModelStore
from .search import KnowledgeArticle, ScoredArticle, SearchResponse, SearchSettings
from .vocabulary import TrainingExample, TriageVocabulary, build_vocabulary, load_vocabulary

__all__ = [
    "ConfigError",
    "load_config",
    "resolve_path",
    "configure_logging",
    "ClassificationResult",
    "DecisionThresholds",
    "HybridClassifier",
    "RetrainResult",
    "TriageEngine",
    "initialize",
    "ModelUnavailableError",
    "SnapshotError",
    "TriageError",
    "ModelStore",
    "KnowledgeArticle",
    "ScoredArticle",
    "SearchResponse",
    "SearchSettings",
    "TrainingExample",
    "TriageVocabulary",
    "build_vocabulary",
    "load_vocabulary",
]
