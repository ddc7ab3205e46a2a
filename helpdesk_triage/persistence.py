"""Train-or-load lifecycle and JSON snapshots of the classifier model."""
from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from .classifier import ClassifierModel, train_model
from .errors import ModelUnavailableError, SnapshotError
from .vocabulary import TrainingExample, TriageVocabulary

LOGGER = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def corpus_digest(examples: Iterable[TrainingExample]) -> str:
    """Stable fingerprint of a training corpus."""
    digest = hashlib.sha256()
    for example in examples:
        digest.update(example.category.encode("utf-8"))
        digest.update(b"\x1f")
        digest.update(example.text.encode("utf-8"))
        digest.update(b"\x1e")
    return digest.hexdigest()


@dataclass(frozen=True)
class ModelSnapshot:
    """A trained model plus what is needed to rebuild it.

    ``base_digest`` fingerprints the bundled corpus the model was trained on;
    ``additional_examples`` are the examples appended through retraining.
    """

    model: ClassifierModel
    base_digest: str
    additional_examples: Tuple[TrainingExample, ...] = ()
    trained_at: str = field(default_factory=_utc_timestamp)

    @property
    def sample_count(self) -> int:
        return self.model.sample_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "trained_at": self.trained_at,
            "sample_count": self.model.sample_count,
            "base_digest": self.base_digest,
            "additional_examples": [
                {"text": example.text, "category": example.category}
                for example in self.additional_examples
            ],
            "model": self.model.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ModelSnapshot":
        version = payload.get("schema_version")
        if version != SCHEMA_VERSION:
            raise SnapshotError(f"Unsupported snapshot schema version {version!r}")
        try:
            model = ClassifierModel.from_dict(payload["model"])
            extras = tuple(
                TrainingExample.from_mapping(entry)
                for entry in payload.get("additional_examples") or []
            )
            return cls(
                model=model,
                base_digest=str(payload["base_digest"]),
                additional_examples=extras,
                trained_at=str(payload.get("trained_at") or ""),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise SnapshotError(f"Malformed model snapshot: {exc}") from exc


class ModelStore:
    """Persist a single model snapshot at a fixed path."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[ModelSnapshot]:
        """Return the stored snapshot, ``None`` when absent.

        Raises :class:`SnapshotError` when the file exists but is unreadable.
        """
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise SnapshotError(f"Unable to read model snapshot {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise SnapshotError(f"Model snapshot {self.path} does not contain an object")
        snapshot = ModelSnapshot.from_dict(payload)
        LOGGER.info(
            "Loaded classifier snapshot from %s (%s samples, trained %s)",
            self.path,
            snapshot.sample_count,
            snapshot.trained_at or "unknown",
        )
        return snapshot

    def save(self, snapshot: ModelSnapshot) -> bool:
        """Write the snapshot; failures are logged and reported as ``False``."""
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(snapshot.to_dict(), indent=2), encoding="utf-8")
            os.replace(temp_path, self.path)
        except (OSError, TypeError, ValueError) as exc:
            LOGGER.warning("Failed to save classifier snapshot to %s: %s", self.path, exc)
            return False
        LOGGER.info("Saved classifier snapshot to %s", self.path)
        return True


def train_snapshot(
    vocabulary: TriageVocabulary,
    additional_examples: Iterable[TrainingExample] = (),
) -> ModelSnapshot:
    """Train a fresh model from the vocabulary corpus plus appended examples."""
    extras = tuple(additional_examples)
    model = train_model(
        vocabulary.examples + extras,
        labels=vocabulary.labels,
    )
    return ModelSnapshot(
        model=model,
        base_digest=corpus_digest(vocabulary.examples),
        additional_examples=extras,
    )


def load_or_train(vocabulary: TriageVocabulary, store: Optional[ModelStore] = None) -> ModelSnapshot:
    """Load a compatible snapshot or train a new model, saving it when a store is given.

    A snapshot is reused only when it was trained on the same bundled corpus
    and label set; otherwise the model is rebuilt, keeping any examples that
    were appended through retraining.
    """
    snapshot: Optional[ModelSnapshot] = None
    if store is not None:
        try:
            snapshot = store.load()
        except SnapshotError as exc:
            LOGGER.warning("Ignoring unusable classifier snapshot: %s", exc)

    base_digest = corpus_digest(vocabulary.examples)
    if snapshot is not None:
        if snapshot.base_digest == base_digest and snapshot.model.labels == vocabulary.labels:
            return snapshot
        LOGGER.info("Classifier snapshot is stale for the current vocabulary; retraining")

    extras: Tuple[TrainingExample, ...] = ()
    if snapshot is not None:
        trainable = set(vocabulary.trainable_labels)
        extras = tuple(e for e in snapshot.additional_examples if e.category in trainable)
        dropped = len(snapshot.additional_examples) - len(extras)
        if dropped:
            LOGGER.warning("Dropping %s retrained examples with unknown categories", dropped)
    try:
        fresh = train_snapshot(vocabulary, extras)
    except ValueError as exc:
        raise ModelUnavailableError(f"Unable to train the category classifier: {exc}") from exc

    if store is not None:
        store.save(fresh)
    return fresh
