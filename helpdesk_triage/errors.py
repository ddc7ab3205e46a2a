"""Exceptions raised by the triage engine."""
from __future__ import annotations


class TriageError(Exception):
    """Base class for triage engine failures."""


class ModelUnavailableError(TriageError):
    """Raised when no classifier model can be trained or loaded at startup."""


class SnapshotError(TriageError):
    """Raised when a persisted model snapshot cannot be read."""
