"""Reconciliação idempotente das Applications do Argo CD."""

from .client import ArgoCDClient
from .engine import PART_OF_LABEL, PRUNE_FINALIZER, ReconciliationEngine
from .models import BatchOutcome, DriftReport, OutcomeKind, ServiceOutcome

__all__ = [
    "ArgoCDClient",
    "BatchOutcome",
    "DriftReport",
    "OutcomeKind",
    "PART_OF_LABEL",
    "PRUNE_FINALIZER",
    "ReconciliationEngine",
    "ServiceOutcome",
]
