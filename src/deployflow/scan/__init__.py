"""Scans de vulnerabilidade por serviço (síncrono, assíncrono e noturno)."""

from .models import ScanOutcome, ScanResult, ScanSummary
from .orchestrator import (
    NIGHTLY_PREFIX,
    SYNC_PREFIX,
    ScanOrchestrator,
    clean_scan_reports,
)

__all__ = [
    "NIGHTLY_PREFIX",
    "SYNC_PREFIX",
    "ScanOrchestrator",
    "ScanOutcome",
    "ScanResult",
    "ScanSummary",
    "clean_scan_reports",
]
