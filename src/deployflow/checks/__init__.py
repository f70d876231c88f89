"""Pré-condições (gates) avaliadas antes do corpo das tasks."""

from .base import CheckResult, Gate
from .probes import (
    CONFIRM_REMEDIATION,
    cluster_gate,
    cluster_reachable,
    confirmation_gate,
    confirmation_given,
    credential_gate,
    credential_present,
    prod_confirmation_gate,
    tool_available,
)

__all__ = [
    "CONFIRM_REMEDIATION",
    "CheckResult",
    "Gate",
    "cluster_gate",
    "cluster_reachable",
    "confirmation_gate",
    "confirmation_given",
    "credential_gate",
    "credential_present",
    "prod_confirmation_gate",
    "tool_available",
]
