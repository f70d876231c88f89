"""
Resultados da reconciliação de aplicações.

    - OutcomeKind      → created | already-exists | deleted | not-found | skipped | failed
    - ServiceOutcome   → resultado por serviço de uma operação
    - BatchOutcome     → agregado de um lote; `succeeded` só se nenhum item falhou
    - DriftReport      → divergência entre inventário declarado e estado observado
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Tuple

from deployflow.core.errors import reconciliation_failed
from deployflow.core.exceptions import ReconciliationFailed


class OutcomeKind(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already-exists"
    DELETED = "deleted"
    NOT_FOUND = "not-found"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ServiceOutcome:
    service: str
    application: str
    action: str
    kind: OutcomeKind
    reason: str = ""

    @property
    def failed(self) -> bool:
        return self.kind == OutcomeKind.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "application": self.application,
            "action": self.action,
            "outcome": self.kind.value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class BatchOutcome:
    """Agregado de um lote; falhas por item nunca interrompem o lote."""

    operation: str
    outcomes: Tuple[ServiceOutcome, ...] = ()

    @property
    def succeeded(self) -> bool:
        return not any(o.failed for o in self.outcomes)

    def of_kind(self, kind: OutcomeKind) -> List[ServiceOutcome]:
        return [o for o in self.outcomes if o.kind == kind]

    @property
    def failures(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for o in self.outcomes:
            if not o.failed:
                continue
            reason = f"{o.action}: {o.reason}"
            out[o.service] = f"{out[o.service]}; {reason}" if o.service in out else reason
        return out

    def counts(self) -> Dict[str, int]:
        return {k.value: len(self.of_kind(k)) for k in OutcomeKind}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "succeeded": self.succeeded,
            "counts": self.counts(),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }

    def raise_for_failures(self) -> None:
        if self.succeeded:
            return
        payload = reconciliation_failed(operation=self.operation, failures=self.failures)
        raise ReconciliationFailed(
            message=f"{payload.message}: {', '.join(sorted(self.failures))}",
            details=payload.details,
            hint=payload.hint,
        )


@dataclass(frozen=True)
class DriftReport:
    """`undeclared`: presentes mas não declaradas; `missing`: declaradas e ausentes."""

    undeclared: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()

    @property
    def clean(self) -> bool:
        return not self.undeclared and not self.missing

    def to_dict(self) -> Dict[str, Any]:
        return {"undeclared": list(self.undeclared), "missing": list(self.missing), "clean": self.clean}
