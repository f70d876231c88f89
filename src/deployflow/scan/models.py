"""
Modelos de resultado do scan de vulnerabilidades.

Componentes:
    - ScanOutcome → passed | failed | errored | skipped
    - ScanResult  → resultado imutável por serviço (+ relatório opcional)
    - ScanSummary → agregado de uma execução, com a política de falha
      (bloqueante no modo síncrono, consultiva nos demais)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from deployflow.core.errors import scan_threshold_exceeded
from deployflow.core.exceptions import CommandFailed, ScanThresholdExceeded


class ScanOutcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    ERRORED = "errored"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ScanResult:
    """
    Resultado do scan de um serviço.

    `FAILED` significa achados no limiar ou acima dele; `ERRORED` significa
    que o scanner não produziu um veredito (saída inesperada, relatório
    ausente, exceção).
    """

    service: str
    image: str
    outcome: ScanOutcome
    severities: Tuple[str, ...] = ()
    report_path: Optional[Path] = None
    returncode: Optional[int] = None
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "image": self.image,
            "outcome": self.outcome.value,
            "severities": list(self.severities),
            "report_path": str(self.report_path) if self.report_path else None,
            "returncode": self.returncode,
            "message": self.message,
        }


@dataclass(frozen=True)
class ScanSummary:
    """Agregado de uma execução do orquestrador de scans."""

    mode: str
    results: Tuple[ScanResult, ...] = ()
    advisory: bool = False
    severities: Tuple[str, ...] = ()
    aborted: bool = False
    not_scanned: Tuple[str, ...] = field(default=())

    def _with(self, outcome: ScanOutcome) -> List[ScanResult]:
        return [r for r in self.results if r.outcome == outcome]

    @property
    def passed(self) -> List[ScanResult]:
        return self._with(ScanOutcome.PASSED)

    @property
    def failed(self) -> List[ScanResult]:
        return self._with(ScanOutcome.FAILED)

    @property
    def errored(self) -> List[ScanResult]:
        return self._with(ScanOutcome.ERRORED)

    @property
    def skipped(self) -> List[ScanResult]:
        return self._with(ScanOutcome.SKIPPED)

    @property
    def clean(self) -> bool:
        return not self.failed and not self.errored

    @property
    def reports(self) -> List[Path]:
        return [r.report_path for r in self.results if r.report_path is not None]

    def counts(self) -> Dict[str, int]:
        return {o.value: len(self._with(o)) for o in ScanOutcome}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "advisory": self.advisory,
            "aborted": self.aborted,
            "severities": list(self.severities),
            "counts": self.counts(),
            "results": [r.to_dict() for r in self.results],
            "not_scanned": list(self.not_scanned),
        }

    def raise_for_threshold(self) -> None:
        """
        Aplica a política de falha do modo bloqueante.

        Scans consultivos nunca levantam. No modo bloqueante, achados acima
        do limiar viram `ScanThresholdExceeded`; um scanner sem veredito
        vira `CommandFailed`.
        """
        if self.advisory:
            return
        if self.failed:
            payload = scan_threshold_exceeded(
                failing_services=[r.service for r in self.failed],
                severities=list(self.severities),
            )
            raise ScanThresholdExceeded(
                message=f"{payload.message}: {', '.join(payload.details['failing_services'])}",
                details=payload.details,
                hint=payload.hint,
            )
        if self.errored:
            first = self.errored[0]
            raise CommandFailed(
                message=f"Scanner gave no verdict for {first.service}: {first.message}",
                details={"service": first.service, "image": first.image, "returncode": first.returncode},
            )
