"""
deployflow — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros do deployflow.
Erros são considerados artefatos operacionais e fazem parte do contrato
do pipeline de entrega, devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis (sempre que possível, com remediação)

Nenhuma decisão implícita é permitida.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do deployflow.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: remediação sugerida ao operador (ex.: "set CONFIRM=true ...")
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Grafo de tasks
TASK_NOT_FOUND = "TASK_NOT_FOUND"
CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"

# Gates / execução
PRECONDITION_FAILED = "PRECONDITION_FAILED"
TASK_BODY_FAILED = "TASK_BODY_FAILED"

# Scans
SCAN_TOOL_UNAVAILABLE = "SCAN_TOOL_UNAVAILABLE"
SCAN_THRESHOLD_EXCEEDED = "SCAN_THRESHOLD_EXCEEDED"
SCAN_REPORT_WRITE_FAILED = "SCAN_REPORT_WRITE_FAILED"

# Reconciliação
RECONCILIATION_FAILED = "RECONCILIATION_FAILED"
CONTROL_PLANE_ERROR = "CONTROL_PLANE_ERROR"

# Engine
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def precondition_failed(
    *,
    task: str,
    check: str,
    message: str,
    hint: Optional[str] = None,
) -> ErrorPayload:
    return ErrorPayload(
        type=PRECONDITION_FAILED,
        message=message,
        details={"task": task, "check": check},
        hint=hint,
    )


def scan_threshold_exceeded(
    *,
    failing_services: List[str],
    severities: List[str],
    hint: str = "Corrija as vulnerabilidades reportadas ou rode com SCAN_MODE=async para tornar o scan consultivo.",
) -> ErrorPayload:
    return ErrorPayload(
        type=SCAN_THRESHOLD_EXCEEDED,
        message="Vulnerabilidades acima do limiar configurado",
        details={
            "failing_services": failing_services,
            "severities": severities,
        },
        hint=hint,
    )


def reconciliation_failed(
    *,
    operation: str,
    failures: Dict[str, str],
    hint: str = "Verifique as mensagens por serviço e reexecute após corrigir; serviços já reconciliados não são afetados.",
) -> ErrorPayload:
    return ErrorPayload(
        type=RECONCILIATION_FAILED,
        message=f"{operation} falhou para {len(failures)} serviço(s)",
        details={"operation": operation, "failures": dict(failures)},
        hint=hint,
    )


def engine_execution_error(
    *,
    task: Optional[str] = None,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Verifique o log da execução para diagnosticar a falha. Nenhum retry é aplicado automaticamente.",
) -> ErrorPayload:
    return ErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message="Falha inesperada durante a execução da task",
        details={
            "task": task,
            "exc_type": exc_type,
            "exc_message": exc_message,
        },
        hint=hint,
    )
