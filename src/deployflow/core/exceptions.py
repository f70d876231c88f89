"""
deployflow — Canonical Exceptions (v1)

Este módulo define as exceções tipadas do deployflow.

Objetivo:
- Permitir que tasks, gates e engine levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para ErrorPayload
- Evitar ValueError/RuntimeError genéricos em pontos críticos do pipeline

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- A remediação, quando conhecida, vai em `hint`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import ErrorPayload


@dataclass(frozen=True, eq=False)
class DeployflowError(Exception):
    """Base class para exceções internas do deployflow.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    # código estável usado no ErrorPayload
    code = "DEPLOYFLOW_ERROR"

    def __str__(self) -> str:  # pragma: no cover
        return self.message

    def to_payload(self) -> ErrorPayload:
        return ErrorPayload(
            type=self.code,
            message=self.message,
            details=dict(self.details or {}),
            hint=self.hint,
        )


# ---------------------------------------------------------------------------
# Grafo de tasks
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class TaskNotFound(DeployflowError):
    """Task alvo (ou pré-requisito) não declarada no registry."""

    code = "TASK_NOT_FOUND"


@dataclass(frozen=True, eq=False)
class CyclicDependency(DeployflowError):
    """O grafo de pré-requisitos contém um ciclo (details["cycle"])."""

    code = "CYCLIC_DEPENDENCY"


@dataclass(frozen=True, eq=False)
class DuplicateTaskError(DeployflowError):
    """Duas tasks declaradas com o mesmo nome."""

    code = "DUPLICATE_TASK"


# ---------------------------------------------------------------------------
# Gates / execução
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class PreconditionFailed(DeployflowError):
    """Um gate obrigatório falhou antes do corpo da task executar."""

    code = "PRECONDITION_FAILED"


@dataclass(frozen=True, eq=False)
class CommandFailed(DeployflowError):
    """Processo externo terminou com exit code diferente de zero."""

    code = "COMMAND_FAILED"


@dataclass(frozen=True, eq=False)
class TaskBodyFailed(DeployflowError):
    """Falha do corpo de uma task (encapsula o erro do processo externo)."""

    code = "TASK_BODY_FAILED"


# ---------------------------------------------------------------------------
# Scans
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ScanToolUnavailable(DeployflowError):
    """Binário do scanner não encontrado no PATH."""

    code = "SCAN_TOOL_UNAVAILABLE"


@dataclass(frozen=True, eq=False)
class ScanThresholdExceeded(DeployflowError):
    """Scan síncrono encontrou severidade igual ou acima do limiar."""

    code = "SCAN_THRESHOLD_EXCEEDED"


@dataclass(frozen=True, eq=False)
class ScanReportWriteFailed(DeployflowError):
    """Relatório de scan não pôde ser escrito (não fatal em modo async)."""

    code = "SCAN_REPORT_WRITE_FAILED"


# ---------------------------------------------------------------------------
# Reconciliação
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ControlPlaneError(DeployflowError):
    """Resposta inesperada da API de gerenciamento de aplicações."""

    code = "CONTROL_PLANE_ERROR"


@dataclass(frozen=True, eq=False)
class ReconciliationFailed(DeployflowError):
    """Lote de reconciliação concluído com falhas por serviço."""

    code = "RECONCILIATION_FAILED"
