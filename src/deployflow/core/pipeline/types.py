"""
Tipos canônicos do grafo de tasks do deployflow.

Componentes principais:
    - TaskStatus → ciclo de vida de uma task dentro de uma invocação
    - TaskResult → resultado imutável da execução (ou não) de uma task

Invariantes:
    - Enums possuem valores textuais canônicos (serializáveis em JSON)
    - TaskResult é imutável; transições geram novas instâncias
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from deployflow.core.errors import ErrorPayload


class TaskStatus(str, Enum):
    """
    Estados de uma task durante uma invocação.

    Estados definidos:
        - PENDING: planejada, ainda não iniciada
        - RUNNING: corpo em execução
        - SUCCEEDED: corpo concluído sem erro
        - FAILED: gate obrigatório ou corpo falhou
        - SKIPPED: gate opcional indisponível (aviso, não falha)

    O Executor é o único dono dessas transições.
    """
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_final(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED, TaskStatus.SKIPPED)


@dataclass(frozen=True)
class TaskResult:
    """
    Resultado imutável de uma task.

    Campos:
        - task: nome da task
        - status: estado final (ou PENDING quando não alcançada)
        - summary: resumo textual
        - started_at / finished_at: timestamps ISO-8601 UTC
        - warnings: avisos não fatais
        - payload: dados livres retornados pelo corpo (ex.: resumo de scan)
        - error: ErrorPayload quando FAILED
    """
    task: str
    status: TaskStatus
    summary: str = ""
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    payload: Dict[str, Any] = field(default_factory=dict)
    error: Optional[ErrorPayload] = None
