"""
Contratos de gates (pré-condições) do deployflow.

Um gate envolve uma verificação pura sobre o snapshot de configuração e
sondas do ambiente. O Executor avalia os gates de uma task, em ordem,
antes do corpo da task.

Semântica:
    - gate obrigatório falhando => `PreconditionFailed` (task FAILED,
      corpo não executado)
    - gate opcional falhando => task SKIPPED com aviso; dependentes seguem

Invariantes:
    - Verificações nunca mutam estado e podem ser chamadas repetidamente
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from deployflow.core.pipeline.context import RunContext


@dataclass(frozen=True)
class CheckResult:
    """Resultado de uma verificação; `remediation` orienta o operador."""

    name: str
    ok: bool
    message: str = ""
    remediation: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class Gate:
    check: Callable[[RunContext], CheckResult]
    required: bool = True

    def evaluate(self, ctx: RunContext) -> CheckResult:
        result = self.check(ctx)
        if not isinstance(result, CheckResult):
            raise TypeError("Gate check must return CheckResult")
        return result
