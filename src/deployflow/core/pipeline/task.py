"""
Contrato canônico de Task do deployflow.

Uma Task é a menor unidade orquestrada: um nome único, pré-requisitos
declarados (arestas do DAG), gates avaliados antes do corpo, o corpo
(ação com efeitos colaterais) e uma descrição legível usada pelo `help`.

Princípios fundamentais:
    - Tasks não conhecem o Executor nem o planner
    - Tasks não controlam ordem de execução
    - O corpo recebe exclusivamente o `RunContext`
    - Qualquer exceção do corpo é falha da task (nunca é engolida)

Invariantes:
    - `name` é único no registry
    - `action` é executada no máximo uma vez por invocação
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Tuple

from .context import RunContext

if TYPE_CHECKING:  # pragma: no cover
    from deployflow.checks.base import Gate


def _noop(ctx: RunContext) -> None:
    return None


@dataclass(frozen=True)
class Task:
    """
    Task declarativa do grafo.

    Atributos:
        - name: identificador único e estável
        - action: corpo `action(ctx) -> Optional[dict]`; o dict retornado
          vira `TaskResult.payload`
        - depends_on: nomes das tasks pré-requisito, em ordem de declaração
        - description: texto de uma linha exibido pelo `help`
        - gates: gates avaliados, em ordem, antes do corpo

    Tasks agregadoras (ex.: `ci`) usam o corpo padrão sem efeito.
    """
    name: str
    action: Callable[[RunContext], Optional[Any]] = _noop
    depends_on: Tuple[str, ...] = ()
    description: str = ""
    gates: Tuple["Gate", ...] = ()

    def __post_init__(self) -> None:
        # aceita listas na declaração, mantém tupla imutável
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        object.__setattr__(self, "gates", tuple(self.gates))

    def run(self, ctx: RunContext) -> Optional[Any]:
        return self.action(ctx)
