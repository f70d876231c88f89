# src/deployflow/core/engine/planner.py
"""
Planejador de execução do grafo de tasks (DAG).

Este módulo resolve uma task alvo e todos os seus pré-requisitos
transitivos em uma ordem linear na qual cada task aparece depois de
todos os seus pré-requisitos.

O planner opera exclusivamente em nível estrutural, analisando:
    - nomes de tasks e existência no registry
    - pré-requisitos declarados
    - formação de ciclos

Decisões arquiteturais:
    - Busca em profundidade com marcador "em progresso" por task
    - Pré-requisitos são visitados na ordem de declaração, o que torna a
      ordem final determinística para o mesmo grafo
    - Erros estruturais são fatais e ocorrem antes de qualquer execução

Invariantes:
    - Nenhuma task aparece antes de seus pré-requisitos
    - Cada task alcançável aparece exatamente uma vez
    - Um ciclo é sempre reportado com o caminho completo (`a -> b -> a`)

Limites explícitos:
    - Não executa tasks
    - Não avalia gates
    - Não interage com RunContext
"""

from __future__ import annotations

from typing import Dict, List, Optional

from deployflow.core.exceptions import CyclicDependency, TaskNotFound
from deployflow.core.pipeline.registry import TaskRegistry
from deployflow.core.pipeline.task import Task

_VISITING = "visiting"
_DONE = "done"


def plan_execution(registry: TaskRegistry, target: str) -> List[Task]:
    """
    Produz a ordem topológica de execução de `target` e seus pré-requisitos.

    Args:
        registry (TaskRegistry): tasks declaradas.
        target (str): nome da task alvo.

    Returns:
        List[Task]: tasks em ordem de execução; `target` é sempre a última.

    Raises:
        TaskNotFound: alvo ou pré-requisito não declarado.
        CyclicDependency: ciclo alcançável a partir do alvo.
    """
    registry.get(target)

    state: Dict[str, str] = {}
    path: List[str] = []
    order: List[Task] = []

    def visit(name: str, required_by: Optional[str]) -> None:
        mark = state.get(name)
        if mark == _DONE:
            return
        if mark == _VISITING:
            cycle = path[path.index(name):] + [name]
            raise CyclicDependency(
                message=f"Cyclic dependency: {' -> '.join(cycle)}",
                details={"cycle": " -> ".join(cycle), "tasks": cycle},
                hint="Remove one of the prerequisite edges listed in the cycle.",
            )
        if name not in registry:
            raise TaskNotFound(
                message=f"Task '{required_by}' depends on unknown task '{name}'",
                details={"task": name, "required_by": required_by},
            )

        task = registry.get(name)
        state[name] = _VISITING
        path.append(name)
        for dep in task.depends_on:
            visit(dep, name)
        path.pop()
        state[name] = _DONE
        order.append(task)

    visit(target, None)
    return order


def validate_graph(registry: TaskRegistry) -> None:
    """Planeja cada task declarada; falha no primeiro erro estrutural."""
    for task in registry.list():
        plan_execution(registry, task.name)
