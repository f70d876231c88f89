"""
Registro estrutural de Tasks do pipeline.

Este módulo define o `TaskRegistry`, responsável por registrar Tasks
e validar a integridade estrutural do grafo antes de qualquer
planejamento ou execução.

Responsabilidades do módulo:
    - Validar unicidade de `task.name`
    - Preservar ordem de declaração (desempate determinístico do planner)
    - Expor metadados para introspecção (`help`)

Decisões arquiteturais:
    - A validação ocorre no registro, antes do planner
    - O registry não resolve dependências nem executa Tasks
    - A lista do `help` é derivada das Tasks declaradas, nunca duplicada

Invariantes:
    - Cada Task registrada possui um nome único e não vazio
    - `list()` reflete exatamente a ordem de registro
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from deployflow.core.exceptions import DuplicateTaskError, TaskNotFound

from .task import Task


@dataclass
class TaskRegistry:
    """
    Registro canônico de Tasks para validação estrutural pré-execução.

    Limites explícitos:
        - Não planeja execução (não é planner)
        - Não executa Tasks
        - Não valida existência de pré-requisitos (responsabilidade do planner)
    """

    _tasks: Dict[str, Task] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    @classmethod
    def of(cls, tasks: Iterable[Task]) -> "TaskRegistry":
        registry = cls()
        for task in tasks:
            registry.add(task)
        return registry

    def add(self, task: Task) -> None:
        name = getattr(task, "name", None)
        if not isinstance(name, str) or not name.strip():
            raise ValueError("task.name must be a non-empty string")

        if name in self._tasks:
            raise DuplicateTaskError(
                message=f"Duplicate task name: {name}",
                details={"task": name},
            )

        self._tasks[name] = task
        self._order.append(name)

    def get(self, name: str) -> Task:
        if name not in self._tasks:
            raise TaskNotFound(
                message=f"Unknown task: {name}",
                details={"task": name},
                hint="Run `deployflow help` to list the available commands.",
            )
        return self._tasks[name]

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def list(self) -> List[Task]:
        return [self._tasks[n] for n in self._order]

    def describe(self) -> List[Tuple[str, str]]:
        """Pares (nome, descrição) ordenados por nome, para o `help`."""
        return sorted((t.name, t.description) for t in self.list())
