"""
# Pipeline Core — deployflow

Este pacote define os **contratos canônicos** do grafo de tasks.

## Componentes

- **types**: `TaskStatus`, `TaskResult`
- **task**: `Task`, unidade nomeada com pré-requisitos, gates e corpo
- **context**: `RunContext`, contexto compartilhado (settings, logger, runner)
- **registry**: `TaskRegistry`, unicidade de nomes e ordem de declaração

## Invariantes

- Cada Task possui um nome único
- Tasks não executam fora do controle do Executor
- Estado compartilhado é sempre explícito (RunContext)
"""

from .context import RunContext
from .registry import TaskRegistry
from .task import Task
from .types import TaskResult, TaskStatus

__all__ = ["RunContext", "Task", "TaskRegistry", "TaskResult", "TaskStatus"]
