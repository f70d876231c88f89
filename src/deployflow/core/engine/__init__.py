# src/deployflow/core/engine/__init__.py
"""
Engine do deployflow.

Este pacote **planeja** e **executa** o grafo de tasks.

Componentes principais:
    - planner  → ordem topológica determinística e detecção de ciclos
    - engine   → Executor com gates, fail-fast e sucesso memorizado

Invariantes:
    - Tasks só são executadas após seus pré-requisitos
    - Cada task é executada no máximo uma vez por invocação
    - O resultado reflete explicitamente o estado de cada task
"""

from .engine import Executor, RunResult
from .planner import plan_execution, validate_graph

__all__ = ["Executor", "RunResult", "plan_execution", "validate_graph"]
