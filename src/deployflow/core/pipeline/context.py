"""
Contexto de execução compartilhado de uma invocação.

Este módulo define o `RunContext`, a estrutura passada a todos os corpos
de task e a todos os gates durante uma invocação do deployflow.

O RunContext consolida:
    - identidade da execução (run_id, created_at)
    - snapshot imutável de configuração (`Settings`)
    - capacidades injetadas: `RunLogger` e `CommandRunner`
    - armazenamento de artefatos produzidos por tasks (ex.: resumo de scan)

Decisões arquiteturais:
    - Nenhuma task acessa estado global; tudo chega pelo contexto
    - Artefatos são armazenados por chave explícita
    - O contexto vive apenas durante a invocação

Limites explícitos:
    - Não executa tasks
    - Não decide políticas de execução
    - Não persiste dados automaticamente
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from deployflow.core.config.settings import Settings
from deployflow.core.log import RunLogger
from deployflow.core.process import CommandRunner


@dataclass
class RunContext:
    """
    Contexto canônico de uma invocação.

    Invariantes:
        - `settings` é o mesmo objeto para todas as tasks da invocação
        - Logs sempre incluem `run_id` e `step_id` (nome da task)
    """
    run_id: str
    settings: Settings
    logger: RunLogger
    runner: CommandRunner
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    _artifacts: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    # -----------------------------
    # Artifact store
    # -----------------------------
    def set_artifact(self, key: str, value: Any) -> None:
        self._artifacts[key] = value

    def has_artifact(self, key: str) -> bool:
        return key in self._artifacts

    def get_artifact(self, key: str) -> Any:
        if key not in self._artifacts:
            raise KeyError(key)
        return self._artifacts[key]

    # -----------------------------
    # Logging
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        self.logger.log(step_id=step_id, level=level, message=message, **extra)
