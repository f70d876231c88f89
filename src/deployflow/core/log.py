# src/deployflow/core/log.py
"""
RunLogger — sink de log canônico de uma invocação do deployflow.

Todas as tasks, gates, scans e a reconciliação escrevem através de uma
instância de `RunLogger` recebida por injeção (nunca por estado global).

Cada chamada de `log` produz:
    - uma linha `[YYYY-mm-dd HH:MM:SS] LEVEL [task] mensagem` no stdout
    - a mesma linha anexada ao arquivo de log (append-only entre execuções)
    - um evento estruturado em memória (`events`), com `run_id`, `step_id`,
      `level`, `message`, `timestamp` e campos extras

Decisões arquiteturais:
    - Baseado no módulo `logging` da stdlib; cada RunLogger usa um
      `logging.Logger` próprio, fora do registro global do `logging`
      (nada acumula entre execuções) e sem propagação
    - O arquivo nunca é truncado automaticamente; apenas `clean_logs`
      remove o diretório de logs
    - Seguro para escritores concorrentes (handlers e eventos com lock)
"""

from __future__ import annotations

import logging
import shutil
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

LINE_FORMAT = "[%(asctime)s] %(levelname)s [%(step_id)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class RunLogger:
    """Sink de log timestampado e por nível, injetado como capacidade."""

    def __init__(
        self,
        *,
        run_id: str,
        log_file: Optional[Path] = None,
        level: str = "INFO",
        stream: Optional[TextIO] = None,
    ) -> None:
        self.run_id = run_id
        self.log_file = Path(log_file) if log_file is not None else None
        self.events: List[Dict[str, Any]] = []
        self.warnings: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

        level_no = logging.getLevelName(str(level).upper())
        if not isinstance(level_no, int):
            level_no = logging.INFO

        self._logger = logging.Logger(f"deployflow.run.{run_id}", level_no)
        self._logger.propagate = False

        self._formatter = logging.Formatter(LINE_FORMAT, DATE_FORMAT)
        self._file_handler: Optional[logging.FileHandler] = None

        console = logging.StreamHandler(stream if stream is not None else sys.stdout)
        console.setFormatter(self._formatter)
        self._logger.addHandler(console)

        self.open_file()

    # -----------------------------
    # Arquivo de log
    # -----------------------------
    def open_file(self) -> None:
        """(Re)abre o arquivo de log em modo append, criando o diretório."""
        if self.log_file is None or self._file_handler is not None:
            return
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(self.log_file, mode="a", encoding="utf-8")
        handler.setFormatter(self._formatter)
        self._logger.addHandler(handler)
        self._file_handler = handler

    def close_file(self) -> None:
        if self._file_handler is None:
            return
        self._file_handler.flush()
        self._logger.removeHandler(self._file_handler)
        self._file_handler.close()
        self._file_handler = None

    # -----------------------------
    # Logging estruturado
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        with self._lock:
            self.events.append(event)
        self._logger.log(_LEVELS.get(level, logging.INFO), message, extra={"step_id": step_id})

    def debug(self, step_id: str, message: str, **extra: Any) -> None:
        self.log(step_id=step_id, level="debug", message=message, **extra)

    def info(self, step_id: str, message: str, **extra: Any) -> None:
        self.log(step_id=step_id, level="info", message=message, **extra)

    def warning(self, step_id: str, message: str, **extra: Any) -> None:
        self.add_warning(step_id=step_id, message=message)
        self.log(step_id=step_id, level="warning", message=message, **extra)

    def error(self, step_id: str, message: str, **extra: Any) -> None:
        self.log(step_id=step_id, level="error", message=message, **extra)

    def add_warning(self, *, step_id: str, message: str) -> None:
        with self._lock:
            self.warnings.setdefault(step_id, []).append(message)

    def events_for(self, step_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [e for e in self.events if e["step_id"] == step_id]

    def close(self) -> None:
        self.close_file()
        for handler in list(self._logger.handlers):
            handler.flush()
            self._logger.removeHandler(handler)
            handler.close()


def clean_logs(log_dir: Path, logger: Optional[RunLogger] = None) -> bool:
    """
    Remove o diretório de logs inteiro (operação explícita de limpeza).

    Quando `logger` é informado, o arquivo é fechado antes da remoção e
    reaberto depois, para que a execução corrente continue registrando.

    Returns:
        bool: False se o diretório já não existia.
    """
    path = Path(log_dir)
    if logger is not None:
        logger.close_file()
    try:
        if not path.exists():
            return False
        shutil.rmtree(path)
        return True
    finally:
        if logger is not None:
            logger.open_file()
