# src/deployflow/core/engine/engine.py
"""
Executor do grafo de tasks do deployflow.

Regras de execução:
- A ordem vem do planner; erros estruturais (TaskNotFound,
  CyclicDependency) são levantados antes de qualquer corpo executar.
- Cada task passa por PENDING -> RUNNING -> SUCCEEDED | FAILED | SKIPPED.
- Gates são avaliados em ordem antes do corpo. Gate obrigatório falhando
  produz FAILED com PRECONDITION_FAILED; gate opcional produz SKIPPED.
- Fail-fast: a primeira task FAILED interrompe o restante da ordem; as
  tasks não alcançadas permanecem PENDING no RunResult.
- Sucesso é memorizado no Executor: uma nova chamada de `execute` na mesma
  invocação não reexecuta tasks já concluídas.
- Exceções do corpo nunca são engolidas: viram ErrorPayload no
  TaskResult (CommandFailed é encapsulado como TaskBodyFailed).
- Transições (início, sucesso, falha, skip) são registradas no RunLogger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from deployflow.core import exceptions as exc_mod
from deployflow.core.errors import ErrorPayload, engine_execution_error, precondition_failed
from deployflow.core.exceptions import CommandFailed, DeployflowError, TaskBodyFailed
from deployflow.core.pipeline.context import RunContext
from deployflow.core.pipeline.registry import TaskRegistry
from deployflow.core.pipeline.task import Task
from deployflow.core.pipeline.types import TaskResult, TaskStatus

from .planner import plan_execution

_DONE_STATUSES = (TaskStatus.SUCCEEDED, TaskStatus.SKIPPED)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _exception_classes() -> Dict[str, type]:
    classes = {}
    for value in vars(exc_mod).values():
        if isinstance(value, type) and issubclass(value, DeployflowError):
            classes[value.code] = value
    return classes


@dataclass(frozen=True)
class RunResult:
    """Resultado agregado de `Executor.execute(target)`."""

    target: str
    order: Tuple[str, ...] = ()
    tasks: Mapping[str, TaskResult] = field(default_factory=dict)

    @property
    def failed_task(self) -> Optional[str]:
        for name in self.order:
            result = self.tasks.get(name)
            if result is not None and result.status == TaskStatus.FAILED:
                return name
        return None

    @property
    def ok(self) -> bool:
        return self.failed_task is None

    @property
    def error(self) -> Optional[ErrorPayload]:
        name = self.failed_task
        return self.tasks[name].error if name else None

    def status_of(self, name: str) -> TaskStatus:
        return self.tasks[name].status

    def raise_for_failure(self) -> None:
        """Relança a falha como a exceção tipada correspondente ao código."""
        error = self.error
        if error is None:
            return
        cls = _exception_classes().get(error.type, DeployflowError)
        raise cls(message=error.message, details=dict(error.details), hint=error.hint)


class Executor:
    """Executa uma task alvo e seus pré-requisitos sobre um RunContext."""

    def __init__(self, *, registry: TaskRegistry, ctx: RunContext):
        self.registry = registry
        self.ctx = ctx
        self._completed: Dict[str, TaskResult] = {}

    @property
    def completed(self) -> Dict[str, TaskResult]:
        return dict(self._completed)

    def execute(self, target: str) -> RunResult:
        ordered = plan_execution(self.registry, target)
        names = tuple(t.name for t in ordered)

        results: Dict[str, TaskResult] = {n: TaskResult(task=n, status=TaskStatus.PENDING) for n in names}
        for task in ordered:
            prior = self._completed.get(task.name)
            if prior is not None and prior.status in _DONE_STATUSES:
                results[task.name] = prior
                continue

            result = self._run_task(task)
            results[task.name] = result
            if result.status in _DONE_STATUSES:
                self._completed[task.name] = result
            if result.status == TaskStatus.FAILED:
                break

        return RunResult(target=target, order=names, tasks=results)

    # ------------------------------------------------------------------
    # Execução de uma task
    # ------------------------------------------------------------------
    def _warnings_for(self, name: str):
        return list(self.ctx.logger.warnings.get(name, []))

    def _failed(self, name: str, started: str, error: ErrorPayload) -> TaskResult:
        self._log_failure(name, error)
        return TaskResult(
            task=name,
            status=TaskStatus.FAILED,
            summary=error.message,
            started_at=started,
            finished_at=_now(),
            warnings=self._warnings_for(name),
            error=error,
        )

    def _run_task(self, task: Task) -> TaskResult:
        name = task.name
        started = _now()
        self.ctx.log(step_id=name, level="info", message=f"Starting {name}")

        for gate in task.gates:
            try:
                check = gate.evaluate(self.ctx)
            except Exception as e:
                return self._failed(name, started, self._exception_to_error(name, e))
            if check.ok:
                continue
            if gate.required:
                error = precondition_failed(
                    task=name,
                    check=check.name,
                    message=check.message,
                    hint=check.remediation,
                )
                return self._failed(name, started, error)
            self.ctx.logger.warning(name, f"Skipping {name}: {check.message}")
            return TaskResult(
                task=name,
                status=TaskStatus.SKIPPED,
                summary=check.message,
                started_at=started,
                finished_at=_now(),
                warnings=self._warnings_for(name),
            )

        try:
            returned = task.run(self.ctx)
        except Exception as e:
            return self._failed(name, started, self._exception_to_error(name, e))

        payload: Dict[str, Any] = dict(returned) if isinstance(returned, Mapping) else {}
        self.ctx.log(step_id=name, level="info", message=f"Finished {name}")
        return TaskResult(
            task=name,
            status=TaskStatus.SUCCEEDED,
            summary="ok",
            started_at=started,
            finished_at=_now(),
            warnings=self._warnings_for(name),
            payload=payload,
        )

    def _exception_to_error(self, name: str, exc: Exception) -> ErrorPayload:
        if isinstance(exc, CommandFailed):
            wrapped = TaskBodyFailed(
                message=f"Task '{name}' failed: {exc.message}",
                details={"task": name, **dict(exc.details or {})},
                hint=exc.hint or "Fix the failing command and re-run; nothing is retried automatically.",
            )
            return wrapped.to_payload()

        if isinstance(exc, DeployflowError):
            payload = exc.to_payload()
            details = {"task": name}
            details.update(payload.details)
            return ErrorPayload(type=payload.type, message=payload.message, details=details, hint=payload.hint)

        return engine_execution_error(
            task=name,
            exc_type=exc.__class__.__name__,
            exc_message=str(exc),
        )

    def _log_failure(self, name: str, error: ErrorPayload) -> None:
        self.ctx.log(
            step_id=name,
            level="error",
            message=f"Failed {name}: {error.message}",
            error_type=error.type,
        )
        if error.hint:
            self.ctx.log(step_id=name, level="error", message=f"Hint: {error.hint}")
