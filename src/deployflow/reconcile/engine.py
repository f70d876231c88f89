"""
Reconciliação do inventário fixo de serviços contra o Argo CD.

Operações:
    - bootstrap(): cria a Application de cada serviço cujo chart existe;
      chart ausente => SKIPPED com aviso; aplicação existente =>
      ALREADY_EXISTS (idempotente)
    - delete(): remove a Application de cada serviço; ausente => NOT_FOUND
      (sucesso idempotente, registrado de forma distinta)
    - reset(): delete() + purga best-effort dos namespaces + bootstrap()
    - verify(): lista as Applications do projeto e compara com o inventário

Política de falhas:
    - Falhas por serviço (`ControlPlaneError`) são coletadas; o lote nunca
      é interrompido. O chamador decide via `BatchOutcome.raise_for_failures()`.
    - A autenticação é verificada uma única vez por instância do engine.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional

from deployflow.core.config.settings import ServiceRecord, Settings
from deployflow.core.exceptions import ControlPlaneError, PreconditionFailed
from deployflow.core.log import RunLogger
from deployflow.core.process import CommandRunner

from .client import ArgoCDClient
from .models import BatchOutcome, DriftReport, OutcomeKind, ServiceOutcome

PART_OF_LABEL = "app.kubernetes.io/part-of"
PRUNE_FINALIZER = "resources-finalizer.argocd.argoproj.io"


class ReconciliationEngine:
    """Mantém as Applications do Argo CD alinhadas ao inventário declarado."""

    def __init__(
        self,
        *,
        settings: Settings,
        client: ArgoCDClient,
        logger: RunLogger,
        runner: Optional[CommandRunner] = None,
        step_id: str = "reconcile",
        env: Optional[str] = None,
        delete_timeout: float = 60.0,
        poll_interval: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.client = client
        self.logger = logger
        self.runner = runner
        self.step_id = step_id
        self.env = env or settings.env
        self.delete_timeout = delete_timeout
        self.poll_interval = poll_interval
        self.sleep = sleep
        self._authenticated = False

    # -----------------------------
    # Estado desejado
    # -----------------------------
    @property
    def project(self) -> str:
        return str(self.settings.get("project.name"))

    @property
    def selector(self) -> str:
        return f"{PART_OF_LABEL}={self.project}"

    def application_name(self, service: ServiceRecord) -> str:
        return f"{service.name}-{self.env}"

    def desired_application(self, service: ServiceRecord) -> Dict[str, Any]:
        return {
            "metadata": {
                "name": self.application_name(service),
                "namespace": self.settings.get("argocd.namespace", "argocd"),
                "labels": {
                    PART_OF_LABEL: self.project,
                    "app.kubernetes.io/name": service.name,
                },
                "finalizers": [PRUNE_FINALIZER],
            },
            "spec": {
                "project": self.settings.get("argocd.project", "default"),
                "source": {
                    "repoURL": self.settings.get("project.repo_url"),
                    "path": service.chart,
                    "targetRevision": self.settings.get("project.target_revision", "HEAD"),
                },
                "destination": {
                    "server": self.settings.get("argocd.destination_server"),
                    "namespace": service.namespace,
                },
                "syncPolicy": {
                    "automated": {"prune": True, "selfHeal": True},
                    "syncOptions": ["CreateNamespace=true"],
                },
            },
        }

    # -----------------------------
    # Autenticação
    # -----------------------------
    def ensure_authenticated(self) -> None:
        if self._authenticated:
            return
        token_var = str(self.settings.get("argocd.token_variable", "ARGOCD_AUTH_TOKEN"))
        if not self.client.authenticated():
            raise PreconditionFailed(
                message=f"Not authenticated against Argo CD at {self.client.server}",
                details={"check": f"credential:{token_var}", "server": self.client.server},
                hint=f"set {token_var} to a valid Argo CD API token",
            )
        self._authenticated = True

    # -----------------------------
    # Operações
    # -----------------------------
    def bootstrap(self) -> BatchOutcome:
        self.ensure_authenticated()
        self.logger.info(self.step_id, f"Bootstrapping {len(self.settings.services)} application(s) for {self.env}")
        outcomes = [self._bootstrap_one(s) for s in self.settings.services]
        return self._finish(BatchOutcome(operation="bootstrap", outcomes=tuple(outcomes)))

    def delete(self) -> BatchOutcome:
        self.ensure_authenticated()
        self.logger.info(self.step_id, f"Deleting {len(self.settings.services)} application(s) for {self.env}")
        outcomes = [self._delete_one(s) for s in self.settings.services]
        return self._finish(BatchOutcome(operation="delete", outcomes=tuple(outcomes)))

    def reset(self) -> BatchOutcome:
        self.ensure_authenticated()
        deleted = self.delete()
        self._wait_for_absence([o for o in deleted.outcomes if o.kind == OutcomeKind.DELETED])
        self.purge_namespaces()
        restored = self.bootstrap()
        return self._finish(BatchOutcome(operation="reset", outcomes=deleted.outcomes + restored.outcomes))

    def verify(self) -> DriftReport:
        self.ensure_authenticated()
        items = self.client.list_applications(selector=self.selector)
        present = {str((item.get("metadata") or {}).get("name")) for item in items}
        declared = [self.application_name(s) for s in self.settings.services]

        report = DriftReport(
            undeclared=tuple(sorted(present - set(declared))),
            missing=tuple(name for name in declared if name not in present),
        )
        if report.clean:
            self.logger.info(self.step_id, f"No drift: {len(declared)} declared application(s) present")
        else:
            for name in report.undeclared:
                self.logger.warning(self.step_id, f"Drift: application {name} is present but not declared")
            for name in report.missing:
                self.logger.warning(self.step_id, f"Drift: application {name} is declared but missing")
        return report

    def purge_namespaces(self) -> List[str]:
        """`kubectl delete all --all -n <ns>` por namespace distinto; best effort."""
        namespaces: List[str] = []
        for service in self.settings.services:
            if service.namespace and service.namespace not in namespaces:
                namespaces.append(service.namespace)

        if self.runner is None:
            self.logger.warning(self.step_id, "No command runner available; namespace purge skipped")
            return []

        for ns in namespaces:
            result = self.runner.run(
                ["kubectl", "delete", "all", "--all", "-n", ns, "--ignore-not-found"],
                step_id=self.step_id,
                check=False,
            )
            if not result.ok:
                self.logger.warning(self.step_id, f"Namespace purge of {ns} exited with {result.returncode}")
        return namespaces

    # -----------------------------
    # Internos
    # -----------------------------
    def _bootstrap_one(self, service: ServiceRecord) -> ServiceOutcome:
        app = self.application_name(service)
        if not self.settings.path(service.chart).exists():
            self.logger.warning(self.step_id, f"Skipping {service.name}: chart path {service.chart} not found")
            return ServiceOutcome(service.name, app, "create", OutcomeKind.SKIPPED, f"missing path {service.chart}")
        try:
            if self.client.get_application(app) is not None:
                self.logger.info(self.step_id, f"Application {app} already exists")
                return ServiceOutcome(service.name, app, "create", OutcomeKind.ALREADY_EXISTS)
            self.client.create_application(self.desired_application(service))
        except ControlPlaneError as e:
            self.logger.error(self.step_id, f"Failed to create {app}: {e.message}")
            return ServiceOutcome(service.name, app, "create", OutcomeKind.FAILED, e.message)
        self.logger.info(self.step_id, f"Created application {app}")
        return ServiceOutcome(service.name, app, "create", OutcomeKind.CREATED)

    def _delete_one(self, service: ServiceRecord) -> ServiceOutcome:
        app = self.application_name(service)
        try:
            removed = self.client.delete_application(app)
        except ControlPlaneError as e:
            self.logger.error(self.step_id, f"Failed to delete {app}: {e.message}")
            return ServiceOutcome(service.name, app, "delete", OutcomeKind.FAILED, e.message)
        if removed:
            self.logger.info(self.step_id, f"Deleted application {app}")
            return ServiceOutcome(service.name, app, "delete", OutcomeKind.DELETED)
        self.logger.info(self.step_id, f"Application {app} already absent")
        return ServiceOutcome(service.name, app, "delete", OutcomeKind.NOT_FOUND)

    def _wait_for_absence(self, outcomes: List[ServiceOutcome]) -> None:
        pending = [o.application for o in outcomes]
        deadline = time.monotonic() + self.delete_timeout
        while pending:
            still: List[str] = []
            for app in pending:
                try:
                    if self.client.get_application(app) is not None:
                        still.append(app)
                except ControlPlaneError as e:
                    self.logger.warning(self.step_id, f"Could not poll {app}: {e.message}")
            pending = still
            if not pending:
                return
            if time.monotonic() >= deadline:
                self.logger.warning(
                    self.step_id,
                    f"Applications still finalizing after {self.delete_timeout:g}s: {', '.join(pending)}",
                )
                return
            self.sleep(self.poll_interval)

    def _finish(self, batch: BatchOutcome) -> BatchOutcome:
        counts = {k: v for k, v in batch.counts().items() if v}
        summary = ", ".join(f"{v} {k}" for k, v in counts.items()) or "nothing to do"
        level = "info" if batch.succeeded else "error"
        self.logger.log(step_id=self.step_id, level=level, message=f"{batch.operation}: {summary}")
        return batch
