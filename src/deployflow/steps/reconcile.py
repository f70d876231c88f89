"""
Tasks de reconciliação das Applications do Argo CD.

Cada task abre um `ArgoCDClient` (via fábrica injetável) e um
`ReconciliationEngine`; o lote sempre termina antes de a falha agregada
ser levantada.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from deployflow.checks.base import Gate
from deployflow.checks.probes import credential_present, prod_confirmation_gate
from deployflow.core.config.settings import Settings
from deployflow.core.pipeline.context import RunContext
from deployflow.core.pipeline.task import Task
from deployflow.reconcile.client import ArgoCDClient
from deployflow.reconcile.engine import ReconciliationEngine

ClientFactory = Callable[[Settings], ArgoCDClient]

TOKEN_VARIABLE = "ARGOCD_AUTH_TOKEN"


def token_gate() -> Gate:
    return Gate(
        check=lambda ctx: credential_present(
            ctx.settings, str(ctx.settings.get("argocd.token_variable", TOKEN_VARIABLE))
        ),
        required=True,
    )


def _batch_action(step_id: str, operation: str, factory: ClientFactory) -> Callable[[RunContext], Dict[str, Any]]:
    def run(ctx: RunContext) -> Dict[str, Any]:
        with factory(ctx.settings) as client:
            engine = ReconciliationEngine(
                settings=ctx.settings,
                client=client,
                logger=ctx.logger,
                runner=ctx.runner,
                step_id=step_id,
            )
            batch = getattr(engine, operation)()
        batch.raise_for_failures()
        return batch.to_dict()

    return run


def _verify_action(factory: ClientFactory) -> Callable[[RunContext], Dict[str, Any]]:
    def run(ctx: RunContext) -> Dict[str, Any]:
        with factory(ctx.settings) as client:
            engine = ReconciliationEngine(settings=ctx.settings, client=client, logger=ctx.logger, step_id="verify")
            report = engine.verify()
        ctx.set_artifact("reconcile.drift", report)
        return report.to_dict()

    return run


def tasks(client_factory: Optional[ClientFactory] = None) -> List[Task]:
    factory = client_factory or ArgoCDClient.from_settings
    auth = token_gate()
    return [
        Task(
            "bootstrap-apps",
            _batch_action("bootstrap-apps", "bootstrap", factory),
            depends_on=("log-setup",),
            description="Create the Argo CD application of every service (idempotent)",
            gates=(auth,),
        ),
        Task(
            "delete-apps",
            _batch_action("delete-apps", "delete", factory),
            depends_on=("log-setup",),
            description="Delete the Argo CD application of every service (idempotent)",
            gates=(prod_confirmation_gate(), auth),
        ),
        Task(
            "reset",
            _batch_action("reset", "reset", factory),
            depends_on=("log-setup",),
            description="Delete applications, purge namespaces and bootstrap again",
            gates=(prod_confirmation_gate(), auth),
        ),
        Task(
            "verify",
            _verify_action(factory),
            depends_on=("log-setup",),
            description="Report drift between declared services and Argo CD applications",
            gates=(auth,),
        ),
    ]
