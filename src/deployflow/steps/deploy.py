"""
Tasks de validação e deploy GitOps.

    - dry-run: `helm lint` + `helm template` por chart e `kubectl apply
      --dry-run=client` dos manifests de bootstrap (a parte kubectl é pulada
      com aviso quando o cluster não responde)
    - check-cluster: gate obrigatório de cluster acessível
    - confirm-deploy / confirm-prod: gates de confirmação de produção,
      declarados antes de qualquer pré-requisito com chamada externa
    - deploy, deploy-staging, deploy-prod: `kubectl apply` do bootstrap
      GitOps do ambiente no namespace do Argo CD
    - verify-cluster: dump de estado do namespace (pulado sem cluster)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from deployflow.checks.probes import cluster_gate, cluster_reachable, confirmation_gate, prod_confirmation_gate
from deployflow.core.config.settings import ENVIRONMENTS
from deployflow.core.pipeline.context import RunContext
from deployflow.core.pipeline.task import Task

from .build import chart_dirs

BOOTSTRAP_MANIFEST = "gitops-bootstrap.yaml"


def bootstrap_manifest(ctx: RunContext, env: str) -> Path:
    gitops_dir = str(ctx.settings.get("paths.gitops_dir", "infra/gitops/applications"))
    return ctx.settings.path(gitops_dir) / env / BOOTSTRAP_MANIFEST


def dry_run(ctx: RunContext) -> Dict[str, Any]:
    ctx.logger.info("dry-run", "Helm dry-run validation...")
    charts = chart_dirs(ctx)
    for chart in charts:
        ctx.logger.info("dry-run", f"==> Dry-run {chart}")
        ctx.runner.run(["helm", "lint", str(chart)], step_id="dry-run")
        ctx.runner.run(
            ["helm", "template", str(chart), "--values", str(chart / "values.yaml")],
            step_id="dry-run",
            quiet=True,
        )

    validated: List[str] = []
    manifests = [bootstrap_manifest(ctx, env) for env in ENVIRONMENTS]
    manifests = [m for m in manifests if m.is_file()]
    if manifests:
        probe = cluster_reachable(ctx.settings, ctx.runner, step_id="dry-run")
        if not probe.ok:
            ctx.logger.warning("dry-run", f"GitOps manifest validation skipped: {probe.message}")
        else:
            ctx.logger.info("dry-run", "GitOps manifest validation (kubectl dry-run)...")
            namespace = str(ctx.settings.get("argocd.namespace", "argocd"))
            for manifest in manifests:
                ctx.logger.info("dry-run", f"Validating {manifest}...")
                ctx.runner.run(
                    ["kubectl", "apply", "--dry-run=client", "-f", str(manifest), "-n", namespace],
                    step_id="dry-run",
                )
                validated.append(str(manifest))
    return {"charts": [str(c) for c in charts], "manifests": validated}


def _cluster_ok(ctx: RunContext) -> None:
    ctx.logger.info("check-cluster", "Kubernetes cluster is reachable")


def _confirmed(step_id: str) -> Callable[[RunContext], None]:
    def run(ctx: RunContext) -> None:
        ctx.logger.info(step_id, "Confirmation check passed")

    return run


def apply_bootstrap(step_id: str, env: Optional[str] = None) -> Callable[[RunContext], Dict[str, Any]]:
    """Corpo de deploy; `env=None` usa o ambiente do snapshot."""

    def run(ctx: RunContext) -> Dict[str, Any]:
        target = env or ctx.settings.env
        manifest = bootstrap_manifest(ctx, target)
        namespace = str(ctx.settings.get("argocd.namespace", "argocd"))
        ctx.logger.info(step_id, f"Deploying to {target}...")
        ctx.runner.run(["kubectl", "apply", "-f", str(manifest), "-n", namespace], step_id=step_id)
        ctx.logger.info(step_id, f"Deploy {target} completed")
        return {"env": target, "manifest": str(manifest)}

    return run


def verify_cluster(ctx: RunContext) -> Dict[str, Any]:
    ns = str(ctx.settings.get("cluster.namespace", ctx.settings.env))
    step = "verify-cluster"
    ctx.logger.info(step, f"Checking Kubernetes cluster ({ns})...")
    for label, resource in (
        ("Pods", "pods"),
        ("Services", "svc"),
        ("Deployments", "deployments"),
        ("StatefulSets", "statefulsets"),
        ("ReplicaSets", "rs"),
    ):
        ctx.logger.info(step, f"{label}:")
        ctx.runner.run(["kubectl", "get", resource, "-n", ns], step_id=step)

    ctx.logger.info(step, "Recent events:")
    events = ctx.runner.run(
        ["kubectl", "get", "events", "-n", ns, "--sort-by=.metadata.creationTimestamp"],
        step_id=step,
        quiet=True,
    )
    for line in events.output.splitlines()[-20:]:
        ctx.logger.info(step, line)

    listing = ctx.runner.run(
        ["kubectl", "get", "pods", "-n", ns, "-o", "jsonpath={.items[*].metadata.name}"],
        step_id=step,
        quiet=True,
    )
    pods = listing.output.split()
    for pod in pods:
        ctx.logger.info(step, f"--- Logs {pod} ---")
        logs = ctx.runner.run(["kubectl", "logs", "--tail=10", pod, "-n", ns], step_id=step, check=False)
        if not logs.ok:
            ctx.logger.warning(step, f"No logs for {pod}")
    ctx.logger.info(step, "Cluster check completed")
    return {"namespace": ns, "pods": pods}


def tasks() -> List[Task]:
    return [
        Task("dry-run", dry_run, depends_on=("log-setup",), description="Helm template + GitOps manifest validation"),
        Task(
            "check-cluster",
            _cluster_ok,
            description="Verify Kubernetes cluster is accessible",
            gates=(cluster_gate(),),
        ),
        Task(
            "confirm-deploy",
            _confirmed("confirm-deploy"),
            description="Require CONFIRM=true when ENV=prod",
            gates=(prod_confirmation_gate(),),
        ),
        Task(
            "confirm-prod",
            _confirmed("confirm-prod"),
            description="Require CONFIRM=true for production",
            gates=(confirmation_gate(),),
        ),
        Task(
            "deploy",
            apply_bootstrap("deploy"),
            depends_on=("confirm-deploy", "check-cluster", "log-setup"),
            description="Deploy GitOps application for ENV",
        ),
        Task(
            "deploy-staging",
            apply_bootstrap("deploy-staging", "staging"),
            depends_on=("check-cluster", "log-setup"),
            description="Deploy to staging",
        ),
        Task(
            "deploy-prod",
            apply_bootstrap("deploy-prod", "prod"),
            depends_on=("confirm-prod", "check-cluster", "log-setup"),
            description="Deploy to production (requires CONFIRM=true)",
        ),
        Task(
            "verify-cluster",
            verify_cluster,
            depends_on=("log-setup",),
            description="Show pods, services, workloads, events and recent logs in NAMESPACE",
            gates=(cluster_gate(required=False),),
        ),
    ]
