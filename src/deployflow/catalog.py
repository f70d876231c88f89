"""
Catálogo de tasks do deployflow.

Declara todas as tasks (folhas e agregadoras) em um único `TaskRegistry`.
A ordem de declaração aqui é a ordem de desempate do planner. O texto do
`help` é derivado das descrições declaradas, nunca duplicado.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from deployflow.core.engine.planner import validate_graph
from deployflow.core.pipeline.context import RunContext
from deployflow.core.pipeline.registry import TaskRegistry
from deployflow.core.pipeline.task import Task
from deployflow.steps import build, deploy, housekeeping, reconcile, scan

# (nome, default, descrição) das opções documentadas no help
OPTIONS: Tuple[Tuple[str, str, str], ...] = (
    ("ENV", "staging", "Target environment: staging | prod"),
    ("TAG", "short git revision", "Image tag used by build and scan"),
    ("CONFIRM", "false", "Must be true for any production deploy"),
    ("SCAN_ENABLED", "true", "Enable/disable security scans"),
    ("SCAN_MODE", "sync", "sync (blocking) | async (advisory, concurrent)"),
    ("SCAN_ASYNC", "false", "Shortcut for SCAN_MODE=async"),
    ("SKIP_SCAN", "false", "Skip scans entirely in the CI pipeline"),
    ("NAMESPACE", "staging", "Namespace inspected by verify-cluster"),
    ("ARGOCD_SERVER", "https://localhost:8080", "Argo CD API endpoint"),
    ("ARGOCD_AUTH_TOKEN", "", "Argo CD API token (credential)"),
    ("CR_PAT", "", "GitHub Container Registry token (credential)"),
)


def _composites() -> List[Task]:
    return [
        Task(
            "ci",
            depends_on=("log-setup", "lint", "test", "build", "scan", "deploy-staging"),
            description="Full CI pipeline (staging auto-deploy)",
        ),
        Task(
            "ci-fast",
            depends_on=("log-setup", "clean", "test", "build", "deploy-staging"),
            description="Fast CI pipeline (staging only, no scans)",
        ),
        Task(
            "ci-nightly",
            depends_on=("log-setup", "lint", "test", "build", "nightly-scan"),
            description="Nightly CI pipeline with comprehensive scans",
        ),
        Task("dev", depends_on=("compile", "test"), description="Development: compile and test"),
        Task("dev-test", depends_on=("test",), description="Quick test only"),
        Task("dev-build", depends_on=("package",), description="Quick package without tests"),
    ]


def render_help(registry: TaskRegistry) -> str:
    width = max((len(name) for name, _ in registry.describe()), default=10) + 2
    lines = ["Available commands:"]
    lines += [f"  {name:<{width}} {description}" for name, description in registry.describe()]
    lines += ["", "Options (KEY=VALUE on the command line, in .env or in the environment):"]
    lines += [f"  {name}={default:<22} {text}" for name, default, text in OPTIONS]
    return "\n".join(lines)


def build_registry(*, client_factory: Optional[reconcile.ClientFactory] = None) -> TaskRegistry:
    registry = TaskRegistry()

    def show_help(ctx: RunContext) -> dict:
        text = render_help(registry)
        for line in text.splitlines():
            ctx.logger.info("help", line)
        return {"help": text}

    declared = (
        housekeeping.tasks()
        + build.tasks()
        + scan.tasks()
        + deploy.tasks()
        + reconcile.tasks(client_factory)
        + _composites()
        + [Task("help", show_help, description="Print available commands with descriptions")]
    )
    for task in declared:
        registry.add(task)

    validate_graph(registry)
    return registry
