"""
Tasks de build: Maven, Helm lint, login no registry e imagens Docker.

As ferramentas são passos opacos de passa/falha por serviço (ou chart):
o primeiro comando com exit code diferente de zero interrompe a task.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Sequence

from deployflow.checks.probes import credential_gate
from deployflow.core.pipeline.context import RunContext
from deployflow.core.pipeline.task import Task


def maven_phase(step_id: str, verb: str, args: Sequence[str]) -> Callable[[RunContext], None]:
    """Corpo que roda `mvn <args>` no contexto de cada serviço, em ordem."""

    def run(ctx: RunContext) -> None:
        for service in ctx.settings.services:
            ctx.logger.info(step_id, f"{verb} {service.name}...")
            ctx.runner.run(["mvn", *args], step_id=step_id, cwd=ctx.settings.path(service.context))

    return run


def login_registry(ctx: RunContext) -> None:
    host = str(ctx.settings.get("registry.host", "ghcr.io"))
    user = ctx.settings.credential(str(ctx.settings.get("registry.user_variable", "GITHUB_USER")))
    token = ctx.settings.credential(str(ctx.settings.get("registry.token_variable", "CR_PAT")))
    ctx.logger.info("login-ghcr", f"Logging in to {host}...")
    ctx.runner.run(
        ["docker", "login", host, "-u", user, "--password-stdin"],
        step_id="login-ghcr",
        input_text=token,
    )
    ctx.logger.info("login-ghcr", f"{host} login successful")


def chart_dirs(ctx: RunContext) -> List[Path]:
    charts_dir = ctx.settings.path(str(ctx.settings.get("paths.charts_dir", "helm-charts/charts")))
    if not charts_dir.is_dir():
        return []
    return sorted(p for p in charts_dir.iterdir() if p.is_dir())


def lint_charts(ctx: RunContext) -> dict:
    charts = chart_dirs(ctx)
    if not charts:
        ctx.logger.warning("lint", "No Helm charts found")
        return {"charts": []}
    ctx.logger.info("lint", "Linting Helm charts...")
    for chart in charts:
        ctx.logger.info("lint", f"Linting {chart}...")
        ctx.runner.run(["helm", "lint", str(chart)], step_id="lint")
    return {"charts": [str(c) for c in charts]}


def build_images(ctx: RunContext) -> dict:
    images = []
    for service in ctx.settings.services:
        image = ctx.settings.image_for(service.name)
        context = ctx.settings.path(service.context)
        ctx.logger.info("build", f"Building {service.name} -> {image}")
        ctx.runner.run(
            ["docker", "build", "-t", image, "-f", str(context / "Dockerfile"), str(context)],
            step_id="build",
        )
        ctx.runner.run(["docker", "push", image], step_id="build")
        images.append(image)
    return {"images": images}


def tasks() -> List[Task]:
    return [
        Task(
            "login-ghcr",
            login_registry,
            depends_on=("log-setup",),
            description="Login to GitHub Container Registry",
            gates=(credential_gate("CR_PAT"), credential_gate("GITHUB_USER")),
        ),
        Task(
            "compile",
            maven_phase("compile", "Compiling", ["compile"]),
            depends_on=("log-setup",),
            description="Compile Java code with Maven",
        ),
        Task(
            "test",
            maven_phase("test", "Testing", ["test"]),
            depends_on=("log-setup",),
            description="Run unit tests with Maven",
        ),
        Task(
            "package",
            maven_phase("package", "Packaging", ["package", "-DskipTests"]),
            depends_on=("log-setup",),
            description="Package JAR files with Maven",
        ),
        Task("lint", lint_charts, depends_on=("log-setup",), description="Lint Helm charts"),
        Task(
            "build",
            build_images,
            depends_on=("log-setup", "login-ghcr"),
            description="Build and push Docker images tagged with TAG",
        ),
    ]