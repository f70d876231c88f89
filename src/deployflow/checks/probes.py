"""
Verificações de pré-condição e fábricas de gates.

Cada verificação é um predicado sobre o `Settings` mais, quando
necessário, uma sonda do ambiente (PATH, cluster). Nenhuma levanta
exceção por indisponibilidade: o resultado é sempre um `CheckResult`.

Verificações:
    - tool_available: binário presente no PATH
    - cluster_reachable: `kubectl cluster-info` responde dentro do timeout
    - credential_present: variável não vazia no ambiente de credenciais
    - confirmation_given: opção `confirm` ligada (exigida para produção)
"""

from __future__ import annotations

import shutil
from typing import Callable, Optional

from deployflow.core.config.settings import Settings
from deployflow.core.process import CommandRunner

from .base import CheckResult, Gate

CONFIRM_REMEDIATION = "set CONFIRM=true to deploy to production"


def tool_available(name: str, *, which: Optional[Callable[[str], Optional[str]]] = None) -> CheckResult:
    path = (which or shutil.which)(name)
    if path:
        return CheckResult(name=f"tool:{name}", ok=True, message=f"{name} found at {path}")
    return CheckResult(
        name=f"tool:{name}",
        ok=False,
        message=f"{name} is not installed or not on PATH",
        remediation=f"install {name} and make sure it is on PATH",
    )


def cluster_reachable(settings: Settings, runner: CommandRunner, *, step_id: str = "check-cluster") -> CheckResult:
    timeout = float(settings.get("cluster.probe_timeout", 5.0))
    result = runner.run(
        ["kubectl", "cluster-info"],
        step_id=step_id,
        timeout=timeout,
        check=False,
        quiet=True,
    )
    if result.ok:
        return CheckResult(name="cluster", ok=True, message="Kubernetes cluster is reachable")
    if result.timed_out:
        message = f"Kubernetes cluster did not respond within {timeout:g}s"
    else:
        message = "Kubernetes cluster is not reachable"
    return CheckResult(
        name="cluster",
        ok=False,
        message=message,
        remediation="start the cluster or point kubectl at a reachable context",
    )


def credential_present(settings: Settings, name: str) -> CheckResult:
    if settings.credential(name):
        return CheckResult(name=f"credential:{name}", ok=True, message=f"{name} is set")
    return CheckResult(
        name=f"credential:{name}",
        ok=False,
        message=f"{name} is not set",
        remediation=f"set {name} in the environment or in .env",
    )


def confirmation_given(settings: Settings) -> CheckResult:
    if settings.confirm:
        return CheckResult(name="confirmation", ok=True, message="production deploy confirmed")
    return CheckResult(
        name="confirmation",
        ok=False,
        message="production deploy requires explicit confirmation",
        remediation=CONFIRM_REMEDIATION,
    )


# -----------------------------
# Gates
# -----------------------------
def cluster_gate(*, required: bool = True) -> Gate:
    return Gate(check=lambda ctx: cluster_reachable(ctx.settings, ctx.runner), required=required)


def credential_gate(name: str, *, required: bool = True) -> Gate:
    return Gate(check=lambda ctx: credential_present(ctx.settings, name), required=required)


def confirmation_gate() -> Gate:
    """Confirmação de produção é sempre obrigatória."""
    return Gate(check=lambda ctx: confirmation_given(ctx.settings), required=True)


def prod_confirmation_gate() -> Gate:
    """Exige confirmação apenas quando o ambiente alvo é `prod`."""

    def _check(ctx) -> CheckResult:
        if ctx.settings.env != "prod":
            return CheckResult(name="confirmation", ok=True, message=f"env {ctx.settings.env} needs no confirmation")
        return confirmation_given(ctx.settings)

    return Gate(check=_check, required=True)
