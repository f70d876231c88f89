"""
Tasks de scan de segurança.

    - check-trivy: gate do scanner no PATH (dispensado com scan desabilitado)
    - scan: modo configurado (`scan.mode`)
    - scan-sync / scan-async: modo forçado
    - nightly-scan: scan abrangente (severidades ampliadas, relatórios isolados)

O resumo do scan fica no RunContext como artefato `scan.summary` e no
payload da task.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from deployflow.checks.base import CheckResult, Gate
from deployflow.checks.probes import tool_available
from deployflow.core.pipeline.context import RunContext
from deployflow.core.pipeline.task import Task
from deployflow.scan.models import ScanSummary
from deployflow.scan.orchestrator import ScanOrchestrator


def _scanner_check(ctx: RunContext) -> CheckResult:
    if not ctx.settings.scan_enabled:
        return CheckResult(name="tool:scanner", ok=True, message="scans disabled; scanner not required")
    result = tool_available(str(ctx.settings.get("scan.tool", "trivy")))
    if result.ok:
        return result
    return CheckResult(
        name=result.name,
        ok=False,
        message=result.message,
        remediation="Install with: brew install trivy or sudo apt-get install trivy",
    )


def scanner_gate() -> Gate:
    return Gate(check=_scanner_check, required=True)


def _record(ctx: RunContext, summary: ScanSummary) -> Dict[str, Any]:
    ctx.set_artifact("scan.summary", summary)
    summary.raise_for_threshold()
    return summary.to_dict()


def scan_action(step_id: str, mode: Optional[str] = None) -> Callable[[RunContext], Dict[str, Any]]:
    def run(ctx: RunContext) -> Dict[str, Any]:
        orchestrator = ScanOrchestrator(settings=ctx.settings, runner=ctx.runner, logger=ctx.logger, step_id=step_id)
        return _record(ctx, orchestrator.run(mode))

    return run


def nightly_scan(ctx: RunContext) -> Dict[str, Any]:
    orchestrator = ScanOrchestrator(settings=ctx.settings, runner=ctx.runner, logger=ctx.logger, step_id="nightly-scan")
    return _record(ctx, orchestrator.scan_comprehensive())


def _scanner_found(ctx: RunContext) -> None:
    ctx.logger.info("check-trivy", "Scanner check passed")


def tasks() -> List[Task]:
    return [
        Task("check-trivy", _scanner_found, description="Check if Trivy is installed", gates=(scanner_gate(),)),
        Task(
            "scan",
            scan_action("scan"),
            depends_on=("check-trivy", "log-setup"),
            description="Scan Docker images for vulnerabilities (SCAN_MODE / SCAN_ASYNC aware)",
        ),
        Task(
            "scan-sync",
            scan_action("scan-sync", "sync"),
            depends_on=("check-trivy", "log-setup"),
            description="Synchronous security scan (fails on HIGH/CRITICAL findings)",
        ),
        Task(
            "scan-async",
            scan_action("scan-async", "async"),
            depends_on=("check-trivy", "log-setup"),
            description="Concurrent advisory security scan with SARIF reports",
        ),
        Task(
            "nightly-scan",
            nightly_scan,
            depends_on=("check-trivy", "log-setup"),
            description="Run comprehensive nightly security scan",
        ),
    ]
