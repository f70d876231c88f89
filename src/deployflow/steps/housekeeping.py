"""
Tasks de preparação e limpeza.

    - log-setup: cria o diretório e o arquivo de log
    - clean-logs: remove o diretório de logs (única forma de truncar o log)
    - clean-scans: remove relatórios de scan
    - clean-maven: `mvn clean` por serviço
    - clean: agregadora das três limpezas
"""

from __future__ import annotations

from typing import Any, Dict, List

from deployflow.core.log import clean_logs
from deployflow.core.pipeline.context import RunContext
from deployflow.core.pipeline.task import Task
from deployflow.scan.orchestrator import clean_scan_reports


def log_setup(ctx: RunContext) -> Dict[str, Any]:
    log_file = ctx.settings.log_file
    log_file.parent.mkdir(parents=True, exist_ok=True)
    log_file.touch(exist_ok=True)
    ctx.logger.open_file()
    ctx.logger.info("log-setup", f"Logging to {log_file}...")
    return {"log_file": str(log_file), "config_hash": ctx.settings.config_hash}


def remove_logs(ctx: RunContext) -> Dict[str, Any]:
    removed = clean_logs(ctx.settings.log_dir, ctx.logger)
    ctx.logger.info("clean-logs", "Cleaned logs directory." if removed else "Logs directory already absent.")
    return {"removed": removed}


def remove_scan_reports(ctx: RunContext) -> Dict[str, Any]:
    ctx.logger.info("clean-scans", "Cleaning scan reports...")
    extension = str(ctx.settings.get("scan.report_format", "sarif"))
    removed = clean_scan_reports(ctx.settings.report_dir, extension=extension)
    ctx.logger.info("clean-scans", f"Removed {len(removed)} scan report(s)")
    return {"removed": [str(p) for p in removed]}


def maven_clean(ctx: RunContext) -> None:
    ctx.logger.info("clean-maven", "Cleaning Maven target directories...")
    for service in ctx.settings.services:
        ctx.logger.info("clean-maven", f"Cleaning {service.name}...")
        ctx.runner.run(["mvn", "clean"], step_id="clean-maven", cwd=ctx.settings.path(service.context))


def tasks() -> List[Task]:
    return [
        Task("log-setup", log_setup, description="Prepare logging directory and file"),
        Task("clean-logs", remove_logs, description="Remove all generated logs"),
        Task("clean-scans", remove_scan_reports, description="Clean scan reports"),
        Task("clean-maven", maven_clean, description="Clean Maven target directories"),
        Task(
            "clean",
            depends_on=("clean-logs", "clean-maven", "clean-scans"),
            description="Clean all generated files",
        ),
    ]
