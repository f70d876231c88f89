"""
Orquestrador de scans de vulnerabilidade (Trivy) por serviço.

Modos:
    - sync: um serviço por vez, na ordem declarada; o primeiro serviço sem
      sucesso interrompe os restantes (bloqueante)
    - async: todos os serviços disparados em um pool de threads de largura
      igual ao número de serviços; espera todos terminarem (join); um
      relatório com timestamp por serviço; consultivo
    - comprehensive (nightly): severidades ampliadas, tag `latest_tag`,
      relatório isolado sempre; sequencial ou concorrente conforme o modo
      configurado; consultivo

Com o scan desabilitado todos os serviços viram SKIPPED e o scanner não é
invocado (nem exigido no PATH).

Classificação do exit code do scanner (`--exit-code 1`):
    0 → passed, 1 → failed (achados no limiar), outro → errored.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

from deployflow.checks.probes import tool_available
from deployflow.core.config.settings import ServiceRecord, Settings
from deployflow.core.exceptions import ScanReportWriteFailed, ScanToolUnavailable
from deployflow.core.log import RunLogger
from deployflow.core.process import CommandRunner

from .models import ScanOutcome, ScanResult, ScanSummary

SYNC_PREFIX = "trivy-scan"
NIGHTLY_PREFIX = "nightly-scan"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


class ScanOrchestrator:
    """Executa um scan por serviço do inventário e agrega os resultados."""

    def __init__(
        self,
        *,
        settings: Settings,
        runner: CommandRunner,
        logger: RunLogger,
        step_id: str = "scan",
        clock: Callable[[], datetime] = datetime.now,
        which: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.logger = logger
        self.step_id = step_id
        self.clock = clock
        self.which = which
        self._reserved: Set[Path] = set()
        self._lock = threading.Lock()

    # -----------------------------
    # Configuração efetiva
    # -----------------------------
    @property
    def tool(self) -> str:
        return str(self.settings.get("scan.tool", "trivy"))

    @property
    def services(self) -> Tuple[ServiceRecord, ...]:
        return self.settings.services

    def _severities(self, key: str) -> Tuple[str, ...]:
        return tuple(str(s).upper() for s in self.settings.get(key, ()) or ())

    # -----------------------------
    # API pública
    # -----------------------------
    def run(self, mode: Optional[str] = None) -> ScanSummary:
        """Scan no modo configurado (ou `mode`, quando forçado)."""
        mode = mode or self.settings.scan_mode
        if mode == "async":
            return self.scan_async()
        return self.scan_sync()

    def scan_sync(self) -> ScanSummary:
        severities = self._severities("scan.severity")
        if not self.settings.scan_enabled:
            return self._skipped("sync", severities)
        self.ensure_tool()

        self.logger.info(self.step_id, "Running synchronous scans (this may take several minutes)...")
        results: List[ScanResult] = []
        for service in self.services:
            result = self._scan_one(service, severities=severities, tag=self.settings.tag, report_prefix=None)
            results.append(result)
            if result.outcome != ScanOutcome.PASSED:
                remaining = tuple(s.name for s in self.services[len(results):])
                self.logger.error(
                    self.step_id,
                    f"Scan of {service.name} {result.outcome.value}; aborting remaining scans",
                    not_scanned=list(remaining),
                )
                return ScanSummary(
                    mode="sync",
                    results=tuple(results),
                    advisory=False,
                    severities=severities,
                    aborted=True,
                    not_scanned=remaining,
                )

        self.logger.info(self.step_id, "All security scans completed successfully!")
        return ScanSummary(mode="sync", results=tuple(results), advisory=False, severities=severities)

    def scan_async(self) -> ScanSummary:
        severities = self._severities("scan.severity")
        if not self.settings.scan_enabled:
            return self._skipped("async", severities)
        self.ensure_tool()

        self.logger.info(self.step_id, f"Starting async security scans at {self.clock():%Y-%m-%d %H:%M:%S}")
        results = self._fan_out(severities=severities, tag=self.settings.tag, report_prefix=SYNC_PREFIX)
        summary = ScanSummary(mode="async", results=tuple(results), advisory=True, severities=severities)
        self._log_advisory(summary)
        return summary

    def scan_comprehensive(self) -> ScanSummary:
        severities = self._severities("scan.comprehensive_severity")
        if not self.settings.scan_enabled:
            return self._skipped("comprehensive", severities)
        self.ensure_tool()

        self.logger.info(self.step_id, "Starting nightly comprehensive security scan...")
        tag = self.settings.latest_tag
        if self.settings.scan_mode == "async":
            results = self._fan_out(severities=severities, tag=tag, report_prefix=NIGHTLY_PREFIX)
        else:
            results = [
                self._scan_one(s, severities=severities, tag=tag, report_prefix=NIGHTLY_PREFIX)
                for s in self.services
            ]
        summary = ScanSummary(mode="comprehensive", results=tuple(results), advisory=True, severities=severities)
        self._log_advisory(summary)
        return summary

    def ensure_tool(self) -> None:
        check = tool_available(self.tool, which=self.which)
        if not check.ok:
            raise ScanToolUnavailable(
                message=check.message,
                details={"tool": self.tool},
                hint="Install with: brew install trivy or sudo apt-get install trivy",
            )

    # -----------------------------
    # Internos
    # -----------------------------
    def _skipped(self, mode: str, severities: Tuple[str, ...]) -> ScanSummary:
        self.logger.warning(self.step_id, "Security scans disabled (SCAN_ENABLED=false)")
        results = tuple(
            ScanResult(
                service=s.name,
                image=self.settings.image_for(s.name),
                outcome=ScanOutcome.SKIPPED,
                severities=severities,
                message="scan disabled",
            )
            for s in self.services
        )
        return ScanSummary(mode=mode, results=results, advisory=True, severities=severities)

    def _fan_out(self, *, severities: Tuple[str, ...], tag: str, report_prefix: str) -> List[ScanResult]:
        services = list(self.services)
        if not services:
            return []
        with ThreadPoolExecutor(max_workers=len(services), thread_name_prefix="scan") as pool:
            futures = [
                pool.submit(self._scan_one, s, severities=severities, tag=tag, report_prefix=report_prefix)
                for s in services
            ]
            results: List[ScanResult] = []
            for service, future in zip(services, futures):
                try:
                    results.append(future.result())
                except Exception as e:
                    self.logger.error(self.step_id, f"Scan of {service.name} crashed: {e}")
                    results.append(
                        ScanResult(
                            service=service.name,
                            image=self.settings.image_for(service.name, tag),
                            outcome=ScanOutcome.ERRORED,
                            severities=severities,
                            message=f"{e.__class__.__name__}: {e}",
                        )
                    )
        return results

    def _log_advisory(self, summary: ScanSummary) -> None:
        for result in summary.failed + summary.errored:
            where = f" (report: {result.report_path})" if result.report_path else ""
            self.logger.warning(
                self.step_id,
                f"Advisory scan {result.outcome.value} for {result.service}{where}",
            )
        counts = summary.counts()
        self.logger.info(
            self.step_id,
            "Scans completed: {passed} passed, {failed} failed, {errored} errored. Reports saved in {dir}/".format(
                dir=self.settings.report_dir, **counts
            ),
        )

    def reserve_report_path(self, service: str, prefix: str) -> Path:
        """Nome único `<prefix>-<serviço>-<timestamp>.<fmt>`; nunca sobrescreve."""
        fmt = str(self.settings.get("scan.report_format", "sarif"))
        report_dir = self.settings.report_dir
        stem = f"{prefix}-{service}-{self.clock().strftime(TIMESTAMP_FORMAT)}"
        with self._lock:
            candidate = report_dir / f"{stem}.{fmt}"
            n = 1
            while candidate in self._reserved or candidate.exists():
                candidate = report_dir / f"{stem}-{n}.{fmt}"
                n += 1
            self._reserved.add(candidate)
        return candidate

    def _command(self, image: str, severities: Sequence[str], report: Optional[Path]) -> List[str]:
        args = [self.tool, "image", "--exit-code", "1", "--severity", ",".join(severities)]
        if report is not None:
            args += ["--format", str(self.settings.get("scan.report_format", "sarif")), "-o", str(report)]
        args.append(image)
        return args

    def _scan_one(
        self,
        service: ServiceRecord,
        *,
        severities: Tuple[str, ...],
        tag: str,
        report_prefix: Optional[str],
    ) -> ScanResult:
        image = self.settings.image_for(service.name, tag)
        report: Optional[Path] = None
        if report_prefix is not None:
            report = self.reserve_report_path(service.name, report_prefix)
            try:
                report.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                return self._report_failed(service.name, image, severities, report, None, str(e))

        self.logger.info(self.step_id, f"Scanning {image}...")
        completed = self.runner.run(
            self._command(image, severities, report),
            step_id=self.step_id,
            check=False,
        )

        if completed.returncode == 0:
            outcome = ScanOutcome.PASSED
        elif completed.returncode == 1:
            outcome = ScanOutcome.FAILED
        else:
            self.logger.error(self.step_id, f"Scanner exited with {completed.returncode} for {service.name}")
            return ScanResult(
                service=service.name,
                image=image,
                outcome=ScanOutcome.ERRORED,
                severities=severities,
                report_path=report if report is not None and report.exists() else None,
                returncode=completed.returncode,
                message=f"scanner exited with {completed.returncode}",
            )

        if report is not None and not report.exists():
            return self._report_failed(
                service.name, image, severities, report, completed.returncode, "report file was not written"
            )

        self.logger.info(self.step_id, f"Scan completed for {service.name}: {outcome.value}")
        return ScanResult(
            service=service.name,
            image=image,
            outcome=outcome,
            severities=severities,
            report_path=report,
            returncode=completed.returncode,
        )

    def _report_failed(
        self,
        service: str,
        image: str,
        severities: Tuple[str, ...],
        report: Path,
        returncode: Optional[int],
        reason: str,
    ) -> ScanResult:
        error = ScanReportWriteFailed(
            message=f"Scan report for {service} could not be written: {reason}",
            details={"service": service, "report": str(report)},
        )
        self.logger.error(self.step_id, error.message, error_type=error.code)
        return ScanResult(
            service=service,
            image=image,
            outcome=ScanOutcome.ERRORED,
            severities=severities,
            returncode=returncode,
            message=error.message,
        )


def clean_scan_reports(
    report_dir: Path,
    *,
    prefixes: Iterable[str] = (SYNC_PREFIX, NIGHTLY_PREFIX),
    extension: str = "sarif",
) -> List[Path]:
    """Remove os relatórios de scan do diretório; retorna os caminhos removidos."""
    directory = Path(report_dir)
    removed: List[Path] = []
    if not directory.is_dir():
        return removed
    for prefix in prefixes:
        for path in sorted(directory.glob(f"{prefix}-*.{extension}")):
            path.unlink()
            removed.append(path)
    return removed
