# tests/steps/test_scan_tasks.py
"""
Testes das tasks de scan no nível do pipeline.

Verifica a política de falha por modo:
    - sync: achados acima do limiar falham a task
    - async / nightly: consultivos; a task conclui com sucesso
    - desabilitado: sucesso sem exigir o scanner no PATH
"""

import shutil

import pytest

try:
    from deployflow.catalog import build_registry
    from deployflow.core.engine import Executor
    from deployflow.scan.models import ScanSummary
except Exception as e:  # noqa: BLE001
    build_registry = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing scan tasks (src/deployflow/steps/scan.py). Import error: {_IMPORT_ERR}")


@pytest.fixture
def trivy_installed(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: f"/usr/bin/{name}")


def _findings_in(service):
    def handle(argv):
        if argv[0] != "trivy":
            return 0
        if "-o" in argv:
            report = argv[argv.index("-o") + 1]
            with open(report, "w", encoding="utf-8") as f:
                f.write("{}")
        return 1 if f"/{service}:" in argv[-1] else 0

    return handle


def _execute(ctx, target):
    return Executor(registry=build_registry(), ctx=ctx).execute(target)


def test_sync_scan_fails_the_task(trivy_installed, make_ctx, settings, make_runner):
    _require_imports()
    ctx = make_ctx(settings, make_runner(_findings_in("user-service")))
    result = _execute(ctx, "scan")

    assert result.failed_task == "scan"
    assert result.error.type == "SCAN_THRESHOLD_EXCEEDED"
    assert result.error.details["failing_services"] == ["user-service"]
    summary = ctx.get_artifact("scan.summary")
    assert isinstance(summary, ScanSummary)
    assert summary.not_scanned == ("product-service",)


def test_async_scan_is_advisory(trivy_installed, make_settings, make_ctx, make_runner, tmp_path):
    _require_imports()
    ctx = make_ctx(make_settings(SCAN_MODE="async"), make_runner(_findings_in("user-service")))
    result = _execute(ctx, "scan")

    assert result.ok
    payload = result.tasks["scan"].payload
    assert payload["advisory"] is True
    assert payload["counts"]["failed"] == 1
    assert payload["counts"]["passed"] == 2
    assert len(list((tmp_path / "logs").glob("trivy-scan-*.sarif"))) == 3


def test_scan_async_task_forces_async_mode(trivy_installed, make_ctx, settings, make_runner):
    _require_imports()
    runner = make_runner(_findings_in("api-gateway"))
    result = _execute(make_ctx(settings, runner), "scan-async")

    assert result.ok
    assert result.tasks["scan-async"].payload["mode"] == "async"
    assert len(runner.commands("trivy")) == 3


def test_scan_sync_task_forces_sync_mode(trivy_installed, make_settings, make_ctx, make_runner):
    _require_imports()
    ctx = make_ctx(make_settings(SCAN_MODE="async"), make_runner(_findings_in("api-gateway")))
    result = _execute(ctx, "scan-sync")

    assert result.failed_task == "scan-sync"
    assert result.error.type == "SCAN_THRESHOLD_EXCEEDED"


def test_nightly_scan_is_advisory(trivy_installed, make_ctx, settings, make_runner):
    _require_imports()
    runner = make_runner(_findings_in("product-service"))
    result = _execute(make_ctx(settings, runner), "nightly-scan")

    assert result.ok
    assert result.tasks["nightly-scan"].payload["mode"] == "comprehensive"
    assert all(argv[-1].endswith(":latest") for argv in runner.commands("trivy"))


def test_missing_scanner_fails_check(monkeypatch, make_ctx, settings, fake_runner):
    _require_imports()
    monkeypatch.setattr(shutil, "which", lambda name: None)
    result = _execute(make_ctx(settings), "scan")

    assert result.failed_task == "check-trivy"
    assert result.error.type == "PRECONDITION_FAILED"
    assert "trivy" in result.error.hint
    assert fake_runner.calls == []


def test_skip_scan_needs_no_scanner(monkeypatch, make_settings, make_ctx, fake_runner):
    _require_imports()
    monkeypatch.setattr(shutil, "which", lambda name: None)
    result = _execute(make_ctx(make_settings(SKIP_SCAN="true")), "scan")

    assert result.ok
    assert result.tasks["scan"].payload["counts"]["skipped"] == 3
    assert fake_runner.calls == []
