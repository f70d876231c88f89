# tests/test_catalog.py
"""
Testes do catálogo de tasks.

Os testes asseguram que:
- todas as tasks públicas estão declaradas e o grafo é válido
- o `help` é derivado das descrições declaradas (uma linha por task)
- as pipelines agregadoras resolvem para a ordem esperada
"""

import pytest

try:
    from deployflow.catalog import OPTIONS, build_registry, render_help
    from deployflow.core.engine import Executor, plan_execution
except Exception as e:  # noqa: BLE001
    build_registry = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing src/deployflow/catalog.py (build_registry, render_help). Import error: {_IMPORT_ERR}")


PUBLIC_TASKS = [
    "help",
    "log-setup",
    "clean",
    "clean-logs",
    "clean-scans",
    "clean-maven",
    "compile",
    "test",
    "package",
    "lint",
    "login-ghcr",
    "build",
    "check-trivy",
    "scan",
    "scan-sync",
    "scan-async",
    "nightly-scan",
    "dry-run",
    "check-cluster",
    "deploy",
    "deploy-staging",
    "deploy-prod",
    "verify-cluster",
    "bootstrap-apps",
    "delete-apps",
    "reset",
    "verify",
    "ci",
    "ci-fast",
    "ci-nightly",
    "dev",
    "dev-test",
    "dev-build",
]


def test_every_public_task_is_declared():
    _require_imports()
    registry = build_registry()
    missing = [name for name in PUBLIC_TASKS if name not in registry]
    assert missing == []


def test_every_task_has_a_description():
    _require_imports()
    assert all(description for _, description in build_registry().describe())


def test_help_lists_every_task_once():
    _require_imports()
    registry = build_registry()
    text = render_help(registry)
    lines = text.splitlines()

    assert lines[0] == "Available commands:"
    for name, description in registry.describe():
        matching = [line for line in lines if line.split()[:1] == [name] and description in line]
        assert len(matching) == 1, name
    for name, _, _ in OPTIONS:
        assert f"  {name}=" in text


def test_ci_pipeline_order():
    """
    A pipeline `ci` respeita os pré-requisitos e a ordem de declaração:
    login antes do build, scan antes do deploy de staging.
    """
    _require_imports()
    order = [t.name for t in plan_execution(build_registry(), "ci")]

    assert order[0] == "log-setup"
    assert order[-1] == "ci"
    assert order.index("login-ghcr") < order.index("build")
    assert order.index("check-trivy") < order.index("scan") < order.index("deploy-staging")
    assert order.index("check-cluster") < order.index("deploy-staging")
    assert len(order) == len(set(order))


def test_ci_fast_has_no_scan():
    _require_imports()
    order = [t.name for t in plan_execution(build_registry(), "ci-fast")]
    assert "scan" not in order
    assert "clean" in order


def test_ci_nightly_uses_comprehensive_scan():
    _require_imports()
    order = [t.name for t in plan_execution(build_registry(), "ci-nightly")]
    assert "nightly-scan" in order
    assert "deploy-staging" not in order


def test_deploy_prod_checks_confirmation_first():
    _require_imports()
    order = [t.name for t in plan_execution(build_registry(), "deploy-prod")]
    assert order[0] == "confirm-prod"


def test_help_task_writes_through_the_logger(make_ctx, settings, logger, capsys):
    _require_imports()
    registry = build_registry()
    result = Executor(registry=registry, ctx=make_ctx(settings)).execute("help")

    assert result.ok
    assert result.tasks["help"].payload["help"] == render_help(registry)
    messages = [e["message"] for e in logger.events_for("help")]
    assert "Available commands:" in messages
    assert capsys.readouterr().out == ""
