# tests/core/test_process.py
"""
Testes do CommandRunner (execução de ferramentas externas).

Os processos são simulados via `subprocess.run` substituído, de modo que
nenhum binário real é executado.
"""

import subprocess
from types import SimpleNamespace

import pytest

try:
    from deployflow.core.exceptions import CommandFailed
    from deployflow.core.process import NOT_FOUND_RETURNCODE, TIMEOUT_RETURNCODE, CommandRunner
except Exception as e:  # noqa: BLE001
    CommandRunner = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing src/deployflow/core/process.py (CommandRunner). Import error: {_IMPORT_ERR}")


def _fake_run(returncode=0, stdout="", raises=None):
    calls = []

    def run(args, **kwargs):
        calls.append((args, kwargs))
        if raises is not None:
            raise raises
        return SimpleNamespace(returncode=returncode, stdout=stdout)

    return run, calls


def test_output_is_forwarded_to_logger(monkeypatch, logger, tmp_path):
    _require_imports()
    run, calls = _fake_run(stdout="line one\n\nline two\n")
    monkeypatch.setattr(subprocess, "run", run)

    result = CommandRunner(logger, cwd=tmp_path).run(["helm", "lint", "chart"], step_id="lint")

    assert result.ok
    assert result.command == "helm lint chart"
    assert calls[0][1]["cwd"] == str(tmp_path)
    messages = [e["message"] for e in logger.events_for("lint")]
    assert "line one" in messages
    assert "line two" in messages
    assert "" not in messages


def test_nonzero_exit_raises_command_failed(monkeypatch, logger):
    _require_imports()
    run, _ = _fake_run(returncode=2, stdout="boom")
    monkeypatch.setattr(subprocess, "run", run)

    with pytest.raises(CommandFailed) as ei:
        CommandRunner(logger).run(["mvn", "test"], step_id="test")
    assert ei.value.details["returncode"] == 2
    assert ei.value.details["command"] == "mvn test"


def test_check_false_returns_result(monkeypatch, logger):
    _require_imports()
    run, _ = _fake_run(returncode=1)
    monkeypatch.setattr(subprocess, "run", run)

    result = CommandRunner(logger).run(["trivy", "image", "x"], step_id="scan", check=False)
    assert result.returncode == 1
    assert not result.ok


def test_missing_binary_maps_to_127(monkeypatch, logger):
    _require_imports()
    run, _ = _fake_run(raises=FileNotFoundError("kubectl"))
    monkeypatch.setattr(subprocess, "run", run)

    result = CommandRunner(logger).run(["kubectl", "cluster-info"], step_id="check-cluster", check=False)
    assert result.returncode == NOT_FOUND_RETURNCODE
    assert "command not found" in result.output


def test_timeout_maps_to_124(monkeypatch, logger):
    _require_imports()
    run, calls = _fake_run(raises=subprocess.TimeoutExpired(["kubectl"], 5))
    monkeypatch.setattr(subprocess, "run", run)

    result = CommandRunner(logger).run(
        ["kubectl", "cluster-info"], step_id="check-cluster", timeout=5, check=False
    )
    assert result.returncode == TIMEOUT_RETURNCODE
    assert result.timed_out is True
    assert calls[0][1]["timeout"] == 5


def test_secret_goes_through_stdin(monkeypatch, logger):
    _require_imports()
    run, calls = _fake_run()
    monkeypatch.setattr(subprocess, "run", run)

    CommandRunner(logger).run(
        ["docker", "login", "ghcr.io", "-u", "octocat", "--password-stdin"],
        step_id="login-ghcr",
        input_text="ghp_secret",
    )
    args, kwargs = calls[0]
    assert kwargs["input"] == "ghp_secret"
    assert "ghp_secret" not in args
    assert all("ghp_secret" not in e["message"] for e in logger.events)


def test_undecodable_output_is_replaced(monkeypatch, logger):
    """Saída que não é UTF-8 válido não derruba o runner, mesmo com check=False."""
    _require_imports()
    calls = []

    def run(args, **kwargs):
        calls.append(kwargs)
        stdout = b"ok\xff\n".decode(kwargs["encoding"], kwargs["errors"])
        return SimpleNamespace(returncode=1, stdout=stdout)

    monkeypatch.setattr(subprocess, "run", run)

    result = CommandRunner(logger).run(["kubectl", "logs", "pod"], step_id="verify-cluster", check=False)

    assert result.returncode == 1
    assert result.output == "ok�\n"
    assert calls[0]["errors"] == "replace"
