# tests/core/test_log.py
"""
Testes do RunLogger (sink de log de uma invocação).

Os testes asseguram que:
- cada linha contém timestamp, nível e task
- o arquivo de log é append-only entre execuções
- eventos estruturados carregam `run_id` e `step_id`
- avisos são acumulados por task
- `clean_logs` remove o diretório e mantém o logger utilizável
"""

import io
import logging
import re

import pytest

try:
    from deployflow.core.log import RunLogger, clean_logs
except Exception as e:  # noqa: BLE001
    RunLogger = None
    clean_logs = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing src/deployflow/core/log.py (RunLogger, clean_logs). Import error: {_IMPORT_ERR}")


LINE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] (INFO|WARNING|ERROR|DEBUG) \[([\w-]+)\] (.*)$")


def test_line_format_on_stream_and_file(tmp_path):
    _require_imports()
    stream = io.StringIO()
    log_file = tmp_path / "logs" / "deploy.log"
    logger = RunLogger(run_id="r1", log_file=log_file, stream=stream)
    logger.info("build", "Building user-service")
    logger.close()

    stream_line = stream.getvalue().strip()
    file_line = log_file.read_text(encoding="utf-8").strip()
    assert stream_line == file_line
    m = LINE.match(file_line)
    assert m is not None
    assert m.group(1) == "INFO"
    assert m.group(2) == "build"
    assert m.group(3) == "Building user-service"


def test_log_file_is_append_only_across_runs(tmp_path):
    _require_imports()
    log_file = tmp_path / "logs" / "deploy.log"
    for run_id in ("first", "second"):
        logger = RunLogger(run_id=run_id, log_file=log_file, stream=io.StringIO())
        logger.info("log-setup", f"run {run_id}")
        logger.close()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("run first")
    assert lines[1].endswith("run second")


def test_run_loggers_are_isolated_and_not_registered(tmp_path):
    """Loggers simultâneos não compartilham handlers nem ficam no registro global."""
    _require_imports()
    first_stream, second_stream = io.StringIO(), io.StringIO()
    first = RunLogger(run_id="same-run", stream=first_stream)
    second = RunLogger(run_id="same-run", stream=second_stream)
    first.info("build", "from first")
    second.info("build", "from second")
    first.close()
    second.close()

    assert "from second" not in first_stream.getvalue()
    assert "from first" not in second_stream.getvalue()
    assert "deployflow.run.same-run" not in logging.Logger.manager.loggerDict


def test_structured_events_and_warnings(logger):
    _require_imports()
    logger.info("scan", "Scanning", service="user-service")
    logger.warning("scan", "Advisory scan failed for user-service")

    events = logger.events_for("scan")
    assert [e["level"] for e in events] == ["info", "warning"]
    assert events[0]["run_id"] == "run-test-001"
    assert events[0]["service"] == "user-service"
    assert logger.warnings == {"scan": ["Advisory scan failed for user-service"]}


def test_level_filters_console_but_keeps_events(tmp_path):
    """Eventos em memória são registrados mesmo abaixo do nível do console."""
    _require_imports()
    stream = io.StringIO()
    logger = RunLogger(run_id="r-level", level="WARNING", stream=stream)
    logger.info("lint", "hidden")
    logger.error("lint", "shown")
    logger.close()

    assert "hidden" not in stream.getvalue()
    assert "shown" in stream.getvalue()
    assert len(logger.events) == 2


def test_clean_logs_removes_directory_and_reopens_file(tmp_path):
    _require_imports()
    log_dir = tmp_path / "logs"
    logger = RunLogger(run_id="r-clean", log_file=log_dir / "deploy.log", stream=io.StringIO())
    logger.info("clean-logs", "before")
    (log_dir / "trivy-scan-a.sarif").write_text("{}", encoding="utf-8")

    assert clean_logs(log_dir, logger) is True
    logger.info("clean-logs", "after")
    logger.close()

    content = (log_dir / "deploy.log").read_text(encoding="utf-8")
    assert "before" not in content
    assert "after" in content
    assert not (log_dir / "trivy-scan-a.sarif").exists()


def test_clean_logs_on_missing_directory(tmp_path):
    _require_imports()
    assert clean_logs(tmp_path / "absent") is False
