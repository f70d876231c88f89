"""
Interface de linha de comando do deployflow.

    deployflow <comando> [CHAVE=VALOR ...] [--env-file F] [--config F] [--set k=v]

Cada comando corresponde a uma task do catálogo. Exit codes:
    0 → sucesso
    1 → falha de task (task nomeada no stderr, com remediação)
    2 → erro de uso ou de configuração
"""

from __future__ import annotations

import argparse
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence, TextIO

from deployflow.catalog import build_registry, render_help
from deployflow.core.config import ConfigError, load_settings, parse_overrides
from deployflow.core.engine import Executor
from deployflow.core.exceptions import CyclicDependency, TaskNotFound
from deployflow.core.log import RunLogger
from deployflow.core.pipeline.context import RunContext
from deployflow.core.process import CommandRunner
from deployflow.steps.reconcile import ClientFactory

EXIT_OK = 0
EXIT_TASK_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deployflow",
        description="Deployment pipeline orchestrator (build, scan, GitOps deploy, Argo CD reconciliation).",
    )
    parser.add_argument("command", nargs="?", default="help", help="Task to run (see `deployflow help`)")
    parser.add_argument("assignments", nargs="*", metavar="KEY=VALUE", help="Per-invocation overrides")
    parser.add_argument("--env-file", default=".env", help="Key/value override file (default: .env)")
    parser.add_argument("--config", default=None, help="YAML/JSON file merged over the built-in defaults")
    parser.add_argument(
        "--set",
        dest="sets",
        action="append",
        default=[],
        metavar="dotted.key=value",
        help="Override any option by dotted path (repeatable)",
    )
    parser.add_argument("--root", default=".", help="Repository root (default: current directory)")
    return parser


def _run_id() -> str:
    return f"{datetime.now():%Y%m%dT%H%M%S}-{uuid.uuid4().hex[:6]}"


def _fail(stderr: TextIO, message: str, hint: Optional[str] = None) -> None:
    print(f"✖ {message}", file=stderr)
    if hint:
        print(f"  hint: {hint}", file=stderr)


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    client_factory: Optional[ClientFactory] = None,
    runner_factory: Optional[Callable[[RunLogger, Path], CommandRunner]] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> int:
    out = stdout if stdout is not None else sys.stdout
    err = stderr if stderr is not None else sys.stderr
    args = build_parser().parse_intermixed_args(list(argv) if argv is not None else None)

    registry = build_registry(client_factory=client_factory)
    if args.command == "help":
        print(render_help(registry), file=out)
        return EXIT_OK
    if args.command not in registry:
        _fail(err, f"Unknown command: {args.command}", "run `deployflow help` to list the available commands")
        return EXIT_USAGE

    try:
        overrides = parse_overrides(list(args.assignments) + list(args.sets))
        settings = load_settings(
            config_path=args.config,
            env_file=str(Path(args.root) / args.env_file),
            overrides=overrides,
            environ=environ,
            root=args.root,
        )
    except ConfigError as e:
        _fail(err, f"Configuration error: {e}")
        return EXIT_USAGE

    run_id = _run_id()
    logger = RunLogger(
        run_id=run_id,
        log_file=settings.log_file,
        level=str(settings.get("logging.level", "INFO")),
        stream=out,
    )
    runner = runner_factory(logger, settings.root) if runner_factory else CommandRunner(logger, cwd=settings.root)
    ctx = RunContext(run_id=run_id, settings=settings, logger=logger, runner=runner)

    try:
        logger.debug("deployflow", f"config_hash={settings.config_hash} env={settings.env} tag={settings.tag}")
        try:
            result = Executor(registry=registry, ctx=ctx).execute(args.command)
        except (TaskNotFound, CyclicDependency) as e:
            _fail(err, e.message, e.hint)
            return EXIT_USAGE

        if result.ok:
            logger.info(args.command, f"{args.command} completed successfully!")
            return EXIT_OK

        error = result.error
        message = error.message if error else "unknown error"
        _fail(err, f"Task '{result.failed_task}' failed: {message}", error.hint if error else None)
        return EXIT_TASK_FAILED
    finally:
        logger.close()
