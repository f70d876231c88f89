# src/deployflow/core/process.py
"""
Execução de processos externos (mvn, docker, helm, trivy, kubectl).

As ferramentas externas são tratadas como passos opacos de passa/falha:
o `CommandRunner` executa o comando, encaminha a saída (stdout + stderr)
para o `RunLogger` linha a linha e converte exit code diferente de zero em
`CommandFailed` (quando `check=True`). Nada é engolido silenciosamente.

Decisões arquiteturais:
    - Sem shell: argumentos sempre em lista
    - Timeout é o único mecanismo de espera limitada; estouro vira
      returncode 124 (`timed_out=True`)
    - Binário ausente vira returncode 127, como em um shell
    - Segredos são passados por stdin (`input_text`), nunca na linha de comando
"""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .exceptions import CommandFailed
from .log import RunLogger

TIMEOUT_RETURNCODE = 124
NOT_FOUND_RETURNCODE = 127


@dataclass(frozen=True)
class CommandResult:
    """Resultado imutável de um processo externo."""

    args: Tuple[str, ...]
    returncode: int
    output: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return shlex.join(self.args)


class CommandRunner:
    """Executa comandos externos registrando a saída no RunLogger."""

    def __init__(self, logger: RunLogger, *, cwd: Optional[Path] = None) -> None:
        self.logger = logger
        self.cwd = Path(cwd) if cwd is not None else None

    def run(
        self,
        args: Sequence[str],
        *,
        step_id: str,
        cwd: Optional[Path] = None,
        input_text: Optional[str] = None,
        timeout: Optional[float] = None,
        check: bool = True,
        quiet: bool = False,
    ) -> CommandResult:
        argv = tuple(str(a) for a in args)
        workdir = Path(cwd) if cwd is not None else self.cwd
        self.logger.debug(step_id, f"$ {shlex.join(argv)}", cwd=str(workdir) if workdir else None)

        try:
            completed = subprocess.run(
                list(argv),
                cwd=str(workdir) if workdir is not None else None,
                input=input_text,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                check=False,
            )
            result = CommandResult(argv, completed.returncode, completed.stdout or "")
        except FileNotFoundError:
            result = CommandResult(argv, NOT_FOUND_RETURNCODE, f"{argv[0]}: command not found")
        except subprocess.TimeoutExpired as exc:
            partial = exc.output if isinstance(exc.output, str) else ""
            result = CommandResult(argv, TIMEOUT_RETURNCODE, partial or "", timed_out=True)

        if not quiet:
            for line in result.output.splitlines():
                if line.strip():
                    self.logger.info(step_id, line)

        if check and not result.ok:
            raise CommandFailed(
                message=f"Command exited with {result.returncode}: {result.command}",
                details={
                    "command": result.command,
                    "returncode": result.returncode,
                    "timed_out": result.timed_out,
                    "cwd": str(workdir) if workdir else None,
                },
            )
        return result
