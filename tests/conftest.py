# tests/conftest.py
"""
Fixtures compartilhados para testes do deployflow.

Este módulo define fixtures reutilizáveis que fornecem:
- snapshots de configuração determinísticos (sem git, sem os.environ)
- um RunLogger isolado (stream em memória, log em tmp_path)
- um runner de comandos falso que registra chamadas sem executar processos
- um Argo CD falso servido por `httpx.MockTransport`

Decisões arquiteturais:
    - Nenhuma fixture executa ferramentas externas reais (mvn, docker,
      helm, trivy, kubectl) nem acessa a rede
    - Fakes usam duck typing em vez de herança
    - Imports do core são realizados de forma lazy para melhorar a
      clareza de erros durante falhas de import

Invariantes:
    - Todo filesystem usado vive sob `tmp_path`
    - Fixtures são seguras para execução em paralelo
"""

import io
import json
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import pytest


# =====================================================
# Configuração
# =====================================================

@pytest.fixture
def make_settings(tmp_path):
    """
    Fábrica de `Settings` sobre os defaults embarcados.

    Overrides são passados como pares CHAVE=VALOR (mesma semântica da
    linha de comando). A revisão do git é fixada em `abc1234` e o ambiente
    do processo é vazio, garantindo determinismo.

    Returns:
        Callable[..., Settings]
    """
    from deployflow.core.config import load_settings

    def _make(root=None, **overrides):
        return load_settings(
            overrides={k: str(v) for k, v in overrides.items()},
            environ={},
            root=str(root or tmp_path),
            revision_probe=lambda: "abc1234",
        )

    return _make


@pytest.fixture
def settings(make_settings):
    """Snapshot padrão: staging, scan síncrono, tag `abc1234`."""
    return make_settings()


# =====================================================
# Logger
# =====================================================

@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def logger(tmp_path, log_stream):
    """RunLogger com arquivo em `tmp_path/logs/deploy.log` e stream em memória."""
    from deployflow.core.log import RunLogger

    run_logger = RunLogger(run_id="run-test-001", log_file=tmp_path / "logs" / "deploy.log", stream=log_stream)
    yield run_logger
    run_logger.close()


# =====================================================
# Runner falso
# =====================================================

@dataclass(frozen=True)
class FakeCall:
    args: Tuple[str, ...]
    step_id: str
    cwd: Optional[str] = None
    input_text: Optional[str] = None
    timeout: Optional[float] = None


class FakeRunner:
    """
    Substituto duck-typed do `CommandRunner`.

    `handler(args) -> int | (int, str)` decide o exit code (padrão 0).
    Com `check=True` e exit code diferente de zero levanta `CommandFailed`,
    como o runner real.
    """

    def __init__(self, handler: Optional[Callable] = None):
        self.handler = handler
        self.calls: List[FakeCall] = []
        self._lock = threading.Lock()

    def run(self, args, *, step_id, cwd=None, input_text=None, timeout=None, check=True, quiet=False):
        from deployflow.core.exceptions import CommandFailed
        from deployflow.core.process import CommandResult, TIMEOUT_RETURNCODE

        argv = tuple(str(a) for a in args)
        with self._lock:
            self.calls.append(FakeCall(argv, step_id, str(cwd) if cwd else None, input_text, timeout))

        returncode, output = 0, ""
        if self.handler is not None:
            outcome = self.handler(argv)
            if isinstance(outcome, tuple):
                returncode, output = outcome
            elif outcome is not None:
                returncode = int(outcome)

        result = CommandResult(argv, returncode, output, timed_out=returncode == TIMEOUT_RETURNCODE)
        if check and not result.ok:
            raise CommandFailed(
                message=f"Command exited with {returncode}: {result.command}",
                details={"command": result.command, "returncode": returncode},
            )
        return result

    def commands(self, tool: Optional[str] = None) -> List[Tuple[str, ...]]:
        with self._lock:
            return [c.args for c in self.calls if tool is None or c.args[0] == tool]


@pytest.fixture
def fake_runner():
    """Runner que aceita todo comando com exit code 0."""
    return FakeRunner()


@pytest.fixture
def make_runner():
    """Fábrica de FakeRunner com `handler` customizado."""
    return FakeRunner


@pytest.fixture
def make_ctx(logger, fake_runner):
    """Fábrica de RunContext; runner padrão é o `fake_runner`."""
    from deployflow.core.pipeline.context import RunContext

    def _make(settings, runner=None):
        return RunContext(run_id="run-test-001", settings=settings, logger=logger, runner=runner or fake_runner)

    return _make


# =====================================================
# Argo CD falso
# =====================================================

class FakeArgoCD:
    """
    API mínima de Applications do Argo CD em memória.

    - `apps`: nome -> corpo da Application
    - `fail_on`: {(método, nome)} que respondem 500
    - `requests`: (método, caminho) de cada requisição recebida
    """

    server = "https://argocd.test"

    def __init__(self, *, logged_in: bool = True):
        self.apps: Dict[str, dict] = {}
        self.fail_on = set()
        self.requests: List[Tuple[str, str]] = []
        self.logged_in = logged_in

    def handle(self, request):
        import httpx

        path = request.url.path
        method = request.method
        self.requests.append((method, path))

        if path == "/api/v1/session/userinfo":
            if not self.logged_in:
                return httpx.Response(401, json={"error": "unauthorized"})
            return httpx.Response(200, json={"loggedIn": True, "username": "admin"})

        prefix = "/api/v1/applications"
        name = path[len(prefix) + 1:] if path.startswith(prefix + "/") else None

        if (method, name) in self.fail_on:
            return httpx.Response(500, json={"message": f"internal error for {name}"})

        if method == "GET" and name is None:
            selector = request.url.params.get("selector")
            items = list(self.apps.values())
            if selector:
                key, _, value = selector.partition("=")
                items = [a for a in items if a["metadata"].get("labels", {}).get(key) == value]
            return httpx.Response(200, json={"items": items or None})

        if method == "GET":
            if name not in self.apps:
                return httpx.Response(404, json={"message": "not found"})
            return httpx.Response(200, json=self.apps[name])

        if method == "POST" and name is None:
            body = json.loads(request.content)
            app_name = body["metadata"]["name"]
            if ("POST", app_name) in self.fail_on:
                return httpx.Response(500, json={"message": f"internal error for {app_name}"})
            if app_name in self.apps:
                return httpx.Response(409, json={"message": "already exists"})
            self.apps[app_name] = body
            return httpx.Response(200, json=body)

        if method == "DELETE":
            if name not in self.apps:
                return httpx.Response(404, json={"message": "not found"})
            del self.apps[name]
            return httpx.Response(200, json={})

        return httpx.Response(405)

    def count(self, method: str) -> int:
        return sum(1 for m, p in self.requests if m == method and p.startswith("/api/v1/applications"))

    def client(self, token: str = "secret-token"):
        import httpx
        from deployflow.reconcile.client import ArgoCDClient

        return ArgoCDClient(server=self.server, token=token, transport=httpx.MockTransport(self.handle))

    def factory(self, settings):
        token = settings.credential(str(settings.get("argocd.token_variable", "ARGOCD_AUTH_TOKEN")))
        return self.client(token=token)


@pytest.fixture
def argocd():
    """Argo CD falso, autenticado e sem Applications."""
    return FakeArgoCD()


@pytest.fixture
def make_argocd():
    """Fábrica de FakeArgoCD (ex.: `make_argocd(logged_in=False)`)."""
    return FakeArgoCD


# =====================================================
# Repositório implantado (charts)
# =====================================================

@pytest.fixture
def make_charts(tmp_path):
    """Cria os diretórios de chart informados sob `tmp_path`."""

    def _make(*names, root=None):
        base = root or tmp_path
        for name in names:
            (base / "helm-charts" / "charts" / name).mkdir(parents=True, exist_ok=True)
        return base

    return _make
