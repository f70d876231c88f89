# src/deployflow/core/config/settings.py
"""
Snapshot imutável de configuração de uma invocação.

O `Settings` é produzido uma única vez por invocação pelo loader e passado
por referência a todos os componentes (executor, gates, scans,
reconciliação). Nenhum componente lê configuração de estado global.

Decisões arquiteturais:
    - Opções são congeladas recursivamente (MappingProxyType + tuplas)
    - Credenciais vivem em `environ`, separadas das opções, e não entram
      no hash de configuração
    - O inventário de serviços é fixo e tipado (`ServiceRecord`)

Invariantes:
    - Uma vez construído, o snapshot nunca é mutado
    - `env` ∈ {staging, prod}; `scan.mode` ∈ {sync, async}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import InvalidOptionError
from .hashing import compute_config_hash

ENVIRONMENTS = ("staging", "prod")
SCAN_MODES = ("sync", "async")


def freeze(value: Any) -> Any:
    """Congela recursivamente dicts e listas (MappingProxyType / tuple)."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class ServiceRecord:
    """
    Unidade implantável do inventário fixo.

    Campos:
        - name: nome lógico do serviço (ex.: "user-service")
        - chart: caminho do chart Helm (fonte da Application)
        - context: contexto de build da imagem
        - namespace: namespace alvo no cluster
    """

    name: str
    chart: str
    context: str
    namespace: str


def _services_from(raw: Any, default_namespace: str) -> Tuple[ServiceRecord, ...]:
    if not isinstance(raw, (list, tuple)) or not raw:
        raise InvalidOptionError("services deve ser uma lista não vazia")

    records: List[ServiceRecord] = []
    seen = set()
    for entry in raw:
        if not isinstance(entry, Mapping) or not entry.get("name"):
            raise InvalidOptionError(f"Entrada de serviço inválida: {entry!r}")
        name = str(entry["name"])
        if name in seen:
            raise InvalidOptionError(f"Serviço duplicado: {name}")
        seen.add(name)
        records.append(
            ServiceRecord(
                name=name,
                chart=str(entry.get("chart") or f"helm-charts/charts/{name}"),
                context=str(entry.get("context") or f"services/{name}"),
                namespace=str(entry.get("namespace") or default_namespace),
            )
        )
    return tuple(records)


@dataclass(frozen=True)
class Settings:
    """
    Configuração efetiva e imutável de uma invocação.

    Campos canônicos:
        - options: opções resolvidas (defaults + overrides), congeladas
        - environ: ambiente de credenciais (processo + `.env` + CLI), congelado
        - services: inventário fixo de `ServiceRecord`
        - root: diretório raiz do repositório implantado
    """

    options: Mapping[str, Any]
    environ: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    services: Tuple[ServiceRecord, ...] = ()
    root: Path = Path(".")

    @classmethod
    def from_options(
        cls,
        options: Dict[str, Any],
        *,
        environ: Optional[Mapping[str, str]] = None,
        root: Optional[Path] = None,
    ) -> "Settings":
        env = options.get("env")
        if env not in ENVIRONMENTS:
            raise InvalidOptionError(
                f"env inválido: {env!r} (permitidos: {', '.join(ENVIRONMENTS)})"
            )
        mode = (options.get("scan") or {}).get("mode")
        if mode not in SCAN_MODES:
            raise InvalidOptionError(
                f"scan.mode inválido: {mode!r} (permitidos: {', '.join(SCAN_MODES)})"
            )

        services = _services_from(options.get("services"), str(env))
        return cls(
            options=freeze(options),
            environ=MappingProxyType(dict(environ or {})),
            services=services,
            root=Path(root) if root is not None else Path("."),
        )

    # -----------------------------
    # Acesso genérico
    # -----------------------------
    def get(self, dotted: str, default: Any = None) -> Any:
        node: Any = self.options
        for part in dotted.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def credential(self, name: str) -> str:
        return (self.environ.get(name) or "").strip()

    def path(self, relative: str) -> Path:
        return self.root / relative

    @property
    def config_hash(self) -> str:
        return compute_config_hash(self.options)

    # -----------------------------
    # Opções tipadas
    # -----------------------------
    @property
    def env(self) -> str:
        return self.options["env"]

    @property
    def tag(self) -> str:
        return self.options["tag"]

    @property
    def latest_tag(self) -> str:
        return self.options["latest_tag"]

    @property
    def confirm(self) -> bool:
        return bool(self.options["confirm"])

    @property
    def image_registry(self) -> str:
        return self.options["image_registry"]

    @property
    def scan_enabled(self) -> bool:
        return bool(self.get("scan.enabled", True))

    @property
    def scan_mode(self) -> str:
        return self.get("scan.mode", "sync")

    @property
    def log_dir(self) -> Path:
        return self.path(self.get("logging.dir", "logs"))

    @property
    def log_file(self) -> Path:
        return self.log_dir / self.get("logging.file", "deploy.log")

    @property
    def report_dir(self) -> Path:
        return self.path(self.get("scan.report_dir", "logs"))

    def image_for(self, service: str, tag: Optional[str] = None) -> str:
        return f"{self.image_registry}/{service}:{tag or self.tag}"
