# src/deployflow/core/config/loader.py
"""
Loader canônico de configuração do deployflow.

Este módulo resolve o snapshot de configuração (`Settings`) de uma
invocação a partir de camadas explícitas, em ordem crescente de
precedência:

    1. defaults embarcados (`defaults.yaml`, obrigatório)
    2. arquivo local de overrides YAML/JSON (opcional, `--config`)
    3. variáveis de ambiente do processo com nome conhecido (ENV, TAG, ...)
    4. arquivo `.env` (opcional)
    5. overrides explícitos da invocação (`CHAVE=VALOR` na linha de comando)

Responsabilidades do módulo:
    - Carregar arquivos de configuração em YAML ou JSON
    - Ler `.env` (python-dotenv) sem mutar `os.environ`
    - Traduzir nomes de variáveis (`SCAN_ASYNC`, `CONFIRM`, ...) em opções
    - Resolver a tag de imagem padrão (revisão curta do git)
    - Produzir um `Settings` imutável e validado

Princípios fundamentais:
    - Configuração é declarativa e explícita
    - A mesma entrada sempre produz o mesmo snapshot
    - Erros estruturais são tratados como falhas fatais

Limites explícitos:
    - Não executa tasks
    - Não valida existência de credenciais (responsabilidade dos gates)
"""

from __future__ import annotations

import json
import os
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

import yaml  # PyYAML
from dotenv import dotenv_values

from .errors import (
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidOverrideError,
    UnsupportedConfigFormatError,
)
from .merge import coerce_text, deep_merge
from .settings import Settings

DEFAULTS_PATH = Path(__file__).with_name("defaults.yaml")


def _async_flag(raw: str) -> str:
    return "async" if coerce_text("SCAN_ASYNC", raw, False) else "sync"


def _negate(raw: str) -> str:
    return "false" if coerce_text("SKIP_SCAN", raw, False) else "true"


# Nome de variável -> (caminho da opção, transformação opcional do texto)
ALIASES: Dict[str, Tuple[str, Optional[Callable[[str], str]]]] = {
    "ENV": ("env", None),
    "TAG": ("tag", None),
    "LATEST_TAG": ("latest_tag", None),
    "CONFIRM": ("confirm", None),
    "IMAGE_REGISTRY": ("image_registry", None),
    "SCAN_ENABLED": ("scan.enabled", None),
    "SKIP_SCAN": ("scan.enabled", _negate),
    "SCAN_MODE": ("scan.mode", None),
    "SCAN_ASYNC": ("scan.mode", _async_flag),
    "NAMESPACE": ("cluster.namespace", None),
    "LOG_DIR": ("logging.dir", None),
    "LOG_LEVEL": ("logging.level", None),
    "ARGOCD_SERVER": ("argocd.server", None),
    "ARGOCD_NAMESPACE": ("argocd.namespace", None),
    "REPO_URL": ("project.repo_url", None),
    "TARGET_REVISION": ("project.target_revision", None),
}


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Carrega um arquivo de configuração e valida sua estrutura básica.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)

    Raises:
        DefaultsNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise DefaultsNotFoundError(f"Arquivo de configuração não encontrado: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def _nest(dotted: str, value: Any) -> Dict[str, Any]:
    parts = dotted.split(".")
    node: Dict[str, Any] = {parts[-1]: value}
    for part in reversed(parts[:-1]):
        node = {part: node}
    return node


def split_assignments(
    pairs: Mapping[str, Optional[str]],
    *,
    known_roots: Iterable[str],
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Separa atribuições `CHAVE=VALOR` em opções e variáveis de ambiente.

    Regras:
        - nomes em `ALIASES` viram opções (com transformação quando houver)
        - caminhos pontilhados ou raízes conhecidas (`scan.mode`, `env`)
          viram opções; `-` é normalizado para `_`
        - qualquer outro nome (ex.: `CR_PAT`) vai para o ambiente de
          credenciais
        - todo par também fica disponível no ambiente de credenciais

    Returns:
        Tuple[options, environ]: overrides aninhados e variáveis textuais.
    """
    roots = set(known_roots)
    options: Dict[str, Any] = {}
    environ: Dict[str, str] = {}

    for key, raw in pairs.items():
        if raw is None:
            continue
        environ[key] = raw

        if key in ALIASES:
            path, transform = ALIASES[key]
            value = transform(raw) if transform else raw
        else:
            path = key.replace("-", "_")
            if "." not in path and path not in roots:
                continue
            value = raw

        options = deep_merge(options, _nest(path, value))

    return options, environ


def parse_overrides(tokens: Iterable[str]) -> Dict[str, str]:
    """
    Converte tokens `CHAVE=VALOR` da linha de comando em um mapeamento.

    Raises:
        InvalidOverrideError: Se algum token não contiver `=` ou tiver chave vazia.
    """
    out: Dict[str, str] = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep or not key.strip():
            raise InvalidOverrideError(f"Override inválido (esperado CHAVE=VALOR): {token!r}")
        out[key.strip()] = value
    return out


def git_short_revision(root: Optional[Path] = None) -> Optional[str]:
    """Retorna a revisão curta (7 caracteres) de HEAD ou None fora de um repo git."""
    try:
        completed = subprocess.run(
            ["git", "rev-parse", "--short=7", "HEAD"],
            cwd=str(root) if root is not None else None,
            check=False,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    if completed.returncode != 0:
        return None
    return completed.stdout.strip() or None


def load_settings(
    *,
    defaults_path: Optional[str] = None,
    config_path: Optional[str] = None,
    env_file: Optional[str] = None,
    overrides: Optional[Mapping[str, str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    root: Optional[str] = None,
    revision_probe: Optional[Callable[[], Optional[str]]] = None,
) -> Settings:
    """
    Carrega e resolve o snapshot de configuração da invocação.

    Política de resolução:
        - defaults são obrigatórios
        - `config_path` e `env_file` são opcionais; ausentes são ignorados
        - `environ` (padrão: `os.environ`) contribui apenas com nomes conhecidos
        - `overrides` (linha de comando) sempre vencem
        - `tag` vazia é resolvida para a revisão curta do git, ou `latest`

    Args:
        defaults_path: Caminho dos defaults (padrão: `defaults.yaml` embarcado).
        config_path: Arquivo YAML/JSON de overrides locais.
        env_file: Arquivo `.env` de overrides/credenciais.
        overrides: Pares `CHAVE=VALOR` explícitos da invocação.
        environ: Ambiente do processo (injetável em testes).
        root: Raiz do repositório implantado (padrão: diretório atual).
        revision_probe: Função que retorna a revisão curta do git.

    Returns:
        Settings: Snapshot imutável e validado.

    Raises:
        DefaultsNotFoundError, UnsupportedConfigFormatError,
        InvalidConfigRootTypeError, ConfigTypeConflictError,
        InvalidOverrideError, InvalidOptionError.
    """
    base_root = Path(root) if root is not None else Path.cwd()
    process_env = dict(os.environ if environ is None else environ)

    effective = _load_file(Path(defaults_path) if defaults_path else DEFAULTS_PATH)
    roots = list(effective.keys())

    if config_path is not None:
        local_file = Path(config_path)
        if local_file.exists():
            effective = deep_merge(effective, _load_file(local_file))

    known_env = {k: v for k, v in process_env.items() if k in ALIASES}
    env_options, _ = split_assignments(known_env, known_roots=())
    effective = deep_merge(effective, env_options)

    credentials: Dict[str, str] = dict(process_env)

    if env_file is not None and Path(env_file).is_file():
        file_options, file_environ = split_assignments(
            dotenv_values(env_file), known_roots=roots
        )
        effective = deep_merge(effective, file_options)
        credentials.update(file_environ)

    if overrides:
        cli_options, cli_environ = split_assignments(overrides, known_roots=roots)
        effective = deep_merge(effective, cli_options)
        credentials.update(cli_environ)

    if not str(effective.get("tag") or "").strip():
        probe = revision_probe or (lambda: git_short_revision(base_root))
        effective["tag"] = probe() or str(effective.get("latest_tag") or "latest")

    return Settings.from_options(effective, environ=credentials, root=base_root)
