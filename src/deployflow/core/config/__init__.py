# src/deployflow/core/config/__init__.py
"""
Camada de configuração do deployflow (Environment Resolver).

Este pacote resolve, uma única vez por invocação, o snapshot imutável de
configuração consumido por todas as tasks.

Responsabilidades do pacote:
    - Carregamento de defaults embarcados e overrides locais (YAML/JSON)
    - Leitura de `.env` e de overrides `CHAVE=VALOR` da linha de comando
    - Resolução via deep-merge determinístico com coerção de texto
    - Hash canônico das opções para rastreabilidade no log

Invariantes:
    - O snapshot final (`Settings`) nunca é mutado
    - A mesma entrada sempre produz o mesmo snapshot
    - Conflitos estruturais são tratados como erro
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidOptionError,
    InvalidOverrideError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash
from .loader import ALIASES, load_settings, parse_overrides
from .merge import deep_merge
from .settings import ServiceRecord, Settings

__all__ = [
    "ALIASES",
    "ConfigError",
    "ConfigTypeConflictError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "InvalidOptionError",
    "InvalidOverrideError",
    "ServiceRecord",
    "Settings",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "deep_merge",
    "load_settings",
    "parse_overrides",
]
