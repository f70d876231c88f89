# src/deployflow/core/config/hashing.py
"""
Hashing canônico do snapshot de configuração.

O hash representa a identidade estrutural das opções resolvidas de uma
invocação e é registrado no log no início de cada execução, permitindo
correlacionar duas execuções que rodaram com exatamente a mesma
configuração.

Decisões arquiteturais:
    - Serialização JSON canônica (chaves ordenadas, separadores compactos)
    - SHA-256 sobre UTF-8
    - Credenciais nunca participam do hash (apenas as opções)
"""

import hashlib
import json
from typing import Any, Dict, Mapping


def _plain(value: Any) -> Any:
    # MappingProxyType/tuple do snapshot -> dict/list serializáveis
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def compute_config_hash(config: Mapping[str, Any]) -> str:
    """
    Gera um hash SHA-256 determinístico das opções resolvidas.

    Args:
        config: Opções resolvidas (dict ou snapshot imutável).

    Returns:
        str: Hash hexadecimal de 64 caracteres.

    Raises:
        TypeError: Se o objeto fornecido não for um mapeamento.
    """
    if not isinstance(config, Mapping):
        raise TypeError(
            f"Config para hashing deve ser mapping, recebido: {type(config).__name__}"
        )

    plain: Dict[str, Any] = _plain(config)
    canonical_json = json.dumps(
        plain,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )

    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
