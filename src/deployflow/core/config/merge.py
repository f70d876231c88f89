# src/deployflow/core/config/merge.py
"""
Deep-merge canônico de configuração com coerção de overrides textuais.

Política de merge (v1):
    - dict → merge recursivo por chave
    - list → sobrescrita total (sem merge elemento a elemento)
    - escalar → sobrescrita direta
    - string sobre tipo não-string → coerção para o tipo da base
      (overrides vindos de `.env` e da linha de comando são sempre texto)
    - conflito de tipos não coercível → erro estrutural explícito

Princípios fundamentais:
    - O merge é determinístico e puramente funcional
    - Nenhum input é mutado durante o processo
    - A coerção é restrita e documentada (bool, int, float, list)

Limites explícitos:
    - Não carrega arquivos de configuração
    - Não valida domínio das opções (ver `settings.py`)
"""

from copy import deepcopy
from typing import Any, Dict, List

from .errors import ConfigTypeConflictError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def coerce_text(key: str, raw: str, target: Any) -> Any:
    """
    Converte um valor textual para o tipo de `target`.

    Regras:
        - bool  → "true/false", "1/0", "yes/no", "on/off" (case-insensitive)
        - int   → int(raw)
        - float → float(raw)
        - list  → itens separados por vírgula, sem vazios
        - str / None → valor textual sem alteração

    Raises:
        ConfigTypeConflictError: Se a conversão não for possível.
    """
    text = raw.strip()

    # bool antes de int: bool é subclasse de int
    if isinstance(target, bool):
        lowered = text.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ConfigTypeConflictError(
            f"Valor inválido para '{key}': esperado booleano, recebido {raw!r}"
        )

    if isinstance(target, int):
        try:
            return int(text)
        except ValueError:
            raise ConfigTypeConflictError(
                f"Valor inválido para '{key}': esperado inteiro, recebido {raw!r}"
            ) from None

    if isinstance(target, float):
        try:
            return float(text)
        except ValueError:
            raise ConfigTypeConflictError(
                f"Valor inválido para '{key}': esperado número, recebido {raw!r}"
            ) from None

    if isinstance(target, list):
        items: List[str] = [part.strip() for part in text.split(",")]
        return [item for item in items if item]

    if isinstance(target, dict):
        raise ConfigTypeConflictError(
            f"Conflito de tipo na chave '{key}': dict vs str"
        )

    return raw


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Realiza um deep-merge determinístico entre dois dicionários de configuração.

    Esta função combina uma configuração base com um conjunto de overrides
    explícitos, produzindo uma nova estrutura resultante sem mutar
    nenhum dos inputs.

    Decisões arquiteturais:
        - O merge é puramente funcional (inputs não são mutados)
        - Overrides textuais são coeridos para o tipo já presente na base
        - Conflitos estruturais são tratados como falha fatal

    Args:
        base (Dict[str, Any]): Configuração base (ex.: defaults).
        override (Dict[str, Any]): Overrides explícitos da configuração.

    Returns:
        Dict[str, Any]: Nova configuração resultante do deep-merge.

    Raises:
        ConfigTypeConflictError: Se ocorrer conflito de tipo entre base e override.
    """

    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        if key not in result or result[key] is None:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        # dict -> merge recursivo
        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value)
            continue

        # texto (.env / CLI) -> coerção para o tipo da base
        if isinstance(override_value, str) and not isinstance(base_value, str):
            result[key] = coerce_text(key, override_value, base_value)
            continue

        # list -> sobrescrita total (somente sobre list)
        if isinstance(override_value, list) and isinstance(base_value, list):
            result[key] = deepcopy(override_value)
            continue

        # int -> float é alargamento seguro
        if isinstance(base_value, float) and type(override_value) is int:
            result[key] = float(override_value)
            continue

        if type(base_value) is not type(override_value):
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{key}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        result[key] = deepcopy(override_value)

    return result
