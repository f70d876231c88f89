# src/deployflow/core/config/errors.py
"""
Exceções canônicas da camada de configuração do deployflow.

Este módulo define a hierarquia oficial de exceções utilizadas durante
o carregamento, o merge de overrides e a validação das opções que compõem
o snapshot de configuração de uma invocação.

Princípios fundamentais:
    - Exceções são tipadas e semânticas
    - Erros estruturais são tratados como falhas fatais
    - Mensagens de erro são claras e direcionadas ao operador

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção representa falha de task ou de processo externo

Limites explícitos:
    - Não executa tasks
    - Não realiza fallback ou recovery
"""


class ConfigError(Exception):
    """
    Exceção base para erros relacionados à configuração do deployflow.

    Permite ao CLI distinguir erros de configuração (exit code 2) de falhas
    de execução do pipeline (exit code 1).
    """


class DefaultsNotFoundError(ConfigError):
    """
    Exceção levantada quando o arquivo de defaults não é encontrado.

    Decisões arquiteturais:
        - O arquivo de defaults é obrigatório
        - Não existe snapshot válido sem defaults
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Exceção levantada quando o formato do arquivo de configuração
    não é suportado pelo loader.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """
    Exceção levantada quando o conteúdo raiz da configuração
    não é um dicionário (`dict`).
    """


class ConfigTypeConflictError(ConfigError):
    """
    Exceção levantada quando ocorre conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"scan": {"enabled": true}}
        - override: {"scan": {"enabled": "talvez"}}

    Decisões arquiteturais:
        - O deep-merge é estritamente tipado por chave
        - Strings vindas de `.env`/CLI são coeridas para o tipo do default;
          coerção impossível é conflito
        - Nenhum merge parcial é produzido em caso de conflito
    """


class InvalidOverrideError(ConfigError):
    """
    Exceção levantada quando um override explícito não segue `CHAVE=VALOR`.
    """


class InvalidOptionError(ConfigError):
    """
    Exceção levantada quando uma opção resolvida está fora do domínio
    permitido (ex.: `env` diferente de staging/prod, `scan.mode` diferente
    de sync/async).
    """
