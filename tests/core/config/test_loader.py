# tests/core/config/test_loader.py
"""
Testes do loader canônico de configuração (Environment Resolver).

Este módulo valida a resolução do snapshot `Settings` a partir das
camadas explícitas de configuração, em ordem crescente de precedência:

    defaults < --config < ambiente do processo < .env < CHAVE=VALOR

Os testes asseguram que:
- defaults embarcados produzem um snapshot válido (staging, sync)
- cada camada sobrescreve a anterior
- aliases (`SCAN_ASYNC`, `SKIP_SCAN`, `CONFIRM`) são traduzidos
- a tag padrão é a revisão curta do git, ou `latest_tag` fora de um repo
- valores fora do domínio são rejeitados com erro de configuração
- nenhum input (nem `os.environ`) é mutado

Limites explícitos:
    - Não executa tasks
    - Não valida existência de credenciais (responsabilidade dos gates)
"""

import json
import os

import pytest

try:
    from deployflow.core.config import (
        ConfigError,
        DefaultsNotFoundError,
        InvalidConfigRootTypeError,
        InvalidOptionError,
        InvalidOverrideError,
        UnsupportedConfigFormatError,
        load_settings,
        parse_overrides,
    )
except Exception as e:  # noqa: BLE001
    load_settings = None
    parse_overrides = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """
    Garante que o loader de configuração e suas exceções tipadas estejam
    disponíveis para os testes, falhando de forma explícita caso contrário.
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing loader/errors modules. Implement:\n"
            "- src/deployflow/core/config/loader.py (load_settings, parse_overrides)\n"
            "- src/deployflow/core/config/errors.py (typed exceptions)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _load(tmp_path, **kwargs):
    kwargs.setdefault("environ", {})
    kwargs.setdefault("revision_probe", lambda: "abc1234")
    return load_settings(root=str(tmp_path), **kwargs)


def test_defaults_resolve_to_staging_sync(tmp_path):
    _require_imports()
    s = _load(tmp_path)
    assert s.env == "staging"
    assert s.scan_mode == "sync"
    assert s.scan_enabled is True
    assert s.confirm is False
    assert s.tag == "abc1234"
    assert [svc.name for svc in s.services] == ["api-gateway", "user-service", "product-service"]
    # namespace vazio segue o ambiente
    assert all(svc.namespace == "staging" for svc in s.services)


def test_tag_falls_back_to_latest_outside_git(tmp_path):
    _require_imports()
    s = _load(tmp_path, revision_probe=lambda: None)
    assert s.tag == "latest"


def test_explicit_tag_skips_revision_probe(tmp_path):
    _require_imports()

    def probe():
        raise AssertionError("revision probe must not run when TAG is set")

    s = _load(tmp_path, overrides={"TAG": "v1.2.3"}, revision_probe=probe)
    assert s.tag == "v1.2.3"
    assert s.image_for("user-service") == "ghcr.io/kehe0014/springboot-microservices-helm/user-service:v1.2.3"


def test_config_file_overrides_defaults(tmp_path):
    _require_imports()
    cfg = tmp_path / "deployflow.yaml"
    cfg.write_text("scan:\n  mode: async\nlogging:\n  level: DEBUG\n", encoding="utf-8")
    s = _load(tmp_path, config_path=str(cfg))
    assert s.scan_mode == "async"
    assert s.get("logging.level") == "DEBUG"
    # chaves não sobrescritas preservadas
    assert s.get("scan.tool") == "trivy"


def test_json_config_file_is_supported(tmp_path):
    _require_imports()
    cfg = tmp_path / "deployflow.json"
    cfg.write_text(json.dumps({"latest_tag": "nightly"}), encoding="utf-8")
    s = _load(tmp_path, config_path=str(cfg))
    assert s.latest_tag == "nightly"


def test_missing_config_file_is_ignored(tmp_path):
    _require_imports()
    s = _load(tmp_path, config_path=str(tmp_path / "absent.yaml"))
    assert s.env == "staging"


def test_unsupported_config_format_raises(tmp_path):
    _require_imports()
    cfg = tmp_path / "deployflow.toml"
    cfg.write_text("env = 'prod'\n", encoding="utf-8")
    with pytest.raises(UnsupportedConfigFormatError):
        _load(tmp_path, config_path=str(cfg))


def test_config_root_must_be_mapping(tmp_path):
    _require_imports()
    cfg = tmp_path / "deployflow.yaml"
    cfg.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(InvalidConfigRootTypeError):
        _load(tmp_path, config_path=str(cfg))


def test_config_file_list_over_section_is_config_error(tmp_path):
    """Uma lista no lugar de uma seção é rejeitada como erro de configuração."""
    _require_imports()
    cfg = tmp_path / "deployflow.yaml"
    cfg.write_text("scan: [x]\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        _load(tmp_path, config_path=str(cfg))


def test_missing_defaults_raise(tmp_path):
    _require_imports()
    with pytest.raises(DefaultsNotFoundError):
        _load(tmp_path, defaults_path=str(tmp_path / "nope.yaml"))


def test_process_environment_contributes_known_names_only(tmp_path):
    _require_imports()
    s = _load(tmp_path, environ={"ENV": "prod", "HOME": "/root", "CR_PAT": "token"})
    assert s.env == "prod"
    assert s.get("HOME") is None
    # credenciais continuam acessíveis, fora das opções
    assert s.credential("CR_PAT") == "token"


def test_env_file_overrides_process_environment(tmp_path):
    """
    O `.env` tem precedência sobre o ambiente do processo; a linha de
    comando vence ambos.
    """
    _require_imports()
    env_file = tmp_path / ".env"
    env_file.write_text("SCAN_MODE=async\nTAG=from-dotenv\nGITHUB_USER=octocat\n", encoding="utf-8")

    s = _load(
        tmp_path,
        env_file=str(env_file),
        environ={"SCAN_MODE": "sync", "TAG": "from-process"},
        overrides={"TAG": "from-cli"},
    )
    assert s.scan_mode == "async"
    assert s.tag == "from-cli"
    assert s.credential("GITHUB_USER") == "octocat"


def test_cli_overrides_win_over_config_file(tmp_path):
    _require_imports()
    cfg = tmp_path / "deployflow.yaml"
    cfg.write_text("env: prod\n", encoding="utf-8")
    s = _load(tmp_path, config_path=str(cfg), overrides={"ENV": "staging"})
    assert s.env == "staging"


@pytest.mark.parametrize(
    "overrides, expected_mode, expected_enabled",
    [
        ({"SCAN_ASYNC": "true"}, "async", True),
        ({"SCAN_ASYNC": "false"}, "sync", True),
        ({"SKIP_SCAN": "true"}, "sync", False),
        ({"SCAN_ENABLED": "false"}, "sync", False),
        ({"scan.mode": "async"}, "async", True),
    ],
)
def test_scan_aliases(tmp_path, overrides, expected_mode, expected_enabled):
    _require_imports()
    s = _load(tmp_path, overrides=overrides)
    assert s.scan_mode == expected_mode
    assert s.scan_enabled is expected_enabled


def test_confirm_is_coerced_to_bool(tmp_path):
    _require_imports()
    assert _load(tmp_path, overrides={"CONFIRM": "true"}).confirm is True
    assert _load(tmp_path, overrides={"CONFIRM": "no"}).confirm is False


def test_invalid_env_is_rejected(tmp_path):
    _require_imports()
    with pytest.raises(InvalidOptionError) as ei:
        _load(tmp_path, overrides={"ENV": "qa"})
    assert isinstance(ei.value, ConfigError)
    assert "qa" in str(ei.value)


def test_invalid_scan_mode_is_rejected(tmp_path):
    _require_imports()
    with pytest.raises(InvalidOptionError):
        _load(tmp_path, overrides={"SCAN_MODE": "parallel"})


def test_environ_is_not_mutated(tmp_path, monkeypatch):
    _require_imports()
    monkeypatch.delenv("GITHUB_USER", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("GITHUB_USER=octocat\n", encoding="utf-8")
    environ = {"ENV": "staging"}

    _load(tmp_path, env_file=str(env_file), environ=environ)

    assert environ == {"ENV": "staging"}
    assert "GITHUB_USER" not in os.environ


def test_settings_are_immutable(tmp_path):
    _require_imports()
    s = _load(tmp_path)
    with pytest.raises(TypeError):
        s.options["env"] = "prod"
    with pytest.raises(AttributeError):
        s.options["scan"]["severity"].append("LOW")


def test_parse_overrides():
    _require_imports()
    assert parse_overrides(["ENV=prod", "TAG=", "scan.mode=async"]) == {
        "ENV": "prod",
        "TAG": "",
        "scan.mode": "async",
    }


@pytest.mark.parametrize("token", ["ENV", "=prod"])
def test_parse_overrides_rejects_malformed_tokens(token):
    _require_imports()
    with pytest.raises(InvalidOverrideError):
        parse_overrides([token])
