from __future__ import annotations

from kubelens.config import ServerConfig, first_env, load_server_config


def test_defaults_without_env():
    cfg = load_server_config()
    assert cfg == ServerConfig()
    assert cfg.port == 8080
    assert cfg.log_level == "INFO"
    assert cfg.disabled_tools == ()


def test_first_env_picks_first_non_blank(monkeypatch):
    monkeypatch.setenv("A", "   ")
    monkeypatch.setenv("B", " value ")
    assert first_env("dflt", "A", "B") == "value"
    assert first_env("dflt", "MISSING") == "dflt"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("KUBECONFIG", "/tmp/kc")
    monkeypatch.setenv("KUBELENS_CONTEXT", "prod")
    monkeypatch.setenv("NAMESPACE", "fallback-ns")
    monkeypatch.setenv("DISABLED_TOOLS", "get_logs, decode_base64")
    monkeypatch.setenv("KUBELENS_PORT", "9090")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("KUBELENS_MAX_LOG_BYTES", "1000")

    cfg = load_server_config()
    assert cfg.kubeconfig == "/tmp/kc"
    assert cfg.context == "prod"
    assert cfg.namespace == "fallback-ns"
    assert cfg.disabled_tools == ("get_logs", "decode_base64")
    assert cfg.port == 9090
    assert cfg.log_level == "DEBUG"
    assert cfg.max_log_chars == 1000


def test_kubelens_namespace_wins_over_namespace(monkeypatch):
    monkeypatch.setenv("NAMESPACE", "b")
    monkeypatch.setenv("KUBELENS_NAMESPACE", "a")
    assert load_server_config().namespace == "a"


def test_invalid_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("KUBELENS_PORT", "not-a-port")
    monkeypatch.setenv("KUBELENS_MAX_LOG_BYTES", "-5")
    cfg = load_server_config()
    assert cfg.port == 8080
    assert cfg.max_log_chars == 0

    monkeypatch.setenv("KUBELENS_PORT", "70000")
    assert load_server_config().port == 8080
