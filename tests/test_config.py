# tests/test_config.py
from importlib import reload
import genrelay.core.config as cfg_mod


def test_defaults_present(monkeypatch):
    # Tests that default generation settings are present and valid
    # when no environment variables are set.
    for name in ("DEFAULT_TEMPERATURE", "DEFAULT_MAX_TOKENS", "UPSTREAM_TIMEOUT_SECONDS", "AUTH_HEADER"):
        monkeypatch.delenv(name, raising=False)
    reload(cfg_mod)
    assert cfg_mod.DEFAULT_TEMPERATURE == 0.7
    assert cfg_mod.DEFAULT_MAX_TOKENS == 2000
    assert cfg_mod.UPSTREAM_TIMEOUT_SECONDS == 60
    assert cfg_mod.AUTH_HEADER == "X-User-Id"


def test_env_overrides(monkeypatch):
    # Tests that environment variables override defaults and lists are split.
    monkeypatch.setenv("DEFAULT_MAX_TOKENS", "512")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    reload(cfg_mod)
    assert cfg_mod.DEFAULT_MAX_TOKENS == 512
    assert cfg_mod.LOG_LEVEL == "DEBUG"
    assert cfg_mod.CORS_ORIGINS == ["http://a.test", "http://b.test"]
    monkeypatch.undo()
    reload(cfg_mod)
