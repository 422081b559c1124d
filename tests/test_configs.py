import httpx
import pytest

from hls_proxy.configs import Settings, TransportConfig
from hls_proxy.const import DEFAULT_USER_AGENT


def test_defaults(monkeypatch):
    for name in ("DEBUG", "LOG_LEVEL", "CACHE_TTL", "MAX_RECURSION", "USER_AGENTS_JSON", "PROXY_PATH_PREFIX"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.cache_ttl == 86400
    assert settings.preflight_max_age == 86400
    assert settings.max_recursion == 5
    assert settings.proxy_path_prefix == "/proxy"
    assert settings.user_agents == [DEFAULT_USER_AGENT]
    assert settings.effective_log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("CACHE_TTL", "120")
    monkeypatch.setenv("MAX_RECURSION", "2")
    monkeypatch.setenv("USER_AGENTS_JSON", '["ua-1", "ua-2"]')
    settings = Settings(_env_file=None)
    assert settings.effective_log_level == "DEBUG"
    assert settings.cache_ttl == 120
    assert settings.max_recursion == 2
    assert settings.user_agents == ["ua-1", "ua-2"]


@pytest.mark.parametrize("value", ["not json", "[]", '{"ua": "x"}', "[1, 2]", '"just a string"'])
def test_invalid_user_agents_fall_back_to_default(value):
    assert Settings(_env_file=None, user_agents_json=value).user_agents == [DEFAULT_USER_AGENT]


def test_transport_mounts():
    assert TransportConfig(_env_file=None).get_mounts() == {}
    mounts = TransportConfig(_env_file=None, proxy_url="http://proxy:8080", all_proxy=True).get_mounts()
    assert list(mounts) == ["all://"]
    assert isinstance(mounts["all://"], httpx.AsyncHTTPTransport)
