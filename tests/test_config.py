import pytest

from chroma_explorer.config import ConnectionConfig


def test_base_url_defaults():
    assert ConnectionConfig().base_url == "http://localhost:8000/api/v2"
    assert ConnectionConfig(host="db.example.com", port=443, ssl=True).base_url == "https://db.example.com:443/api/v2"


def test_base_url_keeps_explicit_scheme():
    assert ConnectionConfig(host="https://proxy.example.com/").base_url == "https://proxy.example.com/api/v2"


def test_base_url_bare_host_starting_with_http():
    assert ConnectionConfig(host="httpbin.internal").base_url == "http://httpbin.internal:8000/api/v2"


def test_from_url():
    cfg = ConnectionConfig.from_url("https://chroma.example.com", tenant="acme")
    assert (cfg.host, cfg.port, cfg.ssl, cfg.tenant) == ("chroma.example.com", 443, True, "acme")

    cfg = ConnectionConfig.from_url("localhost")
    assert (cfg.host, cfg.port, cfg.ssl) == ("localhost", 8000, False)

    cfg = ConnectionConfig.from_url("http://10.0.0.5:9000")
    assert cfg.port == 9000


@pytest.mark.parametrize("url", ["", "ftp://example.com", "http://"])
def test_from_url_rejects(url):
    with pytest.raises(ValueError):
        ConnectionConfig.from_url(url)


def test_from_env(monkeypatch):
    monkeypatch.setenv("CHROMA_HOST", "chroma.internal")
    monkeypatch.setenv("CHROMA_PORT", "8100")
    monkeypatch.setenv("CHROMA_SSL", "true")
    monkeypatch.setenv("CHROMA_TENANT", "acme")
    monkeypatch.setenv("CHROMA_API_KEY", "k")
    monkeypatch.delenv("CHROMA_DATABASE", raising=False)
    cfg = ConnectionConfig.from_env()
    assert cfg.host == "chroma.internal"
    assert cfg.port == 8100
    assert cfg.ssl is True
    assert cfg.tenant == "acme"
    assert cfg.database == "default_database"
    assert cfg.api_key == "k"


def test_with_overrides_ignores_none():
    cfg = ConnectionConfig(tenant="a").with_overrides(tenant=None, database="db")
    assert cfg.tenant == "a"
    assert cfg.database == "db"
