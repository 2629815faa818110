from matchplay import server

SSL_VARS = ("SSL_CERT_FILE", "SSL_KEY_FILE", "SSL_CA_FILE", "SSL_KEY_PASSWORD")


def _clear_ssl_env(monkeypatch):
    for key in SSL_VARS:
        monkeypatch.delenv(key, raising=False)


def test_ssl_disabled_without_files(monkeypatch):
    _clear_ssl_env(monkeypatch)
    assert server._ssl_kwargs() == {}


def test_partial_ssl_config_is_ignored(monkeypatch):
    _clear_ssl_env(monkeypatch)
    monkeypatch.setenv("SSL_CERT_FILE", "/certs/server.pem")
    assert server._ssl_kwargs() == {}


def test_ssl_kwargs_include_ca_bundle(monkeypatch):
    _clear_ssl_env(monkeypatch)
    monkeypatch.setenv("SSL_CERT_FILE", "/certs/server.pem")
    monkeypatch.setenv("SSL_KEY_FILE", "/certs/server.key")
    monkeypatch.setenv("SSL_CA_FILE", "/certs/ca.pem")
    monkeypatch.setenv("SSL_KEY_PASSWORD", "hunter2")

    assert server._ssl_kwargs() == {
        "ssl_certfile": "/certs/server.pem",
        "ssl_keyfile": "/certs/server.key",
        "ssl_ca_certs": "/certs/ca.pem",
        "ssl_keyfile_password": "hunter2",
    }


def test_port_from_env_skips_bad_values(monkeypatch):
    monkeypatch.setenv("APP_PORT", "eighty")
    monkeypatch.setenv("PORT", "9100")
    assert server._port_from_env() == 9100
