import logging

from matchplay.settings import DEFAULT_DATABASE_URL, Settings, configure_logging, load_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("GOLF_API_KEY", raising=False)

    settings = load_settings()

    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.log_level == "INFO"
    assert settings.golf_api_key == ""


def test_file_paths_become_sqlite_urls(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", " data/scores.db ")
    assert load_settings().database_url == "sqlite:///data/scores.db"

    monkeypatch.setenv("DATABASE_URL", "postgresql://scorer@db/matchplay")
    assert load_settings().database_url == "postgresql://scorer@db/matchplay"


def test_log_level_is_upper_cased(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert load_settings().log_level == "DEBUG"


def test_unknown_log_level_falls_back_to_info(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging(Settings(database_url=DEFAULT_DATABASE_URL, log_level="CHATTY", golf_api_key=""))

    assert calls[0]["level"] == logging.INFO
