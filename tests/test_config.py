"""Tests for settings loading and DATABASE_URL resolution."""

import pytest
from pydantic import ValidationError

from midwatch.config import (
    HYPERLIQUID_API_URL,
    AppSettings,
    FetchSettings,
    sqlite_path_from_url,
)


@pytest.fixture(autouse=True)
def _clean_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    for name in (
        "DATABASE_URL", "PORT", "HOST", "LOG_LEVEL", "LOG_FORMAT",
        "FETCH_SYMBOLS", "FETCH_INTERVAL_SECONDS", "FETCH_REQUEST_TIMEOUT",
        "RETENTION_DAYS", "RETENTION_INTERVAL_SECONDS", "RETENTION_RUN_ON_START",
        "SHUTDOWN_HTTP_TIMEOUT", "SHUTDOWN_WORKER_TIMEOUT", "QUERY_WINDOW_HOURS",
    ):
        monkeypatch.delenv(name, raising=False)


class TestAppSettings:
    def test_defaults(self) -> None:
        settings = AppSettings(database_url="sqlite:///prices.db", _env_file=None)

        assert settings.port == 8080
        assert settings.host == "0.0.0.0"
        assert settings.log_format == "console"
        assert settings.fetch.symbols == ["BTC", "ETH", "SOL", "ARB", "AVAX"]
        assert settings.fetch.interval_seconds == 3600.0
        assert settings.fetch.request_timeout == 30.0
        assert settings.fetch.api_url == HYPERLIQUID_API_URL
        assert settings.retention.days == 2.0
        assert settings.retention.run_on_start is True
        assert settings.shutdown.http_timeout == 10
        assert settings.shutdown.worker_timeout == 30.0
        assert settings.query.window_hours == 24.0

    def test_database_url_required(self) -> None:
        with pytest.raises(ValidationError, match="database_url"):
            AppSettings(_env_file=None)

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "sqlite:////var/lib/midwatch/prices.db")
        monkeypatch.setenv("PORT", "9090")
        monkeypatch.setenv("FETCH_SYMBOLS", '[" btc ", "eth"]')
        monkeypatch.setenv("RETENTION_DAYS", "7")
        monkeypatch.setenv("RETENTION_RUN_ON_START", "false")

        settings = AppSettings(_env_file=None)

        assert settings.database_url == "sqlite:////var/lib/midwatch/prices.db"
        assert settings.port == 9090
        assert settings.fetch.symbols == ["BTC", "ETH"]
        assert settings.retention.days == 7.0
        assert settings.retention.run_on_start is False

    def test_dotenv_file_feeds_every_section(
        self, tmp_path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / ".env").write_text(
            "DATABASE_URL=sqlite:///prices.db\n"
            "PORT=9090\n"
            "LOG_FORMAT=json\n"
            "FETCH_SYMBOLS=[\"doge\"]\n"
            "FETCH_REQUEST_TIMEOUT=5\n"
            "RETENTION_DAYS=7\n"
            "SHUTDOWN_WORKER_TIMEOUT=3\n"
            "QUERY_WINDOW_HOURS=12\n"
        )

        settings = AppSettings()

        assert settings.database_url == "sqlite:///prices.db"
        assert settings.port == 9090
        assert settings.log_format == "json"
        assert settings.fetch.symbols == ["DOGE"]
        assert settings.fetch.request_timeout == 5.0
        assert settings.retention.days == 7.0
        assert settings.shutdown.worker_timeout == 3.0
        assert settings.query.window_hours == 12.0

    def test_environment_beats_dotenv(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / ".env").write_text("DATABASE_URL=a.db\nRETENTION_DAYS=7\n")
        monkeypatch.setenv("RETENTION_DAYS", "3")

        assert AppSettings().retention.days == 3.0


class TestFetchSettings:
    def test_symbols_normalized(self) -> None:
        assert FetchSettings(symbols=["sol", " Arb ", ""]).symbols == ["SOL", "ARB"]

    def test_empty_symbol_list_rejected(self) -> None:
        with pytest.raises(ValidationError, match="at least one symbol"):
            FetchSettings(symbols=["  "])


class TestSqlitePathFromUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("sqlite:///prices.db", "prices.db"),
            ("sqlite:////var/lib/prices.db", "/var/lib/prices.db"),
            ("sqlite+aiosqlite:///data/prices.db", "data/prices.db"),
            ("sqlite:///:memory:", ":memory:"),
            ("sqlite://", ":memory:"),
            ("data/prices.db", "data/prices.db"),
            ("  /tmp/prices.db  ", "/tmp/prices.db"),
        ],
    )
    def test_resolves(self, url: str, expected: str) -> None:
        assert sqlite_path_from_url(url) == expected

    def test_empty_rejected(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            sqlite_path_from_url("   ")

    def test_other_scheme_rejected(self) -> None:
        with pytest.raises(ValueError, match="postgres"):
            sqlite_path_from_url("postgres://user@localhost/prices")
