"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

HYPERLIQUID_API_URL = "https://api.hyperliquid.xyz"


def _section_config(prefix: str) -> SettingsConfigDict:
    """Prefixed settings that also read the shared .env file."""
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class FetchSettings(BaseSettings):
    """Upstream price polling parameters."""

    model_config = _section_config("FETCH_")

    symbols: list[str] = ["BTC", "ETH", "SOL", "ARB", "AVAX"]
    interval_seconds: float = 3600.0
    request_timeout: float = 30.0  # seconds, bounds the whole upstream call
    api_url: str = HYPERLIQUID_API_URL  # "/info" is appended by the client

    @field_validator("symbols")
    @classmethod
    def _normalize_symbols(cls, value: list[str]) -> list[str]:
        symbols = [s.strip().upper() for s in value if s.strip()]
        if not symbols:
            raise ValueError("at least one symbol must be tracked")
        return symbols


class RetentionSettings(BaseSettings):
    """Soft-delete retention parameters."""

    model_config = _section_config("RETENTION_")

    days: float = 2.0
    interval_seconds: float = 3600.0
    run_on_start: bool = True


class ShutdownSettings(BaseSettings):
    """Bounded deadlines for graceful shutdown."""

    model_config = _section_config("SHUTDOWN_")

    http_timeout: int = 10  # in-flight request drain
    worker_timeout: float = 30.0  # background loop join


class QuerySettings(BaseSettings):
    """Read API parameters."""

    model_config = _section_config("QUERY_")

    window_hours: float = 24.0


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings.

    ``DATABASE_URL`` is required; ``PORT`` defaults to 8080.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database_url: str
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    retention: RetentionSettings = Field(default_factory=RetentionSettings)
    shutdown: ShutdownSettings = Field(default_factory=ShutdownSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)


def sqlite_path_from_url(database_url: str) -> str:
    """Resolve a DATABASE_URL into a filesystem path for aiosqlite.

    Accepts ``sqlite:///relative.db``, ``sqlite:////abs/path.db``,
    ``sqlite:///:memory:`` and plain paths.
    """
    url = database_url.strip()
    if not url:
        raise ValueError("DATABASE_URL is empty")
    for prefix in ("sqlite+aiosqlite://", "sqlite://"):
        if url.startswith(prefix):
            path = url[len(prefix):]
            # sqlite:///foo.db -> "/foo.db" -> relative "foo.db"
            # sqlite:////abs/foo.db -> "//abs/foo.db" -> "/abs/foo.db"
            if path.startswith("/"):
                path = path[1:]
            return path or ":memory:"
    if "://" in url:
        raise ValueError(f"Unsupported DATABASE_URL scheme: {url.split('://', 1)[0]}")
    return url
