"""Environment-based configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from sqlalchemy.engine import URL


def resolve_database_url() -> str:
    """Resolve DB connection string.

    Priority:
      1) DATABASE_URL (explicit)
      2) Build from PG* env vars (common Postgres convention)
      3) Fallback to local sqlite
    """

    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    host = os.getenv("PGHOST")
    user = os.getenv("PGUSER")
    database = os.getenv("PGDATABASE")
    port_raw = os.getenv("PGPORT")

    if host and user and database:
        password = os.getenv("PGPASSWORD")
        sslmode = os.getenv("PGSSLMODE", "require")

        try:
            port = int(port_raw) if port_raw else 5432
        except ValueError:
            port = 5432

        query = {"sslmode": sslmode} if sslmode else {}
        url = URL.create(
            drivername="postgresql+psycopg2",
            username=user,
            password=password,
            host=host,
            port=port,
            database=database,
            query=query,
        )
        return str(url)

    return "sqlite:///./draw_engine.db"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def parse_amount_map(raw: str) -> dict[str, int]:
    """Parse ``"standard=1000,rambolito=1500"`` into a dict."""

    out: dict[str, int] = {}
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        key, _, value = part.partition("=")
        out[key.strip()] = int(value.strip())
    return out


@dataclass(frozen=True)
class BaseConfig:
    """Base configuration shared by all environments."""

    APP_ENV: str = os.getenv("APP_ENV", "development")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret")
    DATABASE_URL: str = resolve_database_url()
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Draw calendar. Slot labels map to local draw clock times.
    DRAW_TIMEZONE: str = os.getenv("DRAW_TIMEZONE", "Asia/Manila")
    DRAW_SLOTS: str = os.getenv("DRAW_SLOTS", "2PM=14:00,5PM=17:00,9PM=21:00")
    CUTOFF_MINUTES_BEFORE_DRAW: int = _env_int("CUTOFF_MINUTES_BEFORE_DRAW", 5)

    SCHEDULER_ENABLED: bool = _env_bool("SCHEDULER_ENABLED", False)
    SCHEDULER_TICK_SECONDS: int = _env_int("SCHEDULER_TICK_SECONDS", 60)
    SCHEDULER_HORIZON_DAYS: int = _env_int("SCHEDULER_HORIZON_DAYS", 14)

    # Betting rules
    COMBINATION_LENGTH: int = _env_int("COMBINATION_LENGTH", 3)
    MIN_BET_AMOUNT: int = _env_int("MIN_BET_AMOUNT", 1)
    MAX_BET_AMOUNT: int = _env_int("MAX_BET_AMOUNT", 10_000)
    MAX_BETS_PER_TICKET: int = _env_int("MAX_BETS_PER_TICKET", 10)
    LEDGER_MAX_RETRIES: int = _env_int("LEDGER_MAX_RETRIES", 3)

    DEFAULT_BET_LIMITS: dict[str, int] = field(
        default_factory=lambda: parse_amount_map(
            os.getenv("DEFAULT_BET_LIMITS", "standard=1000,rambolito=1500")
        )
    )
    DEFAULT_PRIZE_MULTIPLIERS: dict[str, int] = field(
        default_factory=lambda: parse_amount_map(
            os.getenv(
                "DEFAULT_PRIZE_MULTIPLIERS",
                "standard=450,rambolito=75,rambolito_double=150",
            )
        )
    )


@dataclass(frozen=True)
class DevelopmentConfig(BaseConfig):
    """Development configuration."""

    DEBUG: bool = True


@dataclass(frozen=True)
class ProductionConfig(BaseConfig):
    """Production configuration."""

    DEBUG: bool = False


@dataclass(frozen=True)
class TestingConfig(BaseConfig):
    """Test configuration (scheduler never starts)."""

    DEBUG: bool = False
    TESTING: bool = True
    SCHEDULER_ENABLED: bool = False


def get_config() -> BaseConfig:
    """Resolve configuration based on APP_ENV."""

    env = os.getenv("APP_ENV", "development").lower().strip()
    if env == "production":
        return ProductionConfig()
    if env == "testing":
        return TestingConfig()
    return DevelopmentConfig()
