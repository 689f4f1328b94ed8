"""Create database tables and seed default configuration.

Reads DATABASE_URL from .env / environment, creates all registered ORM
tables, stores the configured default bet limits and prize multipliers, and
creates draws for the scheduling horizon.

Usage:
  python scripts/create_tables.py
"""

from __future__ import annotations

import pathlib
import sys

from dotenv import load_dotenv

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from draw_engine.config import get_config
from draw_engine.db import create_app_engine, create_session_factory, session_scope
from draw_engine.models.base import Base
from draw_engine.services.registry import build_services

# Import models so they register with Base.metadata
from draw_engine import models  # noqa: F401


def main() -> int:
    """Create tables, seed limits and prizes, and schedule upcoming draws."""

    load_dotenv()
    env_local = PROJECT_ROOT / ".env.local"
    if env_local.exists():
        load_dotenv(dotenv_path=env_local, override=True)

    config = get_config()
    settings = {k: getattr(config, k) for k in dir(config) if k.isupper()}

    engine = create_app_engine(config.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    session_factory = create_session_factory(engine)
    services = build_services(settings)

    with session_scope(session_factory) as session:
        existing = {
            row["bet_type"]
            for row in services.ledger.list_default_limits(session)
            if row["source"] == "configured"
        }
        for bet_type, amount in config.DEFAULT_BET_LIMITS.items():
            if bet_type not in existing:
                services.ledger.set_default_limit(session, bet_type, amount)
        prizes = services.prizes.seed_defaults(session)
        draws = services.scheduler.ensure_draws_exist(session, config.SCHEDULER_HORIZON_DAYS)

    print(f"Tables created (or already exist). Seeded {prizes} prize configurations, created {draws} draws.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
