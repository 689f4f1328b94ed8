"""Flask application package."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Flask

try:
    from dotenv import load_dotenv
except Exception:  # pragma: no cover
    load_dotenv = None  # type: ignore[assignment]


def create_app(config_overrides: Mapping[str, Any] | None = None) -> Flask:
    """Application factory.

    Args:
        config_overrides: Values applied on top of the environment config
            (tests use this to point at a scratch database).

    Returns:
        Configured Flask application.
    """
    if load_dotenv is not None:
        load_dotenv()

    from draw_engine.config import get_config
    from draw_engine.db import init_db
    from draw_engine.error_handlers import register_error_handlers
    from draw_engine.logging_config import configure_logging
    from draw_engine.routes.bet_limits import bet_limits_bp
    from draw_engine.routes.draws import draws_bp
    from draw_engine.routes.health import health_bp
    from draw_engine.routes.prizes import prizes_bp
    from draw_engine.routes.results import results_bp
    from draw_engine.routes.tickets import tickets_bp
    from draw_engine.services.registry import build_services

    app = Flask(__name__)
    app.config.from_object(get_config())
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)
    init_db(app)
    register_error_handlers(app)

    services = build_services(app.config)
    app.extensions["services"] = services

    app.register_blueprint(health_bp)
    app.register_blueprint(draws_bp, url_prefix="/api")
    app.register_blueprint(tickets_bp, url_prefix="/api")
    app.register_blueprint(results_bp, url_prefix="/api")
    app.register_blueprint(bet_limits_bp, url_prefix="/api")
    app.register_blueprint(prizes_bp, url_prefix="/api")

    if app.config.get("SCHEDULER_ENABLED"):
        services.scheduler.start(
            app.extensions["session_factory"],
            tick_seconds=int(app.config.get("SCHEDULER_TICK_SECONDS", 60)),
            horizon_days=int(app.config.get("SCHEDULER_HORIZON_DAYS", 14)),
        )

    return app
