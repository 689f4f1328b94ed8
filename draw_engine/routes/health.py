"""Health check routes."""

from __future__ import annotations

from flask import Blueprint
from sqlalchemy import text

from draw_engine.db import get_session
from draw_engine.utils.responses import ok

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health_check():
    """Health check endpoint. Touches the database so a dead pool shows up here."""

    get_session().execute(text("SELECT 1"))
    return ok({"status": "ok"})
