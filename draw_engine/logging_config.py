"""Logging configuration."""

from __future__ import annotations

import logging

from flask import Flask, has_request_context, request


class _RequestContextFilter(logging.Filter):
    """Tag records with the HTTP method and path, or ``job`` outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.request = f"{request.method} {request.path}"
        else:
            record.request = "job"
        return True


def configure_logging(app: Flask) -> None:
    """Configure single-line logs for request handlers and scheduler jobs."""

    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s [%(request)s] %(message)s",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
