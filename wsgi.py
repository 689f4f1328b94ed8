"""WSGI entrypoint for Gunicorn.

Usage:
  gunicorn -w 1 -b 0.0.0.0:8000 wsgi:app

Run a single worker with SCHEDULER_ENABLED=1, or disable the scheduler in
the web workers and run it elsewhere; the close tick is idempotent either way.
"""

from draw_engine import create_app

app = create_app()
