"""Development entrypoint.

Runs the app with the built-in server. The draw scheduler starts with the
app when SCHEDULER_ENABLED is set.
"""

from draw_engine import create_app

app = create_app()


if __name__ == "__main__":
    app.run(host="127.0.0.1", port=8000, debug=False, use_reloader=False)
