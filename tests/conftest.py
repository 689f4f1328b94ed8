from __future__ import annotations

import itertools
from datetime import date, timedelta

import pytest

from draw_engine import create_app
from draw_engine.models.draw import Draw, DrawStatus
from draw_engine.utils.clock import utcnow


@pytest.fixture()
def app(tmp_path):
    # File database so that threads get separate connections to the same data.
    app = create_app(
        {
            "DATABASE_URL": f"sqlite:///{tmp_path / 'draw_engine_test.db'}",
            "TESTING": True,
            "SCHEDULER_ENABLED": False,
            "DEFAULT_BET_LIMITS": {"standard": 1000, "rambolito": 1500},
            "DEFAULT_PRIZE_MULTIPLIERS": {"standard": 450, "rambolito": 75, "rambolito_double": 150},
        }
    )
    yield app
    app.extensions["services"].scheduler.shutdown()
    app.extensions["engine"].dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def services(app):
    return app.extensions["services"]


@pytest.fixture()
def session_factory(app):
    return app.extensions["session_factory"]


@pytest.fixture()
def session(session_factory):
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture()
def make_draw(session):
    """Create a draw whose cutoff is ``cutoff_in`` from now; returns its id.

    Commits immediately so that other sessions (threads, HTTP requests) see it.
    """

    days = itertools.count()

    def _make(cutoff_in: timedelta = timedelta(hours=1), status: str = DrawStatus.OPEN.value) -> int:
        cutoff_at = utcnow() + cutoff_in
        draw = Draw(
            draw_date=date(2030, 1, 1) + timedelta(days=next(days)),
            slot="2PM",
            draw_at=cutoff_at + timedelta(minutes=5),
            cutoff_at=cutoff_at,
            status=status,
        )
        session.add(draw)
        session.commit()
        return draw.id

    return _make

