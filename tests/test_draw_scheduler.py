from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy import func, select

from draw_engine.models.draw import Draw, DrawStatus
from draw_engine.services.draw_scheduler import DrawScheduler, DrawSlot, parse_slots
from draw_engine.utils.clock import utcnow


def test_parse_slots_orders_by_time():
    slots = parse_slots("9PM=21:00, 2PM=14:00,5PM=17:00")
    assert [s.label for s in slots] == ["2PM", "5PM", "9PM"]
    assert slots[0].draw_time == time(14, 0)


@pytest.mark.parametrize("raw", ["2PM", "2PM=14:00,2PM=15:00", "2PM=25:00"])
def test_parse_slots_rejects_bad_input(raw):
    with pytest.raises(ValueError):
        parse_slots(raw)


def test_slot_times_convert_local_clock_to_utc():
    scheduler = DrawScheduler([DrawSlot("2PM", time(14, 0))], timezone_name="Asia/Manila", cutoff_minutes=5)

    draw_at, cutoff_at = scheduler.slot_times(date(2030, 1, 1), scheduler.slots[0])

    assert draw_at == datetime(2030, 1, 1, 6, 0)
    assert cutoff_at == datetime(2030, 1, 1, 5, 55)


def test_ensure_draws_exist_is_idempotent(session, services):
    scheduler = services.scheduler

    created = scheduler.ensure_draws_exist(session, 2, today=date(2030, 1, 1))
    session.commit()
    assert created == 9
    assert scheduler.ensure_draws_exist(session, 2, today=date(2030, 1, 1)) == 0
    assert scheduler.ensure_draws_exist(session, 3, today=date(2030, 1, 1)) == 3
    session.commit()

    assert session.scalar(select(func.count()).select_from(Draw)) == 12
    slots = session.scalars(select(Draw.slot).where(Draw.draw_date == date(2030, 1, 1))).all()
    assert sorted(slots) == ["2PM", "5PM", "9PM"]


def test_tick_closes_only_past_cutoff_draws(session, services, make_draw):
    past = make_draw(cutoff_in=timedelta(minutes=-1))
    future = make_draw(cutoff_in=timedelta(hours=1))

    assert services.scheduler.tick(session) == [past]
    assert services.scheduler.tick(session) == []
    session.commit()

    assert session.get(Draw, past, populate_existing=True).status == DrawStatus.CLOSED.value
    assert session.get(Draw, future, populate_existing=True).status == DrawStatus.OPEN.value
    assert [d.id for d in services.scheduler.list_open_draws(session)] == [future]

    assert services.scheduler.tick(session, now=utcnow() + timedelta(hours=2)) == [future]


def test_tick_leaves_closed_and_settled_draws_alone(session, services, make_draw):
    make_draw(cutoff_in=timedelta(minutes=-5), status=DrawStatus.CLOSED.value)
    make_draw(cutoff_in=timedelta(minutes=-5), status=DrawStatus.SETTLED.value)

    assert services.scheduler.tick(session) == []


def test_background_scheduler_registers_jobs(session_factory, services):
    scheduler = services.scheduler
    background = scheduler.start(session_factory, tick_seconds=3600, horizon_days=1)
    try:
        assert scheduler.start(session_factory) is background
        assert background.get_job("draw_close_tick") is not None
        assert background.get_job("draw_calendar") is not None
    finally:
        scheduler.shutdown()

    session = session_factory()
    try:
        # Today and tomorrow, three slots each, created before the jobs were registered.
        assert session.scalar(select(func.count()).select_from(Draw)) == 6
    finally:
        session.close()
