"""Draw scheduler: keeps draws created ahead of time and closes them at cutoff.

Both periodic jobs go through the same guarded entry points as the HTTP
actions, so a tick racing an administrative close is harmless.
"""

from __future__ import annotations

import atexit
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session, sessionmaker

from draw_engine.db import session_scope
from draw_engine.models.draw import Draw
from draw_engine.repositories.draw_repository import DrawRepository
from draw_engine.services.draw_state_machine import DrawStateMachine
from draw_engine.utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawSlot:
    label: str
    draw_time: time


def parse_slots(raw: str) -> list[DrawSlot]:
    """Parse ``"2PM=14:00,5PM=17:00"`` into slots ordered by draw time."""

    slots: list[DrawSlot] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        label, sep, clock = part.partition("=")
        if not sep:
            raise ValueError(f"Invalid draw slot {part!r}, expected LABEL=HH:MM")
        hour, _, minute = clock.strip().partition(":")
        slots.append(DrawSlot(label=label.strip(), draw_time=time(int(hour), int(minute or 0))))
    if len({s.label for s in slots}) != len(slots):
        raise ValueError("Draw slot labels must be unique")
    return sorted(slots, key=lambda s: s.draw_time)


class DrawScheduler:
    """Create draws for configured slots and close them once cutoff passes."""

    def __init__(
        self,
        slots: Sequence[DrawSlot],
        timezone_name: str = "Asia/Manila",
        cutoff_minutes: int = 5,
        state_machine: DrawStateMachine | None = None,
        repository: DrawRepository | None = None,
    ) -> None:
        self.slots = list(slots)
        self.tz = pytz.timezone(timezone_name)
        self.cutoff_delta = timedelta(minutes=int(cutoff_minutes))
        self._state = state_machine or DrawStateMachine()
        self._repo = repository or DrawRepository()
        self._background: BackgroundScheduler | None = None

    @classmethod
    def from_config(cls, config: dict) -> DrawScheduler:
        return cls(
            slots=parse_slots(str(config.get("DRAW_SLOTS", ""))),
            timezone_name=str(config.get("DRAW_TIMEZONE", "Asia/Manila")),
            cutoff_minutes=int(config.get("CUTOFF_MINUTES_BEFORE_DRAW", 5)),
        )

    def today(self) -> date:
        return datetime.now(self.tz).date()

    def slot_times(self, draw_date: date, slot: DrawSlot) -> tuple[datetime, datetime]:
        """(draw_at, cutoff_at) as naive UTC for a slot on a local calendar date."""

        local = self.tz.localize(datetime.combine(draw_date, slot.draw_time))
        draw_at = to_naive_utc(local)
        return draw_at, draw_at - self.cutoff_delta

    def ensure_draws_exist(self, session: Session, horizon_days: int, today: date | None = None) -> int:
        """Create missing draws for [today, today + horizon_days]; returns how many were created."""

        start = today or self.today()
        created = 0
        for offset in range(int(horizon_days) + 1):
            draw_date = start + timedelta(days=offset)
            for slot in self.slots:
                draw_at, cutoff_at = self.slot_times(draw_date, slot)
                if self._repo.create_if_absent(
                    session,
                    draw_date=draw_date,
                    slot=slot.label,
                    draw_at=draw_at,
                    cutoff_at=cutoff_at,
                ):
                    created += 1
        if created:
            logger.info("Created %s draws from %s over %s days", created, start.isoformat(), horizon_days)
        return created

    def tick(self, session: Session, now: datetime | None = None) -> list[int]:
        """Close every open draw whose cutoff has passed; returns ids this call closed."""

        at_time = to_naive_utc(now) if now is not None else utcnow()
        closed: list[int] = []
        for draw in self._repo.list_open_past_cutoff(session, at_time):
            if self._state.try_close(session, draw.id):
                closed.append(draw.id)
        return closed

    def list_open_draws(self, session: Session, now: datetime | None = None) -> Sequence[Draw]:
        at_time = to_naive_utc(now) if now is not None else utcnow()
        return self._repo.list_accepting(session, at_time)

    # Background jobs

    def start(
        self,
        session_factory: sessionmaker[Session],
        *,
        tick_seconds: int = 60,
        horizon_days: int = 14,
    ) -> BackgroundScheduler:
        if self._background is not None:
            return self._background

        def _tick_job() -> None:
            with session_scope(session_factory) as session:
                self.tick(session)

        def _ensure_job() -> None:
            with session_scope(session_factory) as session:
                self.ensure_draws_exist(session, horizon_days)

        _ensure_job()

        scheduler = BackgroundScheduler(timezone=self.tz)
        scheduler.add_job(
            _tick_job,
            "interval",
            seconds=int(tick_seconds),
            id="draw_close_tick",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(self.tz),
        )
        scheduler.add_job(_ensure_job, "cron", hour=0, minute=0, id="draw_calendar", max_instances=1, coalesce=True)
        scheduler.start()
        atexit.register(self.shutdown)

        self._background = scheduler
        logger.info("Draw scheduler started (tick=%ss, horizon=%s days)", tick_seconds, horizon_days)
        return scheduler

    def shutdown(self) -> None:
        if self._background is not None and self._background.running:
            self._background.shutdown(wait=False)
        self._background = None
