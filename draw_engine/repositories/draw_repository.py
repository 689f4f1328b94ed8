"""Repository layer for Draw persistence."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

from sqlalchemy import Select, select, update
from sqlalchemy.orm import Session

from draw_engine.models.draw import Draw, DrawStatus
from draw_engine.repositories.base import insert_if_absent
from draw_engine.utils.clock import utcnow


class DrawRepository:
    """Draw queries and guarded status writes."""

    def get(self, session: Session, draw_id: int, *, refresh: bool = False) -> Draw | None:
        return session.get(Draw, draw_id, populate_existing=refresh)

    def for_sale_statement(self, draw_id: int) -> Select[tuple[Draw]]:
        """SELECT of one draw holding a shared row lock.

        Sales take it so that a close waits for in-flight sales to commit.
        Dialects without row locks (SQLite) drop the clause.
        """

        return (
            select(Draw)
            .where(Draw.id == draw_id)
            .with_for_update(read=True)
            .execution_options(populate_existing=True)
        )

    def get_for_sale(self, session: Session, draw_id: int) -> Draw | None:
        return session.scalars(self.for_sale_statement(draw_id)).first()

    def get_by_slot(self, session: Session, draw_date: date, slot: str) -> Draw | None:
        stmt = select(Draw).where(Draw.draw_date == draw_date, Draw.slot == slot)
        return session.scalars(stmt).first()

    def list_draws(
        self,
        session: Session,
        *,
        draw_date: date | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> Sequence[Draw]:
        stmt = select(Draw)
        if draw_date is not None:
            stmt = stmt.where(Draw.draw_date == draw_date)
        if status is not None:
            stmt = stmt.where(Draw.status == status)
        stmt = stmt.order_by(Draw.draw_date.desc(), Draw.draw_at.desc()).limit(int(limit))
        return list(session.scalars(stmt).all())

    def list_open_past_cutoff(self, session: Session, now: datetime) -> Sequence[Draw]:
        stmt = (
            select(Draw)
            .where(Draw.status == DrawStatus.OPEN.value, Draw.cutoff_at <= now)
            .order_by(Draw.cutoff_at.asc())
        )
        return list(session.scalars(stmt).all())

    def list_accepting(self, session: Session, now: datetime) -> Sequence[Draw]:
        stmt = (
            select(Draw)
            .where(Draw.status == DrawStatus.OPEN.value, Draw.cutoff_at > now)
            .order_by(Draw.cutoff_at.asc())
        )
        return list(session.scalars(stmt).all())

    def create_if_absent(
        self,
        session: Session,
        *,
        draw_date: date,
        slot: str,
        draw_at: datetime,
        cutoff_at: datetime,
    ) -> bool:
        now = utcnow()
        return insert_if_absent(
            session,
            Draw.__table__,
            {
                "draw_date": draw_date,
                "slot": slot,
                "draw_at": draw_at,
                "cutoff_at": cutoff_at,
                "status": DrawStatus.OPEN.value,
                "created_at": now,
                "updated_at": now,
            },
            index_elements=("draw_date", "slot"),
        )

    def compare_and_set(
        self,
        session: Session,
        draw_id: int,
        *,
        where: Sequence[Any],
        values: dict[str, Any],
    ) -> bool:
        """Conditional UPDATE of one draw; True if this call changed the row."""

        stmt = (
            update(Draw)
            .where(Draw.id == draw_id, *where)
            .values(**values, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1
