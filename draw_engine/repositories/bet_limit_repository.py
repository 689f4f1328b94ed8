"""Repository layer for bet limits and per-draw exposure counters."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import case, exists, select, update
from sqlalchemy.orm import Session

from draw_engine.models.bet_limit import BetLimit, BetLimitEntry
from draw_engine.models.draw import Draw, DrawStatus
from draw_engine.repositories.base import insert_if_absent
from draw_engine.utils.clock import utcnow


class BetLimitRepository:
    """Exposure counters are only mutated through the conditional updates here."""

    # Global per-bet-type ceilings

    def get_active_limit(self, session: Session, bet_type: str) -> BetLimit | None:
        stmt = select(BetLimit).where(BetLimit.bet_type == bet_type, BetLimit.is_active.is_(True))
        return session.scalars(stmt).first()

    def list_limits(self, session: Session) -> Sequence[BetLimit]:
        return list(session.scalars(select(BetLimit).order_by(BetLimit.bet_type.asc())).all())

    def upsert_limit(self, session: Session, bet_type: str, limit_amount: int, is_active: bool = True) -> BetLimit:
        limit = session.scalars(select(BetLimit).where(BetLimit.bet_type == bet_type)).first()
        if limit is None:
            limit = BetLimit(bet_type=bet_type, limit_amount=limit_amount, is_active=is_active)
            session.add(limit)
        else:
            limit.limit_amount = limit_amount
            limit.is_active = is_active
        session.flush()
        return limit

    # Per-draw entries

    def get_entry(self, session: Session, draw_id: int, combination: str, bet_type: str) -> BetLimitEntry | None:
        stmt = select(BetLimitEntry).where(
            BetLimitEntry.draw_id == draw_id,
            BetLimitEntry.combination == combination,
            BetLimitEntry.bet_type == bet_type,
        )
        return session.scalars(stmt.execution_options(populate_existing=True)).first()

    def create_entry_if_absent(
        self,
        session: Session,
        draw_id: int,
        combination: str,
        bet_type: str,
        limit_amount: int,
    ) -> bool:
        now = utcnow()
        return insert_if_absent(
            session,
            BetLimitEntry.__table__,
            {
                "draw_id": draw_id,
                "combination": combination,
                "bet_type": bet_type,
                "limit_amount": int(limit_amount),
                "current_amount": 0,
                "bet_count": 0,
                "sold_out": False,
                "created_at": now,
                "updated_at": now,
            },
            index_elements=("draw_id", "combination", "bet_type"),
        )

    def try_increment(self, session: Session, draw_id: int, combination: str, bet_type: str, amount: int) -> bool:
        """Atomically add ``amount`` if it fits under the ceiling of an open draw."""

        new_total = BetLimitEntry.current_amount + amount
        draw_is_open = exists().where(Draw.id == draw_id, Draw.status == DrawStatus.OPEN.value)
        stmt = (
            update(BetLimitEntry)
            .where(
                BetLimitEntry.draw_id == draw_id,
                BetLimitEntry.combination == combination,
                BetLimitEntry.bet_type == bet_type,
                BetLimitEntry.sold_out.is_(False),
                new_total <= BetLimitEntry.limit_amount,
                draw_is_open,
            )
            .values(
                current_amount=new_total,
                bet_count=BetLimitEntry.bet_count + 1,
                sold_out=case((new_total >= BetLimitEntry.limit_amount, True), else_=False),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1

    def decrement(self, session: Session, draw_id: int, combination: str, bet_type: str, amount: int) -> bool:
        new_total = BetLimitEntry.current_amount - amount
        stmt = (
            update(BetLimitEntry)
            .where(
                BetLimitEntry.draw_id == draw_id,
                BetLimitEntry.combination == combination,
                BetLimitEntry.bet_type == bet_type,
                BetLimitEntry.current_amount >= amount,
            )
            .values(
                current_amount=new_total,
                bet_count=case((BetLimitEntry.bet_count > 0, BetLimitEntry.bet_count - 1), else_=0),
                sold_out=case((new_total >= BetLimitEntry.limit_amount, True), else_=False),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1

    def set_entry_limit(
        self,
        session: Session,
        draw_id: int,
        combination: str,
        bet_type: str,
        limit_amount: int,
    ) -> BetLimitEntry:
        """Pre-seed or change the ceiling of one number; sold-out is recomputed in SQL."""

        self.create_entry_if_absent(session, draw_id, combination, bet_type, limit_amount)
        stmt = (
            update(BetLimitEntry)
            .where(
                BetLimitEntry.draw_id == draw_id,
                BetLimitEntry.combination == combination,
                BetLimitEntry.bet_type == bet_type,
            )
            .values(
                limit_amount=int(limit_amount),
                sold_out=case((BetLimitEntry.current_amount >= int(limit_amount), True), else_=False),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        session.execute(stmt)
        entry = self.get_entry(session, draw_id, combination, bet_type)
        if entry is None:
            raise RuntimeError(f"Bet limit entry for draw {draw_id} {bet_type} {combination} vanished")
        return entry

    def list_entries(
        self,
        session: Session,
        draw_id: int,
        *,
        bet_type: str | None = None,
        combination: str | None = None,
        sold_out_only: bool = False,
        limit: int = 500,
    ) -> Sequence[BetLimitEntry]:
        stmt = select(BetLimitEntry).where(BetLimitEntry.draw_id == draw_id)
        if bet_type is not None:
            stmt = stmt.where(BetLimitEntry.bet_type == bet_type)
        if combination is not None:
            stmt = stmt.where(BetLimitEntry.combination == combination)
        if sold_out_only:
            stmt = stmt.where(BetLimitEntry.sold_out.is_(True))
        stmt = stmt.order_by(BetLimitEntry.current_amount.desc(), BetLimitEntry.combination.asc()).limit(int(limit))
        return list(session.scalars(stmt.execution_options(populate_existing=True)).all())
