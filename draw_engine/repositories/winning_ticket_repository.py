"""Repository layer for settlement output."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from draw_engine.models.winning_ticket import WinningTicket
from draw_engine.repositories.base import insert_if_absent
from draw_engine.utils.clock import utcnow


class WinningTicketRepository:
    def create_if_absent(
        self,
        session: Session,
        *,
        bet_id: int,
        ticket_id: int,
        draw_id: int,
        prize_key: str,
        prize_amount: Decimal,
    ) -> bool:
        return insert_if_absent(
            session,
            WinningTicket.__table__,
            {
                "bet_id": bet_id,
                "ticket_id": ticket_id,
                "draw_id": draw_id,
                "prize_key": prize_key,
                "prize_amount": prize_amount,
                "created_at": utcnow(),
            },
            index_elements=("bet_id",),
        )

    def list_for_draw(self, session: Session, draw_id: int) -> Sequence[WinningTicket]:
        stmt = select(WinningTicket).where(WinningTicket.draw_id == draw_id).order_by(WinningTicket.bet_id.asc())
        return list(session.scalars(stmt).all())
