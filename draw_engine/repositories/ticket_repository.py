"""Repository layer for Ticket and Bet persistence."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from draw_engine.models.ticket import Bet, Ticket, TicketStatus
from draw_engine.services.bet_rules import BetLine
from draw_engine.utils.clock import utcnow


class TicketRepository:
    """CRUD operations for tickets. Bets are only ever inserted."""

    def create(
        self,
        session: Session,
        *,
        ticket_number: str,
        agent_id: int,
        draw_id: int,
        lines: Sequence[BetLine],
    ) -> Ticket:
        ticket = Ticket(
            ticket_number=ticket_number,
            agent_id=agent_id,
            draw_id=draw_id,
            total_amount=sum(int(line.amount) for line in lines),
            status=TicketStatus.PENDING.value,
            bets=[
                Bet(combination=line.combination, bet_type=line.bet_type, amount=int(line.amount))
                for line in lines
            ],
        )
        session.add(ticket)
        session.flush()  # assign PKs
        return ticket

    def get(self, session: Session, ticket_id: int) -> Ticket | None:
        stmt = select(Ticket).where(Ticket.id == ticket_id).options(selectinload(Ticket.bets))
        return session.scalars(stmt).first()

    def get_by_number(self, session: Session, ticket_number: str) -> Ticket | None:
        stmt = select(Ticket).where(Ticket.ticket_number == ticket_number).options(selectinload(Ticket.bets))
        return session.scalars(stmt).first()

    def list_tickets(
        self,
        session: Session,
        *,
        draw_id: int | None = None,
        agent_id: int | None = None,
        limit: int = 100,
    ) -> Sequence[Ticket]:
        stmt = select(Ticket).options(selectinload(Ticket.bets))
        if draw_id is not None:
            stmt = stmt.where(Ticket.draw_id == draw_id)
        if agent_id is not None:
            stmt = stmt.where(Ticket.agent_id == agent_id)
        stmt = stmt.order_by(Ticket.id.desc()).limit(int(limit))
        return list(session.scalars(stmt).all())

    def bets_for_draw(self, session: Session, draw_id: int) -> Sequence[Bet]:
        """All bets on non-void tickets of a draw."""

        stmt = (
            select(Bet)
            .join(Ticket, Ticket.id == Bet.ticket_id)
            .where(Ticket.draw_id == draw_id, Ticket.status != TicketStatus.VOID.value)
            .order_by(Bet.id.asc())
        )
        return list(session.scalars(stmt).all())

    def count_tickets(self, session: Session, draw_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(Ticket)
            .where(Ticket.draw_id == draw_id, Ticket.status != TicketStatus.VOID.value)
        )
        return int(session.scalar(stmt) or 0)

    def set_status(
        self,
        session: Session,
        ticket_ids: Iterable[int] | None,
        *,
        draw_id: int,
        from_status: str,
        to_status: str,
    ) -> int:
        """Move tickets of a draw from one status to another; returns rows changed."""

        stmt = update(Ticket).where(Ticket.draw_id == draw_id, Ticket.status == from_status)
        if ticket_ids is not None:
            ids = list(ticket_ids)
            if not ids:
                return 0
            stmt = stmt.where(Ticket.id.in_(ids))
        stmt = stmt.values(status=to_status, updated_at=utcnow()).execution_options(synchronize_session=False)
        return int(session.execute(stmt).rowcount or 0)
