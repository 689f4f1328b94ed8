"""Ticket acceptance: validate, reserve every line, persist, all or nothing."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from draw_engine.errors import ConflictError, NotFoundError, Rejection, RejectionReason
from draw_engine.models.draw import DrawStatus
from draw_engine.models.ticket import Ticket, TicketStatus
from draw_engine.repositories.draw_repository import DrawRepository
from draw_engine.repositories.ticket_repository import TicketRepository
from draw_engine.services.bet_limit_ledger import BetLimitLedger, Reservation
from draw_engine.services.bet_rules import BetLine, BetRules
from draw_engine.services.draw_state_machine import DrawStateMachine
from draw_engine.utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

NEAR_CUTOFF = timedelta(minutes=2)


def generate_ticket_number() -> str:
    """17 numeric digits: epoch milliseconds followed by 4 random digits."""

    millis = str(int(time.time() * 1000))
    return (millis + f"{random.randint(0, 9999):04d}")[-17:].zfill(17)


def _to_line(raw: BetLine | Mapping[str, Any]) -> BetLine:
    if isinstance(raw, BetLine):
        return raw
    return BetLine(
        combination=str(raw.get("combination") or ""),
        bet_type=str(raw.get("bet_type") or ""),
        amount=raw.get("amount"),  # type: ignore[arg-type]
    )


class TicketService:
    """Ticket use-cases."""

    def __init__(
        self,
        ledger: BetLimitLedger,
        rules: BetRules | None = None,
        state_machine: DrawStateMachine | None = None,
        repository: TicketRepository | None = None,
        draw_repository: DrawRepository | None = None,
    ) -> None:
        self._ledger = ledger
        self._rules = rules or BetRules()
        self._state = state_machine or DrawStateMachine()
        self._repo = repository or TicketRepository()
        self._draws = draw_repository or DrawRepository()

    def validate_lines(self, bets: Sequence[BetLine | Mapping[str, Any]]) -> list[BetLine] | Rejection:
        if not bets:
            return Rejection(RejectionReason.EMPTY_TICKET, "At least one bet is required")
        if len(bets) > self._rules.max_lines:
            return Rejection(
                RejectionReason.INVALID_BET_LINE,
                f"Maximum {self._rules.max_lines} bets per ticket allowed",
                {"lines": len(bets)},
            )

        lines = [_to_line(b) for b in bets]
        errors = {i: self._rules.line_errors(line) for i, line in enumerate(lines)}
        errors = {i: errs for i, errs in errors.items() if errs}
        if errors:
            first = min(errors)
            return Rejection(
                RejectionReason.INVALID_BET_LINE,
                f"Bet {first + 1}: {errors[first][0]}",
                {"lines": {str(i): errs for i, errs in errors.items()}},
            )
        return lines

    def submit_ticket(
        self,
        session: Session,
        agent_id: int,
        draw_id: int,
        bets: Sequence[BetLine | Mapping[str, Any]],
        now: datetime | None = None,
    ) -> Ticket | Rejection:
        """Accept a ticket wholly or not at all.

        Every line is reserved against the ledger inside one savepoint; the
        first rejected line rolls back the reservations already made.
        """

        lines = self.validate_lines(bets)
        if isinstance(lines, Rejection):
            return lines

        at_time = to_naive_utc(now) if now is not None else utcnow()
        draw = self._draws.get_for_sale(session, draw_id)
        if draw is None:
            return Rejection(RejectionReason.DRAW_NOT_OPEN, "Draw not found", {"draw_id": draw_id})
        if not self._state.can_accept_bet(draw, at_time):
            if draw.status == DrawStatus.OPEN.value:
                message = "Betting cutoff time has passed"
            else:
                message = "Draw is not open for betting"
            return Rejection(
                RejectionReason.DRAW_CLOSED,
                message,
                {"draw_id": draw_id, "status": draw.status, "cutoff_at": draw.cutoff_at.isoformat()},
            )

        if draw.cutoff_at - at_time <= NEAR_CUTOFF:
            logger.info("Near-cutoff sale agent=%s draw=%s cutoff=%s", agent_id, draw_id, draw.cutoff_at.isoformat())

        savepoint = session.begin_nested()
        try:
            for index, line in enumerate(lines):
                outcome = self._ledger.check_and_reserve(
                    session, draw_id, line.combination, line.bet_type, int(line.amount)
                )
                if isinstance(outcome, Rejection):
                    savepoint.rollback()
                    return Rejection(
                        outcome.reason,
                        f"Bet {index + 1}: {outcome.message}",
                        {**outcome.details, "line": index},
                    )

            ticket = self._repo.create(
                session,
                ticket_number=generate_ticket_number(),
                agent_id=agent_id,
                draw_id=draw_id,
                lines=lines,
            )
        except Exception:
            savepoint.rollback()
            raise
        savepoint.commit()

        logger.info(
            "Ticket %s accepted agent=%s draw=%s lines=%s total=%s",
            ticket.ticket_number,
            agent_id,
            draw_id,
            len(lines),
            ticket.total_amount,
        )
        return ticket

    def void_ticket(self, session: Session, ticket_id: int, now: datetime | None = None) -> Ticket:
        """Cancel a pending ticket before cutoff and give its exposure back."""

        ticket = self.get_ticket(session, ticket_id)
        if ticket.status != TicketStatus.PENDING.value:
            raise ConflictError(message=f"Ticket is {ticket.status} and cannot be voided")

        draw = self._draws.get(session, ticket.draw_id, refresh=True)
        at_time = to_naive_utc(now) if now is not None else utcnow()
        if draw is None or not self._state.can_accept_bet(draw, at_time):
            raise ConflictError(message="Tickets can only be voided before the draw cutoff")

        changed = self._repo.set_status(
            session,
            [ticket.id],
            draw_id=ticket.draw_id,
            from_status=TicketStatus.PENDING.value,
            to_status=TicketStatus.VOID.value,
        )
        if not changed:
            raise ConflictError(message="Ticket was modified concurrently")

        for reservation in reservations_for(ticket):
            self._ledger.release(session, reservation)
        session.refresh(ticket)
        logger.info("Ticket %s voided", ticket.ticket_number)
        return ticket

    def get_ticket(self, session: Session, ticket_id: int) -> Ticket:
        ticket = self._repo.get(session, ticket_id)
        if ticket is None:
            raise NotFoundError(message=f"Ticket {ticket_id} not found")
        return ticket

    def get_by_number(self, session: Session, ticket_number: str) -> Ticket:
        ticket = self._repo.get_by_number(session, ticket_number)
        if ticket is None:
            raise NotFoundError(message=f"Ticket {ticket_number} not found")
        return ticket

    def list_tickets(
        self,
        session: Session,
        *,
        draw_id: int | None = None,
        agent_id: int | None = None,
        limit: int = 100,
    ) -> Sequence[Ticket]:
        return self._repo.list_tickets(session, draw_id=draw_id, agent_id=agent_id, limit=limit)


def reservations_for(ticket: Ticket) -> Iterable[Reservation]:
    for bet in ticket.bets:
        yield Reservation(draw_id=ticket.draw_id, combination=bet.combination, bet_type=bet.bet_type, amount=bet.amount)
