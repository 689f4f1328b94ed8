"""Settlement engine: compute winners for a closed draw and settle it once."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.orm import Session

from draw_engine.errors import InvalidStateTransition, NotFoundError, ValidationError
from draw_engine.models.draw import Draw, DrawStatus
from draw_engine.models.ticket import TicketStatus
from draw_engine.models.winning_ticket import WinningTicket
from draw_engine.repositories.draw_repository import DrawRepository
from draw_engine.repositories.ticket_repository import TicketRepository
from draw_engine.repositories.winning_ticket_repository import WinningTicketRepository
from draw_engine.services.bet_rules import BetRules, compute_prize, is_winner, prize_key_for
from draw_engine.services.draw_state_machine import DrawStateMachine
from draw_engine.services.prize_service import PrizeService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementReport:
    draw_id: int
    winning_number: str
    tickets_processed: int
    bets_processed: int
    winning_bets: int
    winning_tickets: int
    total_payout: Decimal
    already_settled: bool = False
    payout_by_prize_key: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class DrawWinners:
    draw: Draw
    winners: list[WinningTicket]
    total_payout: Decimal


def _summarize(rows: list[WinningTicket]) -> tuple[Decimal, dict[str, Decimal]]:
    total = Decimal("0.00")
    by_key: dict[str, Decimal] = {}
    for row in rows:
        amount = Decimal(row.prize_amount)
        total += amount
        by_key[row.prize_key] = by_key.get(row.prize_key, Decimal("0.00")) + amount
    return total, by_key


class SettlementEngine:
    """Settle draws exactly once.

    The result is recorded and committed before winners are computed, so a
    failure during prize computation leaves an auditable result that can be
    settled again. Winning rows are keyed by bet, which makes re-runs safe.
    """

    def __init__(
        self,
        prizes: PrizeService,
        rules: BetRules | None = None,
        state_machine: DrawStateMachine | None = None,
        draw_repository: DrawRepository | None = None,
        ticket_repository: TicketRepository | None = None,
        winning_repository: WinningTicketRepository | None = None,
    ) -> None:
        self._prizes = prizes
        self._rules = rules or BetRules()
        self._state = state_machine or DrawStateMachine()
        self._draws = draw_repository or DrawRepository()
        self._tickets = ticket_repository or TicketRepository()
        self._winners = winning_repository or WinningTicketRepository()

    def settle_draw(
        self,
        session: Session,
        draw_id: int,
        winning_number: str,
        entered_by: int | None = None,
    ) -> SettlementReport:
        if not self._rules.is_valid_number(winning_number):
            raise ValidationError(
                message=f"Winning number must be exactly {self._rules.combination_length} digits",
                details={"winning_number": winning_number},
            )

        draw = self._draws.get(session, draw_id, refresh=True)
        if draw is None:
            raise NotFoundError(message=f"Draw {draw_id} not found")

        if draw.status == DrawStatus.SETTLED.value:
            if draw.winning_number != winning_number:
                raise InvalidStateTransition(
                    message="Draw already settled with a different result",
                    details={"draw_id": draw_id, "winning_number": draw.winning_number},
                )
            return self._report_from_rows(session, draw, already_settled=True)

        self._state.record_result(session, draw_id, winning_number, entered_by=entered_by)
        session.commit()

        multipliers = self._prizes.multipliers(session)
        bets = self._tickets.bets_for_draw(session, draw_id)
        ticket_ids: set[int] = set()
        winning_ticket_ids: set[int] = set()

        for bet in bets:
            ticket_ids.add(bet.ticket_id)
            if not is_winner(bet.bet_type, bet.combination, winning_number):
                continue
            key = prize_key_for(bet.bet_type, bet.combination)
            multiplier = multipliers.get(key)
            if multiplier is None:
                raise ValidationError(message="No prize configured", details={"prize_key": key})
            self._winners.create_if_absent(
                session,
                bet_id=bet.id,
                ticket_id=bet.ticket_id,
                draw_id=draw_id,
                prize_key=key,
                prize_amount=compute_prize(bet.amount, multiplier),
            )
            winning_ticket_ids.add(bet.ticket_id)

        self._tickets.set_status(
            session,
            winning_ticket_ids,
            draw_id=draw_id,
            from_status=TicketStatus.PENDING.value,
            to_status=TicketStatus.PENDING_APPROVAL.value,
        )
        self._tickets.set_status(
            session,
            None,
            draw_id=draw_id,
            from_status=TicketStatus.PENDING.value,
            to_status=TicketStatus.VALIDATED.value,
        )

        try:
            draw = self._state.settle(session, draw_id)
        except InvalidStateTransition:
            # Another caller finished settling after our result commit.
            draw = self._draws.get(session, draw_id, refresh=True)
            if draw is None or draw.status != DrawStatus.SETTLED.value or draw.winning_number != winning_number:
                raise
            return self._report_from_rows(session, draw, already_settled=True)

        report =self._report_from_rows(session, draw, bets_processed=len(bets), tickets_processed=len(ticket_ids))
        logger.info(
            "Draw %s settled with %s: %s winning bets on %s tickets, payout %s",
            draw_id,
            winning_number,
            report.winning_bets,
            report.winning_tickets,
            report.total_payout,
        )
        return report

    def _report_from_rows(
        self,
        session: Session,
        draw: Draw,
        *,
        already_settled: bool = False,
        bets_processed: int | None = None,
        tickets_processed: int | None = None,
    ) -> SettlementReport:
        rows = list(self._winners.list_for_draw(session, draw.id))
        total, by_key = _summarize(rows)
        if bets_processed is None:
            bets_processed = len(self._tickets.bets_for_draw(session, draw.id))
        if tickets_processed is None:
            tickets_processed = self._tickets.count_tickets(session, draw.id)
        return SettlementReport(
            draw_id=draw.id,
            winning_number=str(draw.winning_number),
            tickets_processed=tickets_processed,
            bets_processed=bets_processed,
            winning_bets=len(rows),
            winning_tickets=len({row.ticket_id for row in rows}),
            total_payout=total,
            already_settled=already_settled,
            payout_by_prize_key=by_key,
        )

    def draw_winners(self, session: Session, draw_id: int) -> DrawWinners:
        draw = self._draws.get(session, draw_id)
        if draw is None:
            raise NotFoundError(message=f"Draw {draw_id} not found")
        rows = list(self._winners.list_for_draw(session, draw_id))
        total, _ = _summarize(rows)
        return DrawWinners(draw=draw, winners=rows, total_payout=total)
