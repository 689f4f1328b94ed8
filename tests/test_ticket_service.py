from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql

from draw_engine.db import session_scope
from draw_engine.errors import ConflictError, NotFoundError, Rejection, RejectionReason
from draw_engine.models.bet_limit import BetLimitEntry
from draw_engine.models.ticket import Bet, Ticket, TicketStatus
from draw_engine.repositories.draw_repository import DrawRepository
from draw_engine.services.draw_state_machine import DrawStateMachine
from draw_engine.services.ticket_service import generate_ticket_number
from draw_engine.utils.clock import utcnow


def bet(combination, bet_type="standard", amount=10):
    return {"combination": combination, "bet_type": bet_type, "amount": amount}


def _count(session, model):
    return session.scalar(select(func.count()).select_from(model))


def _current(services, session, draw_id, combination, bet_type="standard"):
    rows = services.ledger.current_totals(session, draw_id, bet_type=bet_type, combination=combination)
    return rows[0].current_amount if rows else 0


def test_generate_ticket_number_is_17_digits():
    numbers = {generate_ticket_number() for _ in range(50)}
    assert all(len(n) == 17 and n.isdigit() for n in numbers)


def test_submit_ticket_accepts_all_lines(session, services, make_draw):
    draw_id = make_draw()

    ticket = services.tickets.submit_ticket(
        session,
        agent_id=3,
        draw_id=draw_id,
        bets=[bet("123", amount=20), bet("456", "rambolito", 30)],
    )
    session.commit()

    assert isinstance(ticket, Ticket)
    assert len(ticket.ticket_number) == 17
    assert ticket.status == TicketStatus.PENDING.value
    assert ticket.total_amount == 50
    assert [(b.combination, b.bet_type, b.amount) for b in ticket.bets] == [
        ("123", "standard", 20),
        ("456", "rambolito", 30),
    ]
    assert _current(services, session, draw_id, "123") == 20
    assert _current(services, session, draw_id, "456", "rambolito") == 30
    assert services.tickets.get_by_number(session, ticket.ticket_number).id == ticket.id


def test_ticket_after_cutoff_is_rejected_even_while_status_is_open(session, services, make_draw):
    # The scheduler has not closed the draw yet; the clock still decides.
    draw_id = make_draw(cutoff_in=timedelta(seconds=-1))

    outcome = services.tickets.submit_ticket(session, agent_id=1, draw_id=draw_id, bets=[bet("123")])
    session.commit()

    assert isinstance(outcome, Rejection)
    assert outcome.reason is RejectionReason.DRAW_CLOSED
    assert outcome.message == "Betting cutoff time has passed"
    assert _count(session, Ticket) == 0
    assert _count(session, BetLimitEntry) == 0


def test_explicit_time_past_cutoff_is_rejected(session, services, make_draw):
    draw_id = make_draw(cutoff_in=timedelta(minutes=10))

    outcome = services.tickets.submit_ticket(
        session, agent_id=1, draw_id=draw_id, bets=[bet("123")], now=utcnow() + timedelta(minutes=11)
    )
    assert outcome.reason is RejectionReason.DRAW_CLOSED


def test_closed_draw_is_rejected(session, services, make_draw):
    draw_id = make_draw()
    DrawStateMachine().try_close(session, draw_id)
    session.commit()

    outcome = services.tickets.submit_ticket(session, agent_id=1, draw_id=draw_id, bets=[bet("123")])
    assert outcome.reason is RejectionReason.DRAW_CLOSED
    assert outcome.message == "Draw is not open for betting"


def test_unknown_draw_is_rejected(session, services):
    outcome = services.tickets.submit_ticket(session, agent_id=1, draw_id=404, bets=[bet("123")])
    assert outcome.reason is RejectionReason.DRAW_NOT_OPEN


def test_one_rejected_line_rejects_whole_ticket(session, services, make_draw):
    draw_id = make_draw()
    services.ledger.set_number_limit(session, draw_id, "456", "standard", 50)
    session.commit()

    outcome = services.tickets.submit_ticket(
        session,
        agent_id=1,
        draw_id=draw_id,
        bets=[bet("123", amount=100), bet("456", amount=100)],
    )
    session.commit()

    assert outcome.reason is RejectionReason.LIMIT_EXCEEDED
    assert outcome.message.startswith("Bet 2: ")
    assert outcome.details["line"] == 1
    assert _count(session, Ticket) == 0
    assert _count(session, Bet) == 0
    assert _current(services, session, draw_id, "123") == 0
    assert _current(services, session, draw_id, "456") == 0


def test_duplicate_lines_count_against_the_same_limit(session, services, make_draw):
    draw_id = make_draw()

    outcome = services.tickets.submit_ticket(
        session, agent_id=1, draw_id=draw_id, bets=[bet("123", amount=600), bet("123", amount=600)]
    )
    assert outcome.reason is RejectionReason.LIMIT_EXCEEDED
    assert _current(services, session, draw_id, "123") == 0

    ticket = services.tickets.submit_ticket(
        session, agent_id=1, draw_id=draw_id, bets=[bet("123", amount=500), bet("123", amount=500)]
    )
    assert isinstance(ticket, Ticket)
    assert _current(services, session, draw_id, "123") == 1000


def test_empty_ticket(session, services, make_draw):
    outcome = services.tickets.submit_ticket(session, agent_id=1, draw_id=make_draw(), bets=[])
    assert outcome.reason is RejectionReason.EMPTY_TICKET
    assert outcome.status_code == 400


def test_invalid_line_names_its_position(session, services, make_draw):
    outcome = services.tickets.submit_ticket(
        session, agent_id=1, draw_id=make_draw(), bets=[bet("123"), bet("111", "rambolito")]
    )
    assert outcome.reason is RejectionReason.INVALID_BET_LINE
    assert outcome.message.startswith("Bet 2: ")
    assert "1" in outcome.details["lines"]


def test_too_many_lines(session, services, make_draw):
    bets = [bet(f"{i:03d}") for i in range(11)]
    outcome = services.tickets.submit_ticket(session, agent_id=1, draw_id=make_draw(), bets=bets)
    assert outcome.reason is RejectionReason.INVALID_BET_LINE


def test_void_ticket_releases_exposure(session, services, make_draw):
    draw_id = make_draw()
    ticket = services.tickets.submit_ticket(
        session, agent_id=1, draw_id=draw_id, bets=[bet("123", amount=1000), bet("321", "rambolito", 5)]
    )
    session.commit()
    assert services.ledger.sold_out_combinations(session, draw_id)

    voided = services.tickets.void_ticket(session, ticket.id)
    session.commit()

    assert voided.status == TicketStatus.VOID.value
    assert _current(services, session, draw_id, "123") == 0
    assert _current(services, session, draw_id, "321", "rambolito") == 0
    assert services.ledger.sold_out_combinations(session, draw_id) == []

    with pytest.raises(ConflictError):
        services.tickets.void_ticket(session, ticket.id)


def test_void_after_cutoff_is_refused(session, services, make_draw):
    draw_id = make_draw(cutoff_in=timedelta(minutes=10))
    ticket = services.tickets.submit_ticket(session, agent_id=1, draw_id=draw_id, bets=[bet("123")])
    session.commit()

    with pytest.raises(ConflictError):
        services.tickets.void_ticket(session, ticket.id, now=utcnow() + timedelta(minutes=11))


def test_get_missing_ticket(session, services):
    with pytest.raises(NotFoundError):
        services.tickets.get_ticket(session, 1)
    with pytest.raises(NotFoundError):
        services.tickets.get_by_number(session, "00000000000000000")


def test_list_tickets_filters_by_agent(session, services, make_draw):
    draw_id = make_draw()
    for agent in (1, 1, 2):
        services.tickets.submit_ticket(session, agent_id=agent, draw_id=draw_id, bets=[bet("123")])
    session.commit()

    assert len(services.tickets.list_tickets(session, draw_id=draw_id)) == 3
    assert len(services.tickets.list_tickets(session, agent_id=1)) == 2


def test_concurrent_tickets_cannot_oversell_one_number(session_factory, services, make_draw):
    draw_id = make_draw()
    barrier = threading.Barrier(2)

    def _sell(agent_id):
        with session_scope(session_factory) as s:
            barrier.wait()
            outcome = services.tickets.submit_ticket(
                s, agent_id=agent_id, draw_id=draw_id, bets=[bet("123", amount=600)]
            )
            return outcome.reason if isinstance(outcome, Rejection) else "accepted"

    with ThreadPoolExecutor(max_workers=2) as pool:
        outcomes = list(pool.map(_sell, [1, 2]))

    assert sorted(outcomes, key=str) == sorted(["accepted", RejectionReason.LIMIT_EXCEEDED], key=str)
    with session_scope(session_factory) as s:
        assert _count(s, Ticket) == 1
        assert _count(s, Bet) == 1
        assert _current(services, s, draw_id, "123") == 600


def test_sale_locks_the_draw_row():
    sql = str(DrawRepository().for_sale_statement(1).compile(dialect=postgresql.dialect()))
    assert "FOR SHARE" in sql
