from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select

from draw_engine.db import session_scope
from draw_engine.errors import NotFoundError, Rejection, RejectionReason, ValidationError
from draw_engine.models.bet_limit import BetLimitEntry
from draw_engine.services.bet_limit_ledger import Reservation
from draw_engine.services.draw_state_machine import DrawStateMachine


def _exposure(ledger, session, draw_id, combination, bet_type="standard"):
    rows = ledger.current_totals(session, draw_id, bet_type=bet_type, combination=combination)
    return rows[0] if rows else None


def test_reserve_until_sold_out(session, services, make_draw):
    ledger = services.ledger
    draw_id = make_draw()

    first = ledger.check_and_reserve(session, draw_id, "123", "standard", 950)
    assert first == Reservation(draw_id=draw_id, combination="123", bet_type="standard", amount=950)

    over = ledger.check_and_reserve(session, draw_id, "123", "standard", 100)
    assert isinstance(over, Rejection)
    assert over.reason is RejectionReason.LIMIT_EXCEEDED
    assert over.details["remaining_amount"] == 50
    assert "Only 50 left" in over.message

    assert isinstance(ledger.check_and_reserve(session, draw_id, "123", "standard", 50), Reservation)
    row = _exposure(ledger, session, draw_id, "123")
    assert row.current_amount == 1000
    assert row.bet_count == 2
    assert row.sold_out is True
    assert row.utilization == 100.0

    sold_out = ledger.check_and_reserve(session, draw_id, "123", "standard", 1)
    assert sold_out.reason is RejectionReason.SOLD_OUT
    assert [r.combination for r in ledger.sold_out_combinations(session, draw_id)] == ["123"]


def test_limits_are_per_bet_type_and_per_draw(session, services, make_draw):
    ledger = services.ledger
    draw_a, draw_b = make_draw(), make_draw()

    assert isinstance(ledger.check_and_reserve(session, draw_a, "123", "standard", 1000), Reservation)
    assert isinstance(ledger.check_and_reserve(session, draw_a, "123", "rambolito", 1500), Reservation)
    assert isinstance(ledger.check_and_reserve(session, draw_b, "123", "standard", 1000), Reservation)


def test_concurrent_reservations_never_exceed_limit(session_factory, services, make_draw):
    ledger = services.ledger
    draw_id = make_draw()

    def _reserve(_):
        with session_scope(session_factory) as s:
            return ledger.check_and_reserve(s, draw_id, "777", "standard", 100)

    with ThreadPoolExecutor(max_workers=10) as pool:
        outcomes = list(pool.map(_reserve, range(20)))

    accepted = [o for o in outcomes if isinstance(o, Reservation)]
    rejected = [o for o in outcomes if isinstance(o, Rejection)]
    assert len(accepted) == 10
    assert len(rejected) == 10
    assert {r.reason for r in rejected} == {RejectionReason.SOLD_OUT}

    with session_scope(session_factory) as s:
        row = _exposure(ledger, s, draw_id, "777")
        assert row.current_amount == 1000
        assert row.bet_count == 10
        assert row.sold_out is True


def test_stale_reader_cannot_oversell(session_factory, services, make_draw):
    ledger = services.ledger
    draw_id = make_draw()

    stale = session_factory()
    try:
        ledger.check_and_reserve(stale, draw_id, "555", "standard", 1)
        stale.commit()
        snapshot = _exposure(ledger, stale, draw_id, "555")
        stale.commit()
        assert snapshot.current_amount == 1

        with session_scope(session_factory) as other:
            assert isinstance(ledger.check_and_reserve(other, draw_id, "555", "standard", 600), Reservation)

        # The snapshot still says 1 sold; the ledger must use the live total.
        assert snapshot.current_amount == 1
        outcome = ledger.check_and_reserve(stale, draw_id, "555", "standard", 600)
        stale.commit()
        assert isinstance(outcome, Rejection)
        assert outcome.reason is RejectionReason.LIMIT_EXCEEDED
        assert _exposure(ledger, stale, draw_id, "555").current_amount == 601
    finally:
        stale.rollback()
        stale.close()


def test_closed_draw_rejects_reservations(session, services, make_draw):
    ledger = services.ledger
    draw_id = make_draw()
    assert isinstance(ledger.check_and_reserve(session, draw_id, "123", "standard", 10), Reservation)

    DrawStateMachine().try_close(session, draw_id)
    outcome = ledger.check_and_reserve(session, draw_id, "123", "standard", 10)

    assert outcome.reason is RejectionReason.DRAW_NOT_OPEN
    assert _exposure(ledger, session, draw_id, "123").current_amount == 10


def test_release_gives_capacity_back(session, services, make_draw):
    ledger = services.ledger
    draw_id = make_draw()

    reservation = ledger.check_and_reserve(session, draw_id, "321", "standard", 1000)
    assert _exposure(ledger, session, draw_id, "321").sold_out is True

    assert ledger.release(session, reservation) is True
    row = _exposure(ledger, session, draw_id, "321")
    assert row.current_amount == 0
    assert row.bet_count == 0
    assert row.sold_out is False

    # Nothing left to release.
    assert ledger.release(session, reservation) is False


def test_configured_default_limit_overrides_built_in(session, services, make_draw):
    ledger = services.ledger
    draw_id = make_draw()

    ledger.set_default_limit(session, "standard", 200)
    assert ledger.ceiling_for(session, "standard") == 200
    assert ledger.check_and_reserve(session, draw_id, "123", "standard", 201).reason is RejectionReason.LIMIT_EXCEEDED

    limits = {row["bet_type"]: row for row in ledger.list_default_limits(session)}
    assert limits["standard"]["limit_amount"] == 200
    assert limits["standard"]["source"] == "configured"
    assert limits["rambolito"]["limit_amount"] == 1500
    assert limits["rambolito"]["source"] == "default"


def test_inactive_limit_falls_back_to_default(session, services):
    ledger = services.ledger
    ledger.set_default_limit(session, "standard", 200, is_active=False)
    assert ledger.ceiling_for(session, "standard") == 1000


def test_number_limit_below_current_marks_sold_out(session, services, make_draw):
    ledger = services.ledger
    draw_id = make_draw()
    ledger.check_and_reserve(session, draw_id, "999", "standard", 300)

    row = ledger.set_number_limit(session, draw_id, "999", "standard", 250)
    assert row.limit_amount == 250
    assert row.sold_out is True

    row = ledger.set_number_limit(session, draw_id, "999", "standard", 400)
    assert row.sold_out is False
    assert isinstance(ledger.check_and_reserve(session, draw_id, "999", "standard", 100), Reservation)
    assert ledger.check_and_reserve(session, draw_id, "999", "standard", 1).reason is RejectionReason.SOLD_OUT


def test_unknown_bet_type_has_no_ceiling(session, services):
    with pytest.raises(ValidationError):
        services.ledger.ceiling_for(session, "combo")
    with pytest.raises(ValidationError):
        services.ledger.set_default_limit(session, "combo", 10)


@pytest.mark.parametrize(
    "combination, bet_type",
    [("12", "standard"), ("1234", "standard"), ("12a", "standard"), ("111", "rambolito"), ("123", "combo")],
)
def test_number_limit_rejects_numbers_no_bet_can_carry(session, services, make_draw, combination, bet_type):
    draw_id = make_draw()
    with pytest.raises(ValidationError):
        services.ledger.set_number_limit(session, draw_id, combination, bet_type, 100)
    assert session.scalar(select(func.count()).select_from(BetLimitEntry)) == 0


def test_availability_of_unsold_number_uses_effective_ceiling(session, services, make_draw):
    ledger = services.ledger
    draw_id = make_draw()

    fresh = ledger.availability(session, draw_id, "555", "standard")
    assert (fresh.current_amount, fresh.limit_amount, fresh.remaining_amount) == (0, 1000, 1000)
    assert fresh.sold_out is False
    assert fresh.source == "default"

    ledger.set_default_limit(session, "rambolito", 400)
    configured = ledger.availability(session, draw_id, "556", "rambolito")
    assert configured.limit_amount == 400
    assert configured.source == "configured"

    # Looking does not create exposure rows.
    assert session.scalar(select(func.count()).select_from(BetLimitEntry)) == 0


def test_availability_of_partly_sold_number(session, services, make_draw):
    ledger = services.ledger
    draw_id = make_draw()
    ledger.set_number_limit(session, draw_id, "808", "standard", 500)
    ledger.check_and_reserve(session, draw_id, "808", "standard", 120)

    row = ledger.availability(session, draw_id, "808", "standard")

    assert (row.current_amount, row.limit_amount, row.remaining_amount) == (120, 500, 380)
    assert row.bet_count == 1
    assert row.source == "number"


def test_availability_needs_a_real_draw_and_number(session, services, make_draw):
    with pytest.raises(NotFoundError):
        services.ledger.availability(session, 404, "123", "standard")
    with pytest.raises(ValidationError):
        services.ledger.availability(session, make_draw(), "12", "standard")


def test_bet_count_counts_lines_not_tickets(session, services, make_draw):
    draw_id = make_draw()
    ticket = services.tickets.submit_ticket(
        session,
        agent_id=1,
        draw_id=draw_id,
        bets=[
            {"combination": "246", "bet_type": "standard", "amount": 10},
            {"combination": "246", "bet_type": "standard", "amount": 15},
        ],
    )
    assert not isinstance(ticket, Rejection)

    row = services.ledger.availability(session, draw_id, "246", "standard")
    assert row.bet_count == 2
    assert row.current_amount == 25
