"""Bet limit routes (controllers). No business logic here."""

from __future__ import annotations

from flask import Blueprint, request

from draw_engine.db import get_session
from draw_engine.schemas.limits import (
    AvailabilitySchema,
    BetLimitInputSchema,
    ExposureQuerySchema,
    ExposureSchema,
    NumberLimitInputSchema,
)
from draw_engine.services.registry import get_services
from draw_engine.utils.responses import ok

bet_limits_bp = Blueprint("bet_limits", __name__)

_limit_input_schema = BetLimitInputSchema()
_number_input_schema = NumberLimitInputSchema()
_exposure_query_schema = ExposureQuerySchema()
_exposure_schema = ExposureSchema()
_exposures_schema = ExposureSchema(many=True)
_availability_schema = AvailabilitySchema()


@bet_limits_bp.get("/bet-limits")
def list_limits():
    return ok(get_services().ledger.list_default_limits(get_session()))


@bet_limits_bp.post("/bet-limits")
def set_limit():
    data = _limit_input_schema.load(request.get_json(silent=True) or {})
    limit = get_services().ledger.set_default_limit(
        get_session(),
        data["bet_type"],
        data["limit_amount"],
        is_active=data["is_active"],
    )
    return ok({"bet_type": limit.bet_type, "limit_amount": limit.limit_amount, "is_active": limit.is_active})


@bet_limits_bp.post("/bet-limits/per-number")
def set_number_limit():
    data = _number_input_schema.load(request.get_json(silent=True) or {})
    row = get_services().ledger.set_number_limit(
        get_session(),
        data["draw_id"],
        data["combination"],
        data["bet_type"],
        data["limit_amount"],
    )
    return ok(_exposure_schema.dump(row))


@bet_limits_bp.get("/bet-limits/sold-out/<int:draw_id>")
def sold_out(draw_id: int):
    rows = get_services().ledger.sold_out_combinations(get_session(), draw_id)
    return ok(_exposures_schema.dump(rows))


@bet_limits_bp.get("/bet-limits/current")
def current_totals():
    args = _exposure_query_schema.load(request.args)
    rows = get_services().ledger.current_totals(
        get_session(),
        args["draw_id"],
        bet_type=args["bet_type"],
        combination=args["combination"],
    )
    return ok(_exposures_schema.dump(rows))


@bet_limits_bp.get("/bet-limits/check/<int:draw_id>/<combination>/<bet_type>")
def check_availability(draw_id: int, combination: str, bet_type: str):
    """Room left on one number, including numbers with no sales yet."""

    result = get_services().ledger.availability(get_session(), draw_id, combination, bet_type)
    return ok(_availability_schema.dump(result))
