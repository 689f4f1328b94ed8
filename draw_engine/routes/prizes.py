"""Prize configuration routes (controllers). No business logic here."""

from __future__ import annotations

from decimal import Decimal

from flask import Blueprint, request

from draw_engine.db import get_session
from draw_engine.schemas.limits import (
    PrizeConfigurationInputSchema,
    PrizeConfigurationSchema,
    PrizeQuoteInputSchema,
    PrizeQuoteSchema,
)
from draw_engine.services.registry import get_services
from draw_engine.utils.responses import ok

prizes_bp = Blueprint("prizes", __name__)

_config_schema = PrizeConfigurationSchema()
_configs_schema = PrizeConfigurationSchema(many=True)
_config_input_schema = PrizeConfigurationInputSchema()
_quote_input_schema = PrizeQuoteInputSchema()
_quote_schema = PrizeQuoteSchema()


@prizes_bp.get("/prize-configuration")
def list_configurations():
    return ok(_configs_schema.dump(get_services().prizes.list_configurations(get_session())))


@prizes_bp.post("/prize-configuration")
def upsert_configuration():
    data = _config_input_schema.load(request.get_json(silent=True) or {})
    config = get_services().prizes.upsert(
        get_session(),
        data["prize_key"],
        data["multiplier"],
        base_amount=data["base_amount"] or Decimal("10"),
        description=data["description"],
    )
    return ok(_config_schema.dump(config))


@prizes_bp.put("/prize-configuration/<prize_key>/toggle")
def toggle_configuration(prize_key: str):
    config = get_services().prizes.toggle(get_session(), prize_key)
    return ok(_config_schema.dump(config))


@prizes_bp.post("/prize-configuration/calculate")
def calculate():
    data = _quote_input_schema.load(request.get_json(silent=True) or {})
    quote = get_services().prizes.quote(get_session(), data["bet_type"], data["combination"], data["amount"])
    return ok(_quote_schema.dump(quote))
