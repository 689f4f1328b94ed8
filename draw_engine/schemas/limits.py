"""Marshmallow schemas for bet limits and prize configuration."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class BetLimitInputSchema(Schema):
    bet_type = fields.Str(required=True)
    limit_amount = fields.Int(required=True, validate=validate.Range(min=1))
    is_active = fields.Bool(required=False, load_default=True)


class NumberLimitInputSchema(Schema):
    draw_id = fields.Int(required=True)
    combination = fields.Str(required=True, validate=validate.Regexp(r"^\d+$", error="Digits only"))
    bet_type = fields.Str(required=True)
    limit_amount = fields.Int(required=True, validate=validate.Range(min=1))


class ExposureQuerySchema(Schema):
    draw_id = fields.Int(required=True)
    bet_type = fields.Str(required=False, load_default=None)
    combination = fields.Str(required=False, load_default=None)


class ExposureSchema(Schema):
    combination = fields.Str()
    bet_type = fields.Str()
    current_amount = fields.Int()
    limit_amount = fields.Int()
    bet_count = fields.Int()
    sold_out = fields.Bool()
    utilization = fields.Float()


class PrizeConfigurationSchema(Schema):
    prize_key = fields.Str()
    multiplier = fields.Decimal(as_string=True)
    base_amount = fields.Decimal(as_string=True)
    base_prize = fields.Decimal(as_string=True)
    description = fields.Str(allow_none=True)
    is_active = fields.Bool()


class PrizeConfigurationInputSchema(Schema):
    prize_key = fields.Str(required=True)
    multiplier = fields.Decimal(required=True, validate=validate.Range(min=0, min_inclusive=False))
    base_amount = fields.Decimal(required=False, load_default=None, validate=validate.Range(min=0, min_inclusive=False))
    description = fields.Str(required=False, load_default=None)


class PrizeQuoteInputSchema(Schema):
    bet_type = fields.Str(required=True)
    combination = fields.Str(required=True)
    amount = fields.Int(required=True, strict=True)


class PrizeQuoteSchema(Schema):
    bet_type = fields.Str()
    combination = fields.Str()
    amount = fields.Int()
    prize_key = fields.Str()
    multiplier = fields.Decimal(as_string=True)
    prize_amount = fields.Decimal(as_string=True)
    winning_combinations = fields.List(fields.Str())


class AvailabilitySchema(Schema):
    draw_id = fields.Int()
    combination = fields.Str()
    bet_type = fields.Str()
    current_amount = fields.Int()
    limit_amount = fields.Int()
    remaining_amount = fields.Int()
    bet_count = fields.Int()
    sold_out = fields.Bool()
    source = fields.Str()
