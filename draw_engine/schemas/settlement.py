"""Marshmallow schemas for result entry and settlement output."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class DrawResultInputSchema(Schema):
    draw_id = fields.Int(required=True)
    winning_number = fields.Str(required=True, validate=validate.Regexp(r"^\d+$", error="Digits only"))
    entered_by = fields.Int(required=False, load_default=None)


class SettlementReportSchema(Schema):
    draw_id = fields.Int()
    winning_number = fields.Str()
    tickets_processed = fields.Int()
    bets_processed = fields.Int()
    winning_bets = fields.Int()
    winning_tickets = fields.Int()
    total_payout = fields.Decimal(as_string=True)
    already_settled = fields.Bool()
    payout_by_prize_key = fields.Dict(keys=fields.Str(), values=fields.Decimal(as_string=True))


class WinningTicketSchema(Schema):
    id = fields.Int()
    bet_id = fields.Int()
    ticket_id = fields.Int()
    draw_id = fields.Int()
    prize_key = fields.Str()
    prize_amount = fields.Decimal(as_string=True)
    created_at = fields.DateTime()
