"""Marshmallow schemas for tickets."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class BetLineSchema(Schema):
    """One requested bet line. Betting rules are checked by the ticket service."""

    combination = fields.Str(required=True)
    bet_type = fields.Str(required=True)
    amount = fields.Int(required=True, strict=True)


class TicketSubmitSchema(Schema):
    agent_id = fields.Int(required=True)
    draw_id = fields.Int(required=True)
    bets = fields.List(fields.Nested(BetLineSchema), required=True)


class BetSchema(Schema):
    id = fields.Int()
    combination = fields.Str()
    bet_type = fields.Str()
    amount = fields.Int()


class TicketSchema(Schema):
    """Serialize Ticket with its bets."""

    id = fields.Int()
    ticket_number = fields.Str()
    agent_id = fields.Int()
    draw_id = fields.Int()
    total_amount = fields.Int()
    status = fields.Str()
    created_at = fields.DateTime()
    bets = fields.List(fields.Nested(BetSchema))


class TicketQuerySchema(Schema):
    draw_id = fields.Int(required=False, load_default=None)
    agent_id = fields.Int(required=False, load_default=None)
    limit = fields.Int(required=False, load_default=100, validate=validate.Range(min=1, max=500))
