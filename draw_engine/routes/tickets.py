"""Ticket routes (controllers). No business logic here."""

from __future__ import annotations

from flask import Blueprint, request

from draw_engine.db import get_session
from draw_engine.errors import Rejection
from draw_engine.schemas.ticket import TicketQuerySchema, TicketSchema, TicketSubmitSchema
from draw_engine.services.registry import get_services
from draw_engine.utils.responses import ok, rejected

tickets_bp = Blueprint("tickets", __name__)

_ticket_schema = TicketSchema()
_tickets_schema = TicketSchema(many=True)
_submit_schema = TicketSubmitSchema()
_query_schema = TicketQuerySchema()


@tickets_bp.post("/tickets")
def submit_ticket():
    """Sell a ticket. The agent id is trusted as supplied by the caller."""

    data = _submit_schema.load(request.get_json(silent=True) or {})
    result = get_services().tickets.submit_ticket(
        get_session(),
        agent_id=data["agent_id"],
        draw_id=data["draw_id"],
        bets=data["bets"],
    )
    if isinstance(result, Rejection):
        return rejected(result)

    # Commit occurs in teardown if no exception.
    return ok(_ticket_schema.dump(result), status_code=201)


@tickets_bp.get("/tickets")
def list_tickets():
    args = _query_schema.load(request.args)
    tickets = get_services().tickets.list_tickets(
        get_session(),
        draw_id=args["draw_id"],
        agent_id=args["agent_id"],
        limit=args["limit"],
    )
    return ok(_tickets_schema.dump(tickets))


@tickets_bp.get("/tickets/<int:ticket_id>")
def get_ticket(ticket_id: int):
    ticket = get_services().tickets.get_ticket(get_session(), ticket_id)
    return ok(_ticket_schema.dump(ticket))


@tickets_bp.get("/tickets/number/<ticket_number>")
def get_ticket_by_number(ticket_number: str):
    ticket = get_services().tickets.get_by_number(get_session(), ticket_number)
    return ok(_ticket_schema.dump(ticket))


@tickets_bp.post("/tickets/<int:ticket_id>/void")
def void_ticket(ticket_id: int):
    ticket = get_services().tickets.void_ticket(get_session(), ticket_id)
    return ok(_ticket_schema.dump(ticket))
