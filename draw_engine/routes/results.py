"""Draw result routes (controllers). No business logic here."""

from __future__ import annotations

from flask import Blueprint, request

from draw_engine.db import get_session
from draw_engine.schemas.draw import DrawSchema
from draw_engine.schemas.settlement import DrawResultInputSchema, SettlementReportSchema, WinningTicketSchema
from draw_engine.services.registry import get_services
from draw_engine.utils.responses import ok

results_bp = Blueprint("results", __name__)

_input_schema = DrawResultInputSchema()
_report_schema = SettlementReportSchema()
_winner_schema = WinningTicketSchema(many=True)
_draw_schema = DrawSchema()


@results_bp.post("/draw-results")
def enter_result():
    """Record the official result of a closed draw and settle it."""

    data = _input_schema.load(request.get_json(silent=True) or {})
    report = get_services().settlement.settle_draw(
        get_session(),
        data["draw_id"],
        data["winning_number"],
        entered_by=data["entered_by"],
    )
    return ok(_report_schema.dump(report))


@results_bp.get("/draw-results/<int:draw_id>")
def get_result(draw_id: int):
    result = get_services().settlement.draw_winners(get_session(), draw_id)
    return ok(
        {
            "draw": _draw_schema.dump(result.draw),
            "winners": _winner_schema.dump(result.winners),
            "summary": {
                "total_winners": len(result.winners),
                "total_payout": str(result.total_payout),
            },
        }
    )
