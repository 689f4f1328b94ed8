"""Draw routes (controllers). No business logic here."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from draw_engine.db import get_session
from draw_engine.errors import NotFoundError
from draw_engine.repositories.draw_repository import DrawRepository
from draw_engine.schemas.draw import DrawQuerySchema, DrawSchema, ScheduleRequestSchema
from draw_engine.services.registry import get_services
from draw_engine.utils.responses import ok

draws_bp = Blueprint("draws", __name__)

_draw_schema = DrawSchema()
_draws_schema = DrawSchema(many=True)
_query_schema = DrawQuerySchema()
_schedule_schema = ScheduleRequestSchema()
_repo = DrawRepository()


@draws_bp.get("/draws")
def list_draws():
    args = _query_schema.load(request.args)
    draws = _repo.list_draws(
        get_session(),
        draw_date=args["draw_date"],
        status=args["status"],
        limit=args["limit"],
    )
    return ok(_draws_schema.dump(draws))


@draws_bp.get("/draws/open")
def list_open_draws():
    """Draws still accepting bets right now."""

    draws = get_services().scheduler.list_open_draws(get_session())
    return ok(_draws_schema.dump(draws))


@draws_bp.get("/draws/<int:draw_id>")
def get_draw(draw_id: int):
    draw = _repo.get(get_session(), draw_id)
    if draw is None:
        raise NotFoundError(message=f"Draw {draw_id} not found")
    return ok(_draw_schema.dump(draw))


@draws_bp.post("/draws/<int:draw_id>/close")
def close_draw(draw_id: int):
    draw = get_services().state_machine.close(get_session(), draw_id)
    return ok(_draw_schema.dump(draw))


@draws_bp.post("/draws/schedule")
def schedule_draws():
    data = _schedule_schema.load(request.get_json(silent=True) or {})
    horizon = data["horizon_days"]
    if horizon is None:
        horizon = int(current_app.config.get("SCHEDULER_HORIZON_DAYS", 14))

    created = get_services().scheduler.ensure_draws_exist(get_session(), horizon, today=data["start_date"])
    return ok({"created": created, "horizon_days": horizon}, status_code=201 if created else 200)


@draws_bp.post("/draws/tick")
def tick():
    """Run one close tick now (same work as the background job)."""

    closed = get_services().scheduler.tick(get_session())
    return ok({"closed": closed})
