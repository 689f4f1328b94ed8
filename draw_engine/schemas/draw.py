"""Marshmallow schemas for draws."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from draw_engine.models.draw import DrawStatus


class DrawSchema(Schema):
    """Serialize Draw."""

    id = fields.Int()
    draw_date = fields.Date()
    slot = fields.Str()
    draw_at = fields.DateTime()
    cutoff_at = fields.DateTime()
    status = fields.Str()
    winning_number = fields.Str(allow_none=True)
    result_entered_at = fields.DateTime(allow_none=True)
    settled_at = fields.DateTime(allow_none=True)


class DrawQuerySchema(Schema):
    draw_date = fields.Date(required=False, load_default=None)
    status = fields.Str(
        required=False,
        load_default=None,
        validate=validate.OneOf([s.value for s in DrawStatus]),
    )
    limit = fields.Int(required=False, load_default=100, validate=validate.Range(min=1, max=500))


class ScheduleRequestSchema(Schema):
    horizon_days = fields.Int(required=False, load_default=None, validate=validate.Range(min=0, max=60))
    start_date = fields.Date(required=False, load_default=None)
