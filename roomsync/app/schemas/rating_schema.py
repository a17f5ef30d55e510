"""
schemas/rating_schema.py — Marshmallow schemas for rating endpoints.

Self-rating, shared-group and cohabitation checks need the database and live
in services/rating_service.py.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class RateUserSchema(Schema):
    """POST /ratings"""

    rated_user_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="rated_user_id must be a positive integer."),
    )
    score = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, max=5, error="Score must be between 1 and 5."),
    )
    testimonial = fields.Str(
        allow_none=True,
        validate=validate.Length(max=300, error="Testimonial must be at most 300 characters."),
    )


class RatingFilterSchema(Schema):
    """GET /ratings/users/:id query string."""

    group_id = fields.Int(
        load_default=None,
        validate=validate.Range(min=1, error="group_id must be a positive integer."),
    )
