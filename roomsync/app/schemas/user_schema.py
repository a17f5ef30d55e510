"""
schemas/user_schema.py — Marshmallow schemas for profile endpoints.

DUPLICATE_EMAIL / DUPLICATE_NICKNAME need a DB lookup and live in
services/user_service.py, not here.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from roomsync.app.schemas.group_schema import validate_non_empty_after_trim


def _name_field(required: bool) -> fields.Str:
    return fields.Str(
        required=required,
        validate=[
            validate.Length(min=1, max=50, error="Names must be between 1 and 50 characters."),
            validate_non_empty_after_trim,
        ],
    )


_NICKNAME = dict(
    allow_none=True,
    validate=validate.Regexp(
        r"^[A-Za-z0-9_]{3,50}$",
        error="Nickname must be 3-50 letters, digits or underscores.",
    ),
)

_BIO = dict(
    allow_none=True,
    validate=validate.Length(max=500, error="Bio must be at most 500 characters."),
)


class CreateUserSchema(Schema):
    """POST /users"""

    email = fields.Email(required=True, validate=validate.Length(max=255))
    first_name = _name_field(required=True)
    last_name = _name_field(required=True)
    nickname = fields.Str(**_NICKNAME)
    bio = fields.Str(**_BIO)


class UpdateProfileSchema(Schema):
    """PATCH /users/me — every field optional, at least one required."""

    first_name = _name_field(required=False)
    last_name = _name_field(required=False)
    nickname = fields.Str(**_NICKNAME)
    bio = fields.Str(**_BIO)

    @validates_schema
    def require_some_change(self, data: dict, **kwargs) -> None:
        if not data:
            raise ValidationError("Provide at least one field to update.")
