"""
schemas/group_schema.py — Marshmallow schemas for group endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim).
  - services/group_service.py: everything that needs the database
    (GROUP_NOT_FOUND, ALREADY_IN_GROUP, GROUP_FULL, ownership rules).

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           Unit tests load these schemas without an app context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate


# validate.Length(min=1) alone accepts "   "; strip first, mirroring the
# DB CHECK(LENGTH(TRIM(...)) > 0).

def validate_non_empty_after_trim(value: str) -> None:
    """Raises ValidationError if the string is blank or only whitespace."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateGroupSchema(Schema):
    """POST /groups — name: non-empty after trim, max 100 chars."""

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Group name must be between 1 and 100 characters.",
            ),
            validate_non_empty_after_trim,
        ],
    )


class JoinGroupSchema(Schema):
    """
    POST /groups/join

    The wire name is groupCode. Only a blank code is rejected here; any
    other string goes to the lookup, which answers GROUP_NOT_FOUND when no
    group carries it. The service upper-cases before lookup.
    """

    group_code = fields.Str(
        required=True,
        data_key="groupCode",
        validate=validate_non_empty_after_trim,
    )


class MoveInDateSchema(Schema):
    """PUT /groups/members/me/move-in-date — ISO date, or null to clear."""

    move_in_date = fields.Date(required=True, allow_none=True)
