"""
schemas/task_schema.py — Marshmallow schemas for task endpoints.

Validation responsibility:
  - This file: types, ranges, enum membership, the one-time deadline rule.
  - services/task_service.py: group scoping, assignee membership, permissions.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from datetime import datetime, timezone

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from roomsync.app.models.task import AssignmentStatus, Recurrence
from roomsync.app.schemas.group_schema import validate_non_empty_after_trim


def _user_id_list(required: bool, min_items: int) -> fields.List:
    return fields.List(
        fields.Int(
            strict=True,
            validate=validate.Range(min=1, error="User ids must be positive integers."),
        ),
        required=required,
        validate=validate.Length(min=min_items, max=10),
    )


class CreateTaskSchema(Schema):
    """POST /tasks"""

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=100, error="Task name must be between 1 and 100 characters."),
            validate_non_empty_after_trim,
        ],
    )
    description = fields.Str(
        allow_none=True,
        validate=validate.Length(max=500, error="Description must be at most 500 characters."),
    )
    difficulty = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, max=5, error="Difficulty must be between 1 and 5."),
    )
    recurrence = fields.Enum(Recurrence, by_value=True, required=True)
    required_people = fields.Int(
        strict=True,
        load_default=1,
        validate=validate.Range(min=1, max=10, error="required_people must be between 1 and 10."),
    )
    deadline = fields.DateTime(allow_none=True, load_default=None)
    assigned_user_ids = _user_id_list(required=False, min_items=0)

    @validates_schema
    def validate_deadline(self, data: dict, **kwargs) -> None:
        deadline = data.get("deadline")

        if data.get("recurrence") is Recurrence.ONE_TIME and deadline is None:
            raise ValidationError("One-time tasks need a deadline.", "deadline")

        if deadline is not None:
            # Naive timestamps are read as UTC.
            if deadline.tzinfo is None:
                deadline = deadline.replace(tzinfo=timezone.utc)
            if data.get("recurrence") is Recurrence.ONE_TIME and deadline <= datetime.now(timezone.utc):
                raise ValidationError("Deadline must be in the future for one-time tasks.", "deadline")


class UpdateTaskStatusSchema(Schema):
    """PUT /tasks/:id/status"""

    status = fields.Enum(AssignmentStatus, by_value=True, required=True)


class AssignTaskSchema(Schema):
    """POST /tasks/:id/assign"""

    user_ids = _user_id_list(required=True, min_items=1)


class TaskWeekQuerySchema(Schema):
    """GET /tasks/week query string. start defaults to the current week."""

    start = fields.Date(load_default=None)


class TaskDateQuerySchema(Schema):
    """GET /tasks/date query string."""

    date = fields.Date(required=True)
