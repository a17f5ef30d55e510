"""
errors.py — AppError base class and error code registry.

Every error returned by the RoomSync API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (unauthorized).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {"code": self.code}
        if self.field is not None:
            payload["field"] = self.field
        return {
            "success": False,
            "message": self.message,
            "error":   payload,
        }

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD                = "MISSING_FIELD"
    INVALID_FIELD                = "INVALID_FIELD"

    # ── Group lifecycle preconditions (400) ────────────────────────────────
    ALREADY_IN_GROUP             = "ALREADY_IN_GROUP"
    ALREADY_MEMBER_OF_THIS_GROUP = "ALREADY_MEMBER_OF_THIS_GROUP"
    GROUP_FULL                   = "GROUP_FULL"
    ALREADY_OWNER                = "ALREADY_OWNER"
    NOT_MEMBER                   = "NOT_MEMBER"
    CANNOT_REMOVE_OWNER          = "CANNOT_REMOVE_OWNER"

    # ── Task / rating preconditions (400) ──────────────────────────────────
    ASSIGNEE_NOT_MEMBER          = "ASSIGNEE_NOT_MEMBER"
    CANNOT_RATE_SELF             = "CANNOT_RATE_SELF"
    USERS_NOT_IN_SAME_GROUP      = "USERS_NOT_IN_SAME_GROUP"
    INSUFFICIENT_COHABITATION    = "INSUFFICIENT_COHABITATION"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL              = "DUPLICATE_EMAIL"
    DUPLICATE_NICKNAME           = "DUPLICATE_NICKNAME"
    CONCURRENT_MODIFICATION      = "CONCURRENT_MODIFICATION"
    CONFLICT                     = "CONFLICT"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND               = "USER_NOT_FOUND"
    GROUP_NOT_FOUND              = "GROUP_NOT_FOUND"
    NOT_IN_GROUP                 = "NOT_IN_GROUP"
    MEMBER_NOT_FOUND             = "MEMBER_NOT_FOUND"
    TASK_NOT_FOUND               = "TASK_NOT_FOUND"
    ASSIGNMENT_NOT_FOUND         = "ASSIGNMENT_NOT_FOUND"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed (unauthorized)
    TOKEN_MISSING                = "TOKEN_MISSING"          # 401
    TOKEN_INVALID                = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED                = "TOKEN_EXPIRED"          # 401
    NOT_OWNER                    = "NOT_OWNER"              # 403
    FORBIDDEN                    = "FORBIDDEN"              # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR               = "INTERNAL_ERROR"
