"""
middleware/auth_middleware.py — Bearer-token verification decorator.

Tokens are issued by the external identity provider (Google sign-in exchange);
RoomSync only verifies them. @require_auth:
  1. Reads "Authorization: Bearer <token>"
  2. Verifies the HS256 signature and expiry with JWT_SECRET_KEY
  3. Resolves the `sub` claim to an integer user id on flask.g.user_id

Authentication (401) only. Group ownership and membership checks (403/404)
belong to the services, which receive the user id as a plain int.
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from roomsync.app.errors import AppError, ErrorCode


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces bearer-token authentication.

    Usage:
        @groups_bp.route("/mine", methods=["GET"])
        @require_auth
        def get_my_group():
            user_id = g.user_id  # always an int when this runs
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.user_id = resolve_user_id(request.headers.get("Authorization", ""))
        return f(*args, **kwargs)

    return decorated


def resolve_user_id(auth_header: str) -> int:
    """
    Turns an Authorization header value into the authenticated user id.

    Needs an app context for the signing key. Raises AppError (401) on any
    failure; the global handler renders it.
    """
    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    scheme, _, raw_token = auth_header.partition(" ")
    raw_token = raw_token.strip()
    if scheme.lower() != "bearer" or not raw_token or " " in raw_token:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    try:
        payload = jwt.decode(
            raw_token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Sign in again to obtain a new one.",
            401,
        )
    except jwt.MissingRequiredClaimError as exc:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            f"The access token is missing the required '{exc.claim}' claim.",
            401,
        )
    except jwt.InvalidTokenError:
        # bad signature, malformed token, invalid claims
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
            401,
        )

    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is not a valid user ID.",
            401,
        )
