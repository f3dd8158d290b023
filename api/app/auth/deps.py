"""
Authentication dependencies for FastAPI.

Sessions are issued elsewhere; this module only resolves the caller:
1. Cookie-based session (web): httpOnly cookie holds the access token
2. Bearer token (API clients): Authorization header
"""

import logging
import uuid
from typing import Any

from fastapi import Cookie, Header, HTTPException

from app import repo
from app.auth.security import decode_access_token
from app.config import DEV_MODE

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "connect_session"


def _unauthorized(reason: str, trace_id: str, message: str = "unauthorized", status_code: int = 401) -> HTTPException:
    detail: dict[str, Any] = {"message": message, "trace_id": trace_id}
    if DEV_MODE:
        detail["reason"] = reason
    return HTTPException(status_code=status_code, detail=detail)


def _log_auth_failure(reason: str, trace_id: str, auth_source: str, token_prefix: str | None = None, user_id: str | None = None) -> None:
    logger.warning(
        "[AUTH_FAILURE] trace_id=%s reason=%s source=%s token_prefix=%s user_id=%s",
        trace_id,
        reason,
        auth_source,
        token_prefix,
        user_id,
    )


def _extract_bearer(authorization: str) -> str | None:
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


def _resolve_user(token: str, trace_id: str, auth_source: str) -> dict[str, Any]:
    token_prefix = token[:8] + "..." if len(token) > 8 else token
    try:
        payload = decode_access_token(token)
    except HTTPException as e:
        if e.status_code != 401:
            raise
        reason = "token_expired" if "expired" in str(e.detail).lower() else "token_invalid"
        _log_auth_failure(reason, trace_id, auth_source, token_prefix)
        raise _unauthorized(reason, trace_id)

    user_id = str(payload.get("sub") or "")
    if not user_id:
        _log_auth_failure("token_missing_subject", trace_id, auth_source, token_prefix)
        raise _unauthorized("token_missing_subject", trace_id)

    user = repo.get_user_by_id(user_id)
    if not user:
        _log_auth_failure("token_user_not_found", trace_id, auth_source, token_prefix, user_id)
        raise _unauthorized("token_user_not_found", trace_id)
    if user.get("disabled_at"):
        _log_auth_failure("account_disabled", trace_id, auth_source, token_prefix, user_id)
        raise _unauthorized("account_disabled", trace_id, message="Account disabled", status_code=403)

    logger.debug("[auth] resolved user_id=%s via %s", user_id, auth_source)
    return {
        "id": str(user["id"]),
        "email": user["email"],
        "display_name": user.get("display_name"),
    }


def get_current_user(
    session_token: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    trace_id = str(uuid.uuid4())
    if session_token:
        return _resolve_user(session_token, trace_id, "cookie")
    if authorization:
        token = _extract_bearer(authorization)
        if not token:
            _log_auth_failure("malformed_token", trace_id, "bearer")
            raise _unauthorized("malformed_token", trace_id)
        return _resolve_user(token, trace_id, "bearer")
    _log_auth_failure("missing_token", trace_id, "none")
    raise _unauthorized("missing_token", trace_id, message="Authentication required")
