"""Caller identity for the API: Google ID tokens, or trusted headers in dev.

Every identity leaves this module with a normalized email, since the email
is the key that ties a user to their invitations and shared tasks.
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

from fastapi import Header, HTTPException, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from .models import UserIdentity, normalize_email

DEV_BYPASS_ENV = "TASKLY_DEV_AUTH_BYPASS"
AUDIENCE_ENV = "GOOGLE_OAUTH_CLIENT_ID"


class AuthError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


@lru_cache
def _client_ids() -> Tuple[str, ...]:
    """OAuth client ids whose tokens are accepted (comma separated)."""
    raw = os.getenv(AUDIENCE_ENV, "")
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _bearer_token(authorization: Optional[str]) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise AuthError("Missing Bearer token.")
    return token.strip()


def _verify_google_token(token: str) -> Dict[str, Any]:
    client_ids = _client_ids()
    if not client_ids:
        raise AuthError(f"Server missing {AUDIENCE_ENV}.")

    # verify_oauth2_token accepts a list of audiences
    try:
        return id_token.verify_oauth2_token(token, google_requests.Request(), list(client_ids))
    except ValueError as exc:
        raise AuthError(f"Invalid token: {exc}") from exc


def _identity(user_id: Optional[str], email: Optional[str], name: Optional[str]) -> UserIdentity:
    email = normalize_email(email)
    if not email:
        raise AuthError("Identity has no email.")
    return UserIdentity(id=user_id or email, email=email, display_name=name)


def get_current_identity(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    dev_email: Optional[str] = Header(default=None, alias="X-User-Email"),
    dev_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    dev_name: Optional[str] = Header(default=None, alias="X-User-Name"),
) -> UserIdentity:
    """FastAPI dependency returning the signed-in caller.

    With TASKLY_DEV_AUTH_BYPASS=1 the X-User-* headers are trusted as-is
    (local development and tests only).
    """
    if os.getenv(DEV_BYPASS_ENV) == "1":
        return _identity(dev_user_id, dev_email, dev_name)

    claims = _verify_google_token(_bearer_token(authorization))
    if not claims.get("sub"):
        raise AuthError("Token missing subject claim.")
    return _identity(claims["sub"], claims.get("email"), claims.get("name"))
