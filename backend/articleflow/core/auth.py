"""Authentication dependencies.

Public interface:
    ``require_auth``: returns AuthContext or raises 401.

Users live in the identity provider; the API only verifies the bearer token
and scopes every query to ``AuthContext.user_id``. When
``settings.auth_enabled`` is False, every request runs as the ``anonymous``
user so the local workflow needs no tokens.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .token_factory import decode_token
from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller."""

    user_id: str
    role: str = "authenticated"
    email: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id == ANONYMOUS_USER_ID


ANONYMOUS_USER_ID = "anonymous"

_ANONYMOUS = AuthContext(user_id=ANONYMOUS_USER_ID, role="anon")


def _resolve(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[AuthContext]:
    if credentials is None:
        return None
    payload = decode_token(
        credentials.credentials,
        settings.jwt_secret_key,
        settings.jwt_algorithm,
        audience=settings.jwt_audience or None,
    )
    if payload is None:
        return None
    return AuthContext(user_id=payload.sub, role=payload.role, email=payload.email)


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthContext:
    """Require a valid access token and return the caller's AuthContext."""
    if not settings.auth_enabled:
        return _ANONYMOUS

    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    auth = _resolve(credentials)
    if auth is None:
        logger.info("Rejected invalid or expired access token")
        raise AuthenticationError("Invalid or expired token")
    return auth


def token_subject(authorization: Optional[str]) -> Optional[str]:
    """User id of a valid ``Bearer`` header, or None.

    Used outside the dependency system (rate limiting), so it never raises.
    Always None while auth is disabled.
    """
    if not settings.auth_enabled or not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    auth = _resolve(HTTPAuthorizationCredentials(scheme="Bearer", credentials=token.strip()))
    return auth.user_id if auth else None
