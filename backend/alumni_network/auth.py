"""Authentication helpers and FastAPI security dependencies.

This module verifies bearer JWTs and resolves the caller's identity to
the token's `sub` claim, which is also the caller's `User.id`. Tokens
are normally issued by an external identity provider sharing the
signing secret; `create_access_token` exists for development and tests.

Verification failures raise HTTPException(401) so the helpers can be
used directly as route dependencies.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt

from .config import Settings

# auto_error is off so the optional dependencies can see a missing header
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={'WWW-Authenticate': 'Bearer'})


def create_access_token(subject: str, settings: Settings, expires_hours: Optional[int] = None, **claims) -> str:
    """Sign a token carrying `subject` as its `sub` claim."""
    hours = expires_hours if expires_hours is not None else settings.JWT_EXPIRE_HOURS
    expire = datetime.now(timezone.utc) + timedelta(hours=hours)
    payload = {**claims, 'sub': subject, 'exp': int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, settings: Settings) -> dict:
    """Verify the signature and expiry of a bearer token and return its claims.

    Tokens must carry `sub` and `exp`. An expired token is reported as
    such; every other verification failure is a plain 401.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={'require': ['sub', 'exp']},
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized('token expired')
    except jwt.InvalidTokenError:
        raise _unauthorized('invalid token')


def _subject(request: Request, credentials: HTTPAuthorizationCredentials) -> str:
    payload = decode_token(credentials.credentials, request.app.state.settings)
    subject = payload.get('sub')
    if not subject:
        raise _unauthorized('invalid token payload')
    return str(subject)


def get_current_user_id(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> str:
    """FastAPI dependency that returns the authenticated caller's id.

    It raises an HTTPException(401) when the bearer token is missing or
    fails verification.
    """
    if credentials is None:
        raise _unauthorized('not authenticated')
    return _subject(request, credentials)


def get_optional_user_id(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> Optional[str]:
    """Like `get_current_user_id` but returns None for anonymous callers.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return _subject(request, credentials)


def get_listing_user_id(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> Optional[str]:
    """Identity for the topic and group listings.

    Authentication is required unless `PUBLIC_LISTINGS` is enabled.
    """
    if request.app.state.settings.PUBLIC_LISTINGS:
        return get_optional_user_id(request, credentials)
    return get_current_user_id(request, credentials)
