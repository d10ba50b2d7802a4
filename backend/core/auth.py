"""
Two-token session protocol.

- Access token: short-lived JWT carrying {sub, name, role}, verified without a
  store lookup on every protected request.
- Refresh token: long-lived JWT carrying only {sub}, used solely to mint new
  access tokens.

Both are HS256-signed (tamper evident, not encrypted) with separate keys and
travel in httpOnly cookies. There is no server-side session table: logout only
clears cookies, so a token stays valid until it expires.
"""
import hmac
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Cookie, Depends, Header, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import Forbidden, InvalidCredentials, TokenExpired, TokenInvalid, Unauthenticated
from core.logger import get_logger
from core.security import Role, verify_password
from db.database import User, storage_deadline
from services.users import find_by_name

logger = get_logger("auth")

ALGORITHM = "HS256"
ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class SessionClaims:
    user_id: int
    name: Optional[str]
    role: Optional[Role]
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def access_token_lifetime() -> timedelta:
    return timedelta(minutes=settings.access_token_minutes)


def refresh_token_lifetime() -> timedelta:
    return timedelta(days=settings.refresh_token_days)


def _utcnow(now: Optional[datetime] = None) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def _encode(claims: dict, secret: str, lifetime: timedelta, now: Optional[datetime]) -> str:
    issued_at = _utcnow(now)
    payload = {
        **claims,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def _decode(token: str, secret: str, token_type: str, now: Optional[datetime]) -> dict:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            # Expiry is checked below against an explicit clock
            options={"verify_exp": False, "verify_iat": False, "require": ["sub", "type", "exp"]},
        )
    except jwt.PyJWTError as e:
        raise TokenInvalid() from e

    if payload.get("type") != token_type:
        raise TokenInvalid()
    exp = payload["exp"]
    if not isinstance(exp, (int, float)):
        raise TokenInvalid()
    if exp <= _utcnow(now).timestamp():
        raise TokenExpired()
    return payload


def _subject(payload: dict) -> int:
    try:
        return int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise TokenInvalid() from e


def create_access_token(
    user_id: int,
    name: Optional[str] = None,
    role: Optional[Role] = None,
    *,
    now: Optional[datetime] = None,
) -> str:
    claims = {"sub": str(user_id), "type": ACCESS_TOKEN_TYPE}
    if name is not None:
        claims["name"] = name
    if role is not None:
        claims["role"] = Role(role).value
    return _encode(claims, settings.access_secret, access_token_lifetime(), now)


def create_refresh_token(user_id: int, *, now: Optional[datetime] = None) -> str:
    claims = {"sub": str(user_id), "type": REFRESH_TOKEN_TYPE}
    return _encode(claims, settings.refresh_secret, refresh_token_lifetime(), now)


def issue_tokens(user: User, *, now: Optional[datetime] = None) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user.id, user.name, user.role, now=now),
        refresh_token=create_refresh_token(user.id, now=now),
    )


def verify_access(token: str, *, now: Optional[datetime] = None) -> SessionClaims:
    """Signature, type and expiry check only; the credential store is not consulted."""
    payload = _decode(token, settings.access_secret, ACCESS_TOKEN_TYPE, now)
    role = payload.get("role")
    try:
        role = Role(role) if role is not None else None
    except ValueError as e:
        raise TokenInvalid() from e
    return SessionClaims(
        user_id=_subject(payload),
        name=payload.get("name"),
        role=role,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


def verify_refresh(token: str, *, now: Optional[datetime] = None) -> int:
    payload = _decode(token, settings.refresh_secret, REFRESH_TOKEN_TYPE, now)
    return _subject(payload)


async def issue_session(db: AsyncSession, name: str, password: str) -> TokenPair:
    user = await find_by_name(db, name)
    if user is None or not verify_password(password, user.hashed_password):
        logger.info("Login rejected for name=%r", name)
        raise InvalidCredentials()
    logger.info("Login succeeded for user_id=%s", user.id)
    return issue_tokens(user)


async def refresh_session(
    db: AsyncSession,
    refresh_token: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> str:
    """Mint a new access token from a refresh token.

    The new token carries the user's current name and role, read back from
    the credential store, so role changes take effect on the next refresh.
    """
    if not refresh_token:
        raise Unauthenticated("Refresh token missing")
    try:
        user_id = verify_refresh(refresh_token, now=now)
    except Unauthenticated as e:
        raise Forbidden("Refresh token is invalid or expired") from e

    async with storage_deadline():
        user = await db.get(User, user_id)
    if user is None:
        raise Forbidden("Refresh token is invalid or expired")
    logger.debug("Access token refreshed for user_id=%s", user.id)
    return create_access_token(user.id, user.name, user.role, now=now)


def require_role(claims: SessionClaims, role: Role) -> None:
    if claims.role != role:
        raise Forbidden()


# ----------------------------
# Cookie transport
# ----------------------------

def set_access_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        token,
        max_age=int(access_token_lifetime().total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def set_session_cookies(response: Response, tokens: TokenPair) -> None:
    set_access_cookie(response, tokens.access_token)
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=int(refresh_token_lifetime().total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)


# ----------------------------
# FastAPI dependencies
# ----------------------------

bearer_scheme = HTTPBearer(auto_error=False)


async def current_claims(
    access_token: Optional[str] = Cookie(default=None, alias=ACCESS_COOKIE),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> SessionClaims:
    """Claims from the access cookie, or from the Bearer header when the cookie is absent or rejected."""
    header_token = credentials.credentials if credentials else None
    if access_token:
        try:
            return verify_access(access_token)
        except Unauthenticated:
            # A stale cookie must not shadow a valid header
            if not header_token:
                raise
    if not header_token:
        raise Unauthenticated()
    return verify_access(header_token)


async def current_admin(claims: SessionClaims = Depends(current_claims)) -> SessionClaims:
    require_role(claims, Role.ADMIN)
    return claims


async def require_poller_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    """Static shared-secret gate for the external expired-stock poller."""
    expected = settings.cron_api_key
    if not expected or not x_api_key or not hmac.compare_digest(x_api_key.encode(), expected.encode()):
        logger.warning("Rejected poller request with missing or wrong x-api-key")
        raise Forbidden()
