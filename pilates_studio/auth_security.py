from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import Settings, get_settings


@lru_cache(maxsize=4)
def _pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    return _pwd_context(settings.bcrypt_rounds).hash(password)


def verify_password(password: str, password_hash: str, settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    return _pwd_context(settings.bcrypt_rounds).verify(password, password_hash)


def create_access_token(
    subject: str,
    extra: dict[str, Any] | None = None,
    settings: Settings | None = None,
) -> tuple[str, datetime]:
    """
    subject: the user id.
    Returns the encoded token and its expiry (naive UTC).
    """
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.jwt_expire_minutes)

    payload: dict[str, Any] = {
        "sub": subject,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if extra:
        payload.update(extra)

    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expire.replace(tzinfo=None)


def decode_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """Validates signature, expiry, issuer and audience. Raises JWTError."""
    settings = settings or get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )


def get_subject(token: str, settings: Settings | None = None) -> str | None:
    try:
        payload = decode_token(token, settings)
        return payload.get("sub")
    except JWTError:
        return None


def new_refresh_token() -> str:
    return secrets.token_urlsafe(48)


def new_one_time_token() -> tuple[str, str]:
    """Returns (token for the user, digest to store)."""
    token = secrets.token_urlsafe(32)
    return token, token_digest(token)


def token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
