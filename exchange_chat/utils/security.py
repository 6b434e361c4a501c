from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from exchange_chat.config import get_settings


class AuthNotConfigured(RuntimeError):
    """JWT_SECRET is unset, so no token can be issued or trusted."""


def signing_key() -> str:
    secret = get_settings().jwt_secret
    if not secret:
        raise AuthNotConfigured("JWT_SECRET must be set before the service can authenticate users")
    return secret


def create_access_token(subject: str, name: Optional[str] = None, expires_minutes: int = 60) -> str:
    settings = get_settings()
    payload: Dict[str, Any] = {
        "sub": subject,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    }
    if name:
        payload["name"] = name
    return jwt.encode(payload, signing_key(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    settings = get_settings()
    return jwt.decode(token, signing_key(), algorithms=[settings.jwt_algorithm])
