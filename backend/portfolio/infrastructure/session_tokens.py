"""Session Tokens — signed admin sessions (JWT, HS256).

Invariants:
    - Tokens are signed with settings.session_secret and carry exp/iat
    - decode_session_token returns None for anything missing, tampered or expired
    - Password comparison is constant-time
"""

import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

JWT_ALGORITHM = "HS256"
ADMIN_SUBJECT = "1"
ADMIN_NAME = "Admin"


@dataclass(frozen=True)
class Session:
    """An authenticated admin. Only presence matters to the auth gate."""
    subject: str
    name: str
    expires_at: int  # epoch seconds


def verify_admin_password(candidate: str, expected: str) -> bool:
    if not candidate or not expected:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def create_session_token(
    secret: str,
    max_age_seconds: int,
    subject: str = ADMIN_SUBJECT,
    name: str = ADMIN_NAME,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "name": name,
        "iat": now,
        "exp": now + timedelta(seconds=max_age_seconds),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str | None, secret: str) -> Session | None:
    if not token:
        return None
    try:
        payload = jwt.decode(
            token, secret, algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.InvalidTokenError:
        return None
    return Session(
        subject=str(payload["sub"]),
        name=str(payload.get("name") or ADMIN_NAME),
        expires_at=int(payload["exp"]),
    )
