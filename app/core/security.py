from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi.security import APIKeyCookie
import secrets
from enum import Enum

from .config import settings

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

# Session cookie scheme
session_cookie = APIKeyCookie(name=settings.SESSION_COOKIE_NAME, auto_error=False)


class UserRole(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"


# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)


# Session token utilities
def generate_session_id() -> str:
    """Generate an opaque, unguessable session identifier."""
    return secrets.token_urlsafe(32)


def sign_session_id(session_id: str, ttl_seconds: Optional[int] = None) -> str:
    """Wrap a session id into the signed value stored in the client cookie."""
    ttl = ttl_seconds if ttl_seconds is not None else settings.SESSION_TTL_SECONDS
    payload = {
        "sid": session_id,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=ttl),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def unsign_session_id(cookie_value: str) -> Optional[str]:
    """Return the session id carried by a cookie, or None if it was tampered with or expired."""
    try:
        payload = jwt.decode(
            cookie_value,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None

    session_id = payload.get("sid")
    return session_id if isinstance(session_id, str) and session_id else None
