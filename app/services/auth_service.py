import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import Conflict, Unauthenticated, ValidationFailed
from ..core.security import (
    UserRole, generate_session_id, get_password_hash, sign_session_id,
    unsign_session_id, verify_password
)
from ..core.sessions import SessionData, SessionStore
from ..models.user import User
from ..repositories.user_repository import UserRepository
from ..schemas.auth import UserLogin, UserRegister

logger = logging.getLogger(__name__)

REQUIRED_REGISTRATION_FIELDS = ("username", "password", "name", "email", "role")


def missing_fields(data, required) -> list:
    """Names of required fields that are absent or blank."""
    missing = []
    for field in required:
        value = getattr(data, field, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    return missing


class AuthService:
    def __init__(self, db: Session, sessions: Optional[SessionStore] = None):
        self.users = UserRepository(db)
        self.sessions = sessions

    def register_user(self, user_data: UserRegister) -> User:
        """Register a new patient account."""
        missing = missing_fields(user_data, REQUIRED_REGISTRATION_FIELDS)
        if missing:
            raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")

        if user_data.role != UserRole.PATIENT.value:
            raise ValidationFailed("Only patient accounts can be registered")

        if self.users.get_by_username(user_data.username):
            raise Conflict("Username already exists")

        new_user = User(
            username=user_data.username,
            password_hash=get_password_hash(user_data.password),
            role=UserRole.PATIENT,
            name=user_data.name,
            email=user_data.email,
            phone=user_data.phone,
        )

        try:
            self.users.add(new_user)
        except IntegrityError:
            # Lost a race against a concurrent registration of the same username
            self.users.rollback()
            raise Conflict("Username already exists")

        logger.info(f"Registered patient '{new_user.username}' (id={new_user.id})")
        return new_user

    def authenticate_user(self, login_data: UserLogin, previous_cookie: Optional[str] = None) -> Tuple[SessionData, str]:
        """Check credentials and open a session.

        Returns the session snapshot and the signed cookie value carrying the
        new session id. A session referenced by ``previous_cookie`` is closed.
        """
        user = self.users.get_by_username(login_data.username)

        if not user or not verify_password(login_data.password, user.password_hash):
            logger.warning(f"Failed login for username '{login_data.username}'")
            raise Unauthenticated("Invalid credentials")

        if previous_cookie:
            self.logout_user(previous_cookie)

        snapshot = SessionData(
            id=user.id,
            username=user.username,
            role=user.role,
            name=user.name,
            email=user.email,
            specialization=user.specialization,
        )
        session_id = generate_session_id()
        self.sessions.save(session_id, snapshot)

        logger.info(f"User '{user.username}' logged in as {user.role.value}")
        return snapshot, sign_session_id(session_id, self.sessions.ttl_seconds)

    def logout_user(self, cookie_value: Optional[str]) -> bool:
        """Destroy the session referenced by a cookie; returns whether one was found."""
        session_id = unsign_session_id(cookie_value) if cookie_value else None
        if not session_id:
            return False

        existed = self.sessions.load(session_id) is not None
        self.sessions.delete(session_id)
        return existed
