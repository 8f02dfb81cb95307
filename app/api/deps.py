from fastapi import Depends
from typing import Optional

from ..core.exceptions import Unauthenticated
from ..core.security import session_cookie, unsign_session_id, UserRole
from ..core.sessions import SessionData, SessionStore, authorize, get_session_store


def authenticate(cookie_value: Optional[str], store: SessionStore) -> SessionData:
    """Resolve a session cookie to its live session, or raise Unauthenticated."""
    if not cookie_value:
        raise Unauthenticated("Not authenticated")

    session_id = unsign_session_id(cookie_value)
    if not session_id:
        raise Unauthenticated("Invalid or expired session")

    session = store.load(session_id)
    if session is None:
        raise Unauthenticated("Invalid or expired session")

    return session


def get_current_session(
    cookie_value: Optional[str] = Depends(session_cookie),
    store: SessionStore = Depends(get_session_store),
) -> SessionData:
    """Get the authenticated session attached to the request."""
    return authenticate(cookie_value, store)


# Role-based access control dependencies
def require_role(required_role: UserRole):
    """Create a dependency that requires one specific user role."""
    def role_checker(
        session: SessionData = Depends(get_current_session)
    ) -> SessionData:
        authorize(session, required_role)
        return session

    return role_checker


get_admin_session = require_role(UserRole.ADMIN)
get_doctor_session = require_role(UserRole.DOCTOR)
get_patient_session = require_role(UserRole.PATIENT)
