from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import Optional

from ...core.config import settings
from ...core.database import get_db
from ...core.security import session_cookie
from ...core.sessions import SessionData, SessionStore, get_session_store
from ...api.deps import get_current_session
from ...services.auth_service import AuthService
from ...schemas.auth import UserLogin, UserRegister, SessionUser
from ...schemas.common import Envelope
from ...schemas.user import UserResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=Envelope[UserResponse])
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
):
    """Register a new patient."""
    auth_service = AuthService(db)
    user = auth_service.register_user(user_data)

    return Envelope(message="User registered successfully", data=UserResponse.model_validate(user))


@router.post("/login", response_model=Envelope[SessionUser])
def login(
    login_data: UserLogin,
    response: Response,
    cookie_value: Optional[str] = Depends(session_cookie),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Authenticate user and open a session."""
    auth_service = AuthService(db, store)
    session, signed = auth_service.authenticate_user(login_data, previous_cookie=cookie_value)

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=signed,
        max_age=store.ttl_seconds,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return Envelope(message="Logged in", data=SessionUser(**session.model_dump()))


@router.post("/logout", response_model=Envelope[None])
def logout(
    response: Response,
    cookie_value: Optional[str] = Depends(session_cookie),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Destroy the current session and clear the cookie."""
    auth_service = AuthService(db, store)
    auth_service.logout_user(cookie_value)

    response.delete_cookie(settings.SESSION_COOKIE_NAME, httponly=True, samesite="lax")
    return Envelope(message="Logged out")


@router.get("/me", response_model=Envelope[SessionUser])
def get_current_user_info(
    session: SessionData = Depends(get_current_session)
):
    """Get the user snapshot held by the current session."""
    return Envelope(data=SessionUser(**session.model_dump()))
