from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...core.sessions import SessionData
from ...api.deps import get_admin_session
from ...repositories.user_repository import UserRepository
from ...schemas.common import Envelope
from ...schemas.user import UserResponse

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=Envelope[List[UserResponse]])
def list_users(
    db: Session = Depends(get_db),
    _: SessionData = Depends(get_admin_session),
):
    """List all users (admin only)."""
    users = UserRepository(db).list_all()
    return Envelope(data=[UserResponse.model_validate(user) for user in users])
