from typing import Optional

from pydantic import BaseModel

from ..core.security import UserRole


class UserLogin(BaseModel):
    username: str
    password: str


class UserRegister(BaseModel):
    # Presence is checked by the service so missing fields get one consistent error
    username: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None


class SessionUser(BaseModel):
    id: int
    username: str
    role: UserRole
    name: str
    email: str
    specialization: Optional[str] = None

    class Config:
        from_attributes = True
