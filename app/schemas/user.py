from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..core.security import UserRole


class UserResponse(BaseModel):
    id: int
    username: str
    role: UserRole
    name: str
    email: str
    phone: Optional[str] = None
    specialization: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DoctorCreate(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None


class DoctorUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
