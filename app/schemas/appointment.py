from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models.appointment import AppointmentStatus
from .common import MAX_RECORD_ID


class AppointmentCreate(BaseModel):
    doctor_id: int = Field(..., ge=1, le=MAX_RECORD_ID)
    appointment_date: date
    time_slot: str
    notes: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str


class Participant(BaseModel):
    """The other party shown next to an appointment."""
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None

    class Config:
        from_attributes = True


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_date: date
    time_slot: str
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    patient: Optional[Participant] = None
    doctor: Optional[Participant] = None

    class Config:
        from_attributes = True
