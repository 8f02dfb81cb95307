from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...core.sessions import SessionData
from ...api.deps import get_admin_session
from ...services.doctor_service import DoctorService
from ...schemas.common import MAX_RECORD_ID, Envelope
from ...schemas.user import DoctorCreate, DoctorUpdate, UserResponse

router = APIRouter(tags=["Doctors"])


@router.get("/doctors", response_model=Envelope[List[UserResponse]])
def list_doctors(
    specialization: Optional[str] = Query(None, description="Case-insensitive substring match"),
    db: Session = Depends(get_db),
):
    """List doctors, optionally filtered by specialization."""
    doctors = DoctorService(db).list_doctors(specialization)
    return Envelope(data=[UserResponse.model_validate(d) for d in doctors])


@router.get("/doctors/specialization/{specialization}", response_model=Envelope[List[UserResponse]])
def list_doctors_by_specialization(
    specialization: str,
    db: Session = Depends(get_db),
):
    """List doctors whose specialization contains the given text."""
    doctors = DoctorService(db).list_doctors(specialization)
    return Envelope(data=[UserResponse.model_validate(d) for d in doctors])


@router.get("/specializations", response_model=Envelope[List[str]])
def list_specializations(db: Session = Depends(get_db)):
    """List the distinct specializations offered."""
    return Envelope(data=DoctorService(db).list_specializations())


# Admin routes
@router.post("/doctors", response_model=Envelope[UserResponse])
def create_doctor(
    doctor_data: DoctorCreate,
    db: Session = Depends(get_db),
    _: SessionData = Depends(get_admin_session),
):
    """Provision a doctor account (admin only)."""
    doctor = DoctorService(db).create_doctor(doctor_data)
    return Envelope(message="Doctor added successfully", data=UserResponse.model_validate(doctor))


@router.put("/doctors/{doctor_id}", response_model=Envelope[UserResponse])
def update_doctor(
    doctor_data: DoctorUpdate,
    doctor_id: int = Path(..., ge=1, le=MAX_RECORD_ID),
    db: Session = Depends(get_db),
    _: SessionData = Depends(get_admin_session),
):
    """Update a doctor's profile (admin only)."""
    doctor = DoctorService(db).update_doctor(doctor_id, doctor_data)
    return Envelope(message="Doctor updated successfully", data=UserResponse.model_validate(doctor))


@router.delete("/doctors/{doctor_id}", response_model=Envelope[None])
def delete_doctor(
    doctor_id: int = Path(..., ge=1, le=MAX_RECORD_ID),
    db: Session = Depends(get_db),
    _: SessionData = Depends(get_admin_session),
):
    """Delete a doctor without scheduled appointments (admin only)."""
    DoctorService(db).delete_doctor(doctor_id)
    return Envelope(message="Doctor deleted successfully")
