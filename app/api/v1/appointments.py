from datetime import date

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...core.sessions import SessionData
from ...api.deps import get_admin_session, get_doctor_session, get_patient_session
from ...services.booking_service import BookingService
from ...services.doctor_service import DoctorService
from ...services.slot_service import SlotService
from ...schemas.appointment import AppointmentCreate, AppointmentResponse, StatusUpdate
from ...schemas.common import MAX_RECORD_ID, Envelope

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.get("/available/{doctor_id}/{appointment_date}", response_model=Envelope[List[str]])
def available_slots(
    doctor_id: int = Path(..., ge=1, le=MAX_RECORD_ID),
    appointment_date: date = Path(...),
    db: Session = Depends(get_db),
):
    """List the free slots of a doctor on a given day."""
    DoctorService(db).get_doctor(doctor_id)
    return Envelope(data=SlotService(db).available_slots(doctor_id, appointment_date))


@router.post("", response_model=Envelope[AppointmentResponse])
def create_appointment(
    booking: AppointmentCreate,
    db: Session = Depends(get_db),
    session: SessionData = Depends(get_patient_session),
):
    """Book an appointment for the logged-in patient."""
    appointment = BookingService(db).create(session, booking)
    return Envelope(message="Appointment booked", data=appointment)


@router.get("/me", response_model=Envelope[List[AppointmentResponse]])
def my_appointments(
    db: Session = Depends(get_db),
    session: SessionData = Depends(get_patient_session),
):
    """Appointments of the logged-in patient."""
    return Envelope(data=BookingService(db).list_for_patient(session))


@router.get("/doctor/me", response_model=Envelope[List[AppointmentResponse]])
def doctor_appointments(
    db: Session = Depends(get_db),
    session: SessionData = Depends(get_doctor_session),
):
    """Appointments of the logged-in doctor."""
    return Envelope(data=BookingService(db).list_for_doctor(session))


@router.get("", response_model=Envelope[List[AppointmentResponse]])
def all_appointments(
    db: Session = Depends(get_db),
    session: SessionData = Depends(get_admin_session),
):
    """All appointments whose patient and doctor still exist (admin only)."""
    return Envelope(data=BookingService(db).list_all(session))


@router.put("/{appointment_id}/status", response_model=Envelope[AppointmentResponse])
def update_status(
    status_data: StatusUpdate,
    appointment_id: int = Path(..., ge=1, le=MAX_RECORD_ID),
    db: Session = Depends(get_db),
    session: SessionData = Depends(get_doctor_session),
):
    """Complete or cancel an appointment (owning doctor only)."""
    appointment = BookingService(db).transition(session, appointment_id, status_data.status)
    return Envelope(message="Appointment updated", data=appointment)
