"""
Booking lifecycle.

An appointment starts ``scheduled`` and may move once, by its own doctor, to
``completed`` or ``cancelled``. Both of those are terminal.

Creating a booking is a check followed by an insert. The pair runs under the
per-slot lock from the slot engine, and the store's partial unique index on
(doctor, date, slot) for scheduled rows rejects anything that still slips
through, so two scheduled appointments can never share a slot.
"""
import logging
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import Forbidden, NotFound, SlotConflict, ValidationFailed
from ..core.security import UserRole
from ..core.sessions import SessionData, authorize
from ..models.appointment import Appointment, AppointmentStatus
from ..models.user import User
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.user_repository import UserRepository
from ..schemas.appointment import AppointmentCreate, AppointmentResponse, Participant
from .slot_service import SlotLockRegistry, is_canonical_slot, slot_locks

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def _participant(user: Optional[User], *fields: str) -> Optional[Participant]:
    if user is None:
        return None
    values = {"id": user.id, "name": user.name}
    values.update({field: getattr(user, field) for field in fields})
    return Participant(**values)


def _response(appointment: Appointment, patient: Optional[Participant] = None,
              doctor: Optional[Participant] = None) -> AppointmentResponse:
    response = AppointmentResponse.model_validate(appointment)
    response.patient = patient
    response.doctor = doctor
    return response


class BookingService:
    def __init__(self, db: Session, locks: SlotLockRegistry = slot_locks):
        self.appointments = AppointmentRepository(db)
        self.users = UserRepository(db)
        self.locks = locks

    def create(self, session: SessionData, booking: AppointmentCreate) -> AppointmentResponse:
        """Book a slot for the patient who owns the session."""
        authorize(session, UserRole.PATIENT)

        if not is_canonical_slot(booking.time_slot):
            raise ValidationFailed(f"Invalid time slot: {booking.time_slot}")

        doctor = self.users.get_with_role(booking.doctor_id, UserRole.DOCTOR)
        if not doctor:
            raise NotFound("Doctor not found")

        key = (booking.doctor_id, booking.appointment_date, booking.time_slot)
        with self.locks.hold(key):
            if self.appointments.find_scheduled(*key):
                logger.info(f"Slot conflict for doctor={key[0]} date={key[1]} slot={key[2]}")
                raise SlotConflict()

            appointment = Appointment(
                patient_id=session.id,
                doctor_id=booking.doctor_id,
                appointment_date=booking.appointment_date,
                time_slot=booking.time_slot,
                status=AppointmentStatus.SCHEDULED,
                notes=booking.notes,
            )
            try:
                self.appointments.stage(appointment)
            except IntegrityError:
                self.appointments.rollback()
                logger.warning(f"Unique index rejected booking for doctor={key[0]} date={key[1]} slot={key[2]}")
                raise SlotConflict()

            # Re-read the doctor inside the write so a concurrent delete cannot slip in
            doctor = self.users.get_with_role(booking.doctor_id, UserRole.DOCTOR, for_share=True)
            if not doctor:
                self.appointments.rollback()
                logger.info(f"Doctor {booking.doctor_id} removed while booking; discarding")
                raise NotFound("Doctor not found")
            doctor_view = _participant(doctor, "specialization")

            self.appointments.save(appointment)

        logger.info(
            f"Appointment {appointment.id} booked: patient={session.id} doctor={booking.doctor_id} "
            f"date={booking.appointment_date} slot={booking.time_slot}"
        )
        return _response(appointment, doctor=doctor_view)

    def transition(self, session: SessionData, appointment_id: int, new_status: str) -> AppointmentResponse:
        """Move an appointment owned by the session's doctor to a terminal status."""
        authorize(session, UserRole.DOCTOR)

        appointment = self.appointments.get(appointment_id)
        if not appointment:
            raise NotFound("Appointment not found")

        if appointment.doctor_id != session.id:
            raise Forbidden("Appointment belongs to another doctor")

        try:
            target = AppointmentStatus(new_status)
        except ValueError:
            raise ValidationFailed(f"Unknown status: {new_status}")

        current = AppointmentStatus(appointment.status)
        if target not in ALLOWED_TRANSITIONS[current]:
            raise ValidationFailed(f"Cannot change status from {current.value} to {target.value}")

        if not self.appointments.change_status(appointment.id, current, target):
            logger.info(f"Appointment {appointment_id} changed concurrently; rejecting {target.value}")
            raise ValidationFailed(f"Appointment is no longer {current.value}")
        self.appointments.save(appointment)

        logger.info(f"Appointment {appointment.id}: {current.value} -> {target.value} by doctor {session.id}")
        return _response(appointment)

    def list_for_patient(self, session: SessionData) -> List[AppointmentResponse]:
        authorize(session, UserRole.PATIENT)
        return [
            _response(appointment, doctor=_participant(doctor, "specialization"))
            for appointment, doctor in self.appointments.list_for_patient(session.id)
        ]

    def list_for_doctor(self, session: SessionData) -> List[AppointmentResponse]:
        authorize(session, UserRole.DOCTOR)
        return [
            _response(appointment, patient=_participant(patient, "email", "phone"))
            for appointment, patient in self.appointments.list_for_doctor(session.id)
        ]

    def list_all(self, session: SessionData) -> List[AppointmentResponse]:
        """Every appointment whose patient and doctor both still exist."""
        authorize(session, UserRole.ADMIN)

        rows = self.appointments.list_with_participants()
        complete = [row for row in rows if row[1] is not None and row[2] is not None]
        if len(complete) < len(rows):
            logger.info(f"Dropped {len(rows) - len(complete)} orphaned appointment(s) from listing")

        return [
            _response(
                appointment,
                patient=_participant(patient, "email"),
                doctor=_participant(doctor, "specialization"),
            )
            for appointment, patient, doctor in complete
        ]
