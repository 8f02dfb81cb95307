from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, aliased

from ..models.appointment import Appointment, AppointmentStatus
from ..models.user import User


class AppointmentRepository:
    """Data access for appointment records.

    Appointments reference users by id only; the listing helpers resolve those
    ids with outer joins so a reference that no longer resolves comes back as
    ``None`` instead of hiding the row.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def find_scheduled(self, doctor_id: int, appointment_date: date, time_slot: str) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date,
            Appointment.time_slot == time_slot,
            Appointment.status == AppointmentStatus.SCHEDULED
        ).first()

    def scheduled_slots(self, doctor_id: int, appointment_date: date) -> List[str]:
        rows = self.db.query(Appointment.time_slot).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date,
            Appointment.status == AppointmentStatus.SCHEDULED
        ).all()
        return [row[0] for row in rows]

    def doctor_has_scheduled(self, doctor_id: int) -> bool:
        return self.db.query(Appointment.id).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status == AppointmentStatus.SCHEDULED
        ).first() is not None

    def stage(self, appointment: Appointment) -> Appointment:
        """Insert without committing; unique-index violations propagate as IntegrityError."""
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def change_status(self, appointment_id: int, expected: AppointmentStatus,
                      target: AppointmentStatus) -> bool:
        """Compare-and-set the status in one UPDATE; False when the row no longer holds ``expected``."""
        changed = self.db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.status == expected
        ).update({Appointment.status: target}, synchronize_session=False)
        if not changed:
            self.db.rollback()
            return False
        self.db.commit()
        return True

    def save(self, appointment: Appointment) -> Appointment:
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def rollback(self) -> None:
        self.db.rollback()

    def list_for_patient(self, patient_id: int) -> List[Tuple[Appointment, Optional[User]]]:
        doctor = aliased(User)
        return self.db.query(Appointment, doctor).outerjoin(
            doctor, doctor.id == Appointment.doctor_id
        ).filter(
            Appointment.patient_id == patient_id
        ).order_by(
            Appointment.appointment_date.desc(), Appointment.time_slot
        ).all()

    def list_for_doctor(self, doctor_id: int) -> List[Tuple[Appointment, Optional[User]]]:
        patient = aliased(User)
        return self.db.query(Appointment, patient).outerjoin(
            patient, patient.id == Appointment.patient_id
        ).filter(
            Appointment.doctor_id == doctor_id
        ).order_by(
            Appointment.appointment_date.desc(), Appointment.time_slot
        ).all()

    def list_with_participants(self) -> List[Tuple[Appointment, Optional[User], Optional[User]]]:
        """Every appointment with its (patient, doctor), either of which may be None."""
        patient = aliased(User)
        doctor = aliased(User)
        return self.db.query(Appointment, patient, doctor).outerjoin(
            patient, patient.id == Appointment.patient_id
        ).outerjoin(
            doctor, doctor.id == Appointment.doctor_id
        ).order_by(
            Appointment.appointment_date.desc(), Appointment.time_slot
        ).all()
