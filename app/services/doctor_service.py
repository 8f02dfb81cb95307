import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import Conflict, NotFound, ValidationFailed
from ..core.security import UserRole, get_password_hash
from ..models.user import User
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.user_repository import UserRepository
from ..schemas.user import DoctorCreate, DoctorUpdate
from .auth_service import missing_fields

logger = logging.getLogger(__name__)

REQUIRED_DOCTOR_FIELDS = ("username", "password", "name", "email", "specialization")


class DoctorService:
    """Doctor directory plus the admin-only doctor management operations."""

    def __init__(self, db: Session):
        self.users = UserRepository(db)
        self.appointments = AppointmentRepository(db)

    def list_doctors(self, specialization: Optional[str] = None) -> List[User]:
        """All doctors, optionally narrowed by a case-insensitive specialization substring."""
        return self.users.list_by_role(UserRole.DOCTOR, specialization_contains=specialization)

    def list_specializations(self) -> List[str]:
        return self.users.distinct_specializations()

    def get_doctor(self, doctor_id: int) -> User:
        doctor = self.users.get_with_role(doctor_id, UserRole.DOCTOR)
        if not doctor:
            raise NotFound("Doctor not found")
        return doctor

    def create_doctor(self, data: DoctorCreate) -> User:
        missing = missing_fields(data, REQUIRED_DOCTOR_FIELDS)
        if missing:
            raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")

        if self.users.get_by_username(data.username):
            raise Conflict("Username already exists")

        doctor = User(
            username=data.username,
            password_hash=get_password_hash(data.password),
            role=UserRole.DOCTOR,
            name=data.name,
            email=data.email,
            phone=data.phone,
            specialization=data.specialization,
        )

        try:
            self.users.add(doctor)
        except IntegrityError:
            self.users.rollback()
            raise Conflict("Username already exists")

        logger.info(f"Provisioned doctor '{doctor.username}' (id={doctor.id}, {doctor.specialization})")
        return doctor

    def update_doctor(self, doctor_id: int, data: DoctorUpdate) -> User:
        """Update profile fields; username, role and password are not editable here."""
        doctor = self.get_doctor(doctor_id)

        update_data = data.model_dump(exclude_unset=True)
        for field in ("name", "email", "specialization"):
            if field in update_data and not (update_data[field] or "").strip():
                raise ValidationFailed(f"{field} cannot be empty")

        for key, value in update_data.items():
            setattr(doctor, key, value)

        self.users.save(doctor)
        logger.info(f"Updated doctor id={doctor_id}: {sorted(update_data)}")
        return doctor

    def delete_doctor(self, doctor_id: int) -> None:
        """Remove a doctor who has no scheduled appointments.

        Completed and cancelled appointments stay in place and become orphaned.
        """
        doctor = self.get_doctor(doctor_id)

        if self.appointments.doctor_has_scheduled(doctor_id):
            raise Conflict("Cannot delete doctor with scheduled appointments")

        # Check again inside the delete so a booking committed meanwhile is seen
        self.users.remove(doctor)
        if self.appointments.doctor_has_scheduled(doctor_id):
            self.users.rollback()
            logger.info(f"Doctor id={doctor_id} was booked while being deleted; keeping")
            raise Conflict("Cannot delete doctor with scheduled appointments")
        self.users.commit()
        logger.info(f"Deleted doctor id={doctor_id}")
