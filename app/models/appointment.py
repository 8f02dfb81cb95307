from sqlalchemy import Column, Integer, String, Date, DateTime, Text, Index, Enum as SQLEnum, text
from sqlalchemy.sql import func
import enum

from ..core.database import Base


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Only a scheduled appointment occupies its slot
SCHEDULED_ONLY = text("status = 'scheduled'")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            "uq_appointments_scheduled_slot",
            "doctor_id", "appointment_date", "time_slot",
            unique=True,
            sqlite_where=SCHEDULED_ONLY,
            postgresql_where=SCHEDULED_ONLY,
        ),
        Index("ix_appointments_patient_date", "patient_id", "appointment_date"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # User references; no cascading constraint so history survives a deleted doctor
    patient_id = Column(Integer, nullable=False, index=True)
    doctor_id = Column(Integer, nullable=False, index=True)

    # Appointment details
    appointment_date = Column(Date, nullable=False)
    time_slot = Column(String(5), nullable=False)
    status = Column(
        SQLEnum(AppointmentStatus, name="appointmentstatus", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
    )
    notes = Column(Text, nullable=True)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, "
            f"date='{self.appointment_date}', slot='{self.time_slot}', status='{self.status}')>"
        )
