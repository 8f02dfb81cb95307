import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from app.core.database import SessionLocal
from app.core.exceptions import Conflict, NotFound, SlotConflict, ValidationFailed
from app.models.appointment import Appointment, AppointmentStatus
from app.models.user import User
from app.repositories.appointment_repository import AppointmentRepository
from app.schemas.appointment import AppointmentCreate
from app.services.booking_service import BookingService
from app.services.doctor_service import DoctorService
from app.services.slot_service import SlotLockRegistry
from tests.utils import session_for

JUNE_1 = date(2025, 6, 1)
CALLERS = 8


class TestConcurrentBooking:

    def test_simultaneous_bookings_one_winner(self, users, db):
        """Test many callers racing for one slot produce exactly one booking."""
        doctor_id = users["dr_cardio"].id
        sessions = [session_for(users["patient1"]), session_for(users["patient2"])]
        booking = AppointmentCreate(doctor_id=doctor_id, appointment_date=JUNE_1, time_slot="09:00")
        barrier = threading.Barrier(CALLERS)

        def attempt(i):
            local_db = SessionLocal()
            try:
                barrier.wait()
                BookingService(local_db).create(sessions[i % 2], booking)
                return "booked"
            except SlotConflict:
                return "conflict"
            finally:
                local_db.close()

        with ThreadPoolExecutor(max_workers=CALLERS) as pool:
            outcomes = list(pool.map(attempt, range(CALLERS)))

        assert outcomes.count("booked") == 1
        assert outcomes.count("conflict") == CALLERS - 1

        db.expire_all()
        scheduled = db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status == AppointmentStatus.SCHEDULED,
        ).count()
        assert scheduled == 1

    def test_different_slots_do_not_block_each_other(self, users, db):
        """Test concurrent bookings for distinct slots all succeed."""
        doctor_id = users["dr_cardio"].id
        patient = session_for(users["patient1"])
        slots = ["09:00", "09:30", "10:00", "10:30"]
        barrier = threading.Barrier(len(slots))

        def attempt(slot):
            local_db = SessionLocal()
            try:
                barrier.wait()
                booking = AppointmentCreate(doctor_id=doctor_id, appointment_date=JUNE_1, time_slot=slot)
                return BookingService(local_db).create(patient, booking).time_slot
            finally:
                local_db.close()

        with ThreadPoolExecutor(max_workers=len(slots)) as pool:
            booked = list(pool.map(attempt, slots))

        assert sorted(booked) == slots


class TestConcurrentTransition:

    def test_complete_and_cancel_race_one_winner(self, users, db, monkeypatch):
        """Test two status changes that both read `scheduled` cannot both apply."""
        appointment = BookingService(db).create(
            session_for(users["patient1"]),
            AppointmentCreate(doctor_id=users["dr_cardio"].id, appointment_date=JUNE_1, time_slot="09:00"),
        )
        doctor = session_for(users["dr_cardio"])
        barrier = threading.Barrier(2)
        original_get = AppointmentRepository.get

        def get_then_wait(self, appointment_id):
            found = original_get(self, appointment_id)
            barrier.wait(timeout=5)
            return found

        monkeypatch.setattr(AppointmentRepository, "get", get_then_wait)

        def attempt(target):
            local_db = SessionLocal()
            try:
                return BookingService(local_db).transition(doctor, appointment.id, target).status.value
            except ValidationFailed:
                return "rejected"
            finally:
                local_db.close()

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = list(pool.map(attempt, ["completed", "cancelled"]))

        assert outcomes.count("rejected") == 1
        winner = next(outcome for outcome in outcomes if outcome != "rejected")

        db.expire_all()
        stored = db.query(Appointment).filter(Appointment.id == appointment.id).one()
        assert stored.status == AppointmentStatus(winner)


class TestDoctorRemovalDuringBooking:

    def test_doctor_deleted_before_insert(self, users, db, monkeypatch):
        """Test a booking whose doctor disappears mid-flight is refused and leaves nothing behind."""
        doctor_id = users["dr_cardio"].id
        patient = session_for(users["patient1"])
        original_find = AppointmentRepository.find_scheduled

        def delete_doctor_first(self, *key):
            other = SessionLocal()
            try:
                DoctorService(other).delete_doctor(doctor_id)
            finally:
                other.close()
            return original_find(self, *key)

        monkeypatch.setattr(AppointmentRepository, "find_scheduled", delete_doctor_first)

        with pytest.raises(NotFound):
            BookingService(db).create(
                patient, AppointmentCreate(doctor_id=doctor_id, appointment_date=JUNE_1, time_slot="09:00")
            )

        db.expire_all()
        assert db.query(User).filter(User.id == doctor_id).count() == 0
        assert db.query(Appointment).filter(Appointment.doctor_id == doctor_id).count() == 0

    def test_booking_committed_during_delete_keeps_doctor(self, users, db, monkeypatch):
        """Test a delete that passed its first check still sees a booking made just after it."""
        doctor_id = users["dr_cardio"].id
        patient = session_for(users["patient1"])
        booking = AppointmentCreate(doctor_id=doctor_id, appointment_date=JUNE_1, time_slot="09:00")
        original_check = AppointmentRepository.doctor_has_scheduled
        booked = []

        def book_after_first_check(self, checked_id):
            result = original_check(self, checked_id)
            if not booked:
                other = SessionLocal()
                try:
                    booked.append(BookingService(other).create(patient, booking).id)
                finally:
                    other.close()
            return result

        monkeypatch.setattr(AppointmentRepository, "doctor_has_scheduled", book_after_first_check)

        with pytest.raises(Conflict):
            DoctorService(db).delete_doctor(doctor_id)

        db.expire_all()
        assert db.query(User).filter(User.id == doctor_id).count() == 1
        scheduled = db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status == AppointmentStatus.SCHEDULED,
        ).count()
        assert scheduled == 1

class TestStoreConstraint:

    def test_unique_index_rejects_second_scheduled_row(self, users, db, monkeypatch):
        """Test the store refuses a duplicate scheduled slot even when the check is skipped."""
        monkeypatch.setattr(AppointmentRepository, "find_scheduled", lambda self, *key: None)
        service = BookingService(db)
        booking = AppointmentCreate(doctor_id=users["dr_cardio"].id, appointment_date=JUNE_1, time_slot="14:00")

        service.create(session_for(users["patient1"]), booking)
        with pytest.raises(SlotConflict):
            service.create(session_for(users["patient2"]), booking)

        assert db.query(Appointment).count() == 1

    def test_unique_index_ignores_resolved_rows(self, users, db):
        """Test completed and cancelled rows may share a slot with a scheduled one."""
        for status in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.SCHEDULED):
            db.add(Appointment(
                patient_id=users["patient1"].id,
                doctor_id=users["dr_cardio"].id,
                appointment_date=JUNE_1,
                time_slot="14:00",
                status=status,
            ))
            db.commit()

        assert db.query(Appointment).count() == 3


class TestSlotLockRegistry:

    def test_entries_are_released(self):
        """Test keys disappear once nobody holds them."""
        registry = SlotLockRegistry()
        with registry.hold((1, JUNE_1, "09:00")):
            assert len(registry) == 1
        assert len(registry) == 0

    def test_released_on_error(self):
        registry = SlotLockRegistry()
        with pytest.raises(RuntimeError):
            with registry.hold("key"):
                raise RuntimeError("boom")
        assert len(registry) == 0

    def test_same_key_is_exclusive(self):
        """Test a second holder of the same key waits for the first."""
        registry = SlotLockRegistry()
        entered = threading.Event()
        release = threading.Event()
        order = []

        def first():
            with registry.hold("key"):
                entered.set()
                release.wait(timeout=5)
                order.append("first")

        def second():
            entered.wait(timeout=5)
            with registry.hold("key"):
                order.append("second")

        t1 = threading.Thread(target=first)
        t2 = threading.Thread(target=second)
        t1.start()
        t2.start()
        entered.wait(timeout=5)
        release.set()
        t1.join(timeout=5)
        t2.join(timeout=5)

        assert order == ["first", "second"]
