from datetime import date

from app.models.appointment import Appointment, AppointmentStatus
from app.services.slot_service import CANONICAL_SLOTS, SlotService, is_canonical_slot
from tests.utils import login

JUNE_1 = date(2025, 6, 1)


def book(db, patient, doctor, slot, status=AppointmentStatus.SCHEDULED, day=JUNE_1):
    db.add(Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        appointment_date=day,
        time_slot=slot,
        status=status,
    ))
    db.commit()


class TestCanonicalSlots:

    def test_twelve_half_hour_slots(self):
        """Test the fixed morning and afternoon grid."""
        assert len(CANONICAL_SLOTS) == 12
        assert CANONICAL_SLOTS[:6] == ("09:00", "09:30", "10:00", "10:30", "11:00", "11:30")
        assert CANONICAL_SLOTS[6:] == ("14:00", "14:30", "15:00", "15:30", "16:00", "16:30")

    def test_is_canonical_slot(self):
        assert is_canonical_slot("14:30")
        assert not is_canonical_slot("12:00")
        assert not is_canonical_slot("9:00")


class TestAvailableSlots:

    def test_all_free(self, users, db):
        """Test a doctor with no bookings has every slot."""
        slots = SlotService(db).available_slots(users["dr_cardio"].id, JUNE_1)
        assert slots == list(CANONICAL_SLOTS)

    def test_scheduled_slots_are_excluded(self, users, db):
        """Test scheduled bookings remove their slots, in canonical order."""
        doctor = users["dr_cardio"]
        book(db, users["patient1"], doctor, "16:30")
        book(db, users["patient2"], doctor, "09:30")

        slots = SlotService(db).available_slots(doctor.id, JUNE_1)
        assert slots == [s for s in CANONICAL_SLOTS if s not in ("09:30", "16:30")]

    def test_only_scheduled_status_counts(self, users, db):
        """Test completed and cancelled appointments free their slot."""
        doctor = users["dr_cardio"]
        book(db, users["patient1"], doctor, "09:00", AppointmentStatus.COMPLETED)
        book(db, users["patient2"], doctor, "09:30", AppointmentStatus.CANCELLED)

        assert SlotService(db).available_slots(doctor.id, JUNE_1) == list(CANONICAL_SLOTS)

    def test_other_doctors_and_days_do_not_count(self, users, db):
        """Test bookings only affect their own doctor and date."""
        book(db, users["patient1"], users["dr_derma"], "09:00")
        book(db, users["patient1"], users["dr_cardio"], "10:00", day=date(2025, 6, 2))

        slots = SlotService(db).available_slots(users["dr_cardio"].id, JUNE_1)
        assert len(slots) == 12

    def test_unknown_doctor_yields_full_set(self, test_db, db):
        """Test the slot engine itself does not check the doctor exists."""
        assert SlotService(db).available_slots(424242, JUNE_1) == list(CANONICAL_SLOTS)


class TestAvailableSlotsEndpoint:

    def test_open_to_anonymous_callers(self, client, users):
        """Test slot lookup needs no session."""
        response = client.get(f"/api/v1/appointments/available/{users['dr_cardio'].id}/2025-06-01")
        assert response.status_code == 200
        assert response.json()["data"] == list(CANONICAL_SLOTS)

    def test_unknown_doctor(self, client, users):
        """Test the API rejects a doctor id that does not resolve to a doctor."""
        response = client.get("/api/v1/appointments/available/99999/2025-06-01")
        assert response.status_code == 404

        response = client.get(f"/api/v1/appointments/available/{users['patient1'].id}/2025-06-01")
        assert response.status_code == 404

    def test_bad_date(self, client, users):
        """Test a malformed date is a validation failure."""
        response = client.get(f"/api/v1/appointments/available/{users['dr_cardio'].id}/June-first")
        assert response.status_code == 400
        assert response.json()["error"] == "validation"

    def test_booking_scenario(self, client, users):
        """Test 12 free slots, a 09:00 booking leaves 11, a second 09:00 booking conflicts."""
        doctor_id = users["dr_cardio"].id
        url = f"/api/v1/appointments/available/{doctor_id}/2025-06-01"
        assert len(client.get(url).json()["data"]) == 12

        login(client, "patient1")
        response = client.post("/api/v1/appointments", json={
            "doctor_id": doctor_id, "appointment_date": "2025-06-01", "time_slot": "09:00",
        })
        assert response.status_code == 200

        slots = client.get(url).json()["data"]
        assert len(slots) == 11
        assert "09:00" not in slots

        login(client, "patient2")
        response = client.post("/api/v1/appointments", json={
            "doctor_id": doctor_id, "appointment_date": "2025-06-01", "time_slot": "09:00",
        })
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"
        assert response.json()["message"] == "Time slot already booked"
