"""
Slot engine: the fixed daily slot grid and which slots are still free.

Each doctor offers the same twelve half-hour slots every day, six in the
morning and six in the afternoon. A slot is taken for a given doctor and day
while an appointment in that slot is ``scheduled``; completed and cancelled
appointments free it again.
"""
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import date
from typing import Dict, Hashable, Iterator, List, Tuple

from sqlalchemy.orm import Session

from ..repositories.appointment_repository import AppointmentRepository

CANONICAL_SLOTS: Tuple[str, ...] = (
    "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
    "14:00", "14:30", "15:00", "15:30", "16:00", "16:30",
)


def is_canonical_slot(time_slot: str) -> bool:
    return time_slot in CANONICAL_SLOTS


class SlotLockRegistry:
    """Per-key locks that serialize check-then-insert for a single slot.

    Entries are reference counted and removed when the last holder or waiter
    leaves, so the registry only holds keys that are currently contended.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._users: Dict[Hashable, int] = defaultdict(int)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] += 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# One registry per process; the unique index covers other processes
slot_locks = SlotLockRegistry()


class SlotService:
    def __init__(self, db: Session):
        self.appointments = AppointmentRepository(db)

    def available_slots(self, doctor_id: int, appointment_date: date) -> List[str]:
        """Canonical slots for the day that hold no scheduled appointment, in canonical order.

        The doctor id is not checked here; an unknown doctor simply has no bookings.
        """
        booked = set(self.appointments.scheduled_slots(doctor_id, appointment_date))
        return [slot for slot in CANONICAL_SLOTS if slot not in booked]
