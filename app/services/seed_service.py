import logging

from sqlalchemy.orm import Session

from ..core.security import UserRole, get_password_hash
from ..models.user import User
from ..repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"username": "admin", "password": "admin123", "role": UserRole.ADMIN,
     "name": "System Administrator", "email": "admin@hospital.com", "phone": "9999999999"},
    {"username": "patient1", "password": "123456", "role": UserRole.PATIENT,
     "name": "Jane Doe", "email": "jane@demo.com", "phone": "1111111111"},
    {"username": "patient2", "password": "123456", "role": UserRole.PATIENT,
     "name": "John Smith", "email": "john@demo.com", "phone": "2222222222"},
    {"username": "dr_cardio", "password": "123456", "role": UserRole.DOCTOR,
     "name": "Dr. Sarah Wilson", "email": "sarah@hospital.com", "phone": "3333333333",
     "specialization": "Cardiology"},
    {"username": "dr_derma", "password": "123456", "role": UserRole.DOCTOR,
     "name": "Dr. Michael Brown", "email": "michael@hospital.com", "phone": "4444444444",
     "specialization": "Dermatology"},
    {"username": "dr_neuro", "password": "123456", "role": UserRole.DOCTOR,
     "name": "Dr. Emily Davis", "email": "emily@hospital.com", "phone": "5555555555",
     "specialization": "Neurology"},
]


def seed_demo_users(db: Session) -> int:
    """Insert the demo accounts into an empty users table. Returns how many were added."""
    users = UserRepository(db)
    if users.count() > 0:
        return 0

    for entry in DEMO_USERS:
        data = dict(entry)
        password = data.pop("password")
        db.add(User(password_hash=get_password_hash(password), **data))
    db.commit()

    logger.info(f"Seeded {len(DEMO_USERS)} demo users")
    return len(DEMO_USERS)
