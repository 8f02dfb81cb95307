from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.security import UserRole
from ..models.user import User


class UserRepository:
    """Data access for user records."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def get_with_role(self, user_id: int, role: UserRole, for_share: bool = False) -> Optional[User]:
        query = self.db.query(User).filter(
            User.id == user_id,
            User.role == role
        )
        if for_share:
            # FOR SHARE on PostgreSQL; SQLite serializes writers instead
            query = query.with_for_update(read=True)
        return query.first()

    def list_all(self) -> List[User]:
        return self.db.query(User).order_by(User.id).all()

    def list_by_role(self, role: UserRole, specialization_contains: Optional[str] = None) -> List[User]:
        query = self.db.query(User).filter(User.role == role)
        if specialization_contains:
            query = query.filter(
                User.specialization.icontains(specialization_contains, autoescape=True)
            )
        return query.order_by(User.name).all()

    def distinct_specializations(self) -> List[str]:
        rows = self.db.query(User.specialization).filter(
            User.role == UserRole.DOCTOR,
            User.specialization.isnot(None),
            User.specialization != ""
        ).distinct().all()
        return sorted(row[0] for row in rows)

    def count(self) -> int:
        return self.db.query(User).count()

    def add(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def save(self, user: User) -> User:
        self.db.commit()
        self.db.refresh(user)
        return user

    def remove(self, user: User) -> None:
        """Delete without committing so the caller can verify before ``commit``."""
        self.db.delete(user)
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
