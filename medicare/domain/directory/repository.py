"""
Directory Repository Layer

Data access for users, categories and doctors. Repositories never commit;
the calling service owns the transaction.
"""

from typing import Optional, List
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from medicare.domain.directory.models import User, UserRole, Category, Doctor


class UserRepository:
    """Repository for user data access operations"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_data: dict) -> User:
        user = User(**user_data)
        self.db.add(user)
        self.db.flush()
        return user

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username.strip()).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(
            func.lower(User.email) == email.strip().lower()
        ).first()

    def username_exists(self, username: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(User.id).filter(User.username == username.strip())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(User.id).filter(func.lower(User.email) == email.strip().lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def get_all(
        self,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[User]:
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                User.username.ilike(pattern),
                User.email.ilike(pattern),
                User.full_name.ilike(pattern)
            ))
        return query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()

    def count_admins(self) -> int:
        """Active administrators only"""
        return self.db.query(func.count(User.id)).filter(
            User.role == UserRole.ADMIN, User.visible()
        ).scalar()


class CategoryRepository:
    """Repository for specialty categories"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, category_data: dict) -> Category:
        category = Category(**category_data)
        self.db.add(category)
        self.db.flush()
        return category

    def get_by_id(self, category_id: int) -> Optional[Category]:
        return self.db.get(Category, category_id)

    def get_by_name(self, name: str) -> Optional[Category]:
        return self.db.query(Category).filter(Category.name == name.strip()).first()

    def get_all(self, include_inactive: bool = False) -> List[Category]:
        query = self.db.query(Category)
        if not include_inactive:
            query = query.filter(Category.visible())
        return query.order_by(Category.name).all()


class DoctorRepository:
    """Repository for doctor data access operations"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, doctor_data: dict) -> Doctor:
        doctor = Doctor(**doctor_data)
        self.db.add(doctor)
        self.db.flush()
        return doctor

    def get_by_id(self, doctor_id: int) -> Optional[Doctor]:
        return self.db.get(Doctor, doctor_id)

    def get_for_update(self, doctor_id: int) -> Optional[Doctor]:
        """Load a doctor and lock its row for the rest of the transaction.

        Serializes concurrent bookings for one doctor on backends with
        row locks; SQLite ignores FOR UPDATE and relies on its write lock.
        """
        return self.db.query(Doctor).filter(
            Doctor.id == doctor_id
        ).with_for_update(of=Doctor).populate_existing().first()

    def get_all(
        self,
        category_id: Optional[int] = None,
        specialty: Optional[str] = None,
        search: Optional[str] = None,
        include_inactive: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[Doctor]:
        query = self.db.query(Doctor)
        if not include_inactive:
            query = query.filter(Doctor.visible())
        if category_id is not None:
            query = query.filter(Doctor.category_id == category_id)
        if specialty:
            query = query.filter(func.lower(Doctor.specialty) == specialty.strip().lower())
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Doctor.name.ilike(pattern),
                Doctor.specialty.ilike(pattern),
                Doctor.details.ilike(pattern)
            ))
        return query.order_by(Doctor.name, Doctor.id).offset(skip).limit(limit).all()

    def update(self, doctor: Doctor, update_data: dict) -> Doctor:
        for key, value in update_data.items():
            if hasattr(doctor, key) and value is not None:
                setattr(doctor, key, value)
        self.db.flush()
        return doctor
