"""
User Model with role and position context.
Institution-level staff (officers) and company-level meta staff share this table;
officers additionally own an Officer profile.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.database import Base


class UserRole(str, enum.Enum):
    """
    Platform roles.

    - SUPER_ADMIN: Platform-wide access
    - SYSTEM_ADMIN: Company staff (meta staff); feature access comes from position settings
    - INSTITUTION_ADMIN: Manages one institution
    - OFFICER: Innovation officer assigned to institutions
    - STUDENT: Learner account created by an institution
    """
    SUPER_ADMIN = "super_admin"
    SYSTEM_ADMIN = "system_admin"
    INSTITUTION_ADMIN = "institution_admin"
    OFFICER = "officer"
    STUDENT = "student"


class StaffPosition(str, enum.Enum):
    """Company-level positions held by meta staff."""
    CEO = "ceo"
    MD = "md"
    AGM = "agm"
    GM = "gm"
    MANAGER = "manager"
    ADMIN_STAFF = "admin_staff"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String, nullable=True)

    role = Column(Enum(UserRole), default=UserRole.OFFICER, nullable=False)
    position = Column(Enum(StaffPosition), nullable=True)
    is_ceo = Column(Boolean, default=False, nullable=False)
    allowed_features = Column(JSON, default=list)

    institution_id = Column(Integer, ForeignKey("institutions.id", use_alter=True, name="fk_user_institution_id"), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    officer_profile = relationship("Officer", back_populates="user", uselist=False)
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def display_name(self) -> str:
        return self.full_name or self.email.split("@")[0]

    @property
    def is_meta_staff(self) -> bool:
        """Company-level employee with a position (not an institution officer)."""
        return self.role == UserRole.SYSTEM_ADMIN and (self.position is not None or self.is_ceo)


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String, nullable=False)
    token = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
