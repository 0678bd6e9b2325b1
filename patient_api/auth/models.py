"""
User Model - Stores every account on the platform together with its roles.

A single account can hold several roles (a brand owner can also be a patient),
so roles live in their own table and are checked with User.has_role().
"""
from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from typing import List
from ..database import Base

class UserRole(str, enum.Enum):
    """
    Enumeration for user roles on the platform.

    Roles:
    - PATIENT: Buys products and completes intake questionnaires
    - DOCTOR: Reviews intakes and writes prescriptions
    - BRAND: Staff of a tenant clinic reselling products
    - AFFILIATE: Promotes a brand's products for a revenue share
    - ADMIN: Tenant administrator reviewing refunds and brands
    - SUPER_ADMIN: Platform operator, may impersonate other users
    """
    PATIENT = "patient"
    DOCTOR = "doctor"
    BRAND = "brand"
    AFFILIATE = "affiliate"
    ADMIN = "admin"
    SUPER_ADMIN = "superAdmin"

class User(Base):
    """
    User Model - Stores all user information in the system

    Fields:
    - id: Primary key for user identification
    - email: Unique email address for login and communication
    - first_name / last_name: Legal name (PHI)
    - phone_number, dob, address: Contact and demographic data (PHI)
    - password_hash: Securely hashed password (never store raw passwords)
    - clinic_id: Clinic the user belongs to (brand staff and patients)
    - is_active: Whether the account may sign in
    - role_assignments: Roles held by this user
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)
    dob = Column(Date, nullable=True)
    address = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    clinic_id = Column(Integer, ForeignKey("clinics.id", ondelete="SET NULL"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    role_assignments = relationship(
        "UserRoleAssignment",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    clinic = relationship("Clinic", foreign_keys=[clinic_id])

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"

    @property
    def roles(self) -> List[UserRole]:
        """Roles currently assigned to this user"""
        return [assignment.role for assignment in self.role_assignments]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def has_role(self, role: UserRole) -> bool:
        """Synchronous role check against the loaded role assignments"""
        return role in self.roles

    def has_any_role(self, *roles: UserRole) -> bool:
        return any(self.has_role(role) for role in roles)

    @property
    def is_admin(self) -> bool:
        return self.has_any_role(UserRole.ADMIN, UserRole.SUPER_ADMIN)

class UserRoleAssignment(Base):
    """One role held by one user"""
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(UserRole), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="role_assignments")
