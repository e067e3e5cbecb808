"""
User Model - Stores every account that can act on medical records.

Patients and doctors share one table; the role decides how the account
relates to a medical record.
"""
import enum
import uuid

from sqlalchemy import Column, String, DateTime, Enum, func
from sqlalchemy.orm import relationship

from ..database import Base


class UserRole(str, enum.Enum):
    """
    Enumeration for user roles in the telehealth system.

    Roles:
    - PATIENT: Owner of their medical records
    - DOCTOR: Practitioner who may upload records for a patient
    - ADMIN: System administrator
    """
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class User(Base):
    """
    User Model

    Fields:
    - id: UUID primary key
    - name: Display name
    - email: Unique login email
    - password_hash: bcrypt hash of the password
    - role: PATIENT, DOCTOR or ADMIN
    - created_at: When the account was created
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.PATIENT)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    patient_medical_records = relationship(
        "MedicalRecord", back_populates="patient", foreign_keys="MedicalRecord.patient_id"
    )
    doctor_medical_records = relationship(
        "MedicalRecord", back_populates="doctor", foreign_keys="MedicalRecord.doctor_id"
    )

    def __repr__(self):
        """String representation of the User model"""
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
