"""
Medical Record Models - Encrypted patient documents and their version history.

A MedicalRecord is the current head of a document; every update freezes the
previous state into an immutable MedicalRecordVersion row.
"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Enum, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


class MedicalRecordType(str, enum.Enum):
    """Kind of document stored in a medical record"""
    PRESCRIPTION = "prescription"
    LAB_REPORT = "lab_report"
    MEDICAL_HISTORY = "medical_history"
    OTHER = "other"


class MedicalRecord(Base):
    """
    Medical Record Model

    Fields:
    - id: UUID primary key
    - patient_id: Patient the record belongs to
    - doctor_id: Doctor who uploaded the record (null when the patient uploaded it)
    - type: Kind of document
    - file_name: Original name of the current file
    - file_key: Storage key of the current encrypted file
    - mime_type: MIME type of the current file
    - description: Free-text description
    - is_encrypted: Whether the stored file is encrypted
    - current_version: Starts at 1, incremented by every update
    - created_at: When the record was created
    - updated_at: When the record was last updated
    """
    __tablename__ = "medical_records"

    id = Column(String(36), primary_key=True, default=_uuid)
    patient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    type = Column(Enum(MedicalRecordType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    file_name = Column(String, nullable=False)
    file_key = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_encrypted = Column(Boolean, nullable=False, default=False)
    current_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Relationships
    patient = relationship("User", foreign_keys=[patient_id], back_populates="patient_medical_records")
    doctor = relationship("User", foreign_keys=[doctor_id], back_populates="doctor_medical_records")
    versions = relationship(
        "MedicalRecordVersion",
        back_populates="medical_record",
        cascade="all, delete-orphan",
        order_by="MedicalRecordVersion.version_number.desc()",
    )

    # Every UPDATE is issued as "... WHERE current_version = <value loaded>";
    # the service bumps the value itself.
    __mapper_args__ = {
        "version_id_col": current_version,
        "version_id_generator": False,
    }

    def __repr__(self):
        """String representation of the MedicalRecord model"""
        return f"<MedicalRecord(id={self.id}, patient_id={self.patient_id}, version={self.current_version})>"


class MedicalRecordVersion(Base):
    """
    Medical Record Version Model - Snapshot of a record before an update

    Fields:
    - id: UUID primary key
    - medical_record_id: Record this snapshot belongs to
    - file_name, file_key, mime_type, description, is_encrypted: Record state before the update
    - modified_by_id: User who performed the update
    - change_reason: Why the record was changed
    - version_number: The record's current_version when the snapshot was taken
    - created_at: When the snapshot was taken
    """
    __tablename__ = "medical_record_versions"
    __table_args__ = (
        UniqueConstraint("medical_record_id", "version_number", name="uq_record_version_number"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    medical_record_id = Column(
        String(36), ForeignKey("medical_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_name = Column(String, nullable=False)
    file_key = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_encrypted = Column(Boolean, nullable=False, default=False)
    modified_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    change_reason = Column(Text, nullable=False)
    version_number = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    # Relationships
    medical_record = relationship("MedicalRecord", back_populates="versions")
    modified_by = relationship("User")

    def __repr__(self):
        return f"<MedicalRecordVersion(id={self.id}, record_id={self.medical_record_id}, version={self.version_number})>"
