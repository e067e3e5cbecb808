"""
Queries over medical records and their versions.
"""
from typing import Optional
from sqlalchemy.orm import Session, Query, joinedload

from ..users.models import UserRole
from .models import MedicalRecord, MedicalRecordVersion


def get_record(db: Session, record_id: str) -> Optional[MedicalRecord]:
    """Load a record with its patient and doctor, or None."""
    return (
        db.query(MedicalRecord)
        .options(joinedload(MedicalRecord.patient), joinedload(MedicalRecord.doctor))
        .filter(MedicalRecord.id == record_id)
        .first()
    )


def get_record_for_update(db: Session, record_id: str) -> Optional[MedicalRecord]:
    """
    Load a record and lock its row until the transaction ends.

    The row lock is a no-op on SQLite; the optimistic check on
    current_version still applies there.
    """
    return (
        db.query(MedicalRecord)
        .filter(MedicalRecord.id == record_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def records_for_user_query(db: Session, user_id: str, role: UserRole) -> Query:
    """
    Records visible in a user's listing, newest first.

    Patients see their own records and doctors the records they uploaded;
    other roles are not filtered.
    """
    query = db.query(MedicalRecord).options(
        joinedload(MedicalRecord.patient), joinedload(MedicalRecord.doctor)
    )
    if role == UserRole.PATIENT:
        query = query.filter(MedicalRecord.patient_id == user_id)
    elif role == UserRole.DOCTOR:
        query = query.filter(MedicalRecord.doctor_id == user_id)
    return query.order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())


def versions_query(db: Session, record_id: str) -> Query:
    """Version rows of a record, highest version number first."""
    return (
        db.query(MedicalRecordVersion)
        .options(joinedload(MedicalRecordVersion.modified_by))
        .filter(MedicalRecordVersion.medical_record_id == record_id)
        .order_by(MedicalRecordVersion.version_number.desc())
    )


def get_version(db: Session, record_id: str, version_id: str) -> Optional[MedicalRecordVersion]:
    """Load one version, only if it belongs to the given record."""
    return (
        db.query(MedicalRecordVersion)
        .filter(
            MedicalRecordVersion.id == version_id,
            MedicalRecordVersion.medical_record_id == record_id,
        )
        .first()
    )


def referenced_file_keys(db: Session, record: MedicalRecord) -> set:
    """Every storage key the record or any of its versions points at."""
    keys = {record.file_key}
    rows = (
        db.query(MedicalRecordVersion.file_key)
        .filter(MedicalRecordVersion.medical_record_id == record.id)
        .distinct()
    )
    keys.update(key for (key,) in rows)
    return keys
