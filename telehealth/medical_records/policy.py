"""
Access policy for medical records.

A record is shared between its patient and the doctor who uploaded it.
Either party may read, update and delete it; nobody else may.
"""
from typing import Callable, Optional, Tuple

from ..exceptions import AuthorizationError, ValidationError
from ..users.models import User, UserRole
from .models import MedicalRecord


def can_access(record: MedicalRecord, user_id: str, role: UserRole) -> bool:
    """
    Check whether a user may access a record.

    Args:
        record: The medical record
        user_id: ID of the acting user
        role: Role of the acting user

    Returns:
        bool: True for the record's patient, or for its doctor acting in the DOCTOR role
    """
    if record.patient_id == user_id:
        return True
    return role == UserRole.DOCTOR and record.doctor_id is not None and record.doctor_id == user_id


def ensure_can_access(record: MedicalRecord, user_id: str, role: UserRole, action: str = "access") -> None:
    """
    Raise AuthorizationError unless :func:`can_access` allows the user.

    Update and delete go through the same rule as reads.
    """
    if not can_access(record, user_id, role):
        raise AuthorizationError(f"You do not have permission to {action} this record")


def resolve_upload_parties(
    actor: User,
    role: UserRole,
    patient_id: Optional[str],
    find_user: Callable[[str], User],
) -> Tuple[User, Optional[User]]:
    """
    Decide who a newly uploaded record belongs to.

    Args:
        actor: The uploading user
        role: Role the upload is performed in
        patient_id: Patient named in the upload request, if any
        find_user: User directory lookup, raising NotFoundError for unknown ids

    Returns:
        Tuple of (patient, doctor); doctor is None for self-uploads

    Raises:
        ValidationError: If a doctor names no patient, or anyone else names a patient other than themselves
    """
    if role == UserRole.DOCTOR:
        if not patient_id:
            raise ValidationError("Patient ID is required when a doctor uploads a record")
        return find_user(patient_id), actor

    if patient_id and patient_id != actor.id:
        raise ValidationError("Patients cannot specify a different patient ID")
    return actor, None
