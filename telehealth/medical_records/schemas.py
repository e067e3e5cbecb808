"""
Medical Record Schemas - Pydantic models for record requests and responses.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ..users.schemas import UserSummary
from .models import MedicalRecordType


class UploadMedicalRecord(BaseModel):
    """
    Upload Schema - Metadata sent alongside a new file

    Fields:
    - type: Kind of document
    - description: Free-text description (optional)
    - patient_id: Patient the record is for (required when a doctor uploads)
    """
    type: MedicalRecordType
    description: Optional[str] = None
    patient_id: Optional[str] = None


class UpdateMedicalRecord(BaseModel):
    """
    Update Schema - Changes applied when creating a new version

    Fields:
    - type: New kind of document (optional)
    - description: New description (optional)
    - change_reason: Why the record is being changed (required)
    """
    type: Optional[MedicalRecordType] = None
    description: Optional[str] = None
    change_reason: str = Field(..., min_length=1, description="Reason for the change")


class MedicalRecordResponse(BaseModel):
    """Medical record as returned by the API. The storage key is never exposed."""
    id: str
    patient_id: str
    doctor_id: Optional[str] = None
    patient: Optional[UserSummary] = None
    doctor: Optional[UserSummary] = None
    type: MedicalRecordType
    file_name: str
    mime_type: str
    description: Optional[str] = None
    is_encrypted: bool
    current_version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        """Configuration for Pydantic model to enable ORM mode"""
        from_attributes = True


class MedicalRecordDetailResponse(BaseModel):
    """Record details together with the decrypted file, base64 encoded"""
    record: MedicalRecordResponse
    file: str


class RecordVersionResponse(BaseModel):
    """One entry of a record's version history"""
    id: str
    version_number: int
    file_name: str
    mime_type: str
    description: Optional[str] = None
    modified_by: Optional[UserSummary] = None
    change_reason: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
