"""
Medical Record Router - API endpoints for encrypted medical records.

This module provides endpoints for uploading, listing, reading, versioning
and deleting medical records. Endpoints are plain ``def`` so that file I/O
and encryption run in the threadpool.
"""
import base64
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user
from ..core.audit_models import AuditAction
from ..core.audit_service import create_audit_log
from ..core.pagination import PageParams, PageResponse
from ..database import get_db
from ..users.models import User
from .dependencies import get_medical_record_service
from .models import MedicalRecordType
from .schemas import (
    MedicalRecordDetailResponse,
    MedicalRecordResponse,
    RecordVersionResponse,
    UpdateMedicalRecord,
    UploadMedicalRecord,
)
from .service import MedicalRecordService, UploadedFile

router = APIRouter()


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _read_upload(file: Optional[UploadFile]) -> Optional[UploadedFile]:
    if file is None:
        return None
    return UploadedFile(
        file_name=file.filename or "file",
        mime_type=file.content_type or "application/octet-stream",
        content=file.file.read(),
    )


def _file_response(content: bytes, mime_type: str, file_name: str) -> Response:
    return Response(
        content=content,
        media_type=mime_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(file_name)}"},
    )


@router.post("/upload", response_model=MedicalRecordResponse, status_code=status.HTTP_201_CREATED)
def upload_record(
    request: Request,
    file: UploadFile = File(..., description="File to encrypt and store"),
    type: MedicalRecordType = Form(..., description="Type of medical record"),
    description: Optional[str] = Form(None, description="Description of the medical record"),
    patient_id: Optional[str] = Form(None, description="Patient ID (required when a doctor uploads)"),
    db: Session = Depends(get_db),
    service: MedicalRecordService = Depends(get_medical_record_service),
    current_user: User = Depends(get_current_user),
):
    """
    Upload a new medical record

    Patients upload for themselves; doctors must name the patient.
    """
    dto = UploadMedicalRecord(type=type, description=description, patient_id=patient_id)
    record = service.upload_record(_read_upload(file), dto, current_user.id, current_user.role)
    create_audit_log(
        db, AuditAction.RECORD_UPLOADED, user_id=current_user.id, record_id=record.id,
        ip_address=_client_ip(request), details={"type": record.type.value},
    )
    return record


@router.get("/", response_model=PageResponse[MedicalRecordResponse])
def list_records(
    pagination: PageParams = Depends(),
    service: MedicalRecordService = Depends(get_medical_record_service),
    current_user: User = Depends(get_current_user),
):
    """
    Get the current user's medical records, newest first
    """
    return service.find_all_for_user(current_user.id, current_user.role, pagination)


@router.get("/{record_id}", response_model=MedicalRecordDetailResponse)
def get_record(
    record_id: str,
    request: Request,
    db: Session = Depends(get_db),
    service: MedicalRecordService = Depends(get_medical_record_service),
    current_user: User = Depends(get_current_user),
):
    """
    Get a medical record with its decrypted file (base64 encoded)
    """
    content = service.get_record(record_id, current_user.id, current_user.role)
    create_audit_log(
        db, AuditAction.RECORD_VIEWED, user_id=current_user.id, record_id=record_id,
        ip_address=_client_ip(request),
    )
    return MedicalRecordDetailResponse(
        record=MedicalRecordResponse.model_validate(content.record),
        file=base64.b64encode(content.file).decode("ascii"),
    )


@router.get("/{record_id}/download")
def download_record(
    record_id: str,
    request: Request,
    db: Session = Depends(get_db),
    service: MedicalRecordService = Depends(get_medical_record_service),
    current_user: User = Depends(get_current_user),
):
    """
    Download the decrypted current file of a medical record
    """
    content = service.get_record(record_id, current_user.id, current_user.role)
    create_audit_log(
        db, AuditAction.RECORD_VIEWED, user_id=current_user.id, record_id=record_id,
        ip_address=_client_ip(request), details={"download": True},
    )
    return _file_response(content.file, content.record.mime_type, content.record.file_name)


@router.patch("/{record_id}", response_model=MedicalRecordResponse)
def update_record(
    record_id: str,
    request: Request,
    change_reason: str = Form(..., min_length=1, description="Reason for the change"),
    type: Optional[MedicalRecordType] = Form(None, description="New type of medical record"),
    description: Optional[str] = Form(None, description="New description"),
    file: Optional[UploadFile] = File(None, description="Replacement file"),
    db: Session = Depends(get_db),
    service: MedicalRecordService = Depends(get_medical_record_service),
    current_user: User = Depends(get_current_user),
):
    """
    Update a medical record and create a new version

    The record's state before the change is kept in its version history.
    """
    dto = UpdateMedicalRecord(type=type, description=description, change_reason=change_reason)
    record = service.update_record(record_id, _read_upload(file), dto, current_user.id, current_user.role)
    create_audit_log(
        db, AuditAction.RECORD_UPDATED, user_id=current_user.id, record_id=record_id,
        ip_address=_client_ip(request),
        details={"version": record.current_version, "file_replaced": file is not None},
    )
    return record


@router.get("/{record_id}/versions", response_model=PageResponse[RecordVersionResponse])
def get_record_versions(
    record_id: str,
    pagination: PageParams = Depends(),
    service: MedicalRecordService = Depends(get_medical_record_service),
    current_user: User = Depends(get_current_user),
):
    """
    Get the version history of a medical record, newest version first
    """
    return service.get_record_versions(record_id, current_user.id, current_user.role, pagination)


@router.get("/{record_id}/versions/{version_id}")
def get_version_content(
    record_id: str,
    version_id: str,
    request: Request,
    db: Session = Depends(get_db),
    service: MedicalRecordService = Depends(get_medical_record_service),
    current_user: User = Depends(get_current_user),
):
    """
    Download the decrypted file of a specific version
    """
    content = service.get_version_content(record_id, version_id, current_user.id, current_user.role)
    create_audit_log(
        db, AuditAction.VERSION_VIEWED, user_id=current_user.id, record_id=record_id,
        ip_address=_client_ip(request), details={"version_id": version_id},
    )
    return _file_response(content.file, content.version.mime_type, content.version.file_name)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_record(
    record_id: str,
    request: Request,
    db: Session = Depends(get_db),
    service: MedicalRecordService = Depends(get_medical_record_service),
    current_user: User = Depends(get_current_user),
):
    """
    Delete a medical record, its version history and stored files
    """
    service.delete_record(record_id, current_user.id, current_user.role)
    create_audit_log(
        db, AuditAction.RECORD_DELETED, user_id=current_user.id, record_id=record_id,
        ip_address=_client_ip(request),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
