"""
Medical Record Service - Encrypted upload, retrieval, versioning and deletion.

This is the only component that touches both the database and the blob
store. Writes follow a two-phase protocol:

1. write new encrypted files under fresh keys (safe to abandon on failure)
2. commit the database transaction
3. after the commit, delete files that are no longer current (best-effort)

A failure in step 3 is logged and never reported to the caller.
"""
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.pagination import PageParams, PageResponse, paginate
from ..exceptions import ConflictError, DecryptionError, NotFoundError, ValidationError
from ..users import service as users_service
from ..users.models import UserRole
from . import repository
from .crypto import CipherEngine
from .models import MedicalRecord, MedicalRecordVersion
from .policy import ensure_can_access, resolve_upload_parties
from .schemas import MedicalRecordResponse, RecordVersionResponse, UpdateMedicalRecord, UploadMedicalRecord
from .storage import BlobStore

# Set up logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    """File received from a client"""
    file_name: str
    mime_type: str
    content: bytes


@dataclass(frozen=True)
class RecordContent:
    record: MedicalRecord
    file: bytes


@dataclass(frozen=True)
class VersionContent:
    version: MedicalRecordVersion
    file: bytes


def make_file_key(file_name: str) -> str:
    """
    Build a fresh storage key ``<uuid4>-<file name>``.

    Any directory part of the client-supplied name is dropped so the key
    always names a file directly inside the upload directory.
    """
    name = PurePosixPath(file_name.replace("\\", "/")).name.strip() or "file"
    if name in (".", ".."):
        name = "file"
    return f"{uuid.uuid4()}-{name}"


class MedicalRecordService:
    """
    Coordinates the access policy, cipher engine, blob store and database.

    One instance serves one request; it shares the request's session.
    """

    def __init__(
        self,
        db: Session,
        cipher: CipherEngine,
        store: BlobStore,
        retain_superseded_files: bool = False,
    ):
        self.db = db
        self.cipher = cipher
        self.store = store
        self.retain_superseded_files = retain_superseded_files

    def _find_user(self, user_id: str):
        return users_service.find_one(self.db, user_id)

    def _load_record(self, record_id: str) -> MedicalRecord:
        record = repository.get_record(self.db, record_id)
        if not record:
            raise NotFoundError("Medical record not found")
        return record

    def _write_file(self, file: UploadedFile) -> str:
        """Encrypt and store a file under a new key, returning the key."""
        ciphertext, iv = self.cipher.encrypt(file.content)
        key = make_file_key(file.file_name)
        self.store.put(key, ciphertext, iv)
        return key

    def _read_file(self, key: str) -> bytes:
        """Fetch and decrypt a stored file; missing and corrupt look the same."""
        stored = self.store.get(key)
        try:
            return self.cipher.decrypt(stored.data, stored.iv)
        except DecryptionError as e:
            logger.warning(f"Stored file {key} failed decryption: {e.detail}")
            raise NotFoundError("File not found or corrupted") from e

    def _discard_file(self, key: Optional[str]) -> None:
        if key:
            logger.warning(f"Removing file {key} written by a transaction that did not commit")
            self.store.delete(key)

    def upload_record(
        self,
        file: Optional[UploadedFile],
        dto: UploadMedicalRecord,
        user_id: str,
        role: UserRole,
    ) -> MedicalRecord:
        """
        Encrypt and store a new file and create its record at version 1.

        Raises:
            ValidationError: If no file is given or the patient/doctor rule is broken
            NotFoundError: If the acting user or the named patient does not exist
            StorageError: If the encrypted file cannot be written
        """
        if file is None:
            raise ValidationError("A file is required")
        actor = self._find_user(user_id)
        patient, doctor = resolve_upload_parties(actor, role, dto.patient_id, self._find_user)

        key = self._write_file(file)
        record = MedicalRecord(
            patient_id=patient.id,
            doctor_id=doctor.id if doctor else None,
            type=dto.type,
            file_name=file.file_name,
            file_key=key,
            mime_type=file.mime_type,
            description=dto.description,
            is_encrypted=True,
            current_version=1,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            self._discard_file(key)
            raise
        self.db.refresh(record)

        logger.info(f"Medical record {record.id} uploaded by user {user_id} for patient {patient.id}")
        return record

    def find_all_for_user(
        self,
        user_id: str,
        role: UserRole,
        pagination: Optional[PageParams] = None,
    ) -> PageResponse:
        """List the records visible to a user, newest first."""
        pagination = pagination or PageParams()
        query = repository.records_for_user_query(self.db, user_id, role)
        return paginate(query, pagination, MedicalRecordResponse.model_validate)

    def get_record(self, record_id: str, user_id: str, role: UserRole) -> RecordContent:
        """
        Return a record and its decrypted current file.

        Raises:
            NotFoundError: If the record is missing, or its file is missing or corrupt
            AuthorizationError: If the user is neither the patient nor the doctor
        """
        record = self._load_record(record_id)
        ensure_can_access(record, user_id, role)
        return RecordContent(record=record, file=self._read_file(record.file_key))

    def update_record(
        self,
        record_id: str,
        file: Optional[UploadedFile],
        dto: UpdateMedicalRecord,
        user_id: str,
        role: UserRole,
    ) -> MedicalRecord:
        """
        Snapshot the record into a new version row, apply the changes and bump current_version.

        The snapshot insert and the record update commit together. The
        record UPDATE only matches while current_version still holds the
        value read here, so a concurrent update makes this one fail with
        ConflictError instead of reusing a version number.

        Raises:
            ValidationError: If change_reason is blank
            NotFoundError: If the record or acting user does not exist
            AuthorizationError: If the user is neither the patient nor the doctor
            ConflictError: If another update committed first
            StorageError: If the new file cannot be written
        """
        if not dto.change_reason or not dto.change_reason.strip():
            raise ValidationError("A change reason is required")

        record = repository.get_record_for_update(self.db, record_id)
        if not record:
            raise NotFoundError("Medical record not found")
        ensure_can_access(record, user_id, role, "update")
        actor = self._find_user(user_id)

        new_key = None
        old_key = None
        try:
            self.db.add(MedicalRecordVersion(
                medical_record_id=record.id,
                file_name=record.file_name,
                file_key=record.file_key,
                mime_type=record.mime_type,
                description=record.description,
                is_encrypted=record.is_encrypted,
                modified_by_id=actor.id,
                change_reason=dto.change_reason,
                version_number=record.current_version,
            ))

            if dto.type is not None:
                record.type = dto.type
            if dto.description is not None:
                record.description = dto.description

            if file is not None:
                new_key = self._write_file(file)
                old_key = record.file_key
                record.file_name = file.file_name
                record.file_key = new_key
                record.mime_type = file.mime_type
                record.is_encrypted = True

            record.current_version = record.current_version + 1
            self.db.commit()
        except (StaleDataError, IntegrityError) as e:
            self.db.rollback()
            self._discard_file(new_key)
            logger.warning(f"Concurrent update of medical record {record_id} rejected: {str(e)}")
            raise ConflictError() from e
        except Exception:
            self.db.rollback()
            self._discard_file(new_key)
            raise

        logger.info(
            f"Medical record {record_id} updated by user {user_id} "
            f"to version {record.current_version}"
        )

        if old_key and not self.retain_superseded_files:
            self.store.delete(old_key)

        self.db.refresh(record)
        return record

    def get_record_versions(
        self,
        record_id: str,
        user_id: str,
        role: UserRole,
        pagination: Optional[PageParams] = None,
    ) -> PageResponse:
        """List a record's versions, newest version number first."""
        pagination = pagination or PageParams()
        record = self._load_record(record_id)
        ensure_can_access(record, user_id, role)
        query = repository.versions_query(self.db, record.id)
        return paginate(query, pagination, RecordVersionResponse.model_validate)

    def get_version_content(
        self,
        record_id: str,
        version_id: str,
        user_id: str,
        role: UserRole,
    ) -> VersionContent:
        """
        Return a version and the decrypted file it points at.

        A version whose file was replaced by a later update has lost its
        content unless superseded files are retained; it then raises
        NotFoundError like any missing file.
        """
        record = self._load_record(record_id)
        ensure_can_access(record, user_id, role)
        version = repository.get_version(self.db, record.id, version_id)
        if not version:
            raise NotFoundError("Version not found")
        return VersionContent(version=version, file=self._read_file(version.file_key))

    def delete_record(self, record_id: str, user_id: str, role: UserRole) -> None:
        """
        Delete a record, its versions and every file they reference.

        Files are removed after the row deletion has committed; a file
        that cannot be removed is logged and left behind.
        """
        record = self._load_record(record_id)
        ensure_can_access(record, user_id, role, "delete")
        keys = repository.referenced_file_keys(self.db, record)

        self.db.delete(record)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for key in keys:
            self.store.delete(key)
        logger.info(f"Medical record {record_id} deleted by user {user_id}")
