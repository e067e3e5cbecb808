"""
Dependency wiring for the medical record service.

The cipher engine and blob store are built once per process from settings
and handed to each request's service instance.
"""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from .crypto import CipherConfig, CipherEngine
from .service import MedicalRecordService
from .storage import BlobStore


@lru_cache(maxsize=1)
def get_cipher_engine() -> CipherEngine:
    return CipherEngine(CipherConfig(secret=settings.encryption_key))


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    return BlobStore(settings.upload_path)


def get_medical_record_service(
    db: Session = Depends(get_db),
    cipher: CipherEngine = Depends(get_cipher_engine),
    store: BlobStore = Depends(get_blob_store),
) -> MedicalRecordService:
    return MedicalRecordService(
        db,
        cipher,
        store,
        retain_superseded_files=settings.retain_superseded_files,
    )
