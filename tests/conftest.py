"""
Test configuration for the telehealth backend.
"""
import os

# Point the application at throwaway locations before it is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from telehealth.database import Base, get_db
from telehealth.main import app
from telehealth.core.security import create_access_token
from telehealth.medical_records.crypto import CipherConfig, CipherEngine
from telehealth.medical_records.dependencies import get_blob_store, get_cipher_engine
from telehealth.medical_records.service import MedicalRecordService, UploadedFile
from telehealth.medical_records.storage import BlobStore
from telehealth.users.models import User, UserRole

# Test database URL
TEST_DATABASE_URL = "sqlite://"

# Create test database engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """
    Create a fresh database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="session")
def cipher():
    """Key derivation is slow on purpose, so one engine serves the whole run."""
    return CipherEngine(CipherConfig(secret="test-encryption-key"))


@pytest.fixture
def store(tmp_path):
    return BlobStore(tmp_path / "uploads")


@pytest.fixture
def service(db, cipher, store):
    return MedicalRecordService(db, cipher, store)


def make_user(db, name, role):
    user = User(
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        password_hash="not-a-real-hash",
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def patient(db):
    return make_user(db, "Pat One", UserRole.PATIENT)


@pytest.fixture
def other_patient(db):
    return make_user(db, "Pat Two", UserRole.PATIENT)


@pytest.fixture
def doctor(db):
    return make_user(db, "Doc One", UserRole.DOCTOR)


@pytest.fixture
def other_doctor(db):
    return make_user(db, "Doc Two", UserRole.DOCTOR)


@pytest.fixture
def report():
    return UploadedFile(file_name="report.pdf", mime_type="application/pdf", content=b"%PDF-1.4 lab values")


def bearer_headers(user):
    token = create_access_token({"sub": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return bearer_headers


@pytest.fixture(scope="function")
def client(db, cipher, store):
    """
    Create a test client with a test database session and temporary file storage.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cipher_engine] = lambda: cipher
    app.dependency_overrides[get_blob_store] = lambda: store

    with TestClient(app) as client:
        yield client

    app.dependency_overrides = {}
