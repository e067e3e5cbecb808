"""
Tests for the medical record API endpoints.
"""
import base64

from telehealth.core.audit_models import AuditAction, AuditLog
from telehealth.users.models import UserRole
from telehealth.users.service import create_user

BASE = "/api/v1/medical-records"
PDF = ("report.pdf", b"%PDF-1.4 lab values", "application/pdf")


def upload(client, headers, data=None, file=PDF):
    return client.post(
        f"{BASE}/upload",
        files={"file": file},
        data=data or {"type": "lab_report", "description": "Quarterly bloods"},
        headers=headers,
    )


def test_requires_authentication(client):
    response = client.get(f"{BASE}/")
    assert response.status_code == 401


def test_rejects_invalid_token(client):
    response = client.get(f"{BASE}/", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_upload_and_get_record(client, patient, auth_headers):
    response = upload(client, auth_headers(patient))

    assert response.status_code == 201
    record = response.json()
    assert record["file_name"] == "report.pdf"
    assert record["mime_type"] == "application/pdf"
    assert record["type"] == "lab_report"
    assert record["current_version"] == 1
    assert record["is_encrypted"] is True
    assert record["patient"]["id"] == patient.id
    assert record["doctor"] is None
    assert "file_key" not in record

    detail = client.get(f"{BASE}/{record['id']}", headers=auth_headers(patient))
    assert detail.status_code == 200
    assert base64.b64decode(detail.json()["file"]) == PDF[1]
    assert detail.json()["record"]["id"] == record["id"]


def test_download_returns_raw_file(client, patient, auth_headers):
    record_id = upload(client, auth_headers(patient)).json()["id"]

    response = client.get(f"{BASE}/{record_id}/download", headers=auth_headers(patient))

    assert response.status_code == 200
    assert response.content == PDF[1]
    assert response.headers["content-type"].startswith("application/pdf")
    assert "report.pdf" in response.headers["content-disposition"]


def test_doctor_upload_requires_patient(client, doctor, auth_headers):
    response = upload(client, auth_headers(doctor))
    assert response.status_code == 400
    assert "Patient ID is required" in response.json()["detail"]


def test_doctor_uploads_for_patient(client, doctor, patient, auth_headers):
    response = upload(client, auth_headers(doctor), data={"type": "prescription", "patient_id": patient.id})
    assert response.status_code == 201
    assert response.json()["doctor_id"] == doctor.id
    assert response.json()["patient_id"] == patient.id


def test_upload_rejects_unknown_type(client, patient, auth_headers):
    response = upload(client, auth_headers(patient), data={"type": "x-ray"})
    assert response.status_code == 422


def test_other_patient_gets_forbidden(client, patient, other_patient, auth_headers):
    record_id = upload(client, auth_headers(patient)).json()["id"]
    headers = auth_headers(other_patient)

    assert client.get(f"{BASE}/{record_id}", headers=headers).status_code == 403
    assert client.patch(f"{BASE}/{record_id}", data={"change_reason": "x"}, headers=headers).status_code == 403
    assert client.delete(f"{BASE}/{record_id}", headers=headers).status_code == 403


def test_missing_record_is_404(client, patient, auth_headers):
    response = client.get(f"{BASE}/does-not-exist", headers=auth_headers(patient))
    assert response.status_code == 404
    assert response.json() == {"detail": "Medical record not found"}


def test_update_with_new_file_and_version_history(client, patient, auth_headers):
    record_id = upload(client, auth_headers(patient)).json()["id"]
    headers = auth_headers(patient)

    response = client.patch(
        f"{BASE}/{record_id}",
        data={"change_reason": "corrected typo", "description": "Quarterly bloods (fasting)"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["current_version"] == 2

    response = client.patch(
        f"{BASE}/{record_id}",
        data={"change_reason": "new scan"},
        files={"file": ("scan.png", b"\x89PNG data", "image/png")},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["current_version"] == 3
    assert body["file_name"] == "scan.png"
    assert body["mime_type"] == "image/png"

    history = client.get(f"{BASE}/{record_id}/versions", headers=headers).json()
    assert [item["version_number"] for item in history["items"]] == [2, 1]
    assert history["items"][0]["change_reason"] == "new scan"
    assert history["items"][1]["description"] == "Quarterly bloods"
    assert history["items"][1]["modified_by"]["id"] == patient.id
    assert history["meta"] == {"total_items": 2, "items_per_page": 10, "total_pages": 1, "current_page": 1}

    download = client.get(f"{BASE}/{record_id}/download", headers=headers)
    assert download.content == b"\x89PNG data"


def test_version_content_download(client, patient, auth_headers):
    record_id = upload(client, auth_headers(patient)).json()["id"]
    headers = auth_headers(patient)
    client.patch(f"{BASE}/{record_id}", data={"change_reason": "note", "description": "new"}, headers=headers)
    version_id = client.get(f"{BASE}/{record_id}/versions", headers=headers).json()["items"][0]["id"]

    response = client.get(f"{BASE}/{record_id}/versions/{version_id}", headers=headers)

    assert response.status_code == 200
    assert response.content == PDF[1]
    assert response.headers["content-type"].startswith("application/pdf")


def test_update_requires_change_reason(client, patient, auth_headers):
    record_id = upload(client, auth_headers(patient)).json()["id"]
    response = client.patch(f"{BASE}/{record_id}", data={"description": "x"}, headers=auth_headers(patient))
    assert response.status_code == 422


def test_list_pagination(client, patient, auth_headers):
    for _ in range(15):
        upload(client, auth_headers(patient))

    response = client.get(f"{BASE}/", params={"page": 2, "limit": 10}, headers=auth_headers(patient))

    assert response.status_code == 200
    assert len(response.json()["items"]) == 5
    assert response.json()["meta"]["total_pages"] == 2


def test_list_rejects_out_of_range_limit(client, patient, auth_headers):
    response = client.get(f"{BASE}/", params={"limit": 101}, headers=auth_headers(patient))
    assert response.status_code == 422


def test_delete_record(client, store, patient, auth_headers):
    record_id = upload(client, auth_headers(patient)).json()["id"]
    headers = auth_headers(patient)

    assert client.delete(f"{BASE}/{record_id}", headers=headers).status_code == 204
    assert client.get(f"{BASE}/{record_id}", headers=headers).status_code == 404
    assert list(store.root.iterdir()) == []


def test_corrupted_file_is_404(client, store, patient, auth_headers):
    record_id = upload(client, auth_headers(patient)).json()["id"]
    (data_file,) = [path for path in store.root.iterdir() if not path.name.endswith(".metadata")]
    data_file.write_bytes(b"\x00" * 64)

    response = client.get(f"{BASE}/{record_id}", headers=auth_headers(patient))

    assert response.status_code == 404
    assert response.json()["detail"] == "File not found or corrupted"


def test_record_access_is_audited(client, db, patient, auth_headers):
    record_id = upload(client, auth_headers(patient)).json()["id"]
    client.get(f"{BASE}/{record_id}", headers=auth_headers(patient))
    client.delete(f"{BASE}/{record_id}", headers=auth_headers(patient))

    actions = [
        entry.action for entry in
        db.query(AuditLog).filter(AuditLog.record_id == record_id).order_by(AuditLog.id)
    ]
    assert actions == [AuditAction.RECORD_UPLOADED, AuditAction.RECORD_VIEWED, AuditAction.RECORD_DELETED]


def test_login_and_current_user(client, db):
    user = create_user(db, "Dana Doctor", "Dana@Example.com", "S3cure-pass", UserRole.DOCTOR)

    response = client.post("/api/v1/auth/login", data={"username": "dana@example.com", "password": "S3cure-pass"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == user.id
    assert me.json()["role"] == "DOCTOR"


def test_login_with_wrong_password(client, db):
    create_user(db, "Dana Doctor", "dana@example.com", "S3cure-pass", UserRole.DOCTOR)
    response = client.post("/api/v1/auth/login", data={"username": "dana@example.com", "password": "wrong"})
    assert response.status_code == 401
