"""Signed receipt uploads and downloads."""
from urllib.parse import urlparse

import pytest

from expensehub.errors import Forbidden, InvalidRequest
from expensehub.models import ReceiptFile
from expensehub.services import storage_service

from .conftest import expense_payload, login

RECEIPT = b"%PDF-1.4 fake receipt"


def _presign(client, **overrides):
    payload = {"fileName": "lunch receipt.pdf", "mimeType": "application/pdf", "fileSize": len(RECEIPT)}
    payload.update(overrides)
    return client.post("/api/upload/presigned-url", json=payload)


def test_presigned_url_describes_the_upload(app, acme):
    response = _presign(login(app, acme.employee_email))

    assert response.status_code == 200
    data = response.get_json()["data"]
    key = data["fields"]["key"]
    assert key.startswith("receipts/")
    assert key.endswith("/lunch_receipt.pdf")
    assert len(key.split("/")[1]) == 32
    assert data["fields"]["Content-Type"] == "application/pdf"
    assert data["expires_in"] == 3600
    assert "/api/upload/" in data["url"]


def test_presigned_url_requires_a_session(client):
    assert _presign(client).status_code == 401


def test_presigned_url_rejects_oversized_files(app, acme):
    app.config["MAX_RECEIPT_BYTES"] = 10

    response = _presign(login(app, acme.employee_email), fileSize=11)

    assert response.status_code == 400


def test_upload_then_attach_to_expense(app, acme):
    client = login(app, acme.employee_email)
    presigned = _presign(client).get_json()["data"]
    key = presigned["fields"]["key"]

    upload = client.put(urlparse(presigned["url"]).path, data=RECEIPT, content_type="application/pdf")
    expense = client.post("/api/expenses", json=expense_payload(acme.project_id, receiptFileKeys=[key]))

    assert upload.status_code == 201
    assert upload.get_json()["data"] == {"key": key, "mime": "application/pdf", "size": len(RECEIPT)}
    receipts = expense.get_json()["data"]["receipt_files"]
    assert receipts == [{"id": receipts[0]["id"], "url": key, "mime": "application/pdf", "size": len(RECEIPT)}]


def test_missing_upload_is_recorded_with_defaults(app, acme):
    client = login(app, acme.employee_email)
    key = "receipts/" + "0" * 32 + "/never-uploaded.png"

    response = client.post("/api/expenses", json=expense_payload(acme.project_id, receiptFileKeys=[key]))

    assert response.status_code == 201
    with app.app_context():
        receipt = ReceiptFile.query.one()
        assert receipt.mime == "application/octet-stream"
        assert receipt.size == 0


def test_upload_larger_than_signed_size_is_rejected(app, acme):
    client = login(app, acme.employee_email)
    presigned = _presign(client, fileSize=4).get_json()["data"]

    response = client.put(urlparse(presigned["url"]).path, data=RECEIPT)

    assert response.status_code == 400
    assert response.get_json()["error"] == "Upload exceeds the signed file size"


def test_tampered_token_is_forbidden(app, acme):
    client = login(app, acme.employee_email)
    presigned = _presign(client).get_json()["data"]

    response = client.put(urlparse(presigned["url"]).path + "x", data=RECEIPT)

    assert response.status_code == 403
    assert response.get_json()["error"] == "Invalid signature"


def test_expired_token_is_forbidden(app):
    with app.test_request_context():
        token = storage_service._serializer(storage_service.UPLOAD_SALT).dumps(
            {"key": "receipts/abc/file.png", "mime": "image/png", "size": 3}
        )
        app.config["UPLOAD_URL_EXPIRY_SECONDS"] = -1

        with pytest.raises(Forbidden) as excinfo:
            storage_service.store_object(token, b"abc")

    assert excinfo.value.message == "URL has expired"


def test_download_returns_the_stored_bytes(app, acme):
    with app.test_request_context():
        stored = storage_service.save_upload("scan.png", "image/png", b"png-bytes")
        url = storage_service.download_url(stored.key)

    response = login(app, acme.manager_email).get(url)

    assert response.status_code == 200
    assert response.data == b"png-bytes"
    assert response.mimetype == "image/png"


def test_keys_outside_the_store_are_rejected(app):
    with app.test_request_context():
        with pytest.raises(InvalidRequest):
            storage_service.object_metadata("receipts/../../etc/passwd")
        with pytest.raises(InvalidRequest):
            storage_service.object_metadata("elsewhere/file.png")
