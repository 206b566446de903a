"""Local receipt object store with signed upload and download URLs.

Uploads happen in two steps: the client asks for a signed URL describing the
object (key, MIME type, size), then PUTs the bytes to it. Tokens are signed
with itsdangerous and expire after ``UPLOAD_URL_EXPIRY_SECONDS``.
"""
from __future__ import annotations

import json
import logging
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from flask import current_app, url_for
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.utils import secure_filename

from expensehub.errors import Forbidden, InvalidRequest, NotFound

logger = logging.getLogger(__name__)

KEY_PREFIX = "receipts/"
UPLOAD_SALT = "receipt-upload"
DOWNLOAD_SALT = "receipt-download"
DEFAULT_MIME = "application/octet-stream"
_META_SUFFIX = ".meta.json"


@dataclass(frozen=True)
class StoredObject:
    key: str
    mime: str
    size: int


def _serializer(salt: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=salt)


def _expiry() -> int:
    return int(current_app.config.get("UPLOAD_URL_EXPIRY_SECONDS", 3600))


def _max_bytes() -> int:
    return int(current_app.config.get("MAX_RECEIPT_BYTES", 10 * 1024 * 1024))


def build_object_key(file_name: str) -> str:
    safe_name = secure_filename(file_name or "") or "receipt"
    return f"{KEY_PREFIX}{secrets.token_hex(16)}/{safe_name}"


def _object_path(key: str) -> Path:
    if not key or not key.startswith(KEY_PREFIX):
        raise InvalidRequest(f"Invalid receipt key '{key}'")
    root = Path(current_app.config["UPLOAD_FOLDER"]).resolve()
    path = (root / key).resolve()
    if root not in path.parents:
        raise InvalidRequest(f"Invalid receipt key '{key}'")
    return path


def create_presigned_upload(file_name: str, mime_type: str, file_size: int) -> Dict[str, Any]:
    """Describe where and how the client may upload one receipt."""
    if file_size <= 0:
        raise InvalidRequest("File size must be positive")
    if file_size > _max_bytes():
        raise InvalidRequest(f"File size exceeds the {_max_bytes()} byte limit")

    key = build_object_key(file_name)
    token = _serializer(UPLOAD_SALT).dumps({"key": key, "mime": mime_type, "size": file_size})
    return {
        "url": url_for("api.upload_object", token=token, _external=True),
        "fields": {"key": key, "Content-Type": mime_type},
        "expires_in": _expiry(),
    }


def _load_token(token: str, salt: str) -> Dict[str, Any]:
    try:
        return _serializer(salt).loads(token, max_age=_expiry())
    except SignatureExpired:
        raise Forbidden("URL has expired")
    except BadSignature:
        raise Forbidden("Invalid signature")


def store_object(token: str, body: bytes) -> StoredObject:
    """Persist an upload made against a signed URL."""
    claims = _load_token(token, UPLOAD_SALT)
    if not body:
        raise InvalidRequest("Upload body is empty")
    if len(body) > int(claims["size"]) or len(body) > _max_bytes():
        raise InvalidRequest("Upload exceeds the signed file size")

    return _write_object(claims["key"], claims.get("mime") or DEFAULT_MIME, body)


def save_upload(file_name: str, mime_type: Optional[str], body: bytes) -> StoredObject:
    """Store a receipt posted directly through a page form."""
    if not body:
        raise InvalidRequest("Upload body is empty")
    if len(body) > _max_bytes():
        raise InvalidRequest(f"File size exceeds the {_max_bytes()} byte limit")
    return _write_object(build_object_key(file_name), mime_type or DEFAULT_MIME, body)


def _write_object(key: str, mime: str, body: bytes) -> StoredObject:
    path = _object_path(key)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(body)

    stored = StoredObject(key=key, mime=mime, size=len(body))
    Path(f"{path}{_META_SUFFIX}").write_text(
        json.dumps({"mime": stored.mime, "size": stored.size}), encoding="utf-8"
    )
    logger.info("Stored receipt object %s (%s bytes)", stored.key, stored.size)
    return stored


def object_metadata(key: str) -> Optional[StoredObject]:
    """Metadata for an uploaded object, or None when nothing was uploaded."""
    path = _object_path(key)
    if not path.is_file():
        return None
    meta_path = Path(f"{path}{_META_SUFFIX}")
    mime = DEFAULT_MIME
    if meta_path.is_file():
        mime = json.loads(meta_path.read_text(encoding="utf-8")).get("mime") or DEFAULT_MIME
    return StoredObject(key=key, mime=mime, size=path.stat().st_size)


def delete_object(key: str) -> None:
    path = _object_path(key)
    for target in (path, Path(f"{path}{_META_SUFFIX}")):
        target.unlink(missing_ok=True)
    logger.info("Deleted receipt object %s", key)


def download_url(key: str) -> str:
    token = _serializer(DOWNLOAD_SALT).dumps({"key": key})
    return url_for("api.download_object", token=token)


def resolve_download(token: str) -> Tuple[Path, StoredObject]:
    claims = _load_token(token, DOWNLOAD_SALT)
    stored = object_metadata(claims["key"])
    if stored is None:
        raise NotFound("Receipt not found")
    return _object_path(stored.key), stored
