from __future__ import annotations

import uuid
from datetime import date

from flask import current_app, request
from werkzeug.utils import secure_filename

from app.bizadmin.api import ApiError, bp, current_principal, ok, require_token
from app.bizadmin.audit import record_event
from app.bizadmin.db import db_session
from app.bizadmin.storage import StorageError, storage_from_config


def build_upload_key(filename: str, upload_date: date | None = None) -> str:
    """Deterministic prefix, random stem: uploads/<date>/<hex>-<name>."""
    if upload_date is None:
        upload_date = date.today()
    safe_filename = secure_filename(filename) or "file.bin"
    return f"uploads/{upload_date.isoformat()}/{uuid.uuid4().hex[:12]}-{safe_filename}"


@bp.post("/upload")
@require_token("user")
def upload():
    f = request.files.get("file")
    if f is None or not f.filename:
        raise ApiError("No file uploaded", 400)
    data = f.read()
    if not data:
        raise ApiError("Uploaded file is empty", 400)

    key = build_upload_key(f.filename)
    storage = storage_from_config(current_app.config)
    try:
        storage.put_bytes(key, data, content_type=f.mimetype or "application/octet-stream")
    except StorageError as e:
        current_app.logger.error("Upload failed for %s: %s", key, e)
        raise ApiError("Storage is not available", 500) from e

    s = db_session()
    record_event(
        s,
        actor=current_principal(),
        action="file.upload",
        entity_type="Upload",
        entity_id=key,
        metadata={"filename": f.filename, "size": len(data)},
    )
    s.commit()
    return ok({"key": key, "url": storage.public_url(key), "filename": f.filename, "size": len(data)}, 201)
