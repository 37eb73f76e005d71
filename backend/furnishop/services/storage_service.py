"""
Object store for product and customer images.

Objects are addressed by (bucket, path) and served from a public URL. The
filesystem backend keeps them under MEDIA_ROOT/<bucket>/<path> (default
<instance_path>/media) and builds URLs from MEDIA_BASE_URL.
"""
from __future__ import annotations

import os
import secrets

from flask import current_app
from werkzeug.utils import secure_filename


PRODUCT_BUCKET = "products"
CUSTOMER_BUCKET = "customer-images"
BUCKETS = (PRODUCT_BUCKET, CUSTOMER_BUCKET)

ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}


class StorageError(Exception):
    """Raised when an object cannot be stored, resolved or deleted."""
    pass


def media_root() -> str:
    base = current_app.config.get("MEDIA_ROOT")
    if not base:
        base = os.path.join(current_app.instance_path, "media")
    os.makedirs(base, exist_ok=True)
    return base


def _object_path(bucket: str, path: str) -> str:
    if bucket not in BUCKETS:
        raise StorageError(f"Unknown bucket: {bucket}")
    root = os.path.realpath(os.path.join(media_root(), bucket))
    abs_path = os.path.realpath(os.path.join(root, path))
    if not abs_path.startswith(root + os.sep):
        raise StorageError("Invalid object path")
    return abs_path


def make_object_path(prefix: str, filename: str) -> str:
    """
    Unique object path for an upload, e.g. "12/3f9a0c1d_sofa.jpg".

    Rejects files whose extension is not an image type.
    """
    safe = secure_filename(filename or "")
    ext = safe.rsplit(".", 1)[-1].lower() if "." in safe else ""
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise StorageError(f"Unsupported image type: {ext or 'none'}")
    return f"{prefix}/{secrets.token_hex(4)}_{safe}"


def put(bucket: str, path: str, data: bytes) -> str:
    """Store an object and return its public URL."""
    if not data:
        raise StorageError("Empty upload")
    abs_path = _object_path(bucket, path)
    os.makedirs(os.path.dirname(abs_path), exist_ok=True)
    with open(abs_path, "wb") as f:
        f.write(data)
    return public_url(bucket, path)


def delete(bucket: str, path: str) -> None:
    """Delete an object. Deleting a missing object is not an error."""
    abs_path = _object_path(bucket, path)
    try:
        os.remove(abs_path)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise StorageError(f"Could not delete {bucket}/{path}: {exc}") from exc


def discard(bucket: str, path: str) -> None:
    """Best-effort delete of an object whose database row was rolled back."""
    try:
        delete(bucket, path)
    except StorageError as exc:
        current_app.logger.warning("Could not discard %s/%s: %s", bucket, path, exc)


def public_url(bucket: str, path: str | None) -> str | None:
    if not path:
        return None
    base = (current_app.config.get("MEDIA_BASE_URL") or "/media").rstrip("/")
    return f"{base}/{bucket}/{path}"


def read(bucket: str, path: str) -> str:
    """Absolute filesystem path of an existing object (for serving)."""
    abs_path = _object_path(bucket, path)
    if not os.path.isfile(abs_path):
        raise StorageError("Object not found")
    return abs_path
