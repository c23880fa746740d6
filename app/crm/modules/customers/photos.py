from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from app.crm.constants import PHOTO_CONTAINER, PHOTO_KEY_PREFIX
from app.crm.errors import UploadError
from app.crm.storage import Storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhotoUpload:
    data: bytes
    filename: str
    content_type: str | None = None

    @classmethod
    def from_file_storage(cls, f: FileStorage | None) -> "PhotoUpload | None":
        """Read an uploaded form file; an empty file input yields None."""
        if f is None or not (f.filename or "").strip():
            return None
        data = f.read()
        if not data:
            return None
        return cls(data=data, filename=f.filename or "", content_type=f.mimetype or None)


def build_photo_key(owner_name: str, filename: str, *, now_ms: int | None = None, token: str | None = None) -> str:
    """
    Storage key for a customer photo, relative to the photo container:
    public/<name>_<millis>_<token>_<filename>.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if token is None:
        token = secrets.token_hex(4)
    safe_name = secure_filename(owner_name or "") or "customer"
    safe_filename = secure_filename(filename or "") or "photo.bin"
    return f"{PHOTO_KEY_PREFIX}/{safe_name}_{now_ms}_{token}_{safe_filename}"


def upload_photo(storage: Storage, photo: PhotoUpload, *, owner_name: str, overwrite: bool) -> str:
    """Write the photo to the customer-photos container and return its public URL."""
    key = f"{PHOTO_CONTAINER}/{build_photo_key(owner_name, photo.filename)}"
    try:
        storage.put_bytes(key, photo.data, content_type=photo.content_type, overwrite=overwrite)
        url = storage.public_url(key)
    except Exception as e:
        raise UploadError(str(e) or e.__class__.__name__) from e
    logger.info("Stored customer photo key=%s bytes=%d", key, len(photo.data))
    return url
