"""Local-directory object storage with expiring signed download links."""

import logging
import re
import time
from pathlib import Path, PurePosixPath
from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from enclave.config import StorageConfig
from enclave.errors import NotFound, StoreError, ValidationFailed

logger = logging.getLogger(__name__)

SIGNING_SALT = "enclave.storage"


def sanitize_filename(filename: Optional[str] = "document.pdf") -> str:
    """Lower-case, replace anything outside [a-z0-9_.-] with '-', force .pdf."""
    normalized = re.sub(r"[^a-z0-9_.-]", "-", (filename or "document.pdf").lower())
    if normalized.endswith(".pdf"):
        return normalized
    return f"{normalized.rstrip('.')}.pdf"


class ObjectStore:
    """Buckets are sub-directories of ``config.root``."""

    def __init__(self, config: StorageConfig, secret_key: str):
        self.config = config
        self._serializer = URLSafeTimedSerializer(secret_key, salt=SIGNING_SALT)

    def _path(self, bucket: str, key: str) -> Path:
        pure = PurePosixPath(key)
        if pure.is_absolute() or ".." in pure.parts or not key:
            raise ValidationFailed(f"Invalid storage path: {key}")
        return Path(self.config.root) / bucket / pure

    def store_pdf(self, bucket: str, owner_id, file, previous_path: Optional[str] = None) -> str:
        """Write an uploaded PDF under ``<owner>/<timestamp>-<safe name>``.

        Args:
            bucket: Bucket name
            owner_id: Id of the record the file belongs to
            file: A werkzeug FileStorage (or anything with filename/read)
            previous_path: Object to remove once the new one is written

        Returns:
            The new object's key
        """
        if owner_id is None:
            raise ValidationFailed("Missing owner id")
        if file is None or not getattr(file, "filename", None):
            raise ValidationFailed("Missing file")
        data = file.read()
        if not data:
            raise ValidationFailed("Uploaded file is empty")
        if len(data) > self.config.max_upload_bytes:
            raise ValidationFailed("Uploaded file is too large")

        key = f"{owner_id}/{int(time.time() * 1000)}-{sanitize_filename(file.filename)}"
        target = self._path(bucket, key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error("Failed to write %s/%s: %s", bucket, key, e)
            raise StoreError(f"Failed to store PDF: {e}") from e

        if previous_path and previous_path != key:
            self.remove_if_exists(bucket, previous_path)
        return key

    def remove_if_exists(self, bucket: str, key: Optional[str]) -> None:
        """Best-effort removal; failures are logged only."""
        if not key:
            return
        try:
            self._path(bucket, key).unlink(missing_ok=True)
        except (OSError, ValidationFailed) as e:
            logger.error("Failed to remove storage object %s/%s: %s", bucket, key, e)

    def signed_token(self, bucket: str, key: str, expires_in: Optional[int] = None) -> str:
        """Sign a download token that stays valid for ``expires_in`` seconds."""
        if not bucket or not key:
            raise ValidationFailed("Missing bucket or storage path")
        return self._serializer.dumps({"b": bucket, "k": key, "t": self.ttl(expires_in)})

    def ttl(self, expires_in: Optional[int] = None) -> int:
        if isinstance(expires_in, int) and expires_in > 0:
            return expires_in
        return self.config.signed_url_ttl

    def resolve_token(self, token: str, now: Optional[float] = None) -> Path:
        """Verify a signed token and return the file it points to.

        Raises:
            NotFound: Bad, expired or dangling token
        """
        try:
            payload, signed_at = self._serializer.loads(token, return_timestamp=True)
        except BadSignature:
            raise NotFound("Invalid link")
        now = time.time() if now is None else now
        if now - signed_at.timestamp() > payload.get("t", self.config.signed_url_ttl):
            raise NotFound("This link has expired")
        path = self._path(payload["b"], payload["k"])
        if not path.is_file():
            raise NotFound("Stored object not found")
        return path
