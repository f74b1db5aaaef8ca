"""Local-disk storage for profile and cover images."""

from __future__ import annotations

import logging
import os
import secrets
import time
from pathlib import Path
from typing import BinaryIO

from .domain.errors import ValidationError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads"
_CHUNK_SIZE = 64 * 1024

# The stored extension comes from the content type, never from the client filename.
IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class ImageStore:
    """Writes uploaded images under ``root`` and returns their public URL."""

    def __init__(self, root: str | os.PathLike[str], *, max_bytes: int) -> None:
        self._root = Path(root)
        self._max_bytes = max_bytes

    @property
    def root(self) -> Path:
        return self._root

    def ensure_root(self) -> None:
        self._root.mkdir(parents=True, exist_ok=True)

    def save(self, stream: BinaryIO, *, filename: str | None, content_type: str | None) -> str:
        """Persist an image upload and return ``/uploads/<name>``.

        The stream is copied in chunks and the partial file removed as soon
        as ``max_bytes`` is exceeded.
        """
        media_type = (content_type or "").split(";", 1)[0].strip().lower()
        suffix = IMAGE_EXTENSIONS.get(media_type)
        if suffix is None:
            raise ValidationError("Only image files are allowed")

        self.ensure_root()
        name = f"user-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"
        target = self._root / name

        written = 0
        try:
            with target.open("wb") as handle:
                while chunk := stream.read(_CHUNK_SIZE):
                    written += len(chunk)
                    if written > self._max_bytes:
                        raise ValidationError(f"File too large. Max {self._max_bytes} bytes.")
                    handle.write(chunk)
        except ValidationError:
            target.unlink(missing_ok=True)
            raise

        logger.info("stored upload %s (%d bytes)", name, written)
        return f"{PUBLIC_PREFIX}/{name}"
