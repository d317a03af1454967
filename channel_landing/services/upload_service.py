import logging
import os
import re
import uuid
from typing import Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from channel_landing.core.config import settings
from channel_landing.core.errors import ValidationFailed

logger = logging.getLogger(__name__)

LOGO_SUBDIR = "logos"

# content type -> stored extension; anything else (svg included) is refused
LOGO_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

_unsafe_chars = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(name: Optional[str]) -> str:
    name = os.path.basename(name or "")
    name = _unsafe_chars.sub("_", name).strip("._")
    return name or "logo"


def sniff_image_type(content: bytes) -> Optional[str]:
    """Content type of a PNG, JPEG, GIF or WebP image from its magic bytes."""
    if content.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if content.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if content.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "image/webp"
    return None


def _write_file(path: str, content: bytes) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(content)


class LogoStorage:
    """Stores channel logos on local disk under the public upload directory."""

    def __init__(self, upload_dir: Optional[str] = None, url_prefix: Optional[str] = None):
        self._upload_dir = upload_dir
        self._url_prefix = url_prefix

    @property
    def upload_dir(self) -> str:
        return self._upload_dir or settings.UPLOAD_DIR

    @property
    def url_prefix(self) -> str:
        return (self._url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")

    async def save(self, upload: UploadFile) -> str:
        """
        Buffer the uploaded logo, write it to disk and return its public URL.

        Raises ValidationFailed when the upload is empty, too large, or not a
        PNG, JPEG, GIF or WebP image whose bytes match the declared type. The
        stored extension follows the checked type, never the client's filename.
        """
        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        if content_type == "image/jpg":
            content_type = "image/jpeg"
        if content_type not in LOGO_EXTENSIONS:
            raise ValidationFailed(
                "Logo must be a PNG, JPEG, GIF or WebP image",
                details=[{"field": "logo", "message": "unsupported image type"}],
            )

        # one byte over the limit is enough to reject
        content = await upload.read(settings.MAX_LOGO_BYTES + 1)
        if not content:
            raise ValidationFailed("Logo file is required", details=[{"field": "logo", "message": "empty file"}])
        if len(content) > settings.MAX_LOGO_BYTES:
            raise ValidationFailed(
                "Logo file is too large",
                details=[{"field": "logo", "message": f"max {settings.MAX_LOGO_BYTES} bytes"}],
            )
        if sniff_image_type(content) != content_type:
            raise ValidationFailed(
                "Logo content does not match its type",
                details=[{"field": "logo", "message": "not a valid image"}],
            )

        stem = os.path.splitext(sanitize_filename(upload.filename))[0] or "logo"
        filename = f"{uuid.uuid4()}-{stem}{LOGO_EXTENSIONS[content_type]}"
        path = os.path.join(self.upload_dir, LOGO_SUBDIR, filename)
        await run_in_threadpool(_write_file, path, content)

        logger.info(f"Stored logo {path} ({len(content)} bytes)")
        return f"{self.url_prefix}/{LOGO_SUBDIR}/{filename}"

    def path_for(self, url: Optional[str]) -> Optional[str]:
        """Map a public logo URL back to its file path, None if it is not ours."""
        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        relative = url[len(self.url_prefix) + 1:]
        # refuse anything escaping the upload directory
        parts = [p for p in relative.split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            return None
        return os.path.join(self.upload_dir, *parts)

    async def delete(self, url: Optional[str]) -> bool:
        """
        Best-effort removal of a stored logo. Failures are logged, never raised.
        """
        path = self.path_for(url)
        if path is None:
            logger.warning(f"Not removing logo outside upload directory: {url}")
            return False
        try:
            await run_in_threadpool(os.remove, path)
        except OSError as e:
            logger.error(f"Error deleting logo file {path}: {e}")
            return False
        logger.info(f"Logo file deleted: {path}")
        return True


logo_storage = LogoStorage()
