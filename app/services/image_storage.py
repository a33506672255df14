"""
Object storage for category images, backed by the local upload directory
"""
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from app.config import settings
from app.services.errors import StorageFault, ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {'.jpeg', '.jpg', '.png', '.gif', '.svg', '.webp'}
PUBLIC_READ = "public-read"
PRIVATE = "private"


@dataclass
class ImageUpload:
    content: bytes
    filename: str
    content_type: Optional[str] = None


def validate_image_upload(image: ImageUpload, max_size: Optional[int] = None) -> None:
    """Raise ValidationFailed unless the upload is a non-empty image of an allowed type and size"""
    max_size = max_size or settings.MAX_UPLOAD_SIZE
    errors = []

    file_ext = Path(image.filename).suffix.lower() if image.filename else ''
    if file_ext not in ALLOWED_IMAGE_EXTENSIONS:
        errors.append(f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}")

    if image.content_type and not image.content_type.startswith('image/'):
        errors.append(f"Invalid content type: {image.content_type}")

    if not image.content:
        errors.append("Image file is empty")
    elif len(image.content) > max_size:
        errors.append(f"File size exceeds maximum allowed size of {max_size / 1024 / 1024}MB")

    if errors:
        raise ValidationFailed(errors, message="Invalid image file")


class LocalImageStorage:
    """
    Stores objects as files: public ones under upload_dir (served at /uploads),
    private ones under private_dir (never served)
    """

    def __init__(
        self,
        upload_dir: Optional[str] = None,
        private_dir: Optional[str] = None,
        base_url: Optional[str] = None
    ):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.private_dir = Path(private_dir or settings.PRIVATE_UPLOAD_DIR)
        self.base_url = (settings.CDN_BASE_URL if base_url is None else base_url).rstrip('/')

    def put(self, content: bytes, original_name: str, folder: str, visibility: str = PUBLIC_READ) -> str:
        """Save content and return the URL (or private key) it can be retrieved by"""
        file_ext = Path(original_name).suffix.lower()
        stem = Path(original_name).stem or 'image'
        filename = f"{stem}-{int(time.time() * 1000)}{file_ext}"

        root = self.upload_dir if visibility == PUBLIC_READ else self.private_dir
        target_dir = root / folder

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with open(target_dir / filename, 'wb') as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Error storing {original_name} in {folder}: {e}")
            raise StorageFault(f"Error uploading file: {e}")

        logger.info(f"Stored {visibility} object {folder}/{filename}")
        if visibility == PUBLIC_READ:
            return f"{self.base_url}/uploads/{folder}/{filename}"
        return f"private://{folder}/{filename}"

    def delete(self, url: str) -> None:
        """Delete the object behind a URL returned by put(); raises StorageFault on failure"""
        path = self._path_for(url)
        if path is None:
            raise StorageFault(f"Unrecognised object URL: {url}")
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning(f"Object already gone: {url}")
        except OSError as e:
            raise StorageFault(f"Error deleting {url}: {e}")
        else:
            logger.info(f"Deleted object {url}")

    def _path_for(self, url: str) -> Optional[Path]:
        if url.startswith("private://"):
            key = url[len("private://"):]
            root = self.private_dir
        elif "/uploads/" in url:
            key = url.split("/uploads/", 1)[1]
            root = self.upload_dir
        else:
            return None

        # Keep to folder/filename keys inside the storage root
        parts = Path(key).parts
        if len(parts) < 2 or '..' in parts:
            return None
        return root.joinpath(*parts)
