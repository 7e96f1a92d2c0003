"""
storage.py
Member photo storage on the local disk.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePath

import config

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp"}


def photo_filename(member_id: int, original_name: str) -> str:
    """Photos are keyed by member id, keeping the uploaded file's extension."""
    ext = PurePath(original_name).suffix.lower() or ".jpg"
    if ext not in ALLOWED_EXTENSIONS:
        raise ValueError(f"Unsupported photo type: {ext}")
    return f"{member_id}{ext}"


class PhotoStore:
    def __init__(self, folder: Path | None = None):
        self.folder = Path(folder) if folder is not None else config.PHOTOS_DIR

    def upload(self, filename: str, data: bytes) -> str:
        """Write (or overwrite) the file and return the reference to store on the member."""
        self.folder.mkdir(parents=True, exist_ok=True)
        target = self.folder / PurePath(filename).name
        target.write_bytes(data)
        logger.info("Stored photo %s (%d bytes)", target.name, len(data))
        return target.name

    def path_for(self, reference: str) -> Path:
        return self.folder / PurePath(reference).name

    def resolve(self, reference: str | None) -> str | None:
        """Public URLs pass through; stored filenames become local paths."""
        if not reference:
            return None
        if reference.startswith(("http://", "https://")):
            return reference
        return str(self.path_for(reference))
