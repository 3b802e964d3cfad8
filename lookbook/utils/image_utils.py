"""
Image Utilities
===============

Conversion between image files on disk and inline artifacts.
"""

import base64
import logging
from pathlib import Path
from typing import Union

from ..api.base import Artifact
from ..core.exceptions import MissingInputError

logger = logging.getLogger(__name__)


MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
}


def get_mime_type(path: Union[str, Path]) -> str:
    """Get MIME type from file extension."""
    return MIME_TYPES.get(Path(path).suffix.lower(), "image/png")


def extension_for(mime_type: str) -> str:
    """File extension for a MIME type."""
    for ext, mime in MIME_TYPES.items():
        if mime == mime_type and ext != ".jpeg":
            return ext
    return ".bin"


def load_image_artifact(image_path: Union[str, Path]) -> Artifact:
    """
    Read an image file into an inline artifact.

    Args:
        image_path: Path to the image file

    Returns:
        Artifact carrying a data URI

    Raises:
        MissingInputError: If the file does not exist
    """
    path = Path(image_path)
    if not path.is_file():
        raise MissingInputError(f"Image not found: {image_path}", field="image_path")

    with open(path, "rb") as f:
        data = base64.b64encode(f.read()).decode("utf-8")

    logger.debug(f"Loaded {path.name} ({len(data)} base64 chars)")
    return Artifact.from_base64(data, get_mime_type(path))
