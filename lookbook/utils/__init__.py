"""
Utilities
=========

File helpers used by the command line front end.
"""

from .image_utils import load_image_artifact, get_mime_type, extension_for
from .storage import save_bytes, save_metadata, ensure_dir

__all__ = [
    "load_image_artifact",
    "get_mime_type",
    "extension_for",
    "save_bytes",
    "save_metadata",
    "ensure_dir",
]
