"""
Storage Utilities
=================

Writes downloaded scene images, videos and the run summary to the output
directory.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yml", ".yaml")


def ensure_dir(path: Union[str, Path]) -> Path:
    """Create ``path`` and its parents if missing."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def save_bytes(data: bytes, output_path: Union[str, Path]) -> str:
    """
    Write an artifact payload, creating the parent directory.

    Args:
        data: Image or video bytes as returned by ``provider.download``
        output_path: Destination file; its suffix is kept as given

    Returns:
        The destination as a string
    """
    output_path = Path(output_path)
    ensure_dir(output_path.parent)
    output_path.write_bytes(data)

    logger.info(f"Wrote {len(data)} bytes to {output_path}")
    return str(output_path)


def save_metadata(
    metadata: Dict[str, Any],
    output_path: Union[str, Path],
    format: Optional[str] = None,
) -> str:
    """
    Write a session summary stamped with ``saved_at``.

    The caller's dict is not modified. ``format`` is ``json`` or ``yaml``;
    when omitted it follows the file suffix.
    """
    output_path = Path(output_path)
    ensure_dir(output_path.parent)
    if format is None:
        format = "yaml" if output_path.suffix.lower() in YAML_SUFFIXES else "json"

    stamped = dict(metadata, saved_at=datetime.now().isoformat())
    with open(output_path, "w") as f:
        if format == "yaml":
            yaml.safe_dump(stamped, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(stamped, f, indent=2, default=str)

    logger.debug(f"Session summary saved to {output_path}")
    return str(output_path)
