"""File handling utilities for the report engine."""

import base64
import logging
import os
import urllib.parse
from pathlib import Path
from typing import Union

from .exceptions import ReportIOError, ValidationError

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def ensure_directory_exists(directory_path: PathLike) -> str:
    """Ensure directory exists, create if it doesn't."""
    try:
        os.makedirs(directory_path, exist_ok=True)
        return os.fspath(directory_path)
    except OSError as e:
        raise ReportIOError(
            f"Failed to create directory {directory_path}: {e}",
            path=os.fspath(directory_path),
            phase="save",
        )


def generate_unique_filename(base_path: PathLike, extension: str) -> str:
    """Generate unique filename to avoid conflicts."""
    base_path = os.fspath(base_path)
    counter = 1
    original_path = f"{base_path}.{extension.lstrip('.')}"

    if not os.path.exists(original_path):
        return original_path

    while True:
        new_path = f"{base_path}_{counter}.{extension.lstrip('.')}"
        if not os.path.exists(new_path):
            return new_path
        counter += 1


def safe_delete(file_path: PathLike) -> bool:
    """Delete a file, logging instead of raising when it cannot be removed."""
    try:
        if os.path.exists(file_path):
            os.unlink(file_path)
            logger.debug(f"Deleted file: {file_path}")
            return True
    except OSError as e:
        logger.warning(f"Failed to delete file {file_path}: {e}")
    return False


def decode_base64_image(base64_data: str) -> bytes:
    """Decode base64 image data, accepting data URIs."""
    try:
        # Strip "data:image/jpeg;base64," style prefixes
        if "," in base64_data:
            base64_data = base64_data.split(",", 1)[1]

        return base64.b64decode(base64_data, validate=True)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Invalid base64 image data: {e}")


def load_image_reference(reference: str, base_dir: PathLike = ".") -> Union[bytes, str]:
    """Resolve an image reference from a payload to bytes or a local path.

    Data URIs are decoded to bytes. Anything else is treated as a filesystem
    path, relative to ``base_dir`` when not absolute. The path is returned
    unread so that an unreadable file surfaces later as an image decode
    failure for that one record.
    """
    if reference.startswith("data:image"):
        return decode_base64_image(reference)

    if reference.startswith("file://"):
        reference = urllib.parse.unquote(reference[7:])

    path = Path(reference)
    if not path.is_absolute():
        path = Path(base_dir) / path
    return str(path)
