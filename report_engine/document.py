"""In-memory report document and its persistence."""

import hashlib
import io
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from openpyxl import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .style_registry import StyleRegistry
from .utils.exceptions import DuplicateSheetError, InvalidNameError, ReportIOError
from .utils.file_utils import ensure_directory_exists, safe_delete

logger = logging.getLogger(__name__)

MAX_SHEET_NAME_LENGTH = 31
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")


def validate_sheet_name(name: str) -> str:
    """Return ``name`` if Excel accepts it as a sheet title, else raise."""
    if name is None or not str(name).strip():
        raise InvalidNameError("Sheet name cannot be blank")
    if _INVALID_SHEET_CHARS.search(name):
        raise InvalidNameError(f"Sheet name contains invalid characters: {name!r}")
    if len(name) > MAX_SHEET_NAME_LENGTH:
        raise InvalidNameError(
            f"Sheet name longer than {MAX_SHEET_NAME_LENGTH} characters: {name!r}"
        )
    return name


def sanitize_sheet_name(name: str) -> str:
    """Make a user-supplied name usable as a sheet title.

    Forbidden characters become underscores and the result is cut to the
    maximum length. Blank names still raise ``InvalidNameError``.
    """
    if name is None or not str(name).strip():
        raise InvalidNameError("Sheet name cannot be blank")
    cleaned = _INVALID_SHEET_CHARS.sub("_", name.strip())
    return cleaned[:MAX_SHEET_NAME_LENGTH].strip() or "_"


class ReportDocument:
    """A workbook under construction plus the shared state that belongs to it.

    The document owns its style registry and an in-memory image-blob table
    keyed by the digest of the compressed bytes, so a photo placed on several
    sheets is held once while the document is built. openpyxl still writes one
    media part per placed picture when the workbook is saved.
    """

    def __init__(self) -> None:
        self.workbook = Workbook()
        # Drop the default "Sheet" so only report sheets end up in the file
        self.workbook.remove(self.workbook.active)
        self.styles = StyleRegistry(self.workbook)
        self._image_blobs: Dict[str, bytes] = {}
        self.closed = False

    @property
    def sheet_names(self) -> List[str]:
        return list(self.workbook.sheetnames)

    def get_sheet(self, name: str) -> Optional[Worksheet]:
        if name in self.workbook.sheetnames:
            return self.workbook[name]
        return None

    def create_sheet(self, name: str) -> Worksheet:
        """Create a uniquely named sheet at the end of the document."""
        validate_sheet_name(name)
        # Excel compares sheet titles case-insensitively
        if name.lower() in (existing.lower() for existing in self.workbook.sheetnames):
            raise DuplicateSheetError(f"Sheet '{name}' already exists in the document")
        return self.workbook.create_sheet(title=name)

    def register_image(self, data: bytes) -> str:
        """Keep compressed image bytes once in memory and return their key."""
        key = hashlib.sha1(data).hexdigest()
        if key not in self._image_blobs:
            self._image_blobs[key] = data
        return key

    def image_bytes(self, key: str) -> bytes:
        return self._image_blobs[key]

    @property
    def image_count(self) -> int:
        return len(self._image_blobs)

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.workbook.save(buffer)
        return buffer.getvalue()

    def save(self, path: Union[str, Path]) -> Path:
        """Serialize the document and write it to ``path`` in one step.

        The workbook is rendered in memory, written to a sibling ``.part``
        file and moved over the target, then the document is closed.

        Raises:
            ReportIOError: with ``phase="save"`` if rendering or writing fails.
        """
        target = Path(path)
        partial = target.with_name(target.name + ".part")
        try:
            ensure_directory_exists(target.parent)
            payload = self.to_bytes()
            with open(partial, "wb") as f:
                f.write(payload)
            os.replace(partial, target)
        except ReportIOError:
            raise
        except Exception as e:
            safe_delete(partial)
            raise ReportIOError(
                f"Failed to save report to {target}: {e}", path=str(target), phase="save"
            )
        finally:
            self.close()

        logger.info(f"Saved report: {target} ({len(payload)} bytes)")
        return target

    def close(self) -> None:
        """Release the workbook and the image table."""
        if self.closed:
            return
        self.workbook.close()
        self._image_blobs.clear()
        self.closed = True

    def __enter__(self) -> "ReportDocument":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
