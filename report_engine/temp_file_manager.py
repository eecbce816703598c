"""Temporary file management scoped to a single export call."""

import itertools
import logging
import os
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Set

from .config_manager import default_report_settings, resolve_temp_directory
from .utils.exceptions import TempFileError
from .utils.file_utils import ensure_directory_exists, safe_delete

logger = logging.getLogger(__name__)

# Process-wide counter; combined with pid and a random token so that two
# exports started in the same clock tick never share temp file names.
_session_counter = itertools.count(1)


def new_session_id() -> str:
    return f"{os.getpid()}-{next(_session_counter)}-{uuid.uuid4().hex[:8]}"


class ExportSession:
    """Owns the temp files of one export call.

    Maps a record key (its position in the caller's list) to the temp file
    holding that record's compressed photo, so a photo needed on two sheets is
    compressed once and read back for the second placement.
    """

    def __init__(self, temp_dir: str, prefix: str, session_id: Optional[str] = None) -> None:
        self.temp_dir = temp_dir
        self.prefix = prefix
        self.session_id = session_id or new_session_id()
        self.created_at = datetime.now()
        self._files: Dict[int, str] = {}
        self._failed: Set[int] = set()
        self.closed = False

    def temp_path(self, key: int) -> str:
        return os.path.join(self.temp_dir, f"{self.prefix}_{self.session_id}_{key}.jpg")

    def store(self, key: int, data: bytes) -> str:
        """Write compressed bytes for ``key`` and remember the file."""
        if self.closed:
            raise TempFileError(f"Export session {self.session_id} is already closed")

        path = self.temp_path(key)
        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            safe_delete(path)
            raise TempFileError(f"Failed to write temporary image file {path}: {e}", path=path)

        self._files[key] = path
        logger.debug(f"Stored temporary image: {path} ({len(data)} bytes)")
        return path

    def lookup(self, key: int) -> Optional[str]:
        return self._files.get(key)

    def read(self, key: int) -> Optional[bytes]:
        """Read back previously stored bytes for ``key``."""
        path = self._files.get(key)
        if path is None:
            return None
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise TempFileError(f"Failed to read temporary image file {path}: {e}", path=path)

    def mark_failed(self, key: int) -> None:
        self._failed.add(key)

    def has_failed(self, key: int) -> bool:
        return key in self._failed

    @property
    def failed_keys(self) -> List[int]:
        return sorted(self._failed)

    @property
    def paths(self) -> List[str]:
        return list(self._files.values())

    def cleanup(self) -> int:
        """Delete every temp file created by this session."""
        removed = 0
        for path in list(self._files.values()):
            if safe_delete(path):
                removed += 1
        self._files.clear()
        self.closed = True
        logger.debug(f"Cleaned up {removed} temporary files for session {self.session_id}")
        return removed

    def __enter__(self) -> "ExportSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()


class TempFileManager:
    """Creates export sessions under the configured scratch directory."""

    def __init__(self, settings: Optional[Dict[str, Any]] = None) -> None:
        settings = settings or default_report_settings()
        self.temp_dir = resolve_temp_directory(settings)
        self.prefix = settings.get("temp_files", {}).get("prefix", "techassist")
        self._active: Dict[str, ExportSession] = {}
        self._lock = threading.Lock()

        logger.debug(f"TempFileManager initialized: temp_dir={self.temp_dir}")

    def open_session(self, prefix: Optional[str] = None) -> ExportSession:
        try:
            ensure_directory_exists(self.temp_dir)
        except OSError as e:
            raise TempFileError(f"Failed to create temporary directory: {e}", path=self.temp_dir)

        session = ExportSession(self.temp_dir, prefix or self.prefix)
        with self._lock:
            self._active[session.session_id] = session
        return session

    def close_session(self, session: ExportSession) -> None:
        try:
            session.cleanup()
        finally:
            with self._lock:
                self._active.pop(session.session_id, None)

    @contextmanager
    def session(self, prefix: Optional[str] = None) -> Iterator[ExportSession]:
        """Context manager for an export session with guaranteed cleanup.

        Cleanup runs on success, on error and on cancellation
        (``KeyboardInterrupt`` and other ``BaseException`` subclasses).
        """
        session = self.open_session(prefix)
        try:
            yield session
        finally:
            self.close_session(session)

    def list_sessions(self) -> List[Dict[str, Any]]:
        """List active sessions with their info."""
        with self._lock:
            return [
                {
                    "session_id": session_id,
                    "prefix": session.prefix,
                    "created_at": session.created_at.isoformat(),
                    "files": len(session.paths),
                }
                for session_id, session in self._active.items()
            ]

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about temporary file management."""
        with self._lock:
            active = len(self._active)
            files = sum(len(s.paths) for s in self._active.values())
        return {
            "active_sessions": active,
            "tracked_files": files,
            "temp_directory": self.temp_dir,
        }
