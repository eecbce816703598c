"""Custom exceptions for the TechAssist report engine."""

from typing import Optional


class ReportEngineError(Exception):
    """Base exception for report engine operations."""

    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ImageDecodeError(ReportEngineError):
    """Exception raised when source photo bytes are not a decodable image."""

    pass


class SheetNameError(ReportEngineError):
    """Exception raised for sheet naming misuse."""

    pass


class InvalidNameError(SheetNameError):
    """Exception raised for blank or otherwise unusable sheet names."""

    pass


class DuplicateSheetError(SheetNameError):
    """Exception raised when a sheet name is already used in the document."""

    pass


class ReportIOError(ReportEngineError, OSError):
    """Exception raised when a report file cannot be written.

    Carries the offending path and the export phase ("temp" or "save") so the
    caller can present a meaningful message.
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        phase: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message, error_code)
        self.path = path
        self.phase = phase

    def __str__(self) -> str:
        return self.message


class TempFileError(ReportIOError):
    """Exception raised for temporary file management errors."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message, path=path, phase="temp")


class ExportCancelledError(ReportEngineError):
    """Exception raised when the caller cancels an in-flight export."""

    pass


class ConfigurationError(ReportEngineError):
    """Exception raised for configuration-related errors."""

    pass


class ValidationError(ReportEngineError):
    """Exception raised for validation errors."""

    pass
