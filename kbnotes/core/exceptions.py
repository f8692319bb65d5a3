"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
"""


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """Raised when a note file cannot be found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class ConflictError(ApplicationError):
    """Raised when a note file already exists."""

    def __init__(self, message: str = "Resource conflict") -> None:
        super().__init__(message, code="RES_CONFLICT")


class MetadataFormatError(ApplicationError):
    """
    Raised when a note's metadata block cannot be decoded.

    The block was opened but never closed, or its content is not a valid
    key/value mapping. ``offset`` is a byte offset into the UTF-8 encoding
    of the whole document; ``line`` and ``column`` are 1-based.
    """

    def __init__(
        self,
        message: str,
        offset: int,
        line: int = 1,
        column: int = 1,
        source: str | None = None,
    ) -> None:
        self.reason = message
        self.offset = offset
        self.line = line
        self.column = column
        self.source = source
        super().__init__(self.location() + ": " + message, code="NOTE_METADATA_FORMAT")

    def location(self) -> str:
        """Format the error position as ``source:line:column (byte offset N)``."""
        where = self.source or "<string>"
        return f"{where}:{self.line}:{self.column} (byte offset {self.offset})"
