"""Exception classes for the nucring core module."""

from __future__ import annotations


class NucRingError(Exception):
    """Base exception for all nucring errors."""


class IOFailure(NucRingError):
    """Raised when an image or region archive cannot be read or written.

    Fatal for the image being processed; the batch continues with the next one.
    """

    def __init__(self, path: str | None = None, reason: str | None = None) -> None:
        msg = f"I/O failure: {path}" if path else "I/O failure"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.path = path
        self.reason = reason


class ConfigurationError(NucRingError):
    """Raised for invalid analysis settings. Fatal before any image is processed."""

    def __init__(self, field: str | None = None, message: str | None = None) -> None:
        if field and message:
            msg = f"Invalid configuration for {field!r}: {message}"
        elif message:
            msg = f"Invalid configuration: {message}"
        else:
            msg = "Invalid configuration"
        super().__init__(msg)
        self.field = field


class ReconciliationMismatch(NucRingError):
    """Raised when a measurement is missing (or duplicated) for a cell ordinal.

    No rows are written for the affected image.
    """

    def __init__(
        self,
        filename: str,
        ordinal: int,
        missing: list[tuple[int, int, str]] | None = None,
        detail: str | None = None,
    ) -> None:
        self.filename = filename
        self.ordinal = ordinal
        self.missing = list(missing or [])
        if detail is None:
            keys = ", ".join(f"C{ch}/{kind}" for _, ch, kind in self.missing)
            detail = f"missing measurements: {keys}" if keys else "inconsistent measurements"
        super().__init__(f"{filename}: ordinal {ordinal}: {detail}")
