"""
Exception types raised by the editor client.

Every failure the editor can surface derives from :class:`EditorClientError`
so callers never need to catch transport-library exceptions directly.
"""

from __future__ import annotations

from typing import List, Optional


class EditorClientError(Exception):
    """Base class for all editor client errors."""


class ApiError(EditorClientError):
    """
    The document service could not be reached or answered with a failure.

    Attributes:
        message: Server-supplied message when available, otherwise a fallback
        status_code: HTTP status of the response, None for transport failures
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DocumentNotFoundError(ApiError):
    """The requested document does not exist (HTTP 404)."""

    def __init__(self, message: str = "Document not found", status_code: int = 404) -> None:
        super().__init__(message, status_code)


class InvalidUploadError(EditorClientError):
    """A file was rejected before upload (wrong type, unreadable)."""


class BuilderInputError(EditorClientError):
    """
    A tool form is missing a required value or holds an out-of-range one.

    The form keeps its current values so the user can correct them.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class BatchValidationError(EditorClientError):
    """An instruction batch failed schema validation."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)
