"""
Editor domain errors.

Raised errors are reserved for programming errors and collaborator
failures. Recoverable document problems are reported as
DocumentValidationError records instead (see core.services.validation).
"""

from __future__ import annotations


class EditorError(Exception):
    """Base class for editor pipeline errors."""


class InvalidDocumentError(EditorError):
    """Persisted document JSON cannot be turned into nodes."""

    code = "invalid_document"

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message if path is None else f"{path}: {message}")
        self.path = path


class DocumentTooDeepError(InvalidDocumentError):
    """Nesting exceeds the configured depth limit."""

    code = "too_deep"


class DocumentTooLargeError(InvalidDocumentError):
    """Serialized document exceeds the configured size limit."""

    code = "document_too_large"


class RegistryIntegrityError(EditorError):
    """Plugin registry and its companion tables disagree."""


class ImageUploadError(EditorError):
    """Image upload was rejected or could not complete."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
