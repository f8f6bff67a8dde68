"""
Document component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from src.core.services.validation import DocumentValidationError

SourceFormat = Literal["html", "markdown"]


# --- Input Models ---


@dataclass(frozen=True)
class SerializeDocumentInput:
    """Input for rendering a persisted document to HTML."""

    document: list[dict[str, Any]]


@dataclass(frozen=True)
class DeserializeDocumentInput:
    """Input for turning pasted HTML or Markdown into a document."""

    content: str
    source_format: SourceFormat = "html"


@dataclass(frozen=True)
class ValidateDocumentInput:
    """Input for validating a persisted document."""

    document: list[dict[str, Any]]


# --- Output Models ---


@dataclass(frozen=True)
class SerializeOutput:
    """Rendered document."""

    html: str
    plain_text: str = ""
    word_count: int = 0
    errors: list[DocumentValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class DeserializeOutput:
    document: list[dict[str, Any]]
    success: bool = True


@dataclass(frozen=True)
class ValidateOutput:
    """Output for validation result."""

    is_valid: bool
    errors: list[DocumentValidationError] = field(default_factory=list)
    success: bool = True
