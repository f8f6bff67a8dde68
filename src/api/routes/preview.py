"""
Preview API Routes.

Renders editor documents the same way publishing does, validates them,
and converts pasted HTML or Markdown into documents.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.api.deps import get_registry, get_rules
from src.components.document import (
    DeserializeDocumentInput,
    SerializeDocumentInput,
    ValidateDocumentInput,
    run_deserialize,
    run_serialize,
    run_validate,
)
from src.core.services.plugins import PluginRegistry
from src.rules.models import EditorRules

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Request/Response Models ---


class PreviewRequest(BaseModel):
    """Request to preview an editor document."""

    document: list[dict[str, Any]] = Field(..., description="Editor document nodes")


class ValidationErrorItem(BaseModel):
    code: str
    message: str
    path: str | None = None


class PreviewResponse(BaseModel):
    """Preview response with rendered HTML."""

    html: str
    plain_text: str
    word_count: int
    warnings: list[ValidationErrorItem] = Field(default_factory=list)


class ValidateResponse(BaseModel):
    is_valid: bool
    errors: list[ValidationErrorItem] = Field(default_factory=list)


class DeserializeRequest(BaseModel):
    """Pasted content to convert."""

    content: str = Field(..., description="HTML or Markdown source")
    source_format: Literal["html", "markdown"] = "html"


class DeserializeResponse(BaseModel):
    document: list[dict[str, Any]]


def _items(errors: list[Any]) -> list[ValidationErrorItem]:
    return [ValidationErrorItem(code=e.code, message=e.message, path=e.path) for e in errors]


# --- Routes ---


@router.post("", response_model=PreviewResponse)
def preview_document(
    request: PreviewRequest,
    registry: PluginRegistry = Depends(get_registry),
    rules: EditorRules = Depends(get_rules),
) -> PreviewResponse:
    """Render a document to the HTML that publishing would store."""
    result = run_serialize(
        SerializeDocumentInput(document=request.document),
        registry=registry,
        rules=rules,
    )
    if not result.success:
        raise HTTPException(status_code=422, detail=result.errors[0].message)

    return PreviewResponse(
        html=result.html,
        plain_text=result.plain_text,
        word_count=result.word_count,
        warnings=_items(result.errors),
    )


@router.post("/validate", response_model=ValidateResponse)
def validate_document(
    request: PreviewRequest,
    registry: PluginRegistry = Depends(get_registry),
    rules: EditorRules = Depends(get_rules),
) -> ValidateResponse:
    result = run_validate(
        ValidateDocumentInput(document=request.document),
        registry=registry,
        rules=rules,
    )
    return ValidateResponse(is_valid=result.is_valid, errors=_items(result.errors))


@router.post("/deserialize", response_model=DeserializeResponse)
def deserialize_content(
    request: DeserializeRequest,
    registry: PluginRegistry = Depends(get_registry),
    rules: EditorRules = Depends(get_rules),
) -> DeserializeResponse:
    """Convert pasted HTML or Markdown into document nodes."""
    result = run_deserialize(
        DeserializeDocumentInput(content=request.content, source_format=request.source_format),
        registry=registry,
        rules=rules,
    )
    logger.debug("Deserialized %d block(s) from %s", len(result.document), request.source_format)
    return DeserializeResponse(document=result.document)
