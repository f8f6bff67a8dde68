"""
Document component - render, import and validate editor documents.

Thin entry points over the core services. Each takes a frozen input model
and returns a frozen output model; malformed documents come back as
unsuccessful outputs instead of exceptions.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from src.core.services.deserialize_html import HtmlDeserializer, markdown_to_nodes
from src.core.services.editor_plugins import create_editor_plugins
from src.core.services.plugins import PluginRegistry
from src.core.services.serialize_html import (
    SerializeOptions,
    extract_plain_text,
    serialize_html_from_nodes,
)
from src.core.services.validation import (
    DocumentValidationError,
    strip_unsafe_urls,
    validate_document,
)
from src.domain.document import Document, document_from_json, document_to_json
from src.domain.errors import DocumentTooLargeError, InvalidDocumentError
from src.rules.models import EditorRules

from .models import (
    DeserializeDocumentInput,
    DeserializeOutput,
    SerializeDocumentInput,
    SerializeOutput,
    ValidateDocumentInput,
    ValidateOutput,
)

logger = logging.getLogger(__name__)


def _invalid(e: InvalidDocumentError) -> DocumentValidationError:
    return DocumentValidationError(code=e.code, message=str(e), path=e.path)


def _deserializer(registry: PluginRegistry) -> HtmlDeserializer:
    found = registry.deserializer()
    if isinstance(found, HtmlDeserializer):
        return found
    return HtmlDeserializer(registry.bindings)


def _load(raw: list[dict[str, Any]], rules: EditorRules) -> Document:
    """Parse within the depth limit, then enforce the size limit."""
    document = document_from_json(raw, max_depth=rules.limits.max_depth)
    size = len(json.dumps(raw).encode("utf-8"))
    if size > rules.limits.max_json_bytes:
        raise DocumentTooLargeError(f"document is {size} bytes (max {rules.limits.max_json_bytes})")
    return document


# --- Component Entry Points ---


def run_serialize(
    inp: SerializeDocumentInput,
    *,
    registry: PluginRegistry | None = None,
    rules: EditorRules | None = None,
) -> SerializeOutput:
    """
    Render a persisted document to sanitized HTML.

    Unsafe URLs are stripped first and reported in errors.

    Args:
        inp: Input containing the persisted document.
        registry: Plugin registry; the default editor plugins when omitted.
        rules: Editor rules; defaults when omitted.

    Returns:
        SerializeOutput with HTML, plain text and word count.
    """
    rules = rules or EditorRules()
    registry = registry or create_editor_plugins(rules)

    try:
        document = _load(inp.document, rules)
    except InvalidDocumentError as e:
        logger.info("Refusing to render invalid document: %s", e)
        return SerializeOutput(html="", errors=[_invalid(e)], success=False)

    nodes, errors = strip_unsafe_urls(document, rules)
    html = serialize_html_from_nodes(nodes, registry, SerializeOptions.from_rules(rules.serializer))
    plain_text = extract_plain_text(nodes, registry.inline_types)

    return SerializeOutput(
        html=html,
        plain_text=plain_text,
        word_count=len(plain_text.split()),
        errors=errors,
        success=True,
    )


def run_deserialize(
    inp: DeserializeDocumentInput,
    *,
    registry: PluginRegistry | None = None,
    rules: EditorRules | None = None,
) -> DeserializeOutput:
    """Turn HTML or Markdown into a persisted document."""
    registry = registry or create_editor_plugins(rules)
    deserializer = _deserializer(registry)

    if inp.source_format == "markdown":
        document = markdown_to_nodes(inp.content, deserializer)
    else:
        document = deserializer.deserialize(inp.content)

    return DeserializeOutput(document=document_to_json(document), success=True)


def run_validate(
    inp: ValidateDocumentInput,
    *,
    registry: PluginRegistry | None = None,
    rules: EditorRules | None = None,
) -> ValidateOutput:
    """
    Validate a persisted document against the registry and limits.

    Args:
        inp: Input containing the document to validate.
        registry: Plugin registry; the default editor plugins when omitted.
        rules: Editor rules; defaults when omitted.

    Returns:
        ValidateOutput with validation result.
    """
    rules = rules or EditorRules()
    registry = registry or create_editor_plugins(rules)

    try:
        document = document_from_json(inp.document, max_depth=rules.limits.max_depth)
    except InvalidDocumentError as e:
        return ValidateOutput(is_valid=False, errors=[_invalid(e)], success=True)

    errors = validate_document(document, registry, rules)
    return ValidateOutput(is_valid=len(errors) == 0, errors=errors, success=True)


def run(
    inp: SerializeDocumentInput | DeserializeDocumentInput | ValidateDocumentInput,
    *,
    registry: PluginRegistry | None = None,
    rules: EditorRules | None = None,
) -> SerializeOutput | DeserializeOutput | ValidateOutput:
    """
    Main entry point for the document component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, SerializeDocumentInput):
        return run_serialize(inp, registry=registry, rules=rules)
    elif isinstance(inp, DeserializeDocumentInput):
        return run_deserialize(inp, registry=registry, rules=rules)
    elif isinstance(inp, ValidateDocumentInput):
        return run_validate(inp, registry=registry, rules=rules)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
