"""
Document validation - checks run before a document is stored or published.

Problems are returned as DocumentValidationError records; nothing here
raises for a bad document. Serialization still works on a document with
errors (unknown types degrade to <div>), so callers decide what is fatal.

Key behaviors:
- Size and depth limits
- Element and mark types must be registered
- Structural placement (list items in lists, cells in rows, code lines in
  code blocks)
- Void elements hold only their empty placeholder
- URLs with forbidden protocols are reported and can be stripped
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass

from src.core.services.plugins import PluginRegistry
from src.core.services.url_safety import is_safe_url
from src.domain.document import (
    ElementNode,
    Node,
    TextNode,
    clone_nodes,
    document_to_json,
    node_string,
)
from src.rules.models import EditorRules

URL_TYPES = frozenset(["a", "img", "media_embed"])

# child type -> parent types it may appear under
ALLOWED_PARENTS: dict[str, frozenset[str]] = {
    "li": frozenset(["ul", "ol"]),
    "tr": frozenset(["table"]),
    "td": frozenset(["tr"]),
    "th": frozenset(["tr"]),
    "code_line": frozenset(["code_block"]),
}


@dataclass(frozen=True)
class DocumentValidationError:
    """Document validation error."""

    code: str
    message: str
    path: str | None = None


def _path(base: str, index: int) -> str:
    return f"{base}[{index}]" if base == "$" else f"{base}.children[{index}]"


def validate_document(
    document: Sequence[Node],
    registry: PluginRegistry,
    rules: EditorRules | None = None,
) -> list[DocumentValidationError]:
    """
    Validate a document against the registry and limits.

    Returns:
        Every problem found, in document order (empty when valid).
    """
    rules = rules or EditorRules()
    errors: list[DocumentValidationError] = []

    size = len(json.dumps(document_to_json(document)).encode("utf-8"))
    if size > rules.limits.max_json_bytes:
        errors.append(
            DocumentValidationError(
                code="document_too_large",
                message=f"Document is {size} bytes (max {rules.limits.max_json_bytes})",
            )
        )

    if not document:
        errors.append(DocumentValidationError(code="empty_document", message="Document has no blocks"))

    element_types = registry.element_types
    mark_types = registry.mark_types
    void_types = registry.void_types
    forbidden = rules.links.forbidden_protocols

    def visit(node: Node, path: str, parent: ElementNode | None, depth: int) -> None:
        if depth > rules.limits.max_depth:
            errors.append(
                DocumentValidationError(
                    code="too_deep",
                    message=f"Nesting deeper than {rules.limits.max_depth}",
                    path=path,
                )
            )
            return

        if isinstance(node, TextNode):
            for mark in sorted(node.marks - mark_types):
                errors.append(
                    DocumentValidationError(
                        code="unknown_mark_type",
                        message=f"Mark '{mark}' has no plugin",
                        path=path,
                    )
                )
            return

        if parent is None and isinstance(node, ElementNode) and node.type in registry.inline_types:
            errors.append(
                DocumentValidationError(
                    code="misplaced_node",
                    message=f"Inline '{node.type}' at the top level",
                    path=path,
                )
            )

        if node.type not in element_types:
            errors.append(
                DocumentValidationError(
                    code="unknown_node_type",
                    message=f"Node type '{node.type}' has no plugin",
                    path=path,
                )
            )

        allowed = ALLOWED_PARENTS.get(node.type)
        parent_type = parent.type if parent is not None else None
        if allowed is not None and parent_type not in allowed:
            errors.append(
                DocumentValidationError(
                    code="misplaced_node",
                    message=f"'{node.type}' must be inside {' or '.join(sorted(allowed))}",
                    path=path,
                )
            )

        if node.type in void_types and (len(node.children) != 1 or node_string(node)):
            errors.append(
                DocumentValidationError(
                    code="void_has_content",
                    message=f"Void '{node.type}' must hold one empty text child",
                    path=path,
                )
            )

        url = node.attributes.get("url")
        if node.type in URL_TYPES and isinstance(url, str) and not is_safe_url(url, forbidden):
            errors.append(
                DocumentValidationError(
                    code="unsafe_url",
                    message=f"Unsafe URL protocol: {url[:50]}",
                    path=f"{path}.url",
                )
            )

        for i, child in enumerate(node.children):
            visit(child, _path(path, i), node, depth + 1)

    for i, node in enumerate(document):
        visit(node, _path("$", i), None, 1)
    return errors


def strip_unsafe_urls(
    document: Sequence[Node],
    rules: EditorRules | None = None,
) -> tuple[list[Node], list[DocumentValidationError]]:
    """
    Copy of the document with forbidden-protocol URLs removed.

    Returns:
        Tuple of (sanitized nodes, one error per removed URL)
    """
    rules = rules or EditorRules()
    forbidden = rules.links.forbidden_protocols
    errors: list[DocumentValidationError] = []
    nodes = clone_nodes(document)

    def visit(node: Node, path: str) -> None:
        if isinstance(node, TextNode):
            return
        url = node.attributes.get("url")
        if node.type in URL_TYPES and isinstance(url, str) and not is_safe_url(url, forbidden):
            del node.attributes["url"]
            errors.append(
                DocumentValidationError(
                    code="stripped_url",
                    message=f"Unsafe URL removed from '{node.type}'",
                    path=f"{path}.url",
                )
            )
        for i, child in enumerate(node.children):
            visit(child, _path(path, i))

    for i, node in enumerate(nodes):
        visit(node, _path("$", i))
    return nodes, errors
