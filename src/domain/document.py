"""
Document model - the node tree behind one post or snippet body.

A document is an ordered list of block-level ElementNodes. Elements hold
children; TextNodes are leaves carrying a set of marks.

Persisted shape (Slate-style JSON):
- Element: {"type": "p", "children": [...], ...attributes}
- Text: {"text": "hi", "bold": true, ...attributes}

Key behaviors:
- Unknown element/leaf keys are kept as attributes and written back as-is
- Text keys whose value is exactly True are marks
- Element without children gets one empty text child
"""

from __future__ import annotations

import copy
import json
from collections.abc import Collection, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from src.domain.errors import DocumentTooDeepError, InvalidDocumentError

Path = tuple[int, ...]


@dataclass
class TextNode:
    """Leaf node: a run of text with marks."""

    text: str = ""
    marks: frozenset[str] = field(default_factory=frozenset)
    attributes: dict[str, Any] = field(default_factory=dict)

    def has_mark(self, mark: str) -> bool:
        return mark in self.marks


@dataclass
class ElementNode:
    """Container node identified by its type tag."""

    type: str
    children: list[Node] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)


Node = ElementNode | TextNode
Document = list[ElementNode]


# --- JSON (persisted shape) ---


def node_from_dict(
    data: Any,
    path: str = "$",
    *,
    max_depth: int | None = None,
    depth: int = 1,
) -> Node:
    """
    Build a node from its persisted JSON object.

    depth is the nesting level of data (top-level nodes are 1); parsing stops
    with DocumentTooDeepError once it passes max_depth.
    """
    if max_depth is not None and depth > max_depth:
        raise DocumentTooDeepError(f"nesting deeper than {max_depth}", path)
    if not isinstance(data, dict):
        raise InvalidDocumentError("node must be an object", path)

    if "text" in data:
        text = data["text"]
        if not isinstance(text, str):
            raise InvalidDocumentError("'text' must be a string", path)
        marks: set[str] = set()
        attributes: dict[str, Any] = {}
        for key, value in data.items():
            if key == "text":
                continue
            if value is True:
                marks.add(key)
            else:
                attributes[key] = value
        return TextNode(text=text, marks=frozenset(marks), attributes=attributes)

    if "children" in data or "type" in data:
        raw_children = data.get("children")
        if raw_children is None or raw_children == []:
            raw_children = [{"text": ""}]
        if not isinstance(raw_children, list):
            raise InvalidDocumentError("'children' must be a list", path)
        children = [
            node_from_dict(child, f"{path}.children[{i}]", max_depth=max_depth, depth=depth + 1)
            for i, child in enumerate(raw_children)
        ]
        attributes = {k: v for k, v in data.items() if k not in ("type", "children")}
        return ElementNode(
            type=str(data.get("type") or ""),
            children=children,
            attributes=attributes,
        )

    raise InvalidDocumentError("node has neither 'text' nor 'children'", path)


def node_to_dict(node: Node) -> dict[str, Any]:
    """Convert a node back to its persisted JSON object."""
    if isinstance(node, TextNode):
        result: dict[str, Any] = {"text": node.text}
        result.update(node.attributes)
        for mark in sorted(node.marks):
            result[mark] = True
        return result

    result = {"type": node.type}
    result.update(node.attributes)
    result["children"] = [node_to_dict(child) for child in node.children]
    return result


def document_from_json(data: str | Sequence[Any], *, max_depth: int | None = None) -> Document:
    """
    Load a document from persisted JSON (string or already-decoded list).

    Raises:
        InvalidDocumentError: If the payload is not a list of element objects.
        DocumentTooDeepError: If nesting passes max_depth.
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise InvalidDocumentError(f"invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise InvalidDocumentError("document must be a list of nodes")

    document: Document = []
    for i, item in enumerate(data):
        node = node_from_dict(item, f"$[{i}]", max_depth=max_depth)
        if not isinstance(node, ElementNode):
            raise InvalidDocumentError("top-level nodes must be elements", f"$[{i}]")
        document.append(node)
    return document


def document_to_json(document: Sequence[Node]) -> list[dict[str, Any]]:
    """Convert a document to its JSON-serializable list."""
    return [node_to_dict(node) for node in document]


def new_document() -> Document:
    """Initial value for a new post or snippet: one empty paragraph."""
    return [ElementNode(type="p", children=[TextNode("")], attributes={"id": 0})]


def clone_nodes(nodes: Sequence[Node]) -> list[Node]:
    return copy.deepcopy(list(nodes))


# --- Traversal ---


def iter_nodes(nodes: Sequence[Node], base: Path = ()) -> Iterator[tuple[Node, Path]]:
    """Depth-first, left-to-right walk yielding (node, path)."""
    for index, node in enumerate(nodes):
        path = (*base, index)
        yield node, path
        if isinstance(node, ElementNode):
            yield from iter_nodes(node.children, path)


def get_node(nodes: Sequence[Node], path: Path) -> Node:
    """Resolve a path to a node. Raises IndexError on a bad path."""
    if not path:
        raise IndexError("empty path")
    node: Node = nodes[path[0]]
    for index in path[1:]:
        if not isinstance(node, ElementNode):
            raise IndexError(f"path {path} descends into a text node")
        node = node.children[index]
    return node


def get_children(nodes: list[Node], parent_path: Path) -> list[Node]:
    """Children list of the node at parent_path (the root list for ())."""
    if not parent_path:
        return nodes
    parent = get_node(nodes, parent_path)
    if not isinstance(parent, ElementNode):
        raise IndexError(f"node at {parent_path} has no children")
    return parent.children


def node_string(node: Node) -> str:
    """Concatenated text of a node."""
    if isinstance(node, TextNode):
        return node.text
    return "".join(node_string(child) for child in node.children)


def is_empty(node: Node, void_types: Collection[str] = ()) -> bool:
    """True when a node has no text and contains no void element."""
    if isinstance(node, TextNode):
        return node.text == ""
    if node.type in void_types:
        return False
    return all(is_empty(child, void_types) for child in node.children)


def find_image_urls(nodes: Sequence[Node], image_type: str = "img") -> list[str]:
    """URLs of every image element in the tree, in document order."""
    urls = []
    for node, _ in iter_nodes(nodes):
        if isinstance(node, ElementNode) and node.type == image_type:
            url = node.attributes.get("url")
            if isinstance(url, str) and url:
                urls.append(url)
    return urls


# --- Normalization ---


def normalize_nodes(nodes: list[Node], void_types: Collection[str] = ()) -> list[Node]:
    """
    Normalize a node list in place and return it.

    - Void elements get exactly one empty text child
    - Non-void elements without children get one empty text child
    - Adjacent text leaves with identical marks and attributes are merged
    """
    merged: list[Node] = []
    for node in nodes:
        if isinstance(node, ElementNode):
            if node.type in void_types:
                node.children = [TextNode("")]
            else:
                normalize_nodes(node.children, void_types)
                if not node.children:
                    node.children = [TextNode("")]
            merged.append(node)
            continue

        previous = merged[-1] if merged else None
        if (
            isinstance(previous, TextNode)
            and previous.marks == node.marks
            and previous.attributes == node.attributes
        ):
            previous.text += node.text
        else:
            merged.append(node)

    nodes[:] = merged
    return nodes
