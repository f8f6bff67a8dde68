"""
HTML serializer - document nodes to sanitized static HTML.

Walks the node tree depth-first, left to right, using the plugin registry.

Key behaviors:
- Text is escaped once, then wrapped by every matching mark binding in
  registry order (first registered mark is innermost)
- Elements use the first matching binding; unknown or missing types fall
  back to a plain <div> wrapper
- Code blocks bypass the registry: <pre><code> with escaped lines
- Each binding renders against a children slot. Renderer whitespace,
  editor bookkeeping attributes and foreign class names are removed from
  that template before the assembled children are spliced in, so user
  content is never reprocessed
- Pure: the input tree is not mutated
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import assert_never

from src.core.services.markup import (
    ElementProps,
    Fragment,
    LeafProps,
    escape_text,
)
from src.core.services.plugins import PluginRegistry
from src.domain.document import ElementNode, Node, TextNode
from src.domain.errors import RegistryIntegrityError
from src.rules.models import SerializerRules

logger = logging.getLogger(__name__)

# Stand-in for the children while a binding template is post-processed.
CHILDREN_SLOT = "\x00children\x00"
_SLOT = Fragment(CHILDREN_SLOT)

CODE_BLOCK_TYPE = "code_block"

ELEMENT_ATTRIBUTES = {"data-slate-node": "element"}
LEAF_ATTRIBUTES = {"data-slate-leaf": "true"}

_WHITESPACE_PATTERN = re.compile(r"[\r\n\t]")
_DATA_ATTRIBUTE_PATTERNS = (
    re.compile(r' data-slate-(?:node|type|leaf|void|inline)="[^"]*"'),
    re.compile(r' data-testid="[^"]*"'),
)
_CLASS_ATTRIBUTE_PATTERN = re.compile(r'(\s+class="[^"]*")')


@dataclass(frozen=True)
class SerializeOptions:
    """Serializer switches."""

    strip_data_attributes: bool = True
    # None keeps every class name
    preserve_class_names: tuple[str, ...] | None = ("slate-",)
    code_block_type: str = CODE_BLOCK_TYPE

    @classmethod
    def from_rules(cls, rules: SerializerRules) -> SerializeOptions:
        return cls(
            strip_data_attributes=rules.strip_data_attributes,
            preserve_class_names=tuple(rules.preserve_class_names),
        )


DEFAULT_OPTIONS = SerializeOptions()


# --- Template post-processing ---


def trim_whitespace(raw_html: str) -> str:
    """Remove CR, LF and tab characters emitted by renderers."""
    return _WHITESPACE_PATTERN.sub("", raw_html)


def strip_data_attributes(raw_html: str) -> str:
    """Remove editor bookkeeping attributes (node/leaf markers, test ids)."""
    for pattern in _DATA_ATTRIBUTE_PATTERNS:
        raw_html = pattern.sub("", raw_html)
    return raw_html


def strip_class_names(raw_html: str, preserve_class_names: Sequence[str] = ("slate-",)) -> str:
    """
    Drop every class name that does not start with a preserved prefix.

    Markup is split into alternating literal / class="..." segments; only
    the class segments are rewritten. A class attribute left with no names
    is removed entirely.
    """
    prefixes = tuple(preserve_class_names)
    segments = _CLASS_ATTRIBUTE_PATTERN.split(raw_html)

    result = []
    for index, segment in enumerate(segments):
        if index % 2 == 0:
            result.append(segment)
            continue
        value = segment.split('class="', 1)[1][:-1]
        kept = [name for name in value.split() if name.startswith(prefixes)]
        if kept:
            result.append(f' class="{" ".join(kept)}"')
    return "".join(result)


def splice_children(template: str, children: Fragment, options: SerializeOptions) -> Fragment:
    """Clean a rendered template, then put children into its slot."""
    template = trim_whitespace(template)
    if options.preserve_class_names is not None:
        template = strip_class_names(template, options.preserve_class_names)
    if options.strip_data_attributes:
        template = strip_data_attributes(template)
    return Fragment(children.html.join(template.split(CHILDREN_SLOT)))


# --- Node serializers ---


def _serialize_leaf(leaf: TextNode, registry: PluginRegistry, options: SerializeOptions) -> Fragment:
    result = escape_text(leaf.text)
    for binding in registry.resolve_marks(leaf.marks):
        renderer = binding.renderer
        if renderer is None:
            raise RegistryIntegrityError(f"Mark plugin '{binding.key}' has no renderer")
        template = renderer(LeafProps(leaf=leaf, children=_SLOT, attributes=LEAF_ATTRIBUTES))
        result = splice_children(template, result, options)
    return result


def _code_line_text(child: Node) -> str:
    if isinstance(child, TextNode):
        return child.text
    first = child.children[0] if child.children else None
    if isinstance(first, TextNode):
        return first.text
    return ""


def serialize_code_block(element: ElementNode) -> Fragment:
    """<pre><code> with one escaped line per child."""
    lines = [escape_text(_code_line_text(child)).html for child in element.children]
    body = "\n".join(lines)
    return Fragment(f"<pre><code>{body}</code></pre>")


def _serialize_element(
    element: ElementNode,
    registry: PluginRegistry,
    options: SerializeOptions,
) -> Fragment:
    if element.type == options.code_block_type:
        return serialize_code_block(element)

    children = serialize_fragment(element.children, registry, options)

    binding = registry.resolve(element.type) if element.type else None
    if binding is None:
        logger.debug("No plugin for element type %r, using <div>", element.type)
        return Fragment(f"<div>{children.html}</div>")

    renderer = binding.renderer
    if renderer is None:
        raise RegistryIntegrityError(f"Element plugin '{binding.key}' has no renderer")
    template = renderer(
        ElementProps(element=element, children=_SLOT, attributes=ELEMENT_ATTRIBUTES)
    )
    return splice_children(template, children, options)


def serialize_fragment(
    nodes: Sequence[Node],
    registry: PluginRegistry,
    options: SerializeOptions = DEFAULT_OPTIONS,
) -> Fragment:
    """Serialize a node list to one assembled Fragment."""
    parts = []
    for node in nodes:
        if isinstance(node, TextNode):
            parts.append(_serialize_leaf(node, registry, options).html)
        elif isinstance(node, ElementNode):
            parts.append(_serialize_element(node, registry, options).html)
        else:
            assert_never(node)
    return Fragment("".join(parts))


def serialize_html_from_nodes(
    nodes: Sequence[Node],
    registry: PluginRegistry,
    options: SerializeOptions = DEFAULT_OPTIONS,
) -> str:
    """
    Convert document nodes into an HTML string.

    Args:
        nodes: Document (or any node list) to convert.
        registry: Plugin registry used for element and mark lookup.
        options: Attribute/class stripping switches.

    Returns:
        Sanitized HTML.
    """
    return serialize_fragment(nodes, registry, options).html


# --- Plain text ---


def extract_plain_text(nodes: Sequence[Node], inline_types: frozenset[str] = frozenset({"a"})) -> str:
    """Block text joined by newlines (for previews and word counts)."""
    blocks: list[str] = []

    def visit(node: Node) -> str:
        if isinstance(node, TextNode):
            return node.text
        return "".join(visit(child) for child in node.children)

    for node in nodes:
        if isinstance(node, ElementNode) and any(
            isinstance(child, ElementNode) and child.type not in inline_types
            for child in node.children
        ):
            text = extract_plain_text(node.children, inline_types)
        else:
            text = visit(node)
        if text:
            blocks.append(text)
    return "\n".join(blocks)
