"""
HTML and Markdown deserialization - pasted markup to document nodes.

The deserializer is derived from the plugin bindings registered before it:
every binding contributes DeserializeRules for its element or mark type.
Markdown is rendered to HTML with markdown-it and then deserialized the
same way.

Key behaviors:
- Class-qualified rules win over plain tag rules
- Unknown tags are dropped but their content is kept
- Mark tags accumulate onto the text leaves beneath them
- Void elements always get a single empty text child
- Stray inline content at block level is wrapped in paragraphs
- List items, rows and cells found outside their container are wrapped in one
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from itertools import groupby

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from markdown_it import MarkdownIt

from src.core.services.editor import CODE_BLOCK, PARAGRAPH, Editor
from src.core.services.plugins import DeserializeRule, PluginBinding
from src.core.services.validation import ALLOWED_PARENTS
from src.domain.document import Document, ElementNode, Node, TextNode, normalize_nodes

logger = logging.getLogger(__name__)

# Element types whose children are blocks, never inline content
CONTAINER_TYPES = frozenset(["ul", "ol", "table", "tr", CODE_BLOCK])

# Container created around a node that sits outside its allowed parents
ORPHAN_WRAPPERS = {"li": "ul", "tr": "table", "td": "tr", "th": "tr", "code_line": CODE_BLOCK}


def _is_blank(node: Node) -> bool:
    return isinstance(node, TextNode) and not node.text.strip()


class HtmlDeserializer:
    """Callable turning an HTML string into a document."""

    def __init__(
        self,
        bindings: Sequence[PluginBinding],
        *,
        container_types: frozenset[str] = CONTAINER_TYPES,
    ) -> None:
        element_rules: list[tuple[DeserializeRule, str]] = []
        mark_rules: list[tuple[DeserializeRule, str]] = []
        inline_types: set[str] = set()
        void_types: set[str] = set()

        for binding in bindings:
            if binding.type_tag is None:
                continue
            target = mark_rules if binding.kind == "mark" else element_rules
            target.extend((rule, binding.type_tag) for rule in binding.deserialize)
            if binding.kind == "element" and binding.is_inline:
                inline_types |= binding.types
            if binding.kind == "element" and binding.is_void:
                void_types |= binding.types

        # class-qualified rules first; sort is stable
        self.element_rules = sorted(element_rules, key=lambda item: item[0].class_name is None)
        self.mark_rules = mark_rules
        self.inline_types = frozenset(inline_types)
        self.void_types = frozenset(void_types)
        self.container_types = container_types

    def __call__(self, html: str) -> list[Node]:
        return list(self.deserialize(html))

    def deserialize(self, html: str) -> Document:
        soup = BeautifulSoup(html, "html.parser")
        nodes = self._nodes(soup.children, frozenset())
        document = self._adopt_orphans(self._wrap_blocks(nodes, PARAGRAPH), None)
        normalize_nodes(document, self.void_types)  # type: ignore[arg-type]
        return document

    # --- Walk ---

    def _nodes(self, children: Iterable[object], marks: frozenset[str]) -> list[Node]:
        nodes: list[Node] = []
        for child in children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                if str(child):
                    nodes.append(TextNode(str(child), marks))
                continue
            if not isinstance(child, Tag):
                continue
            if child.name == "br":
                nodes.append(TextNode("\n", marks))
                continue

            mark = self._match(self.mark_rules, child)
            if mark is not None:
                nodes.extend(self._nodes(child.children, marks | {mark[1]}))
                continue

            element = self._match(self.element_rules, child)
            if element is None:
                nodes.extend(self._nodes(child.children, marks))
                continue
            nodes.extend(self._element(child, element[0], element[1], marks))
        return nodes

    @staticmethod
    def _match(
        rules: list[tuple[DeserializeRule, str]],
        tag: Tag,
    ) -> tuple[DeserializeRule, str] | None:
        for rule, type_tag in rules:
            if rule.matches(tag):
                return rule, type_tag
        return None

    def _element(
        self,
        tag: Tag,
        rule: DeserializeRule,
        type_tag: str,
        marks: frozenset[str],
    ) -> list[Node]:
        attributes = rule.attributes(tag) if rule.attributes else {}
        if type_tag in self.void_types:
            return [ElementNode(type_tag, [TextNode("")], attributes)]
        if rule.children is not None:
            return [ElementNode(type_tag, rule.children(tag), attributes)]

        children = self._nodes(tag.children, marks)
        if type_tag in self.container_types:
            blocks = self._adopt_orphans(self._wrap_blocks(children, PARAGRAPH), type_tag)
            return [ElementNode(type_tag, blocks, attributes)]
        if not any(self._is_block(c) for c in children):
            return [ElementNode(type_tag, children, attributes)]
        if rule.flatten:
            return [ElementNode(type_tag, self._flatten(children), attributes)]
        return self._hoist(type_tag, children, attributes)

    # --- Shaping ---

    def _is_block(self, node: Node) -> bool:
        return isinstance(node, ElementNode) and node.type not in self.inline_types

    def _wrap_blocks(self, nodes: list[Node], wrapper: str) -> list[ElementNode]:
        """Keep blocks, wrap runs of inline content, drop blank runs."""
        blocks: list[ElementNode] = []
        run: list[Node] = []

        def flush() -> None:
            if run and not all(_is_blank(n) for n in run):
                blocks.append(ElementNode(wrapper, list(run)))
            run.clear()

        for node in nodes:
            if self._is_block(node):
                flush()
                assert isinstance(node, ElementNode)
                blocks.append(node)
            else:
                run.append(node)
        flush()
        return blocks

    def _adopt_orphans(self, blocks: list[ElementNode], parent_type: str | None) -> list[ElementNode]:
        """Wrap runs of misplaced list items, rows and cells in their container."""

        def wrapper_for(block: ElementNode) -> str | None:
            allowed = ALLOWED_PARENTS.get(block.type)
            if allowed is None or parent_type in allowed:
                return None
            return ORPHAN_WRAPPERS.get(block.type)

        result: list[ElementNode] = []
        wrapped = False
        for wrapper, group in groupby(blocks, key=wrapper_for):
            if wrapper is None:
                result.extend(group)
            else:
                result.append(ElementNode(wrapper, list(group)))
                wrapped = True
        # cells wrapped in a row may now be an orphan row
        return self._adopt_orphans(result, parent_type) if wrapped else result

    def _flatten(self, nodes: list[Node]) -> list[Node]:
        """Merge block children into inline content, newline-separated."""
        merged: list[Node] = []
        for node in nodes:
            if self._is_block(node):
                assert isinstance(node, ElementNode)
                if merged:
                    merged.append(TextNode("\n"))
                merged.extend(node.children)
            elif not _is_blank(node):
                merged.append(node)
        return merged

    def _hoist(self, type_tag: str, nodes: list[Node], attributes: dict) -> list[Node]:
        """Split a text block around block children (an image inside a paragraph)."""
        result: list[Node] = []
        run: list[Node] = []
        for node in nodes:
            if self._is_block(node):
                if run and not all(_is_blank(n) for n in run):
                    result.append(ElementNode(type_tag, run, dict(attributes)))
                run = []
                result.append(node)
            else:
                run.append(node)
        if run and not all(_is_blank(n) for n in run):
            result.append(ElementNode(type_tag, run, dict(attributes)))
        return result


def deserialize_binding(bindings: tuple[PluginBinding, ...]) -> PluginBinding:
    """Binding appended last to a registry; deserializes with every earlier rule."""
    return PluginBinding(key="deserialize_html", deserialize_html=HtmlDeserializer(bindings))


# --- Markdown ---


def create_markdown_renderer() -> MarkdownIt:
    md = MarkdownIt("commonmark")
    md.enable("table")
    md.enable("strikethrough")
    return md


_MARKDOWN = create_markdown_renderer()


def markdown_to_html(text: str) -> str:
    return _MARKDOWN.render(text)


def _drop_fence_newline(nodes: Sequence[Node]) -> None:
    # fenced code always ends with a newline, which would become an empty last line
    for node in nodes:
        if not isinstance(node, ElementNode):
            continue
        if node.type == CODE_BLOCK and len(node.children) > 1:
            last = node.children[-1]
            if isinstance(last, ElementNode) and not any(
                isinstance(c, TextNode) and c.text for c in last.children
            ):
                node.children.pop()
        else:
            _drop_fence_newline(node.children)


def markdown_to_nodes(text: str, deserializer: HtmlDeserializer) -> Document:
    """Render Markdown to HTML and deserialize it."""
    document = deserializer.deserialize(markdown_to_html(text))
    _drop_fence_newline(document)
    return document


# --- Paste ---


def _deserializer_for(editor: Editor) -> HtmlDeserializer:
    deserializer = editor.registry.deserializer()
    if isinstance(deserializer, HtmlDeserializer):
        return deserializer
    return HtmlDeserializer(editor.registry.bindings)


def insert_html(editor: Editor, html: str) -> Document:
    """Paste HTML at the cursor."""
    nodes = _deserializer_for(editor).deserialize(html)
    logger.debug("Pasting %d block(s) from HTML", len(nodes))
    editor.insert_fragment(nodes)
    return nodes


def insert_markdown(editor: Editor, text: str) -> Document:
    """Paste Markdown at the cursor."""
    nodes = markdown_to_nodes(text, _deserializer_for(editor))
    logger.debug("Pasting %d block(s) from Markdown", len(nodes))
    editor.insert_fragment(nodes)
    return nodes
