"""
Editor view - interactive markup for an editing session.

Unlike the serializer this keeps bookkeeping attributes and editor
classes, uses interactive renderers, and adds drag gutters where the drag
table allows a handle.
"""

from __future__ import annotations

from collections.abc import Sequence

from src.core.services.drag import DragTable, build_drag_table, drag_config_for
from src.core.services.editor import Editor
from src.core.services.markup import (
    ElementProps,
    Fragment,
    LeafProps,
    escape_text,
    format_attributes,
    tag,
)
from src.core.services.plugins import PluginRegistry
from src.core.services.serialize_html import (
    CHILDREN_SLOT,
    ELEMENT_ATTRIBUTES,
    LEAF_ATTRIBUTES,
    SerializeOptions,
    splice_children,
)
from src.domain.document import ElementNode, Node, Path, TextNode

VIEW_OPTIONS = SerializeOptions(strip_data_attributes=False, preserve_class_names=None)
_SLOT = Fragment(CHILDREN_SLOT)


def _render_leaf(leaf: TextNode, registry: PluginRegistry) -> Fragment:
    content = escape_text(leaf.text) if leaf.text else Fragment("&#xFEFF;")
    for binding in registry.resolve_marks(leaf.marks):
        renderer = binding.render_interactive or binding.serialize_static
        assert renderer is not None
        content = splice_children(
            renderer(LeafProps(leaf=leaf, children=_SLOT, attributes={})), content, VIEW_OPTIONS
        )
    return Fragment(tag("span", content, LEAF_ATTRIBUTES))


def _gutter(fragment: Fragment, level: int, spacing: str | None) -> Fragment:
    style = f"padding-top: {spacing}" if spacing else None
    handle = tag("button", Fragment(""), {"class": "slate-drag-handle", "type": "button", "contenteditable": "false"})
    gutter = tag("div", Fragment(handle), {"class": "slate-gutterLeft", "style": style})
    return Fragment(
        tag(
            "div",
            Fragment(gutter + fragment.html),
            {"class": "slate-draggable", "data-drag-level": level},
        )
    )


def _render_element(
    element: ElementNode,
    path: Path,
    registry: PluginRegistry,
    drag_table: DragTable,
) -> Fragment:
    children = _render_nodes(element.children, path, registry, drag_table)
    binding = registry.resolve(element.type) if element.type else None
    if binding is None:
        rendered = Fragment(tag("div", children, ELEMENT_ATTRIBUTES))
    else:
        renderer = binding.render_interactive or binding.serialize_static
        assert renderer is not None
        attributes = dict(ELEMENT_ATTRIBUTES)
        if binding.is_inline:
            attributes["data-slate-inline"] = "true"
        template = renderer(ElementProps(element=element, children=_SLOT, attributes=attributes))
        rendered = splice_children(template, children, VIEW_OPTIONS)

    level = len(path) - 1
    config = drag_config_for(drag_table, element.type, level)
    if config is None:
        return rendered
    return _gutter(rendered, level, config.gutter_spacing)


def _render_nodes(
    nodes: Sequence[Node],
    base: Path,
    registry: PluginRegistry,
    drag_table: DragTable,
) -> Fragment:
    parts = []
    for index, node in enumerate(nodes):
        path = (*base, index)
        if isinstance(node, TextNode):
            parts.append(_render_leaf(node, registry).html)
        else:
            parts.append(_render_element(node, path, registry, drag_table).html)
    return Fragment("".join(parts))


def render_editor_html(editor: Editor, drag_table: DragTable | None = None) -> str:
    """
    Render the session's document as interactive editor markup.

    Args:
        editor: Session whose document and registry are rendered.
        drag_table: Drag metadata; defaults to the built-in table.

    Returns:
        HTML for the editable area.
    """
    table = build_drag_table() if drag_table is None else drag_table
    body = _render_nodes(editor.document, (), editor.registry, table)
    attrs = {"data-slate-editor": "true", "contenteditable": "true", "class": "slate-editor"}
    return f"<div{format_attributes(attrs)}>{body.html}</div>"
