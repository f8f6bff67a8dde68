"""
Default editor plugin set.

Builds the ordered registry used for posts and snippets: basic elements,
marks, autoformat, block reset, breaks, list/link behavior, custom void
embeds (loading placeholder, tweet, call-to-action) and finally the HTML
deserializer derived from everything registered before it.

Interactive renderers emit editor markup (bookkeeping attributes, utility
classes, indentation); the serializer strips what does not belong in
published HTML. Marks serialize to plain tags.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from bs4 import Tag

from src.core.services.autoformat import AutoformatMatcher
from src.core.services.deserialize_html import deserialize_binding
from src.core.services.editor import CODE_BLOCK, CODE_LINE
from src.core.services.key_rules import (
    break_handler,
    cta_hotkey_handler,
    link_hotkey_handler,
    list_key_handler,
    reset_block_handler,
    tweet_hotkey_handler,
)
from src.core.services.markup import (
    EMPTY,
    ElementProps,
    LeafProps,
    class_names,
    escape_text,
    format_attributes,
    tag,
)
from src.core.services.plugins import DeserializeRule, PluginBinding, PluginRegistry
from src.core.services.rule_tables import (
    EXIT_BREAK_RULES,
    RESET_RULES,
    SOFT_BREAK_RULES,
    autoformat_rules,
)
from src.core.services.url_safety import build_link_rel, sanitize_url
from src.domain.document import ElementNode, Node, TextNode
from src.rules.models import EditorRules, LinkRules

ElementRenderer = Callable[[ElementProps], str]

HEADING_TYPES = tuple(f"h{level}" for level in range(1, 7))
MARK_TAGS = (
    ("bold", "strong", ("b",)),
    ("code", "code", ()),
    ("italic", "em", ("i",)),
    ("strikethrough", "s", ("del", "strike")),
    ("subscript", "sub", ()),
    ("superscript", "sup", ()),
    ("underline", "u", ()),
)
LOADING_MESSAGE = "Uploading image..."


def _attr(element: Tag, name: str) -> str | None:
    value = element.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value


def _void(type_tag: str, props: ElementProps, inner: str = "", **attributes: Any) -> str:
    attrs = {
        **props.attributes,
        "data-slate-void": "true",
        "class": class_names(f"slate-{type_tag}", "my-4"),
        **attributes,
    }
    return f"<div{format_attributes(attrs)}>\n\t{inner}{props.children.html}\n</div>"


# --- Basic elements and marks ---


def block_renderer(html_tag: str, type_tag: str, *utility: str) -> ElementRenderer:
    """Interactive renderer for a block carrying its editor class."""

    def render(props: ElementProps) -> str:
        attrs = {**props.attributes, "class": class_names(f"slate-{type_tag}", *utility)}
        return f"<{html_tag}{format_attributes(attrs)}>\n\t{props.children.html}\n</{html_tag}>"

    return render


def element_binding(
    type_tag: str,
    html_tag: str,
    *utility: str,
    flatten: bool = False,
) -> PluginBinding:
    return PluginBinding(
        key=type_tag,
        kind="element",
        type_tag=type_tag,
        render_interactive=block_renderer(html_tag, type_tag, *utility),
        deserialize=(DeserializeRule(tags=(html_tag,), flatten=flatten),),
    )


def mark_binding(type_tag: str, html_tag: str, extra_tags: tuple[str, ...] = ()) -> PluginBinding:
    def serialize(props: LeafProps) -> str:
        return tag(html_tag, props.children)

    def render(props: LeafProps) -> str:
        return tag(html_tag, props.children, {**props.attributes, "class": f"slate-{type_tag}"})

    return PluginBinding(
        key=type_tag,
        kind="mark",
        type_tag=type_tag,
        serialize_static=serialize,
        render_interactive=render,
        deserialize=(DeserializeRule(tags=(html_tag, *extra_tags)),),
    )


def _code_lines(element: Tag) -> list[Node]:
    return [
        ElementNode(CODE_LINE, [TextNode(line)])
        for line in element.get_text().split("\n")
    ]


def code_block_bindings() -> list[PluginBinding]:
    def render_block(props: ElementProps) -> str:
        attrs = {**props.attributes, "class": class_names("slate-code_block", "font-mono", "p-4")}
        return f"<pre{format_attributes(attrs)}>\n\t<code>{props.children.html}</code>\n</pre>"

    return [
        PluginBinding(
            key=CODE_BLOCK,
            kind="element",
            type_tag=CODE_BLOCK,
            render_interactive=render_block,
            deserialize=(DeserializeRule(tags=("pre",), children=_code_lines),),
        ),
        PluginBinding(
            key=CODE_LINE,
            kind="element",
            type_tag=CODE_LINE,
            render_interactive=block_renderer("div", CODE_LINE),
        ),
    ]


def basic_element_bindings() -> list[PluginBinding]:
    return [
        element_binding("blockquote", "blockquote", "border-l-4", "pl-4", flatten=True),
        *code_block_bindings(),
        *(element_binding(h, h, "font-bold", "mt-8") for h in HEADING_TYPES),
        element_binding("p", "p", "my-4"),
    ]


def basic_mark_bindings() -> list[PluginBinding]:
    return [mark_binding(type_tag, html_tag, extra) for type_tag, html_tag, extra in MARK_TAGS]


# --- Structural elements ---


def list_bindings() -> list[PluginBinding]:
    return [
        element_binding("ul", "ul", "list-disc", "pl-6"),
        element_binding("ol", "ol", "list-decimal", "pl-6"),
        element_binding("li", "li", flatten=True),
        PluginBinding(key="list", on_key_down=list_key_handler()),
    ]


def table_bindings() -> list[PluginBinding]:
    def render_table(props: ElementProps) -> str:
        attrs = {**props.attributes, "class": class_names("slate-table", "table-auto")}
        return f"<table{format_attributes(attrs)}>\n\t<tbody>{props.children.html}</tbody>\n</table>"

    return [
        PluginBinding(
            key="table",
            kind="element",
            type_tag="table",
            render_interactive=render_table,
            deserialize=(DeserializeRule(tags=("table",)),),
        ),
        element_binding("tr", "tr"),
        element_binding("td", "td", "border", "p-2", flatten=True),
        element_binding("th", "th", "border", "p-2", flatten=True),
    ]


def action_item_binding() -> PluginBinding:
    def render(props: ElementProps) -> str:
        checked = props.element.attributes.get("checked")
        attrs = {
            **props.attributes,
            "class": class_names("slate-action_item", "flex"),
            "data-checked": None if checked is None else str(bool(checked)).lower(),
        }
        return f"<div{format_attributes(attrs)}>\n\t{props.children.html}\n</div>"

    def attributes(element: Tag) -> dict[str, Any]:
        checked = _attr(element, "data-checked")
        return {} if checked is None else {"checked": checked == "true"}

    return PluginBinding(
        key="action_item",
        kind="element",
        type_tag="action_item",
        render_interactive=render,
        deserialize=(
            DeserializeRule(
                tags=("div",), class_name="slate-action_item", attributes=attributes, flatten=True
            ),
        ),
    )


# --- Links and media ---


def link_binding(rules: LinkRules | None = None) -> PluginBinding:
    link_rules = rules or LinkRules()
    rel = build_link_rel(link_rules.rel)

    def render(props: ElementProps) -> str:
        url = sanitize_url(str(props.element.attributes.get("url") or ""), link_rules.forbidden_protocols)
        attrs = {
            **props.attributes,
            "href": url or None,
            "class": class_names("slate-a", "underline", "text-blue-600"),
            "rel": rel or None,
        }
        return tag("a", props.children, attrs)

    def attributes(element: Tag) -> dict[str, Any]:
        url = sanitize_url(_attr(element, "href") or "", link_rules.forbidden_protocols)
        return {"url": url} if url else {}

    return PluginBinding(
        key="a",
        kind="element",
        type_tag="a",
        is_inline=True,
        render_interactive=render,
        deserialize=(DeserializeRule(tags=("a",), attributes=attributes),),
        on_key_down=link_hotkey_handler(link_rules),
    )


def image_binding(rules: LinkRules | None = None) -> PluginBinding:
    link_rules = rules or LinkRules()

    def image_url(element: ElementNode) -> str | None:
        return sanitize_url(str(element.attributes.get("url") or ""), link_rules.forbidden_protocols) or None

    def serialize(props: ElementProps) -> str:
        attrs = {
            "class": "slate-img",
            "src": image_url(props.element),
            "alt": props.element.attributes.get("caption"),
        }
        return tag("img", None, attrs) + props.children.html

    def render(props: ElementProps) -> str:
        frame = tag("img", None, {"src": image_url(props.element), "class": "w-full rounded"})
        return _void("img", props, f'<div contenteditable="false">{frame}</div>')

    def attributes(element: Tag) -> dict[str, Any]:
        found: dict[str, Any] = {}
        url = sanitize_url(_attr(element, "src") or "", link_rules.forbidden_protocols)
        if url:
            found["url"] = url
        caption = _attr(element, "alt")
        if caption:
            found["caption"] = caption
        return found

    return PluginBinding(
        key="img",
        kind="element",
        type_tag="img",
        is_void=True,
        serialize_static=serialize,
        render_interactive=render,
        deserialize=(DeserializeRule(tags=("img",), attributes=attributes),),
    )


def media_embed_binding(rules: LinkRules | None = None) -> PluginBinding:
    link_rules = rules or LinkRules()

    def render(props: ElementProps) -> str:
        url = sanitize_url(str(props.element.attributes.get("url") or ""), link_rules.forbidden_protocols)
        frame = tag("iframe", EMPTY, {"src": url or None, "frameborder": "0", "allowfullscreen": True})
        return _void("media_embed", props, frame)

    def attributes(element: Tag) -> dict[str, Any]:
        frame = element if element.name == "iframe" else element.find("iframe")
        src = _attr(frame, "src") if isinstance(frame, Tag) else None
        url = sanitize_url(src or "", link_rules.forbidden_protocols)
        return {"url": url} if url else {}

    return PluginBinding(
        key="media_embed",
        kind="element",
        type_tag="media_embed",
        is_void=True,
        render_interactive=render,
        deserialize=(
            DeserializeRule(tags=("div",), class_name="slate-media_embed", attributes=attributes),
            DeserializeRule(tags=("iframe",), attributes=attributes),
        ),
    )


# --- Custom void embeds ---


def loading_binding() -> PluginBinding:
    def render(props: ElementProps) -> str:
        failed = bool(props.element.attributes.get("failed"))
        message = str(props.element.attributes.get("error") or "") if failed else LOADING_MESSAGE
        state = "failed" if failed else "uploading"
        return _void("loading", props, escape_text(message).html, **{"data-state": state})

    def attributes(element: Tag) -> dict[str, Any]:
        if _attr(element, "data-state") != "failed":
            return {}
        return {"failed": True, "error": element.get_text()}

    return PluginBinding(
        key="loading",
        kind="element",
        type_tag="loading",
        is_void=True,
        render_interactive=render,
        deserialize=(DeserializeRule(tags=("div",), class_name="slate-loading", attributes=attributes),),
    )


def tweet_binding() -> PluginBinding:
    def render(props: ElementProps) -> str:
        tweet_id = props.element.attributes.get("tweetId")
        return _void("tweet", props, **{"data-tweet-id": tweet_id})

    def attributes(element: Tag) -> dict[str, Any]:
        tweet_id = _attr(element, "data-tweet-id")
        return {"tweetId": tweet_id} if tweet_id else {}

    return PluginBinding(
        key="tweet",
        kind="element",
        type_tag="tweet",
        is_void=True,
        render_interactive=render,
        deserialize=(DeserializeRule(tags=("div",), class_name="slate-tweet", attributes=attributes),),
        on_key_down=tweet_hotkey_handler(),
    )


def cta_binding() -> PluginBinding:
    def render(props: ElementProps) -> str:
        return _void("cta", props)

    return PluginBinding(
        key="cta",
        kind="element",
        type_tag="cta",
        is_void=True,
        render_interactive=render,
        deserialize=(DeserializeRule(tags=("div",), class_name="slate-cta"),),
        on_key_down=cta_hotkey_handler(),
    )


# --- Factory ---


def create_editor_plugins(rules: EditorRules | None = None) -> PluginRegistry:
    """
    Build the registry for one editor session.

    Order matters: it decides mark nesting (first mark innermost), element
    lookup and which key handler sees an event first.
    """
    rules = rules or EditorRules()
    matcher = AutoformatMatcher(autoformat_rules(rules.autoformat.heading_level_offset))

    registry = PluginRegistry(
        [
            *basic_element_bindings(),
            *basic_mark_bindings(),
            PluginBinding(key="autoformat", on_insert_text=matcher.on_insert_text),
            PluginBinding(key="reset_node", on_key_down=reset_block_handler(RESET_RULES)),
            PluginBinding(key="soft_break", on_key_down=break_handler(SOFT_BREAK_RULES)),
            PluginBinding(key="exit_break", on_key_down=break_handler(EXIT_BREAK_RULES)),
            image_binding(rules.links),
            *list_bindings(),
            link_binding(rules.links),
            *table_bindings(),
            media_embed_binding(rules.links),
            action_item_binding(),
            loading_binding(),
            tweet_binding(),
            cta_binding(),
        ]
    )
    registry.append_derived(deserialize_binding)
    return registry
