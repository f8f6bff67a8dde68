"""
Markup primitives shared by the serializer and the plugin renderers.

Fragment is the only way assembled HTML travels between stages. Text
becomes a Fragment exactly once, through escape_text; a Fragment is never
escaped or decoded again.
"""

from __future__ import annotations

import html
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from src.domain.document import ElementNode, TextNode

# NUL cannot appear in HTML; escaping drops it so it is free for internal markers.
_NUL = "\x00"

# Attribute values keep user whitespace as character references so the
# renderer-whitespace pass never touches it.
_ATTR_WHITESPACE = str.maketrans({"\n": "&#10;", "\r": "&#13;", "\t": "&#9;"})


@dataclass(frozen=True)
class Fragment:
    """Already-assembled HTML. Spliced as-is, never re-escaped."""

    html: str

    def __str__(self) -> str:
        return self.html

    @property
    def is_empty(self) -> bool:
        return not self.html


EMPTY = Fragment("")


@dataclass(frozen=True)
class ElementProps:
    """What an element renderer receives."""

    element: ElementNode
    children: Fragment
    attributes: Mapping[str, str]


@dataclass(frozen=True)
class LeafProps:
    """What a leaf (mark) renderer receives."""

    leaf: TextNode
    children: Fragment
    attributes: Mapping[str, str]


def escape_text(text: str) -> Fragment:
    """Escape &, < and > in user text."""
    return Fragment(html.escape(text.replace(_NUL, ""), quote=False))


def escape_attribute(value: Any) -> str:
    return html.escape(str(value).replace(_NUL, ""), quote=True).translate(_ATTR_WHITESPACE)


def format_attributes(attributes: Mapping[str, Any] | None) -> str:
    """
    Render attributes as ' name="value"' pairs.

    None/False values are skipped; True renders a bare attribute.
    """
    if not attributes:
        return ""
    parts = []
    for name, value in attributes.items():
        if value is None or value is False:
            continue
        if value is True:
            parts.append(f" {name}")
        else:
            parts.append(f' {name}="{escape_attribute(value)}"')
    return "".join(parts)


def tag(
    name: str,
    children: Fragment | None = None,
    attributes: Mapping[str, Any] | None = None,
) -> str:
    """Build an element; children=None produces a void tag."""
    attrs = format_attributes(attributes)
    if children is None:
        return f"<{name}{attrs}/>"
    return f"<{name}{attrs}>{children.html}</{name}>"


def class_names(*names: str | None) -> str:
    return " ".join(n for n in names if n)
