"""
Plugin registry - ordered bindings between node types and behavior.

A binding pairs a type tag with its renderers (interactive and static),
its HTML deserialize rules and optional editing handlers.

Key behaviors:
- Registration order is part of the contract
- Element lookup: first binding (in order) whose match set has the type
- Mark lookup: every binding whose mark is on the leaf, in order
- Void and inline types are declared on bindings, never inferred
- A derived binding can be appended last, built from all earlier bindings
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from src.core.services.markup import ElementProps, LeafProps
from src.domain.document import Node
from src.domain.errors import RegistryIntegrityError
from src.domain.hotkeys import KeyEvent

if TYPE_CHECKING:
    from bs4 import Tag

    from src.core.services.editor import Editor

BindingKind = Literal["element", "mark", "behavior"]

ElementRenderer = Callable[[ElementProps], str]
LeafRenderer = Callable[[LeafProps], str]
KeyDownHandler = Callable[["Editor", KeyEvent], bool]
InsertTextHandler = Callable[["Editor", str], bool]


@dataclass(frozen=True)
class DeserializeRule:
    """
    How an HTML tag maps back to this binding's type.

    attributes: extracts node attributes from the tag.
    children: replaces recursive parsing of the tag's content.
    flatten: block children are merged into inline content.
    """

    tags: tuple[str, ...]
    class_name: str | None = None
    attributes: Callable[[Tag], dict[str, Any]] | None = None
    children: Callable[[Tag], list[Node]] | None = None
    flatten: bool = False

    def matches(self, element: Tag) -> bool:
        if element.name not in self.tags:
            return False
        if self.class_name is None:
            return True
        return self.class_name in (element.get("class") or [])


@dataclass(frozen=True)
class PluginBinding:
    """One entry of the plugin registry."""

    key: str
    kind: BindingKind = "behavior"
    type_tag: str | None = None
    match_types: frozenset[str] = field(default_factory=frozenset)
    is_void: bool = False
    is_inline: bool = False
    serialize_static: ElementRenderer | LeafRenderer | None = None
    render_interactive: ElementRenderer | LeafRenderer | None = None
    deserialize: tuple[DeserializeRule, ...] = ()
    on_key_down: KeyDownHandler | None = None
    on_insert_text: InsertTextHandler | None = None
    deserialize_html: Callable[[str], list[Node]] | None = None

    @property
    def types(self) -> frozenset[str]:
        """Declared match set."""
        if self.type_tag is None:
            return self.match_types
        return self.match_types | {self.type_tag}

    @property
    def renderer(self) -> Callable[[Any], str] | None:
        """Static serializer, falling back to the interactive renderer."""
        return self.serialize_static or self.render_interactive


class PluginRegistry:
    """Ordered plugin bindings for one editor session (or one test)."""

    def __init__(self, bindings: Iterable[PluginBinding] = ()) -> None:
        self._bindings: list[PluginBinding] = []
        for binding in bindings:
            self.register(binding)

    def register(self, binding: PluginBinding) -> PluginBinding:
        """Append a binding. Keys must be unique."""
        if any(b.key == binding.key for b in self._bindings):
            raise RegistryIntegrityError(f"Duplicate plugin key '{binding.key}'")
        if binding.kind in ("element", "mark") and binding.type_tag is None:
            raise RegistryIntegrityError(f"Plugin '{binding.key}' needs a type tag")
        self._bindings.append(binding)
        return binding

    def append_derived(
        self,
        factory: Callable[[tuple[PluginBinding, ...]], PluginBinding],
    ) -> PluginBinding:
        """Build a binding from every binding registered so far and append it last."""
        return self.register(factory(self.bindings))

    @property
    def bindings(self) -> tuple[PluginBinding, ...]:
        return tuple(self._bindings)

    def __iter__(self) -> Iterator[PluginBinding]:
        return iter(tuple(self._bindings))

    def __len__(self) -> int:
        return len(self._bindings)

    def get(self, key: str) -> PluginBinding | None:
        for binding in self._bindings:
            if binding.key == key:
                return binding
        return None

    # --- Lookup ---

    def resolve(self, type_tag: str) -> PluginBinding | None:
        """First element binding that can render type_tag."""
        for binding in self._bindings:
            if binding.kind != "element" or binding.renderer is None:
                continue
            if type_tag in binding.types:
                return binding
        return None

    def resolve_marks(self, marks: Collection[str]) -> list[PluginBinding]:
        """Every mark binding that applies to a leaf with these marks, in order."""
        if not marks:
            return []
        return [
            b
            for b in self._bindings
            if b.kind == "mark" and b.renderer is not None and b.type_tag in marks
        ]

    def _declared(self, attr: str) -> frozenset[str]:
        found: set[str] = set()
        for binding in self._bindings:
            if binding.kind == "element" and getattr(binding, attr):
                found |= binding.types
        return frozenset(found)

    @property
    def void_types(self) -> frozenset[str]:
        return self._declared("is_void")

    @property
    def inline_types(self) -> frozenset[str]:
        return self._declared("is_inline")

    @property
    def element_types(self) -> frozenset[str]:
        found: set[str] = set()
        for binding in self._bindings:
            if binding.kind == "element":
                found |= binding.types
        return frozenset(found)

    @property
    def mark_types(self) -> frozenset[str]:
        return frozenset(
            b.type_tag for b in self._bindings if b.kind == "mark" and b.type_tag is not None
        )

    def is_void(self, type_tag: str) -> bool:
        return type_tag in self.void_types

    def is_inline(self, type_tag: str) -> bool:
        return type_tag in self.inline_types

    # --- Handlers ---

    def key_down_handlers(self) -> list[KeyDownHandler]:
        return [b.on_key_down for b in self._bindings if b.on_key_down is not None]

    def insert_text_handlers(self) -> list[InsertTextHandler]:
        return [b.on_insert_text for b in self._bindings if b.on_insert_text is not None]

    def deserializer(self) -> Callable[[str], list[Node]] | None:
        """HTML deserializer of the last binding that provides one."""
        for binding in reversed(self._bindings):
            if binding.deserialize_html is not None:
                return binding.deserialize_html
        return None


def create_registry(bindings: Iterable[PluginBinding]) -> PluginRegistry:
    """Register bindings in the given order."""
    return PluginRegistry(bindings)
