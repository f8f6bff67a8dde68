"""
Drag-reorder metadata.

Maps block types to the nesting level at which a drag handle appears and
the top padding of the gutter that holds it. The table is declared next to
the plugin registry and must stay consistent with it: every draggable type
needs an element binding.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

from src.core.services.plugins import PluginRegistry
from src.domain.errors import RegistryIntegrityError


@dataclass(frozen=True)
class DragConfig:
    """level None means any nesting level."""

    level: int | None = None
    gutter_spacing: str | None = None


@dataclass(frozen=True)
class DragRule:
    """
    One entry of the drag rule list.

    Only rules with draggable=True add types to the table; the others
    refine level or spacing of types already added.
    """

    types: tuple[str, ...]
    draggable: bool = False
    level: int | None = None
    gutter_spacing: str | None = None


DRAGGABLE_TYPES = (
    "p",
    "blockquote",
    "action_item",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "img",
    "ol",
    "ul",
    "table",
    "media_embed",
    "code_block",
    "tweet",
    "cta",
)

DRAG_RULES: tuple[DragRule, ...] = (
    DragRule(types=("p", "ul", "ol"), level=0),
    DragRule(types=DRAGGABLE_TYPES, draggable=True),
    DragRule(types=("h1", "h2"), gutter_spacing="3em"),
    DragRule(types=("h3",), gutter_spacing="2.5em"),
    DragRule(types=("h4", "h5", "h6"), gutter_spacing="2em"),
    DragRule(types=("blockquote", "code_block"), gutter_spacing="2em"),
    DragRule(
        types=("p", "action_item", "img", "ol", "ul", "table", "media_embed"),
        gutter_spacing="0.75em",
    ),
)

DragTable = Mapping[str, DragConfig]


def build_drag_table(rules: Iterable[DragRule] = DRAG_RULES) -> dict[str, DragConfig]:
    """Fold the rule list into one config per draggable type (later rules win)."""
    rules = tuple(rules)
    draggable = {t for rule in rules if rule.draggable for t in rule.types}
    table = {t: DragConfig() for t in sorted(draggable)}

    for rule in rules:
        for type_tag in rule.types:
            if type_tag not in table:
                continue
            config = table[type_tag]
            if rule.level is not None:
                config = replace(config, level=rule.level)
            if rule.gutter_spacing is not None:
                config = replace(config, gutter_spacing=rule.gutter_spacing)
            table[type_tag] = config
    return table


def drag_config_for(table: DragTable, type_tag: str, level: int) -> DragConfig | None:
    """Config when a node of type_tag at nesting level gets a handle."""
    config = table.get(type_tag)
    if config is None:
        return None
    if config.level is not None and config.level != level:
        return None
    return config


def check_drag_integrity(table: DragTable, registry: PluginRegistry) -> None:
    """
    Raise if a draggable type has no element binding.

    Raises:
        RegistryIntegrityError: Listing every unbound type.
    """
    missing = sorted(set(table) - registry.element_types)
    if missing:
        raise RegistryIntegrityError(f"Draggable types without a plugin binding: {', '.join(missing)}")
