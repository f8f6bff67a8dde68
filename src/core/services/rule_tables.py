"""
Rule tables - the editor's declarative configuration.

Autoformat, block-reset and break rules used by the default plugin set.
Tables are immutable and built once per registry.
"""

from __future__ import annotations

from src.core.services.autoformat import AutoformatRule
from src.core.services.editor import CODE_BLOCK, PARAGRAPH, Editor
from src.core.services.key_rules import (
    BreakRule,
    ResetRule,
    is_block_above_empty,
    is_selection_at_block_start,
)

BLOCKQUOTE = "blockquote"
ACTION_ITEM = "action_item"
TABLE_CELL = "td"
HEADING_TYPES = frozenset(f"h{level}" for level in range(1, 7))


def _unwrap_list(editor: Editor) -> None:
    editor.unwrap_list()


def _toggle_bulleted(editor: Editor) -> None:
    editor.toggle_list("ul")


def _toggle_numbered(editor: Editor) -> None:
    editor.toggle_list("ol")


def _insert_code_block(editor: Editor) -> None:
    editor.insert_code_block()


def heading_rules(offset: int = 0) -> tuple[AutoformatRule, ...]:
    """'#' .. '#####' to headings; offset shifts every level down."""
    return tuple(
        AutoformatRule(
            target_type=f"h{min(level + offset, 6)}",
            markup=("#" * level,),
            pre_format=_unwrap_list,
        )
        for level in range(1, 6)
    )


def autoformat_rules(heading_level_offset: int = 0) -> tuple[AutoformatRule, ...]:
    return (
        *heading_rules(heading_level_offset),
        AutoformatRule(
            target_type="li",
            markup=("*", "-"),
            pre_format=_unwrap_list,
            format=_toggle_bulleted,
        ),
        AutoformatRule(
            target_type="li",
            markup=("1.", "1)"),
            pre_format=_unwrap_list,
            format=_toggle_numbered,
        ),
        AutoformatRule(target_type=ACTION_ITEM, markup=("[]",)),
        AutoformatRule(target_type=BLOCKQUOTE, markup=(">",), pre_format=_unwrap_list),
        AutoformatRule(target_type="bold", between=("**", "**"), mode="inline", insert_trigger=True),
        AutoformatRule(target_type="bold", between=("__", "__"), mode="inline", insert_trigger=True),
        AutoformatRule(target_type="italic", between=("*", "*"), mode="inline", insert_trigger=True),
        AutoformatRule(target_type="italic", between=("_", "_"), mode="inline", insert_trigger=True),
        AutoformatRule(target_type="code", between=("`", "`"), mode="inline", insert_trigger=True),
        AutoformatRule(
            target_type="strikethrough", between=("~~", "~~"), mode="inline", insert_trigger=True
        ),
        AutoformatRule(
            target_type=CODE_BLOCK,
            markup=("``",),
            trigger="`",
            trigger_at_block_start=False,
            pre_format=_unwrap_list,
            format=_insert_code_block,
        ),
    )


_RESET_TYPES = frozenset([BLOCKQUOTE, ACTION_ITEM])

RESET_RULES: tuple[ResetRule, ...] = (
    ResetRule(
        types=_RESET_TYPES,
        default_type=PARAGRAPH,
        hotkey="enter",
        predicate=is_block_above_empty,
    ),
    ResetRule(
        types=_RESET_TYPES,
        default_type=PARAGRAPH,
        hotkey="backspace",
        predicate=is_selection_at_block_start,
    ),
)

SOFT_BREAK_RULES: tuple[BreakRule, ...] = (
    BreakRule(hotkey="shift+enter"),
    BreakRule(
        hotkey="enter",
        allowed_types=frozenset([CODE_BLOCK, BLOCKQUOTE, TABLE_CELL]),
    ),
)

EXIT_BREAK_RULES: tuple[BreakRule, ...] = (
    BreakRule(hotkey="mod+enter", mode="exit"),
    BreakRule(hotkey="mod+shift+enter", mode="exit", before=True),
    BreakRule(
        hotkey="enter",
        mode="exit",
        allowed_types=HEADING_TYPES,
        require_selection_at_edge=True,
    ),
)
