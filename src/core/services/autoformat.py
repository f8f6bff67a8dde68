"""
Autoformat matcher - turns typed markup into structure.

Block rules fire on a trigger character (a space by default) when the text
before the cursor is exactly one of the rule's markup tokens ("## " at the
start of a block) or, for rules not anchored to the block start, ends with
it ("``" + "`"). Inline rules wrap the text between two delimiters in a
mark once the closing delimiter is typed ("**bold**").

Key behaviors:
- Block-start rules are tried before other block rules, block rules before
  inline rules, each group in table order
- Inline matches must sit inside one text leaf, have a non-empty body with
  no surrounding whitespace, and not be part of a longer delimiter run;
  anything ambiguous is left alone
- Nothing is formatted inside a code block
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Literal

from src.core.services.editor import Editor, Point
from src.domain.errors import EditorError

logger = logging.getLogger(__name__)

AutoformatMode = Literal["block", "inline"]
EditorCommand = Callable[[Editor], None]

DEFAULT_BLOCK_TRIGGER = " "


@dataclass(frozen=True)
class AutoformatRule:
    """
    One markup-to-structure conversion.

    target_type: block type (block mode) or mark (inline mode).
    markup: block-mode tokens matched against the text before the cursor.
    between: inline-mode (start, end) delimiters.
    trigger: typed character that runs the rule. Defaults to a space for
        block rules and the last character of the end delimiter for inline
        rules.
    insert_trigger: the trigger is part of the end delimiter (inline).
    pre_format: runs before the markup is removed (e.g. lift out of a list).
    format: replaces the default "set block type" action.
    """

    target_type: str
    markup: tuple[str, ...] = ()
    between: tuple[str, str] | None = None
    mode: AutoformatMode = "block"
    trigger: str | None = None
    trigger_at_block_start: bool = True
    insert_trigger: bool = False
    pre_format: EditorCommand | None = None
    format: EditorCommand | None = None

    def __post_init__(self) -> None:
        if self.mode == "inline" and not self.between:
            raise ValueError(f"Inline rule for '{self.target_type}' needs 'between'")
        if self.mode == "block" and not self.markup:
            raise ValueError(f"Block rule for '{self.target_type}' needs 'markup'")

    @property
    def triggers(self) -> str:
        if self.trigger is not None:
            return self.trigger
        if self.mode == "inline" and self.between is not None:
            return self.between[1][-1]
        return DEFAULT_BLOCK_TRIGGER


@dataclass(frozen=True)
class InlineMatch:
    """Where an inline rule matched inside the current leaf."""

    start: int
    body: str
    text: str  # leaf text with both delimiters removed


def match_inline(before: str, between: tuple[str, str]) -> InlineMatch | None:
    """
    Match delimiters at the end of the text before the cursor.

    Returns None for missing or unbalanced delimiters, an empty body, a body
    with leading/trailing whitespace, or an opening delimiter that is part
    of a longer run ("**bold*" is not italic).
    """
    start_markup, end_markup = between
    if not before.endswith(end_markup):
        return None
    inner = before[: len(before) - len(end_markup)]
    index = inner.rfind(start_markup)
    if index < 0:
        return None
    body = inner[index + len(start_markup) :]
    if not body or body != body.strip():
        return None
    if index > 0 and inner[index - 1] == start_markup[0]:
        return None
    if body.endswith(end_markup[0]):
        return None
    return InlineMatch(start=index, body=body, text=inner[:index] + body)


def delete_before_cursor(editor: Editor, count: int) -> None:
    """Delete count characters before the cursor within the current block."""
    while count > 0:
        _, leaf_path = editor.current_leaf()
        if editor.selection is None:
            raise EditorError("Editor has no selection")
        offset = editor.selection.focus.offset
        if offset == 0:
            _, block_path = editor.block_above()
            earlier = [p for p in editor.leaf_paths(block_path) if p < leaf_path]
            if not earlier:
                return
            editor.select(editor.end_point(earlier[-1]))
            continue
        step = min(offset, count)
        editor.delete_text_before_cursor(step)
        count -= step


class AutoformatMatcher:
    """Runs an autoformat rule table against typed text."""

    def __init__(
        self,
        rules: Sequence[AutoformatRule],
        *,
        skip_types: frozenset[str] = frozenset({"code_block"}),
    ) -> None:
        block_start = [r for r in rules if r.mode == "block" and r.trigger_at_block_start]
        block_other = [r for r in rules if r.mode == "block" and not r.trigger_at_block_start]
        inline = [r for r in rules if r.mode == "inline"]
        self.rules: tuple[AutoformatRule, ...] = (*block_start, *block_other, *inline)
        self.skip_types = skip_types

    def on_insert_text(self, editor: Editor, text: str) -> bool:
        """Insert-text handler; True when a rule consumed the text."""
        if editor.selection is None or not editor.selection.is_collapsed:
            return False
        if editor.above(lambda n: n.type in self.skip_types) is not None:
            return False

        for rule in self.rules:
            if text not in rule.triggers:
                continue
            if rule.mode == "block":
                if self._apply_block(editor, rule):
                    return True
            elif self._apply_inline(editor, rule, text):
                return True
        return False

    def _apply_block(self, editor: Editor, rule: AutoformatRule) -> bool:
        before = editor.text_before_cursor_in_block()
        if rule.trigger_at_block_start:
            markup = next((m for m in rule.markup if before == m), None)
        else:
            markup = next((m for m in rule.markup if before.endswith(m)), None)
        if markup is None:
            return False

        logger.debug("Autoformat %r -> %s", markup, rule.target_type)
        if rule.pre_format is not None:
            rule.pre_format(editor)
        delete_before_cursor(editor, len(markup))
        if rule.format is not None:
            rule.format(editor)
        else:
            editor.set_block_type(rule.target_type)
        return True

    def _apply_inline(self, editor: Editor, rule: AutoformatRule, text: str) -> bool:
        if rule.between is None:
            raise EditorError(f"Inline rule for '{rule.target_type}' has no delimiters")
        leaf, leaf_path = editor.current_leaf()
        if editor.selection is None:
            raise EditorError("Editor has no selection")
        offset = editor.selection.focus.offset

        before = leaf.text[:offset] + (text if rule.insert_trigger else "")
        found = match_inline(before, rule.between)
        if found is None:
            return False

        logger.debug("Autoformat %r around %r -> %s", rule.between, found.body, rule.target_type)
        leaf.text = found.text + leaf.text[offset:]
        marked_path = editor.add_mark_to_range(
            leaf_path, found.start, found.start + len(found.body), rule.target_type
        )
        # keep typing outside the mark
        editor.select(Point((*marked_path[:-1], marked_path[-1] + 1), 0))
        return True

