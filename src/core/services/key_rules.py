"""
Key-event rules - block reset, soft/exit breaks and hotkey commands.

Every factory here returns an on_key_down handler for a plugin binding.
A handler returns True when it consumed the event.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass
from typing import Literal

from src.core.services.editor import LINK, Editor
from src.core.services.url_safety import is_safe_url, normalize_url
from src.domain.hotkeys import KeyEvent, is_hotkey
from src.rules.models import LinkRules

logger = logging.getLogger(__name__)

Predicate = Callable[[Editor], bool]
KeyHandler = Callable[[Editor, KeyEvent], bool]

TWEET_STATUS_PATTERN = re.compile(r"/status/([0-9]*)")


@dataclass(frozen=True)
class ResetRule:
    """Revert a block of one of types to default_type on hotkey when predicate holds."""

    types: frozenset[str]
    default_type: str
    hotkey: str
    predicate: Predicate


@dataclass(frozen=True)
class BreakRule:
    """
    Break behavior for a hotkey.

    mode "soft" inserts a newline inside the block; "exit" inserts a new
    paragraph next to the top-level block (before it when before is set).
    allowed_types limits the rule to cursors inside those types.
    require_selection_at_edge limits it to the start or end of the block.
    """

    hotkey: str
    mode: Literal["soft", "exit"] = "soft"
    allowed_types: frozenset[str] | None = None
    require_selection_at_edge: bool = False
    before: bool = False

    def applies(self, editor: Editor, event: KeyEvent) -> bool:
        if not is_hotkey(self.hotkey, event):
            return False
        if self.allowed_types is not None:
            allowed = self.allowed_types
            if editor.above(lambda n: n.type in allowed) is None:
                return False
        if self.require_selection_at_edge:
            return editor.is_selection_at_block_start() or editor.is_selection_at_block_end()
        return True


# --- Predicates ---


def is_block_above_empty(editor: Editor) -> bool:
    return editor.is_block_above_empty()


def is_selection_at_block_start(editor: Editor) -> bool:
    return editor.is_selection_at_block_start()


# --- Handlers ---


def reset_block_handler(rules: Sequence[ResetRule]) -> KeyHandler:
    def on_key_down(editor: Editor, event: KeyEvent) -> bool:
        for rule in rules:
            if not is_hotkey(rule.hotkey, event):
                continue
            block, _ = editor.block_above()
            if block.type in rule.types and rule.predicate(editor):
                editor.set_block_type(rule.default_type)
                return True
        return False

    return on_key_down


def break_handler(rules: Sequence[BreakRule]) -> KeyHandler:
    def on_key_down(editor: Editor, event: KeyEvent) -> bool:
        for rule in rules:
            if not rule.applies(editor, event):
                continue
            if rule.mode == "soft":
                editor.insert_soft_break()
                return True
            before = rule.before
            if rule.require_selection_at_edge and not editor.is_selection_at_block_end():
                before = True
            editor.exit_break(before=before)
            return True
        return False

    return on_key_down


def list_key_handler(list_types: Collection[str] = ("ul", "ol")) -> KeyHandler:
    """Enter or Backspace in an empty list item lifts it out of the list."""

    def on_key_down(editor: Editor, event: KeyEvent) -> bool:
        if not (is_hotkey("enter", event) or is_hotkey("backspace", event)):
            return False
        found = editor.list_item_above()
        if found is None:
            return False
        _, item_path = found
        parent = editor.node(item_path[:-1])
        if getattr(parent, "type", None) not in list_types:
            return False
        if is_hotkey("backspace", event) and not editor.is_selection_at_block_start():
            return False
        if is_hotkey("enter", event) and not editor.is_block_above_empty():
            return False
        editor.unwrap_list()
        return True

    return on_key_down


def link_hotkey_handler(rules: LinkRules | None = None, hotkey: str = "mod+k") -> KeyHandler:
    """
    Toggle a link.

    Inside a link the link is removed. With an expanded selection the user
    is prompted for a URL, which is normalized and checked before wrapping.
    """
    link_rules = rules or LinkRules()

    def on_key_down(editor: Editor, event: KeyEvent) -> bool:
        if not is_hotkey(hotkey, event):
            return False
        if editor.above(lambda n: n.type == LINK) is not None:
            editor.unwrap_link()
            return True
        if editor.selection is None or editor.selection.is_collapsed or editor.ui is None:
            return True

        url = normalize_url(editor.ui.prompt("Enter the URL of the link:"))
        if not url:
            return True
        if not is_safe_url(url, link_rules.forbidden_protocols):
            logger.warning("Rejected link with forbidden protocol: %s", url)
            return True
        editor.wrap_link(url)
        return True

    return on_key_down


def tweet_hotkey_handler(hotkey: str = "mod+shift+k") -> KeyHandler:
    """Prompt for a tweet URL and insert a tweet embed."""

    def on_key_down(editor: Editor, event: KeyEvent) -> bool:
        if not is_hotkey(hotkey, event):
            return False
        if editor.ui is None:
            return True

        url = normalize_url(editor.ui.prompt("Enter the Tweet URL"))
        match = TWEET_STATUS_PATTERN.search(url or "")
        if match is None or not match.group(1):
            logger.warning("Invalid tweet URL: %s", url)
            editor.ui.alert("Invalid Twitter url")
            return True

        editor.insert_node(editor.create_element("tweet", tweetId=match.group(1)))
        return True

    return on_key_down


def cta_hotkey_handler(hotkey: str = "mod+shift+c") -> KeyHandler:
    """Insert a call-to-action block (posts only)."""

    def on_key_down(editor: Editor, event: KeyEvent) -> bool:
        if not editor.is_post or not is_hotkey(hotkey, event):
            return False
        editor.insert_node(editor.create_element("cta"))
        return True

    return on_key_down

