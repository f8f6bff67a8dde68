"""
Tests for hotkey parsing and matching.
"""

from __future__ import annotations

import pytest

from src.domain.hotkeys import KeyEvent, is_hotkey, parse_hotkey


class TestParseHotkey:
    def test_modifiers_and_key(self) -> None:
        parsed = parse_hotkey("mod+shift+Enter")
        assert parsed.key == "enter"
        assert parsed.mod and parsed.shift
        assert not parsed.alt

    def test_aliases(self) -> None:
        """Common key aliases are normalized."""
        assert parse_hotkey("return").key == "enter"
        assert parse_hotkey("esc").key == "escape"

    @pytest.mark.parametrize("hotkey", ["", "mod+", "hyper+k"])
    def test_invalid(self, hotkey: str) -> None:
        with pytest.raises(ValueError):
            parse_hotkey(hotkey)


class TestIsHotkey:
    def test_plain_key(self) -> None:
        assert is_hotkey("enter", KeyEvent("Enter"))

    def test_extra_modifier_rejected(self) -> None:
        """Matching is exact: an extra modifier does not match."""
        assert not is_hotkey("enter", KeyEvent("Enter", shift=True))
        assert not is_hotkey("mod+enter", KeyEvent("Enter", ctrl=True, shift=True))

    def test_mod_accepts_ctrl_or_meta(self) -> None:
        """mod is satisfied by ctrl or meta."""
        assert is_hotkey("mod+k", KeyEvent("k", ctrl=True))
        assert is_hotkey("mod+k", KeyEvent("k", meta=True))

    def test_mod_rejects_both_or_neither(self) -> None:
        assert not is_hotkey("mod+k", KeyEvent("k"))
        assert not is_hotkey("mod+k", KeyEvent("k", ctrl=True, meta=True))

    def test_from_hotkey(self) -> None:
        """The synthesized event matches its own hotkey."""
        event = KeyEvent.from_hotkey("mod+shift+enter")
        assert event == KeyEvent("enter", shift=True, ctrl=True)
        assert is_hotkey("mod+shift+enter", event)
