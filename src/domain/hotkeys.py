"""
Hotkey parsing and matching.

Hotkeys are written like "mod+shift+enter". Matching is exact: every
modifier not named in the hotkey must be released. "mod" accepts either
ctrl or meta so the same rule works on every platform.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

_KEY_ALIASES = {
    "return": "enter",
    "esc": "escape",
    "del": "delete",
    "space": " ",
    "spacebar": " ",
}

_MODIFIERS = frozenset(["mod", "shift", "alt", "ctrl", "meta"])


@dataclass(frozen=True)
class KeyEvent:
    """A raw key press."""

    key: str
    shift: bool = False
    alt: bool = False
    ctrl: bool = False
    meta: bool = False

    @classmethod
    def from_hotkey(cls, hotkey: str) -> KeyEvent:
        """Build the event a user produces when pressing hotkey ("mod" sends ctrl)."""
        parsed = parse_hotkey(hotkey)
        return cls(
            key=parsed.key,
            shift=parsed.shift,
            alt=parsed.alt,
            ctrl=parsed.ctrl or parsed.mod,
            meta=parsed.meta,
        )


@dataclass(frozen=True)
class Hotkey:
    """Parsed hotkey description."""

    key: str
    mod: bool = False
    shift: bool = False
    alt: bool = False
    ctrl: bool = False
    meta: bool = False


def _normalize_key(key: str) -> str:
    key = key.lower()
    return _KEY_ALIASES.get(key, key)


@lru_cache(maxsize=128)
def parse_hotkey(hotkey: str) -> Hotkey:
    """
    Parse a "+"-separated hotkey string.

    Raises:
        ValueError: If the hotkey names no key or an unknown modifier layout.
    """
    parts = [p.strip().lower() for p in hotkey.split("+")]
    if not parts or not parts[-1]:
        raise ValueError(f"Invalid hotkey: {hotkey!r}")

    *modifiers, key = parts
    unknown = [m for m in modifiers if m not in _MODIFIERS]
    if unknown:
        raise ValueError(f"Unknown modifier(s) {unknown} in hotkey {hotkey!r}")

    return Hotkey(
        key=_normalize_key(key),
        mod="mod" in modifiers,
        shift="shift" in modifiers,
        alt="alt" in modifiers,
        ctrl="ctrl" in modifiers,
        meta="meta" in modifiers,
    )


def is_hotkey(hotkey: str, event: KeyEvent) -> bool:
    """Check whether a key event matches a hotkey exactly."""
    parsed = parse_hotkey(hotkey)

    if _normalize_key(event.key) != parsed.key:
        return False
    if event.shift != parsed.shift or event.alt != parsed.alt:
        return False

    if parsed.mod:
        # mod is satisfied by exactly one of ctrl/meta
        return event.ctrl != event.meta and not (parsed.ctrl or parsed.meta)

    return event.ctrl == parsed.ctrl and event.meta == parsed.meta
