"""Global toggle hotkey based on pynput.

Shortcuts are stored in accelerator form (``CommandOrControl+Shift+.``) and
converted to pynput's ``<cmd>+<shift>+.`` syntax when registered.
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import Any, Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)

_MODIFIERS = {
    "command": "<cmd>",
    "cmd": "<cmd>",
    "super": "<cmd>",
    "meta": "<cmd>",
    "control": "<ctrl>",
    "ctrl": "<ctrl>",
    "shift": "<shift>",
    "alt": "<alt>",
    "option": "<alt>",
    "altgr": "<alt_gr>",
}

_NAMED_KEYS = {
    "space": "<space>",
    "enter": "<enter>",
    "return": "<enter>",
    "tab": "<tab>",
    "backspace": "<backspace>",
    "delete": "<delete>",
    "esc": "<esc>",
    "escape": "<esc>",
    "up": "<up>",
    "down": "<down>",
    "left": "<left>",
    "right": "<right>",
    "home": "<home>",
    "end": "<end>",
    "pageup": "<page_up>",
    "pagedown": "<page_down>",
    "insert": "<insert>",
}


# Listeners report punctuation with Shift applied ("<ctrl>+<shift>+." arrives
# as ">"); fold it back so the parsed combo still matches. US layout.
_UNSHIFTED = dict(zip("~!@#$%^&*()_+{}|:\"<>?", "`1234567890-=[]\\;',./"))


def to_pynput_hotkey(accelerator: str, platform: Optional[str] = None) -> str:
    """Convert an accelerator string to pynput hotkey syntax.

    Raises ``ValueError`` for empty parts, unknown key names, or a shortcut
    that is not "modifiers + exactly one key".
    """
    platform = platform or sys.platform
    parts = [p.strip() for p in (accelerator or "").split("+")]
    if not parts or any(not p for p in parts):
        raise ValueError(f"malformed shortcut: {accelerator!r}")

    modifiers = []
    keys = []
    for part in parts:
        low = part.lower()
        if low in ("commandorcontrol", "cmdorctrl"):
            modifiers.append("<cmd>" if platform == "darwin" else "<ctrl>")
        elif low in _MODIFIERS:
            modifiers.append(_MODIFIERS[low])
        elif low in _NAMED_KEYS:
            keys.append(_NAMED_KEYS[low])
        elif low.startswith("f") and low[1:].isdigit() and 1 <= int(low[1:]) <= 20:
            keys.append(f"<{low}>")
        elif len(part) == 1:
            keys.append(_UNSHIFTED.get(low, low))
        else:
            raise ValueError(f"unknown key {part!r} in {accelerator!r}")

    if not modifiers or len(keys) != 1 or len(set(modifiers)) != len(modifiers):
        raise ValueError(f"shortcut needs modifiers plus one key: {accelerator!r}")
    return "+".join(modifiers + keys)


def validate_shortcut(candidate: str) -> bool:
    try:
        combo = to_pynput_hotkey(candidate)
        if keyboard is not None:
            keyboard.HotKey.parse(combo)
    except ValueError as exc:
        logger.info("Rejected shortcut %r: %s", candidate, exc)
        return False
    return True


def format_for_display(accelerator: str, platform: Optional[str] = None) -> str:
    if not accelerator:
        return "Not set"
    platform = platform or sys.platform
    return (
        accelerator.replace("CommandOrControl", "Cmd" if platform == "darwin" else "Ctrl")
        .replace("Command", "Cmd")
        .replace("Control", "Ctrl")
    )


class GlobalHotkeyAdapter:
    def __init__(self, shortcut: str = "CommandOrControl+Shift+.") -> None:
        self._shortcut = shortcut
        self._listener: Optional[Any] = None
        self._hotkey: Optional[Any] = None
        self._on_activate: Optional[Callable[[], None]] = None
        self._lock = threading.Lock()

    @property
    def shortcut(self) -> str:
        return self._shortcut

    def start(self, on_activate: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        combo = to_pynput_hotkey(self._shortcut)
        with self._lock:
            self._on_activate = on_activate
            self._hotkey = keyboard.HotKey(keyboard.HotKey.parse(combo), self._fire)
            self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
            self._listener.start()
        logger.info("Global shortcut registered: %s (%s)", self._shortcut, combo)

    def rebind(self, shortcut: str) -> bool:
        """Switch to *shortcut*; the previous binding stays active when it is invalid."""
        if not validate_shortcut(shortcut):
            return False
        on_activate = self._on_activate
        self.stop()
        self._shortcut = shortcut
        if on_activate is not None:
            self.start(on_activate)
        return True

    def stop(self) -> None:
        with self._lock:
            listener = self._listener
            self._listener = None
            self._hotkey = None
        if listener is not None:
            listener.stop()

    def _on_press(self, key: Any) -> None:
        hotkey = self._hotkey
        if hotkey is not None:
            hotkey.press(self._canonical(key))

    def _on_release(self, key: Any) -> None:
        hotkey = self._hotkey
        if hotkey is not None:
            hotkey.release(self._canonical(key))

    def _canonical(self, key: Any) -> Any:
        listener = self._listener
        if listener is not None:
            key = listener.canonical(key)
        char = getattr(key, "char", None)
        if char in _UNSHIFTED:
            return keyboard.KeyCode.from_char(_UNSHIFTED[char])
        return key

    def _fire(self) -> None:
        callback = self._on_activate
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.exception("Hotkey handler failed")
