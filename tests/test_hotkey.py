from __future__ import annotations

from dataclasses import dataclass
from types import SimpleNamespace

import pytest

import hotkey
from hotkey import GlobalHotkeyAdapter, format_for_display, to_pynput_hotkey, validate_shortcut


@pytest.mark.parametrize(
    ("accelerator", "platform", "expected"),
    [
        ("CommandOrControl+Shift+.", "darwin", "<cmd>+<shift>+."),
        ("CommandOrControl+Shift+.", "linux", "<ctrl>+<shift>+."),
        ("CmdOrCtrl+Alt+Space", "win32", "<ctrl>+<alt>+<space>"),
        ("Option+F9", "darwin", "<alt>+<f9>"),
        ("Ctrl+Shift+R", "linux", "<ctrl>+<shift>+r"),
    ],
)
def test_to_pynput_hotkey(accelerator: str, platform: str, expected: str) -> None:
    assert to_pynput_hotkey(accelerator, platform) == expected


@pytest.mark.parametrize(
    "accelerator",
    ["", "Shift", "R", "Ctrl+", "Ctrl+Shift+A+B", "Ctrl+Ctrl+A", "Ctrl+Banana", "Ctrl+F42"],
)
def test_to_pynput_hotkey_rejects_malformed(accelerator: str) -> None:
    with pytest.raises(ValueError):
        to_pynput_hotkey(accelerator, "linux")


def test_validate_shortcut() -> None:
    assert validate_shortcut("CommandOrControl+Shift+.") is True
    assert validate_shortcut("Shift") is False


def test_format_for_display() -> None:
    assert format_for_display("CommandOrControl+Shift+.", "darwin") == "Cmd+Shift+."
    assert format_for_display("CommandOrControl+Shift+.", "win32") == "Ctrl+Shift+."
    assert format_for_display("", "linux") == "Not set"


def test_shifted_key_in_accelerator_is_folded() -> None:
    assert to_pynput_hotkey("Ctrl+Shift+>", "linux") == "<ctrl>+<shift>+."


# ---------------------------------------------------------------
# Adapter, driven through a fake pynput keyboard module
# ---------------------------------------------------------------

@dataclass(frozen=True)
class FakeKeyCode:
    char: str

    @classmethod
    def from_char(cls, char: str) -> "FakeKeyCode":
        return cls(char)


class FakeHotKey:
    """Set matching as pynput's HotKey does it."""

    def __init__(self, keys, on_activate) -> None:  # noqa: ANN001
        self._keys = set(keys)
        self._state: set = set()
        self._on_activate = on_activate

    @staticmethod
    def parse(combo: str) -> list:
        return [FakeKeyCode(p) if len(p) == 1 else p.strip("<>") for p in combo.split("+")]

    def press(self, key) -> None:  # noqa: ANN001
        if key in self._keys and key not in self._state:
            self._state.add(key)
            if self._state == self._keys:
                self._on_activate()

    def release(self, key) -> None:  # noqa: ANN001
        self._state.discard(key)


class FakeListener:
    def __init__(self, on_press, on_release) -> None:  # noqa: ANN001
        self.on_press = on_press
        self.on_release = on_release
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def canonical(self, key):  # noqa: ANN001, ANN201
        if isinstance(key, FakeKeyCode):
            return FakeKeyCode(key.char.lower())
        return key


def _fake_keyboard(monkeypatch) -> SimpleNamespace:  # noqa: ANN001
    listeners: list[FakeListener] = []

    def make_listener(on_press, on_release) -> FakeListener:  # noqa: ANN001
        listener = FakeListener(on_press, on_release)
        listeners.append(listener)
        return listener

    fake = SimpleNamespace(KeyCode=FakeKeyCode, HotKey=FakeHotKey, Listener=make_listener, listeners=listeners)
    monkeypatch.setattr(hotkey, "keyboard", fake)
    return fake


def _type(listener: FakeListener, *keys) -> None:  # noqa: ANN002
    for key in keys:
        listener.on_press(key)
    for key in reversed(keys):
        listener.on_release(key)


def test_shift_period_shortcut_fires_on_shifted_char(monkeypatch) -> None:  # noqa: ANN001
    fake = _fake_keyboard(monkeypatch)
    calls: list[str] = []

    adapter = GlobalHotkeyAdapter("Ctrl+Shift+.")
    adapter.start(lambda: calls.append("toggle"))
    listener = fake.listeners[-1]
    assert listener.started

    # With Shift held the listener reports ">" rather than ".".
    _type(listener, "ctrl", "shift", FakeKeyCode(">"))
    assert calls == ["toggle"]

    _type(listener, "ctrl", "shift", FakeKeyCode(">"))
    assert calls == ["toggle", "toggle"]


def test_letter_shortcut_fires_on_upper_case_char(monkeypatch) -> None:  # noqa: ANN001
    fake = _fake_keyboard(monkeypatch)
    calls: list[str] = []

    adapter = GlobalHotkeyAdapter("Ctrl+Shift+R")
    adapter.start(lambda: calls.append("toggle"))

    _type(fake.listeners[-1], "ctrl", "shift", FakeKeyCode("R"))
    assert calls == ["toggle"]


def test_other_keys_do_not_fire(monkeypatch) -> None:  # noqa: ANN001
    fake = _fake_keyboard(monkeypatch)
    calls: list[str] = []

    GlobalHotkeyAdapter("Ctrl+Shift+.").start(lambda: calls.append("toggle"))

    _type(fake.listeners[-1], "ctrl", "shift", FakeKeyCode("<"))
    _type(fake.listeners[-1], "ctrl", FakeKeyCode("."))
    assert calls == []


def test_adapter_swallows_handler_errors(monkeypatch) -> None:  # noqa: ANN001
    fake = _fake_keyboard(monkeypatch)

    def boom() -> None:
        raise RuntimeError("handler bug")

    GlobalHotkeyAdapter("Ctrl+Shift+R").start(boom)

    _type(fake.listeners[-1], "ctrl", "shift", FakeKeyCode("r"))  # must not raise


def test_rebind_keeps_old_shortcut_when_invalid(monkeypatch) -> None:  # noqa: ANN001
    fake = _fake_keyboard(monkeypatch)
    calls: list[str] = []
    adapter = GlobalHotkeyAdapter("Ctrl+Shift+R")
    adapter.start(lambda: calls.append("toggle"))

    assert adapter.rebind("Shift") is False
    assert adapter.shortcut == "Ctrl+Shift+R"
    assert len(fake.listeners) == 1
    assert not fake.listeners[0].stopped

    assert adapter.rebind("Alt+Space") is True
    assert adapter.shortcut == "Alt+Space"
    assert fake.listeners[0].stopped
    assert len(fake.listeners) == 2

    _type(fake.listeners[-1], "alt", "space")
    assert calls == ["toggle"]


def test_start_requires_pynput(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(hotkey, "keyboard", None)

    with pytest.raises(RuntimeError, match="pynput"):
        GlobalHotkeyAdapter().start(lambda: None)
