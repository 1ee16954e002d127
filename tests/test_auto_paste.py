from __future__ import annotations

import clipboard
from auto_paste import PasteExecutor
from clipboard import ClipboardTransaction
from focus import FocusTracker
from models import AppIdentity

NOTES = AppIdentity(name="Notes", pid=101)
TERMINAL = AppIdentity(name="Terminal", pid=202)


class FakePyperclip:
    def __init__(self, text: str = "") -> None:
        self.text = text
        self.writes: list[str] = []

    def paste(self) -> str:
        return self.text

    def copy(self, text: str) -> None:
        self.text = text
        self.writes.append(text)


class FakeDesktop:
    name = "fake"
    settle_delay_s = 0.2

    def __init__(self, foreground: AppIdentity | None = None, follows_activation: bool = True) -> None:
        self.foreground = foreground
        self.follows_activation = follows_activation
        self.activated: list[AppIdentity] = []
        self.keystrokes = 0
        self.keystroke_error: Exception | None = None

    def query_foreground(self) -> AppIdentity | None:
        return self.foreground

    def set_frontmost(self, app: AppIdentity) -> None:
        self.activated.append(app)
        if self.follows_activation:
            self.foreground = app

    def send_paste(self) -> None:
        if self.keystroke_error is not None:
            raise self.keystroke_error
        self.keystrokes += 1

    def is_available(self) -> bool:
        return True


class ManualScheduler:
    def __init__(self) -> None:
        self.pending: list = []

    def __call__(self, delay_s: float, callback) -> None:  # noqa: ANN001
        self.pending.append((delay_s, callback))

    def run_all(self) -> None:
        pending, self.pending = self.pending, []
        for _, callback in pending:
            callback()


def _executor(desktop: FakeDesktop, scheduler: ManualScheduler, sleeps: list[float]) -> PasteExecutor:
    return PasteExecutor(
        backend=desktop,
        focus_tracker=FocusTracker(desktop, sleep=lambda _: None),
        clipboard=ClipboardTransaction(schedule=scheduler),
        restore_delay_s=0.5,
        sleep=sleeps.append,
    )


def test_paste_rejects_empty_text_without_touching_clipboard(monkeypatch) -> None:  # noqa: ANN001
    fake = FakePyperclip("X")
    monkeypatch.setattr(clipboard, "pyperclip", fake)
    desktop = FakeDesktop(NOTES)
    scheduler = ManualScheduler()

    for text in ("", "   "):
        result = _executor(desktop, scheduler, []).paste(text, NOTES)
        assert result.success is False
        assert result.error == "empty text"

    assert fake.writes == []
    assert scheduler.pending == []
    assert desktop.keystrokes == 0


def test_paste_into_frontmost_target_skips_activation(monkeypatch) -> None:  # noqa: ANN001
    fake = FakePyperclip("X")
    monkeypatch.setattr(clipboard, "pyperclip", fake)
    desktop = FakeDesktop(NOTES)
    scheduler = ManualScheduler()
    sleeps: list[float] = []

    result = _executor(desktop, scheduler, sleeps).paste("buy milk", NOTES)

    assert result.success is True
    assert desktop.activated == []
    assert desktop.keystrokes == 1
    assert sleeps == []
    assert fake.text == "buy milk"
    scheduler.run_all()
    assert fake.text == "X"


def test_paste_activates_target_then_settles(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(clipboard, "pyperclip", FakePyperclip("X"))
    desktop = FakeDesktop(TERMINAL)
    sleeps: list[float] = []

    result = _executor(desktop, ManualScheduler(), sleeps).paste("hello", NOTES)

    assert result.success is True
    assert desktop.activated == [NOTES]
    assert sleeps == [0.2]
    assert desktop.keystrokes == 1


def test_paste_proceeds_when_activation_fails(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(clipboard, "pyperclip", FakePyperclip("X"))
    desktop = FakeDesktop(TERMINAL, follows_activation=False)
    scheduler = ManualScheduler()

    result = _executor(desktop, scheduler, []).paste("hello", NOTES)

    assert result.success is True
    assert len(desktop.activated) == 2  # first attempt plus one retry
    assert desktop.keystrokes == 1
    assert len(scheduler.pending) == 1


def test_paste_without_target_uses_focused_window(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(clipboard, "pyperclip", FakePyperclip("X"))
    desktop = FakeDesktop(TERMINAL)

    result = _executor(desktop, ManualScheduler(), []).paste("hello", None)

    assert result.success is True
    assert desktop.activated == []
    assert desktop.keystrokes == 1


def test_keystroke_failure_leaves_text_on_clipboard(monkeypatch) -> None:  # noqa: ANN001
    fake = FakePyperclip("X")
    monkeypatch.setattr(clipboard, "pyperclip", fake)
    desktop = FakeDesktop(NOTES)
    desktop.keystroke_error = RuntimeError("accessibility permission denied")
    scheduler = ManualScheduler()

    result = _executor(desktop, scheduler, []).paste("hello", NOTES)

    assert result.success is False
    assert result.clipboard_only is True
    assert "accessibility" in result.error
    assert scheduler.pending == []
    assert fake.text == "hello"


def test_clipboard_write_failure_is_reported(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(clipboard, "pyperclip", None)
    desktop = FakeDesktop(NOTES)

    result = _executor(desktop, ManualScheduler(), []).paste("hello", NOTES)

    assert result.success is False
    assert result.clipboard_only is False
    assert desktop.keystrokes == 0
