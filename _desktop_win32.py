"""Windows backend (ctypes + user32)."""

from __future__ import annotations

import ctypes
import ctypes.wintypes
from typing import Optional

from desktop import send_paste_keystroke
from models import AppIdentity

try:
    from pynput.keyboard import Key
except Exception:  # pragma: no cover
    Key = None  # type: ignore


def _user32():
    return ctypes.windll.user32  # type: ignore[attr-defined]


class Win32Desktop:
    name = "win32"
    # Foreground changes are delivered asynchronously on Windows.
    settle_delay_s = 0.3

    def query_foreground(self) -> Optional[AppIdentity]:
        user32 = _user32()
        hwnd = user32.GetForegroundWindow()
        if not hwnd:
            return None

        length = user32.GetWindowTextLengthW(hwnd)
        buf = ctypes.create_unicode_buffer(length + 1)
        user32.GetWindowTextW(hwnd, buf, length + 1)

        pid = ctypes.wintypes.DWORD()
        user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        return AppIdentity(name=buf.value, pid=pid.value, handle=hwnd)

    def set_frontmost(self, app: AppIdentity) -> None:
        if not app.handle:
            raise RuntimeError(f"no window handle recorded for {app}")
        if not _user32().SetForegroundWindow(app.handle):
            raise RuntimeError(f"SetForegroundWindow refused {app}")

    def send_paste(self) -> None:
        send_paste_keystroke(Key.ctrl_l if Key is not None else None)

    def is_available(self) -> bool:
        return Key is not None
