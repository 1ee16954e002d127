"""OS automation backends: foreground application, focus and paste keystroke.

Each platform gets one implementation of :class:`DesktopBackend`, chosen once
at startup by :func:`select_backend`.  Backend methods are allowed to raise;
:class:`focus.FocusTracker` and :class:`auto_paste.PasteExecutor` turn those
failures into plain results.
"""

from __future__ import annotations

import logging
import subprocess
import sys
import time
from typing import Any, Optional, Protocol, Sequence

from models import AppIdentity

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)

COMMAND_TIMEOUT_S = 3.0


class DesktopBackend(Protocol):
    name: str
    settle_delay_s: float

    def query_foreground(self) -> Optional[AppIdentity]: ...

    def set_frontmost(self, app: AppIdentity) -> None: ...

    def send_paste(self) -> None: ...

    def is_available(self) -> bool: ...


def run_command(args: Sequence[str], timeout_s: float = COMMAND_TIMEOUT_S) -> str:
    """Run an automation helper and return its stripped stdout.

    Raises ``RuntimeError`` carrying the helper's stderr on a non-zero exit.
    """
    try:
        completed = subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise RuntimeError(f"{args[0]} failed: {exc}") from exc
    if completed.returncode != 0:
        detail = (completed.stderr or "").strip() or f"exit code {completed.returncode}"
        raise RuntimeError(f"{args[0]} failed: {detail}")
    return (completed.stdout or "").strip()


# ---------------------------------------------------------------------------
# Synthetic keystrokes (pynput)
# ---------------------------------------------------------------------------

_MODIFIERS = (
    "alt_l", "alt_r",
    "ctrl_l", "ctrl_r",
    "shift_l", "shift_r",
    "cmd_l", "cmd_r",
)


def send_paste_keystroke(modifier: Any) -> None:
    """Press ``modifier+V`` through pynput.

    Modifiers the user may still be holding from the hotkey are released
    first so they do not turn the combo into something else.
    """
    if Controller is None or Key is None:
        raise RuntimeError("pynput is not installed")
    keyboard = Controller()
    for name in _MODIFIERS:
        try:
            keyboard.release(getattr(Key, name))
        except Exception:
            logger.debug("Could not release %s", name)
    time.sleep(0.03)
    keyboard.press(modifier)
    keyboard.press("v")
    keyboard.release("v")
    keyboard.release(modifier)


class NullDesktop:
    """Backend for platforms without any automation support."""

    name = "null"
    settle_delay_s = 0.0

    def query_foreground(self) -> Optional[AppIdentity]:
        return None

    def set_frontmost(self, app: AppIdentity) -> None:
        raise RuntimeError("focus control is not supported on this platform")

    def send_paste(self) -> None:
        raise RuntimeError("paste keystroke is not supported on this platform")

    def is_available(self) -> bool:
        return False


def select_backend(platform: Optional[str] = None) -> DesktopBackend:
    """Return the backend for *platform* (defaults to ``sys.platform``)."""
    platform = platform or sys.platform
    if platform == "darwin":
        from _desktop_darwin import DarwinDesktop

        backend: DesktopBackend = DarwinDesktop()
    elif platform == "win32":
        from _desktop_win32 import Win32Desktop

        backend = Win32Desktop()
    elif platform.startswith("linux") or platform.startswith("freebsd"):
        from _desktop_x11 import X11Desktop

        backend = X11Desktop()
    else:
        backend = NullDesktop()
    logger.info("Desktop automation backend: %s", backend.name)
    return backend
