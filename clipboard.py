"""Reversible clipboard writes around a synthetic paste."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from models import ClipboardSnapshot

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], None]


def schedule_with_timer(delay_s: float, callback: Callable[[], None]) -> None:
    timer = threading.Timer(delay_s, callback)
    timer.daemon = True
    timer.start()


class ClipboardTransaction:
    """Snapshot the clipboard, overwrite it, and put the snapshot back later.

    If another program writes the clipboard between :meth:`begin` and the
    scheduled restore, the restore overwrites that value.
    """

    def __init__(self, schedule: Scheduler = schedule_with_timer) -> None:
        self._schedule = schedule

    def begin(self, new_text: str) -> ClipboardSnapshot:
        """Write *new_text*; the returned snapshot holds the previous text.

        Read errors count as an empty clipboard. Write errors propagate.
        """
        snapshot = ClipboardSnapshot(original_text=self.read())
        self.copy(new_text)
        return snapshot

    def commit(self, snapshot: ClipboardSnapshot, delay_s: float) -> None:
        """Restore *snapshot* after *delay_s*, once the OS has consumed the paste."""

        def _restore() -> None:
            try:
                self.copy(snapshot.original_text)
                logger.debug("Clipboard restored")
            except Exception as exc:
                logger.warning("Clipboard restore failed: %s", exc)

        try:
            self._schedule(delay_s, _restore)
        except Exception as exc:
            logger.warning("Could not schedule clipboard restore: %s", exc)

    def read(self) -> str:
        if pyperclip is None:
            return ""
        try:
            return pyperclip.paste() or ""
        except Exception as exc:
            logger.debug("Clipboard read failed: %s", exc)
            return ""

    def copy(self, text: str) -> None:
        if pyperclip is None:
            raise RuntimeError("pyperclip is not installed")
        pyperclip.copy(text)
