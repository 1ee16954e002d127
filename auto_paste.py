"""Auto paste service for text insertion."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from clipboard import ClipboardTransaction
from desktop import DesktopBackend
from focus import FocusTracker
from models import AppIdentity, PasteResult, preview

logger = logging.getLogger(__name__)


class PasteExecutor:
    def __init__(
        self,
        backend: DesktopBackend,
        focus_tracker: FocusTracker,
        clipboard: ClipboardTransaction,
        restore_delay_s: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._backend = backend
        self._focus = focus_tracker
        self._clipboard = clipboard
        self._restore_delay_s = restore_delay_s
        self._sleep = sleep

    def paste(self, text: str, target_application: Optional[AppIdentity] = None) -> PasteResult:
        """Type *text* into *target_application* (or the focused window) via the clipboard.

        Never raises. The clipboard snapshot is restored only after a
        successful keystroke. When the keystroke fails the snapshot is
        dropped on purpose: the text stays on the clipboard so the user can
        paste it by hand, and the result carries ``clipboard_only=True``.
        """
        text = (text or "").strip()
        if not text:
            return PasteResult(success=False, error="empty text")

        logger.info('Pasting "%s" into %s', preview(text), target_application or "focused window")
        try:
            snapshot = self._clipboard.begin(text)
        except Exception as exc:
            logger.error("Failed to copy to clipboard: %s", exc)
            return PasteResult(success=False, error=f"Failed to copy to clipboard: {exc}")

        if target_application is not None:
            self._bring_to_front(target_application)

        try:
            self._backend.send_paste()
        except Exception as exc:
            logger.error("Paste keystroke failed: %s", exc)
            return PasteResult(success=False, error=str(exc) or "paste keystroke failed", clipboard_only=True)

        self._clipboard.commit(snapshot, self._restore_delay_s)
        return PasteResult(success=True)

    def _bring_to_front(self, target: AppIdentity) -> None:
        current = self._focus.get_foreground_application()
        if target.matches(current):
            logger.debug("%s is already frontmost", target)
            return
        if not self._focus.activate(target):
            logger.warning("Could not focus %s, pasting into the current window", target)
        self._sleep(self._backend.settle_delay_s)
