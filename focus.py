"""Foreground application tracking on top of a desktop backend."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from desktop import DesktopBackend
from models import AppIdentity

logger = logging.getLogger(__name__)


class FocusTracker:
    """Query and restore the OS foreground application.

    Neither method raises: backend failures are logged and reported as
    ``None`` / ``False``.
    """

    def __init__(
        self,
        backend: DesktopBackend,
        retry_delay_s: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._backend = backend
        self._retry_delay_s = retry_delay_s
        self._sleep = sleep

    def get_foreground_application(self) -> Optional[AppIdentity]:
        try:
            app = self._backend.query_foreground()
        except Exception as exc:
            logger.warning("Could not query foreground application: %s", exc)
            return None
        logger.debug("Foreground application: %s", app)
        return app

    def activate(self, app: AppIdentity) -> bool:
        """Bring *app* to the front, verifying the result; one retry."""
        for attempt in (1, 2):
            try:
                self._backend.set_frontmost(app)
            except Exception as exc:
                logger.warning("Activating %s failed (attempt %d): %s", app, attempt, exc)
            if app.matches(self.get_foreground_application()):
                logger.info("Activated %s", app)
                return True
            if attempt == 1:
                self._sleep(self._retry_delay_s)
        logger.warning("%s did not become frontmost", app)
        return False
