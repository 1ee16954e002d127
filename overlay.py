"""Floating recording-status overlay."""

from __future__ import annotations

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QVBoxLayout, QWidget
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

SUCCESS_HIDE_MS = 800
ERROR_HIDE_MS = 1500

_STATES = {
    "recording": ("🎙️ Listening...", "white"),
    "processing": ("⏳ Transcribing...", "white"),
    "success": ("✅ {message}", "#7CFC9A"),
    "error": ("⚠️ {message}", "#FF6B6B"),
}


class OverlayWindow(QWidget):
    def __init__(self, width: int = 300, height: int = 70, margin: int = 20) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        # Never take focus: the user's application must stay frontmost.
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint
            | Qt.FramelessWindowHint
            | Qt.Tool
            | Qt.WindowDoesNotAcceptFocus
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setAttribute(Qt.WA_ShowWithoutActivating, True)
        self.setFixedSize(width, height)
        self._margin = margin

        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setAlignment(Qt.AlignCenter)
        self._set_color("white")

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None

    def _bottom_right(self) -> None:
        """Position the window at the bottom-right corner of the primary screen."""
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        x = geom.x() + geom.width() - self.width() - self._margin
        y = geom.y() + geom.height() - self.height() - self._margin
        self.move(x, y)

    def set_state(self, state: str, message: str = "") -> None:
        """Show *state* ("recording", "processing", "success", "error")."""
        template, color = _STATES[state]
        self._cancel_hide_timer()
        self._set_color(color)
        self._label.setText(template.format(message=message))
        self._bottom_right()
        self.show()
        if state == "success":
            self.hide_with_delay(SUCCESS_HIDE_MS)
        elif state == "error":
            self.hide_with_delay(ERROR_HIDE_MS)

    def hide_with_delay(self, delay_ms: int) -> None:
        self._cancel_hide_timer()
        self._hide_timer = QTimer(self)
        self._hide_timer.setSingleShot(True)
        self._hide_timer.timeout.connect(self.hide)
        self._hide_timer.start(delay_ms)

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None

    def _set_color(self, color: str) -> None:
        self._label.setStyleSheet(
            f"color: {color}; font-size: 15px; padding: 12px;"
            "background: rgba(0,0,0,190); border-radius: 12px;"
        )
