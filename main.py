"""Application entrypoint."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict

from auto_paste import PasteExecutor
from clipboard import ClipboardTransaction
from config import SETTINGS_SCHEMA, AppConfig, JsonHistoryStore, JsonSettingsStore
from desktop import select_backend
from errors import SettingsValidationError
from focus import FocusTracker
from hotkey import GlobalHotkeyAdapter, format_for_display, validate_shortcut
from models import AppIdentity, SessionState, TriggerSource, preview
from overlay import OverlayWindow
from recorder import SoundDeviceRecorder
from session_controller import RecordingOrchestrator
from transcription import TranscriptionClient

try:
    from PySide6.QtCore import QObject, QSize, Signal
    from PySide6.QtGui import QAction, QActionGroup, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)

RECENT_MENU_ITEMS = 10


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))  # transparent background
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"      # grey
ICON_RECORDING = "#FF4444"  # red
ICON_ERROR = "#FF8800"     # orange


class UIBridge(QObject):
    state_signal = Signal(str, str)  # from_state, to_state
    transcription_signal = Signal(str, str)  # text, timestamp
    error_signal = Signal(str)
    success_signal = Signal(str)


class App:
    def __init__(self, config: AppConfig) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config = config
        self.settings = JsonSettingsStore(defaults=self.config.settings_defaults())
        self.history = JsonHistoryStore()

        self.overlay = OverlayWindow(
            self.config.overlay_width, self.config.overlay_height, self.config.overlay_margin
        )
        self.ui = UIBridge()
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.transcription_signal.connect(self._on_transcription_ui)
        self.ui.error_signal.connect(self._on_error_ui)
        self.ui.success_signal.connect(self._on_success_ui)

        self.backend = select_backend()
        self.focus = FocusTracker(self.backend)
        self.clipboard = ClipboardTransaction()
        self.transcriber = TranscriptionClient(
            server_url=self.config.stt_server_url,
            health_path=self.config.stt_health_endpoint,
            timeout_s=self.config.stt_timeout_ms / 1000.0,
        )
        self.recorder = SoundDeviceRecorder()
        self.controller = RecordingOrchestrator(
            recorder=self.recorder,
            transcriber=self.transcriber,
            paste_service=PasteExecutor(self.backend, self.focus, self.clipboard),
            focus_tracker=self.focus,
            clipboard=self.clipboard,
            settings=self.settings,
            own_application=AppIdentity(name=self.config.app_name, pid=os.getpid()),
            on_state_change=self._on_state_change,
            on_transcription=self._on_transcription,
            on_error=self._on_error,
            on_success=self._on_success,
        )
        self.recorder.bind(self.controller.on_audio_captured, self.controller.on_recording_error)
        self.hotkey = GlobalHotkeyAdapter(self.settings.get("shortcut"))

        self._status = "Ready"
        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip(f"{self.config.app_name} — Ready")
        self.tray.show()
        self._rebuild_menu()

    # ------------------------------------------------------------------
    # Tray menu
    # ------------------------------------------------------------------

    def _rebuild_menu(self) -> None:
        settings = self.settings.get_settings()
        menu = QMenu()
        self._menu = menu

        title = QAction(self.config.app_name, menu)
        title.setEnabled(False)
        menu.addAction(title)
        status = QAction(f"Status: {self._status}", menu)
        status.setEnabled(False)
        menu.addAction(status)
        shortcut = QAction(f"Shortcut: {format_for_display(settings['shortcut'])}", menu)
        shortcut.setEnabled(False)
        menu.addAction(shortcut)
        menu.addSeparator()

        record_label = "Stop recording" if self.controller.is_recording else "Start recording"
        record_action = QAction(record_label, menu)
        record_action.triggered.connect(lambda: self.controller.toggle(TriggerSource.BUTTON))
        menu.addAction(record_action)
        menu.addSeparator()

        auto_paste = QAction("Auto paste", menu)
        auto_paste.setCheckable(True)
        auto_paste.setChecked(settings["autoPaste"])
        auto_paste.toggled.connect(lambda on: self.save_settings({"autoPaste": on}))
        menu.addAction(auto_paste)

        translate = QAction("Translate to English", menu)
        translate.setCheckable(True)
        translate.setChecked(settings["translateToEnglish"])
        translate.toggled.connect(lambda on: self.save_settings({"translateToEnglish": on}))
        menu.addAction(translate)

        language_menu = menu.addMenu("Language")
        group = QActionGroup(language_menu)
        for code in SETTINGS_SCHEMA["language"][1] or ():
            action = QAction(code, language_menu)
            action.setCheckable(True)
            action.setChecked(code == settings["language"])
            action.triggered.connect(lambda _=False, c=code: self.save_settings({"language": c}))
            group.addAction(action)
            language_menu.addAction(action)

        server_action = QAction("Set STT server URL…", menu)
        server_action.triggered.connect(self._set_server_url)
        menu.addAction(server_action)

        shortcut_action = QAction("Set shortcut…", menu)
        shortcut_action.triggered.connect(self._set_shortcut)
        menu.addAction(shortcut_action)
        menu.addSeparator()

        recent_menu = menu.addMenu("Recent")
        entries = self.history.list()[:RECENT_MENU_ITEMS]
        if not entries:
            empty = QAction("No transcriptions yet", recent_menu)
            empty.setEnabled(False)
            recent_menu.addAction(empty)
        for entry in entries:
            action = QAction(preview(entry.text, 40), recent_menu)
            action.triggered.connect(lambda _=False, t=entry.text: self._copy_history_item(t))
            recent_menu.addAction(action)
        clear_action = QAction("Clear history", menu)
        clear_action.triggered.connect(self._clear_history)
        menu.addAction(clear_action)
        menu.addSeparator()

        reset_action = QAction("Reset settings", menu)
        reset_action.triggered.connect(self._reset_settings)
        menu.addAction(reset_action)
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _set_status(self, status: str) -> None:
        self._status = status
        self.tray.setToolTip(f"{self.config.app_name} — {status}")
        self._rebuild_menu()

    # ------------------------------------------------------------------
    # Settings commands
    # ------------------------------------------------------------------

    def save_settings(self, partial: Dict[str, Any]) -> bool:
        old_shortcut = self.settings.get("shortcut")
        try:
            saved = self.settings.set_settings(partial)
        except SettingsValidationError as exc:
            QMessageBox.warning(None, "Invalid setting", str(exc))
            return False
        if saved["shortcut"] != old_shortcut and not self.hotkey.rebind(saved["shortcut"]):
            logger.error("Failed to register shortcut %s", saved["shortcut"])
        self._rebuild_menu()
        return True

    def _set_server_url(self) -> None:
        value, ok = QInputDialog.getText(
            None, "STT server", "Transcription URL", text=self.settings.get("sttServerUrl")
        )
        if ok and value:
            self.save_settings({"sttServerUrl": value.strip()})

    def _set_shortcut(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Shortcut", "Accelerator, e.g. CommandOrControl+Shift+.", text=self.settings.get("shortcut")
        )
        if not ok or not value:
            return
        if not validate_shortcut(value):
            QMessageBox.warning(None, "Shortcut", f"{value} is not a valid shortcut.")
            return
        self.save_settings({"shortcut": value})

    def _reset_settings(self) -> None:
        saved = self.settings.reset()
        self.hotkey.rebind(saved["shortcut"])
        self._rebuild_menu()

    def _copy_history_item(self, text: str) -> None:
        try:
            self.clipboard.copy(text)
        except Exception as exc:
            logger.error("Failed to copy history item: %s", exc)

    def _clear_history(self) -> None:
        self.history.clear()
        self._rebuild_menu()

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_transcription(self, text: str, timestamp: str) -> None:
        self.ui.transcription_signal.emit(text, timestamp)

    def _on_error(self, code: str, message: str) -> None:
        self.ui.error_signal.emit(message)

    def _on_success(self, message: str) -> None:
        self.ui.success_signal.emit(message)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        if to_state == SessionState.RECORDING.value:
            self.tray.setIcon(_create_icon(ICON_RECORDING))
            self.overlay.set_state("recording")
            self._set_status("Recording...")
        elif to_state == SessionState.PROCESSING.value:
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.overlay.set_state("processing")
            self._set_status("Processing...")
        elif to_state == SessionState.FAILED.value:
            self.tray.setIcon(_create_icon(ICON_ERROR))
        elif to_state == SessionState.IDLE.value:
            if from_state != SessionState.FAILED.value:
                self.tray.setIcon(_create_icon(ICON_IDLE))
            self._set_status("Ready")

    def _on_transcription_ui(self, text: str, timestamp: str) -> None:
        self.history.add(text, timestamp)
        self._rebuild_menu()

    def _on_error_ui(self, message: str) -> None:
        self.overlay.set_state("error", message)

    def _on_success_ui(self, message: str) -> None:
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.overlay.set_state("success", message)

    # ------------------------------------------------------------------
    # Hotkey handler
    # ------------------------------------------------------------------

    def _on_hotkey(self) -> None:
        self.controller.toggle(TriggerSource.HOTKEY)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        logger.info("Paste available: %s", self.backend.is_available())
        stt_ok = self.transcriber.check_health(self.settings.get("sttServerUrl"))
        logger.info("STT service available: %s", stt_ok)
        if not stt_ok:
            logger.warning("STT service is not running at %s", self.settings.get("sttServerUrl"))

        if self.recorder.prepare():
            self.controller.mark_capture_ready()
        else:
            self.overlay.set_state("error", "No microphone available")

        try:
            self.hotkey.start(on_activate=self._on_hotkey)
        except Exception as exc:
            logger.error("Hotkey disabled: %s", exc)
            self.overlay.set_state("error", f"Hotkey disabled: {exc}")
        logger.info("Press %s to start/stop recording", format_for_display(self.hotkey.shortcut))
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.cancel("app quit")
        self.transcriber.close()
        self.app.quit()


def main() -> int:
    config = AppConfig.from_env()
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app = App(config)
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
