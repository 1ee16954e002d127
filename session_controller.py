"""State-machine based recording orchestration.

``IDLE -> RECORDING -> PROCESSING -> SUCCEEDED | FAILED -> IDLE``

All transitions happen under ``self._lock``.  The slow part of a session
(health check, transcription, focus and paste) runs outside the lock while
the state is ``PROCESSING``, so a ``start()`` arriving meanwhile is rejected
by the state gate rather than queued.  Audio arrives through
:meth:`RecordingOrchestrator.on_audio_captured`, on the recorder's thread,
some time after :meth:`RecordingOrchestrator.stop` has returned.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from errors import (
    CANCELLED,
    CAPTURE_ERROR,
    ERROR_MESSAGES,
    NO_SPEECH,
    NOT_READY,
    PASTE_FAILED,
    SERVICE_OFFLINE,
    SUCCESS_COPIED,
    SUCCESS_PASTED,
    TRANSCRIPTION_FAILED,
)
from interfaces import AudioCapture, ClipboardWriter, ForegroundQuery, PasteService, SettingsStore, Transcriber
from models import AppIdentity, PasteResult, RecordingSession, SessionState, TranscriptionResult, TriggerSource

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
RecordingCallback = Callable[[bool], None]
TranscriptionCallback = Callable[[str, str], None]
ErrorCallback = Callable[[str, str], None]
SuccessCallback = Callable[[str], None]


class RecordingOrchestrator:
    def __init__(
        self,
        recorder: AudioCapture,
        transcriber: Transcriber,
        paste_service: PasteService,
        focus_tracker: ForegroundQuery,
        clipboard: ClipboardWriter,
        settings: SettingsStore,
        own_application: Optional[AppIdentity] = None,
        on_state_change: Optional[StateCallback] = None,
        on_recording_changed: Optional[RecordingCallback] = None,
        on_transcription: Optional[TranscriptionCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_success: Optional[SuccessCallback] = None,
    ) -> None:
        self._recorder = recorder
        self._transcriber = transcriber
        self._paste_service = paste_service
        self._focus = focus_tracker
        self._clipboard = clipboard
        self._settings = settings
        self._own_application = own_application
        self._on_state_change = on_state_change
        self._on_recording_changed = on_recording_changed
        self._on_transcription = on_transcription
        self._on_error = on_error
        self._on_success = on_success

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session: Optional[RecordingSession] = None
        self._capture_ready = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[RecordingSession]:
        return self._session

    @property
    def is_recording(self) -> bool:
        return self._state == SessionState.RECORDING

    @property
    def capture_ready(self) -> bool:
        return self._capture_ready

    def mark_capture_ready(self, ready: bool = True) -> None:
        with self._lock:
            self._capture_ready = ready
        logger.info("Audio capture %s", "ready" if ready else "unavailable")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self, source: TriggerSource = TriggerSource.HOTKEY) -> bool:
        with self._lock:
            if self._state != SessionState.IDLE:
                logger.info("start(%s) ignored in state %s", source.value, self._state.value)
                return False
            if not self._capture_ready:
                logger.info("start(%s) ignored, recorder not ready yet", source.value)
                self._emit_error(NOT_READY, ERROR_MESSAGES[NOT_READY])
                return False

            target = None
            if source == TriggerSource.HOTKEY:
                # Taken before any state notification: showing the overlay
                # may move focus away from the user's application.
                target = self._focus.get_foreground_application()
                if target is not None and self._is_own_application(target):
                    target = None
            self._session = RecordingSession(trigger_source=source, target_application=target)
            logger.info("Recording started (%s), paste target: %s", source.value, target)
            self._transition(SessionState.RECORDING)

            try:
                self._recorder.start()
            except Exception as exc:
                logger.error("Recorder failed to start: %s", exc)
                self._fail(CAPTURE_ERROR, str(exc) or ERROR_MESSAGES[CAPTURE_ERROR])
                return False
            return True

    def stop(self) -> bool:
        with self._lock:
            if self._state != SessionState.RECORDING:
                logger.info("stop() ignored in state %s", self._state.value)
                return False
            self._transition(SessionState.PROCESSING)
            try:
                self._recorder.stop()
            except Exception as exc:
                logger.error("Recorder failed to stop: %s", exc)
                self._fail(CAPTURE_ERROR, str(exc) or ERROR_MESSAGES[CAPTURE_ERROR])
                return False
            logger.info("Recording stopped, waiting for audio")
            return True

    def toggle(self, source: TriggerSource = TriggerSource.HOTKEY) -> bool:
        with self._lock:
            if self._state == SessionState.RECORDING:
                return self.stop()
            return self.start(source)

    def cancel(self, reason: str = "") -> None:
        with self._lock:
            if self._state == SessionState.IDLE:
                return
            was_recording = self._state == SessionState.RECORDING
            self._fail(CANCELLED, reason or ERROR_MESSAGES[CANCELLED], stop_recorder=was_recording)

    # ------------------------------------------------------------------
    # Recorder events
    # ------------------------------------------------------------------

    def on_audio_captured(self, audio: bytes, mime_type: str) -> None:
        with self._lock:
            if self._state != SessionState.PROCESSING or self._session is None:
                logger.warning("Audio captured in state %s, dropping it", self._state.value)
                return
            session = self._session
            settings = self._read_settings()

        logger.info("Audio captured: %d bytes, %s", len(audio), mime_type)
        self._process(session, audio, mime_type, settings)

    def on_recording_error(self, message: str) -> None:
        with self._lock:
            if self._state not in (SessionState.RECORDING, SessionState.PROCESSING):
                logger.warning("Recording error in state %s ignored: %s", self._state.value, message)
                return
            logger.error("Recording error: %s", message)
            was_recording = self._state == SessionState.RECORDING
            self._fail(CAPTURE_ERROR, message or ERROR_MESSAGES[CAPTURE_ERROR], stop_recorder=was_recording)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _process(
        self,
        session: RecordingSession,
        audio: bytes,
        mime_type: str,
        settings: Dict[str, Any],
    ) -> None:
        server_url = settings.get("sttServerUrl") or None
        healthy = self._check_health(server_url)
        if not self._is_current(session):
            return
        if not healthy:
            self._finish(session, SessionState.FAILED, SERVICE_OFFLINE, ERROR_MESSAGES[SERVICE_OFFLINE])
            return

        result = self._run_transcription(
            audio,
            mime_type,
            language=settings.get("language") or "auto",
            translate_to_english=bool(settings.get("translateToEnglish")),
            server_url=server_url,
        )
        if not self._is_current(session):
            return
        if not result.success:
            self._finish(
                session,
                SessionState.FAILED,
                TRANSCRIPTION_FAILED,
                result.error or ERROR_MESSAGES[TRANSCRIPTION_FAILED],
            )
            return

        text = (result.text or "").strip()
        if not text:
            self._finish(session, SessionState.FAILED, NO_SPEECH, ERROR_MESSAGES[NO_SPEECH])
            return

        self._emit_transcription(text, datetime.now(timezone.utc).isoformat())

        if not settings.get("autoPaste"):
            self._copy_only(session, text)
            return

        target = session.target_application
        if session.trigger_source == TriggerSource.BUTTON:
            # The user is assumed to be back in their target app by now.
            target = self._focus.get_foreground_application()
            if target is not None and self._is_own_application(target):
                logger.info("Own window is frontmost, copying instead of pasting")
                self._copy_only(session, text)
                return

        if not self._is_current(session):
            return
        paste = self._run_paste(text, target)
        if paste.success:
            self._finish(session, SessionState.SUCCEEDED, "", SUCCESS_PASTED)
            return

        if not self._is_current(session):
            return
        logger.warning("Paste failed (%s), falling back to clipboard", paste.error)
        if not paste.clipboard_only and not self._copy_to_clipboard(text):
            self._finish(session, SessionState.FAILED, PASTE_FAILED, paste.error or ERROR_MESSAGES[PASTE_FAILED])
            return
        self._finish(session, SessionState.FAILED, PASTE_FAILED, ERROR_MESSAGES[PASTE_FAILED])

    def _copy_only(self, session: RecordingSession, text: str) -> None:
        if not self._is_current(session):
            return
        if self._copy_to_clipboard(text):
            self._finish(session, SessionState.SUCCEEDED, "", SUCCESS_COPIED)
        else:
            self._finish(session, SessionState.FAILED, PASTE_FAILED, "Failed to copy to clipboard")

    def _finish(self, session: RecordingSession, terminal: SessionState, code: str, message: str) -> None:
        with self._lock:
            if self._session is not session or self._state != SessionState.PROCESSING:
                logger.info("Session ended elsewhere, dropping result: %s", message)
                return
            session.state = terminal
            self._transition(terminal)
            if terminal == SessionState.SUCCEEDED:
                self._emit_success(message)
            else:
                self._emit_error(code, message)
            self._session = None
            self._transition(SessionState.IDLE)

    def _is_current(self, session: RecordingSession) -> bool:
        with self._lock:
            current = self._session is session and self._state == SessionState.PROCESSING
        if not current:
            logger.info("Session was abandoned, skipping the rest of its pipeline")
        return current

    def _fail(self, code: str, message: str, stop_recorder: bool = True) -> None:
        if self._session is not None:
            self._session.state = SessionState.FAILED
        self._transition(SessionState.FAILED)
        self._emit_error(code, message)
        if stop_recorder:
            self._safe_stop_recorder()
        self._session = None
        self._transition(SessionState.IDLE)

    def _is_own_application(self, app: AppIdentity) -> bool:
        return self._own_application is not None and self._own_application.matches(app)

    def _read_settings(self) -> Dict[str, Any]:
        try:
            return dict(self._settings.get_settings())
        except Exception as exc:  # pragma: no cover
            logger.error("Could not read settings: %s", exc)
            return {}

    def _check_health(self, server_url: Optional[str]) -> bool:
        try:
            return bool(self._transcriber.check_health(server_url))
        except Exception as exc:  # pragma: no cover
            logger.error("Health check raised: %s", exc)
            return False

    def _run_transcription(self, audio: bytes, mime_type: str, **options: Any) -> TranscriptionResult:
        try:
            return self._transcriber.transcribe(audio, mime_type, **options)
        except Exception as exc:  # pragma: no cover
            return TranscriptionResult(success=False, error=str(exc))

    def _run_paste(self, text: str, target: Optional[AppIdentity]) -> PasteResult:
        try:
            return self._paste_service.paste(text, target)
        except Exception as exc:  # pragma: no cover
            return PasteResult(success=False, error=str(exc))

    def _copy_to_clipboard(self, text: str) -> bool:
        try:
            self._clipboard.copy(text)
            return True
        except Exception as exc:
            logger.error("Failed to copy to clipboard: %s", exc)
            return False

    def _safe_stop_recorder(self) -> None:
        try:
            self._recorder.stop()
        except Exception as exc:  # pragma: no cover
            logger.debug("Recorder stop failed: %s", exc)

    def _emit_transcription(self, text: str, timestamp: str) -> None:
        self._notify(self._on_transcription, text, timestamp)

    def _emit_error(self, code: str, message: str) -> None:
        logger.error("Session failed [%s]: %s", code, message)
        self._notify(self._on_error, code, message)

    def _emit_success(self, message: str) -> None:
        logger.info("Session succeeded: %s", message)
        self._notify(self._on_success, message)

    def _notify(self, callback: Optional[Callable[..., None]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("UI callback failed")

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.info("State %s -> %s", from_state.value, to_state.value)
        self._notify(self._on_state_change, from_state, to_state)
        if SessionState.RECORDING in (from_state, to_state):
            self._notify(self._on_recording_changed, to_state == SessionState.RECORDING)
