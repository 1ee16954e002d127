"""Shared error codes and user-facing messages."""

from __future__ import annotations

CAPTURE_ERROR = "CAPTURE_ERROR"
SERVICE_OFFLINE = "SERVICE_OFFLINE"
TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
NO_SPEECH = "NO_SPEECH"
PASTE_FAILED = "PASTE_FAILED"
NOT_READY = "NOT_READY"
CANCELLED = "CANCELLED"

ERROR_MESSAGES = {
    CAPTURE_ERROR: "Microphone capture failed.",
    SERVICE_OFFLINE: "STT service offline",
    TRANSCRIPTION_FAILED: "Transcription failed, please record again.",
    NO_SPEECH: "No speech detected",
    PASTE_FAILED: "Paste failed - copied to clipboard",
    NOT_READY: "Recorder is not ready yet.",
    CANCELLED: "Recording cancelled.",
}

SUCCESS_PASTED = "Text pasted"
SUCCESS_COPIED = "Copied to clipboard"


class SettingsValidationError(ValueError):
    """A settings value does not satisfy the settings schema."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        super().__init__(f"invalid value for {key!r}: {value!r} ({reason})")
        self.key = key
        self.value = value
