"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class TriggerSource(str, Enum):
    HOTKEY = "hotkey"
    BUTTON = "button"


@dataclass(frozen=True)
class AppIdentity:
    """Snapshot of a foreground application for later re-activation."""

    name: str = ""
    pid: int = 0
    handle: int = 0  # native window handle where the platform has one

    def matches(self, other: Optional["AppIdentity"]) -> bool:
        if other is None:
            return False
        if self.pid and other.pid:
            return self.pid == other.pid
        return bool(self.name) and self.name == other.name

    def __str__(self) -> str:
        return f"{self.name or '?'} (pid={self.pid})"


@dataclass
class RecordingSession:
    trigger_source: TriggerSource
    target_application: Optional[AppIdentity] = None
    state: SessionState = SessionState.RECORDING


@dataclass(frozen=True)
class ClipboardSnapshot:
    original_text: str


@dataclass
class TranscriptionRequest:
    audio: bytes
    mime_type: str = "audio/webm"
    language: str = "auto"
    translate_to_english: bool = False


@dataclass
class TranscriptionResult:
    success: bool
    text: str = ""
    error: str = ""


@dataclass
class PasteResult:
    success: bool
    error: str = ""
    clipboard_only: bool = False


@dataclass
class HistoryEntry:
    id: int
    text: str
    timestamp: str


def preview(text: str, limit: int = 50) -> str:
    """Shorten *text* for log lines."""
    return text if len(text) <= limit else text[:limit] + "..."
