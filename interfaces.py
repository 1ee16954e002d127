"""Protocol interfaces used by RecordingOrchestrator."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from models import AppIdentity, PasteResult, TranscriptionResult


class AudioCapture(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


class Transcriber(Protocol):
    def check_health(self, server_url: Optional[str] = None) -> bool: ...

    def transcribe(
        self,
        audio: bytes,
        mime_type: str,
        language: str = "auto",
        translate_to_english: bool = False,
        server_url: Optional[str] = None,
    ) -> TranscriptionResult: ...


class PasteService(Protocol):
    def paste(self, text: str, target_application: Optional[AppIdentity] = None) -> PasteResult: ...


class ForegroundQuery(Protocol):
    def get_foreground_application(self) -> Optional[AppIdentity]: ...


class ClipboardWriter(Protocol):
    def copy(self, text: str) -> None: ...


class SettingsStore(Protocol):
    def get_settings(self) -> Dict[str, Any]: ...

    def get(self, key: str) -> Any: ...

    def set_settings(self, partial: Dict[str, Any]) -> Dict[str, Any]: ...
