"""Configuration: environment defaults plus JSON settings and history stores."""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

from errors import SettingsValidationError
from models import HistoryEntry

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "flowtype"
MAX_HISTORY_ITEMS = 100


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() == "true"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


@dataclass
class AppConfig:
    """Process-wide defaults, read once from the environment / ``.env``."""

    app_name: str = "Flowtype"
    debug: bool = False
    stt_server_url: str = "http://localhost:8000/transcribe"
    stt_health_endpoint: str = "/health"
    stt_timeout_ms: int = 30000
    default_shortcut: str = "CommandOrControl+Shift+."
    default_whisper_model: str = "base"
    default_language: str = "auto"
    default_auto_paste: bool = True
    default_translate_to_english: bool = True
    overlay_width: int = 300
    overlay_height: int = 70
    overlay_margin: int = 20

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "AppConfig":
        load_dotenv(dotenv_path=env_file)
        defaults = cls()
        config = cls(
            app_name=os.getenv("APP_NAME") or defaults.app_name,
            debug=_env_bool("DEBUG", defaults.debug),
            stt_server_url=os.getenv("STT_SERVER_URL") or defaults.stt_server_url,
            stt_health_endpoint=os.getenv("STT_HEALTH_ENDPOINT") or defaults.stt_health_endpoint,
            stt_timeout_ms=_env_int("STT_TIMEOUT", defaults.stt_timeout_ms),
            default_shortcut=os.getenv("DEFAULT_SHORTCUT") or defaults.default_shortcut,
            default_whisper_model=os.getenv("DEFAULT_WHISPER_MODEL") or defaults.default_whisper_model,
            default_language=os.getenv("DEFAULT_LANGUAGE") or defaults.default_language,
            default_auto_paste=_env_bool("DEFAULT_AUTO_PASTE", defaults.default_auto_paste),
            default_translate_to_english=_env_bool(
                "DEFAULT_TRANSLATE_TO_ENGLISH", defaults.default_translate_to_english
            ),
            overlay_width=_env_int("OVERLAY_WIDTH", defaults.overlay_width),
            overlay_height=_env_int("OVERLAY_HEIGHT", defaults.overlay_height),
            overlay_margin=_env_int("OVERLAY_MARGIN", defaults.overlay_margin),
        )
        if config.debug:
            logger.debug("Loaded configuration: %s", config)
        return config

    def settings_defaults(self) -> Dict[str, Any]:
        return {
            "shortcut": self.default_shortcut,
            "whisperModel": self.default_whisper_model,
            "language": self.default_language,
            "sttServerUrl": self.stt_server_url,
            "autoPaste": self.default_auto_paste,
            "translateToEnglish": self.default_translate_to_english,
            "theme": "light",
        }


# key -> (type, allowed values or None)
SETTINGS_SCHEMA: Dict[str, Tuple[type, Optional[Tuple[str, ...]]]] = {
    "shortcut": (str, None),
    "whisperModel": (str, ("tiny", "base", "small", "medium", "large")),
    "language": (str, ("auto", "en", "es", "fr", "de", "ja", "zh")),
    "sttServerUrl": (str, None),
    "autoPaste": (bool, None),
    "translateToEnglish": (bool, None),
    "theme": (str, ("light", "dark")),
}


def validate_setting(key: str, value: Any) -> None:
    kind, allowed = SETTINGS_SCHEMA[key]
    # bool is an int subclass; require exact types.
    if type(value) is not kind:
        raise SettingsValidationError(key, value, f"expected {kind.__name__}")
    if allowed is not None and value not in allowed:
        raise SettingsValidationError(key, value, f"expected one of {', '.join(allowed)}")


class _JsonFile:
    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


class JsonSettingsStore(_JsonFile):
    def __init__(self, path: Optional[Path] = None, defaults: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(path or CONFIG_DIR / "settings.json")
        self._defaults = dict(defaults or AppConfig().settings_defaults())

    def get_settings(self) -> Dict[str, Any]:
        stored = self._read_all()
        settings = dict(self._defaults)
        for key in SETTINGS_SCHEMA:
            if key not in stored:
                continue
            try:
                validate_setting(key, stored[key])
            except SettingsValidationError as exc:
                logger.warning("Dropping stored setting: %s", exc)
                continue
            settings[key] = stored[key]
        return settings

    def get(self, key: str) -> Any:
        return self.get_settings().get(key)

    def set_settings(self, partial: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and persist the known keys of *partial*; unknown keys are ignored.

        Nothing is written when any known key fails validation.
        """
        updates = {}
        for key, value in partial.items():
            if key not in SETTINGS_SCHEMA:
                logger.debug("Ignoring unknown setting %r", key)
                continue
            validate_setting(key, value)
            updates[key] = value
        with self._lock:
            data = self._read_all()
            data.update(updates)
            self._write_all(data)
        return self.get_settings()

    def set(self, key: str, value: Any) -> None:
        self.set_settings({key: value})

    def reset(self) -> Dict[str, Any]:
        with self._lock:
            self._write_all({})
        return self.get_settings()


class JsonHistoryStore(_JsonFile):
    """Newest-first transcription history, capped at ``max_items``."""

    def __init__(self, path: Optional[Path] = None, max_items: int = MAX_HISTORY_ITEMS) -> None:
        super().__init__(path or CONFIG_DIR / "history.json")
        self.max_items = max_items

    def list(self) -> List[HistoryEntry]:
        items = self._read_all().get("history", [])
        entries = []
        for item in items:
            try:
                entries.append(HistoryEntry(id=int(item["id"]), text=str(item["text"]), timestamp=str(item["timestamp"])))
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed history item %r", item)
        return entries

    def add(self, text: str, timestamp: Optional[str] = None) -> HistoryEntry:
        with self._lock:
            entries = self.list()
            last_id = max((e.id for e in entries), default=0)
            entry = HistoryEntry(
                id=max(int(time.time() * 1000), last_id + 1),
                text=text,
                timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
            )
            self._save([entry, *entries][: self.max_items])
        return entry

    def delete(self, entry_id: int) -> List[HistoryEntry]:
        with self._lock:
            entries = [e for e in self.list() if e.id != entry_id]
            self._save(entries)
        return entries

    def clear(self) -> None:
        with self._lock:
            self._save([])

    def _save(self, entries: List[HistoryEntry]) -> None:
        self._write_all({"history": [{"id": e.id, "text": e.text, "timestamp": e.timestamp} for e in entries]})
