"""HTTP client for the Whisper-style STT service.

The service exposes two endpoints:

* ``GET <health path>`` on the same host as the transcription URL; 200 means
  the service is up.
* ``POST <transcription URL>?language=<code>&task=transcribe|translate`` with a
  single multipart file part named ``file``, answering ``{"text": "..."}``.

Every failure (connection error, timeout, non-200, malformed JSON) is
returned as a :class:`TranscriptionResult` with ``success=False``.  ``timeout_s`` bounds the
whole request, including a body that trickles in slowly; past it the
response is closed and the result is "Request timed out".
"""

from __future__ import annotations

import json
import logging
import time
from typing import Optional

import httpx

from models import TranscriptionRequest, TranscriptionResult, preview

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://localhost:8000/transcribe"
DEFAULT_HEALTH_PATH = "/health"

_CONTENT_TYPES = {
    ".webm": "audio/webm",
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
    ".mp4": "audio/mp4",
}


def filename_for_mime(mime_type: str) -> str:
    """Pick an upload filename whose extension hints at the audio container."""
    mime_type = (mime_type or "").lower()
    if "mp4" in mime_type:
        return "recording.mp4"
    if "wav" in mime_type:
        return "recording.wav"
    if "mpeg" in mime_type or "mp3" in mime_type:
        return "recording.mp3"
    return "recording.webm"


def content_type_for(filename: str) -> str:
    for ext, content_type in _CONTENT_TYPES.items():
        if filename.endswith(ext):
            return content_type
    return "audio/webm"


class TranscriptionClient:
    def __init__(
        self,
        server_url: str = DEFAULT_SERVER_URL,
        health_path: str = DEFAULT_HEALTH_PATH,
        timeout_s: float = 30.0,
        health_timeout_s: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._server_url = server_url
        self._health_path = health_path
        self._timeout_s = timeout_s
        self._timeout = httpx.Timeout(timeout_s)
        self._health_timeout = httpx.Timeout(health_timeout_s)
        self._client = httpx.Client(transport=transport)

    def health_url(self, server_url: Optional[str] = None) -> str:
        return str(httpx.URL(server_url or self._server_url).join(self._health_path))

    def check_health(self, server_url: Optional[str] = None) -> bool:
        url = server_url or self._server_url
        try:
            url = self.health_url(server_url)
            response = self._client.get(url, timeout=self._health_timeout)
        except Exception as exc:
            logger.warning("STT health check %s failed: %s", url, exc)
            return False
        healthy = response.status_code == 200
        if not healthy:
            logger.warning("STT health check %s returned %s", url, response.status_code)
        return healthy

    def transcribe(
        self,
        audio: bytes,
        mime_type: str,
        language: str = "auto",
        translate_to_english: bool = False,
        server_url: Optional[str] = None,
    ) -> TranscriptionResult:
        request = TranscriptionRequest(
            audio=audio,
            mime_type=mime_type,
            language=language,
            translate_to_english=translate_to_english,
        )
        return self._send(request, server_url or self._server_url)

    def close(self) -> None:
        self._client.close()

    def _send(self, request: TranscriptionRequest, url: str) -> TranscriptionResult:
        params = {}
        if request.language and request.language != "auto":
            params["language"] = request.language
        params["task"] = "translate" if request.translate_to_english else "transcribe"

        filename = filename_for_mime(request.mime_type)
        files = {"file": (filename, request.audio, content_type_for(filename))}
        logger.info(
            "Transcribing %d bytes (%s) at %s, language=%s task=%s",
            len(request.audio), filename, url, request.language, params["task"],
        )

        # httpx times each phase separately; the deadline bounds the whole exchange.
        deadline = time.monotonic() + self._timeout_s
        try:
            with self._client.stream("POST", url, params=params, files=files, timeout=self._timeout) as response:
                status = response.status_code
                body = _read_until(response, deadline)
        except httpx.TimeoutException:
            body = None
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("STT request error: %s", exc)
            return TranscriptionResult(success=False, error=str(exc) or "Connection failed")

        if body is None:
            logger.error("STT request timed out after %.1fs", self._timeout_s)
            return TranscriptionResult(success=False, error="Request timed out")

        if status != 200:
            logger.error("STT server error %s: %s", status, body[:500])
            return TranscriptionResult(success=False, error=f"Server returned {status}")

        try:
            data = json.loads(body)
        except ValueError as exc:
            logger.error("Malformed STT response: %s", exc)
            return TranscriptionResult(success=False, error="Invalid response from server")
        if not isinstance(data, dict):
            logger.error("Malformed STT response: %r", data)
            return TranscriptionResult(success=False, error="Invalid response from server")

        text = str(data.get("text") or "")
        logger.info('Transcription: "%s"', preview(text))
        return TranscriptionResult(success=True, text=text)


def _read_until(response: httpx.Response, deadline: float) -> Optional[bytes]:
    """Read the body, or return None once *deadline* passes.

    Leaving the caller's ``stream()`` block closes the response, which drops
    the connection of an abandoned request.
    """
    chunks = []
    if time.monotonic() > deadline:
        return None
    for chunk in response.iter_bytes():
        if time.monotonic() > deadline:
            return None
        chunks.append(chunk)
    if time.monotonic() > deadline:
        return None
    return b"".join(chunks)
