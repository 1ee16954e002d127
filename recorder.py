"""Microphone capture into in-memory WAV buffers (sounddevice)."""

from __future__ import annotations

import io
import logging
import threading
import wave
from typing import Any, Callable, List, Optional

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

WAV_MIME_TYPE = "audio/wav"

CapturedCallback = Callable[[bytes, str], None]
ErrorCallback = Callable[[str], None]


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> bytes:
    """Wrap raw PCM bytes in a WAV container."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buf.getvalue()


class SoundDeviceRecorder:
    """Collects int16 microphone frames between ``start()`` and ``stop()``.

    ``stop()`` returns immediately; the WAV buffer is delivered later through
    ``on_captured`` from a worker thread, or ``on_error`` when nothing usable
    was recorded.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
        on_captured: Optional[CapturedCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self._on_captured = on_captured
        self._on_error = on_error
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self._chunks: List[bytes] = []
        self._finalize_thread: Optional[threading.Thread] = None

    def bind(self, on_captured: CapturedCallback, on_error: ErrorCallback) -> None:
        self._on_captured = on_captured
        self._on_error = on_error

    def prepare(self) -> bool:
        """Return True when an input device is available."""
        if sd is None or np is None:
            logger.error("sounddevice/numpy is not installed")
            return False
        try:
            device = sd.query_devices(kind="input")
        except Exception as exc:
            logger.error("No input device: %s", exc)
            return False
        logger.info("Input device: %s", device.get("name", "?") if isinstance(device, dict) else device)
        return True

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise RuntimeError("sounddevice is not installed")
            self._chunks = []
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                blocksize=blocksize,
                callback=self._on_audio,
            )
            self._stream.start()
            self._running = True

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            stream, self._stream = self._stream, None
            chunks, self._chunks = self._chunks, []
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as exc:
                logger.warning("Closing input stream failed: %s", exc)
        self._finalize_thread = threading.Thread(target=self._finalize, args=(chunks,), daemon=True)
        self._finalize_thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._finalize_thread
        if thread is not None:
            thread.join(timeout)

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running or np is None:
            return
        if status:
            logger.debug("Input stream status: %s", status)
        self._chunks.append(np.asarray(indata, dtype=np.int16).tobytes())

    def _finalize(self, chunks: List[bytes]) -> None:
        pcm = b"".join(chunks)
        if not pcm:
            logger.warning("No audio data captured")
            self._deliver(self._on_error, "No audio data captured")
            return
        wav = pcm_to_wav(pcm, self.sample_rate, self.channels)
        logger.info("Captured %.1fs of audio", len(pcm) / (2 * self.channels * self.sample_rate))
        self._deliver(self._on_captured, wav, WAV_MIME_TYPE)

    def _deliver(self, callback: Optional[Callable[..., None]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Recorder callback failed")
