"""Tests for TranscriptionClient."""

from __future__ import annotations

import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx

from transcription import TranscriptionClient, content_type_for, filename_for_mime

SERVER = "http://stt.local:8000/transcribe"


def _client(handler) -> TranscriptionClient:  # noqa: ANN001
    return TranscriptionClient(server_url=SERVER, transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------
# Health check
# ---------------------------------------------------------------

def test_health_url_replaces_path_and_query() -> None:
    client = TranscriptionClient(server_url=SERVER)
    assert client.health_url() == "http://stt.local:8000/health"
    assert client.health_url("http://other:9000/api/transcribe?x=1") == "http://other:9000/health"


def test_check_health_true_on_200() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"status": "ok"})

    assert _client(handler).check_health() is True
    assert seen == ["http://stt.local:8000/health"]


def test_check_health_false_on_error_status() -> None:
    assert _client(lambda request: httpx.Response(503)).check_health() is False


def test_check_health_false_on_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert _client(handler).check_health() is False


# ---------------------------------------------------------------
# Transcribe
# ---------------------------------------------------------------

def test_transcribe_success_sends_multipart_file() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        captured["method"] = request.method
        captured["params"] = dict(request.url.params)
        captured["content_type"] = request.headers["content-type"]
        captured["body"] = request.content
        return httpx.Response(200, json={"text": "hello world"})

    result = _client(handler).transcribe(b"RIFFdata", "audio/wav", language="en", translate_to_english=False)

    assert result.success is True
    assert result.text == "hello world"
    assert captured["method"] == "POST"
    assert captured["params"] == {"language": "en", "task": "transcribe"}
    assert captured["content_type"].startswith("multipart/form-data")
    assert b'name="file"; filename="recording.wav"' in captured["body"]
    assert b"Content-Type: audio/wav" in captured["body"]
    assert b"RIFFdata" in captured["body"]


def test_transcribe_omits_auto_language_and_translates() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["params"] = dict(request.url.params)
        return httpx.Response(200, json={"text": "bonjour"})

    result = _client(handler).transcribe(b"data", "audio/webm;codecs=opus", language="auto", translate_to_english=True)

    assert result.success is True
    assert captured["params"] == {"task": "translate"}


def test_transcribe_server_error() -> None:
    result = _client(lambda request: httpx.Response(500, text="boom")).transcribe(b"data", "audio/webm")

    assert result.success is False
    assert "500" in result.error


def test_transcribe_malformed_json() -> None:
    result = _client(lambda request: httpx.Response(200, text="<html>")).transcribe(b"data", "audio/webm")

    assert result.success is False
    assert result.error == "Invalid response from server"


def test_transcribe_non_object_json() -> None:
    result = _client(lambda request: httpx.Response(200, json=["hello"])).transcribe(b"data", "audio/webm")

    assert result.success is False


def test_transcribe_missing_text_is_empty_success() -> None:
    result = _client(lambda request: httpx.Response(200, json={})).transcribe(b"data", "audio/webm")

    assert result.success is True
    assert result.text == ""


def test_transcribe_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    result = _client(handler).transcribe(b"data", "audio/webm")

    assert result.success is False
    assert "timed out" in result.error


def test_transcribe_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = _client(handler).transcribe(b"data", "audio/webm")

    assert result.success is False
    assert "connection refused" in result.error


def test_filename_and_content_type_follow_mime() -> None:
    assert filename_for_mime("audio/webm;codecs=opus") == "recording.webm"
    assert filename_for_mime("audio/mp4") == "recording.mp4"
    assert filename_for_mime("audio/wav") == "recording.wav"
    assert filename_for_mime("") == "recording.webm"
    assert content_type_for("recording.mp4") == "audio/mp4"
    assert content_type_for("recording.mp3") == "audio/mpeg"


class _SlowBodyHandler(BaseHTTPRequestHandler):
    body = b'{"text": "late reply"}'

    def do_POST(self) -> None:  # noqa: N802
        length = int(self.headers.get("Content-Length") or 0)
        if length:
            self.rfile.read(length)
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(self.body)))
        self.end_headers()
        try:
            for i in range(0, len(self.body), 3):
                self.wfile.write(self.body[i:i + 3])
                self.wfile.flush()
                time.sleep(0.2)
        except OSError:
            pass  # client gave up

    def log_message(self, format, *args) -> None:  # noqa: A002, ANN001, ANN002
        pass


def test_transcribe_deadline_covers_slow_body() -> None:
    server = ThreadingHTTPServer(("127.0.0.1", 0), _SlowBodyHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        url = f"http://127.0.0.1:{server.server_address[1]}/transcribe"
        client = TranscriptionClient(server_url=url, timeout_s=0.5)

        started = time.monotonic()
        result = client.transcribe(b"data", "audio/wav")
        elapsed = time.monotonic() - started
        client.close()
    finally:
        server.shutdown()
        server.server_close()

    assert result.success is False
    assert result.error == "Request timed out"
    assert elapsed < 1.2
