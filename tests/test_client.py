from __future__ import annotations

import json

import httpx
import pytest

from translatehub.client import OcrHistory, StreamListener, TranslateHubClient
from translatehub.errors import DispatchError


def _client(handler) -> TranslateHubClient:
    return TranslateHubClient("http://hub.test", transport=httpx.MockTransport(handler))


def test_dispatch_realtime_sends_form_and_parses_result() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, json={
            "transcription": "hola",
            "translation": "hello",
            "detectedLanguage": "es",
            "targetLanguage": "en",
            "wasTranslated": True,
            "confidence": 0.9,
            "isRealtime": True,
        })

    result = _client(handler).dispatch_realtime(b"RIFF", source_language="auto", target_language="en", is_realtime=True, channel="room")
    assert seen["path"] == "/api/realtime"
    assert b'name="isRealtime"' in seen["body"] and b"true" in seen["body"]
    assert b'name="channel"' in seen["body"]
    assert result.translation == "hello"
    assert result.was_translated and result.is_realtime


def test_non_ok_raises_dispatch_error_with_server_text() -> None:
    client = _client(lambda request: httpx.Response(400, json={"error": "No audio file provided"}))
    with pytest.raises(DispatchError) as exc:
        client.dispatch_realtime(b"", target_language="en")
    assert exc.value.message == "No audio file provided"
    assert exc.value.status_code == 400


def test_non_json_error_body() -> None:
    client = _client(lambda request: httpx.Response(502, text="Bad Gateway"))
    with pytest.raises(DispatchError, match="Bad Gateway"):
        client.health()


def test_network_failure_is_dispatch_error() -> None:
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(DispatchError, match="Could not reach"):
        _client(handler).translate("hi", "es")


def test_dispatch_voice_maps_response() -> None:
    def handler(request):
        assert request.url.path == "/api/voice"
        assert b'name="baseLanguage"' in request.content
        return httpx.Response(200, json={
            "transcription": "bonjour",
            "translation": "hello",
            "detectedLanguage": "fr",
            "targetLanguage": "en",
            "translatedFrom": "fr",
            "wasTranslated": True,
            "confidence": 0.8,
        })

    result = _client(handler).dispatch_voice(b"RIFF", source_language="fr", target_language="en", is_realtime=False)
    assert result.detected_language == "fr"
    assert result.is_realtime is False


def test_translate_payload() -> None:
    def handler(request):
        body = json.loads(request.content)
        assert body == {"text": "hi", "targetLang": "es", "autoDetect": False, "sourceLang": "en"}
        return httpx.Response(200, json={"translatedText": "hola"})

    assert _client(handler).translate("hi", "es", "en")["translatedText"] == "hola"


def test_srt_and_tts_return_raw_bodies() -> None:
    def handler(request):
        if request.url.path == "/api/video/srt":
            return httpx.Response(200, text="1\n00:00:00,000 --> 00:00:01,000\nx\n\n")
        return httpx.Response(200, content=b"ID3audio", headers={"content-type": "audio/mpeg"})

    client = _client(handler)
    assert client.srt([{"start": 0, "end": 1, "text": "x"}]).startswith("1\n")
    assert client.tts("x") == b"ID3audio"


def test_pdf_result() -> None:
    payload = {"originalText": "t", "summary": "s", "keyPoints": ["k"], "metadata": {"pages": 2}}
    result = _client(lambda request: httpx.Response(200, json=payload)).pdf(b"%PDF")
    assert result.key_points == ["k"]
    assert result.to_dict()["metadata"] == {"pages": 2}


def test_pdf_error_details_kept() -> None:
    payload = {"error": "Scanned PDF", "errorType": "SCANNED_DOCUMENT", "suggestion": "Use OCR"}
    with pytest.raises(DispatchError) as exc:
        _client(lambda request: httpx.Response(400, json=payload)).pdf(b"%PDF")
    assert exc.value.details == {"errorType": "SCANNED_DOCUMENT", "suggestion": "Use OCR"}


def test_ocr_history_caps_at_ten() -> None:
    client = _client(lambda request: httpx.Response(200, json={"success": True, "text": "EXIT", "confidence": 0.9, "language": "en"}))
    ocr = OcrHistory(client)
    for _ in range(12):
        entry = ocr.scan(b"\x89PNG")
    assert entry.text == "EXIT"
    assert len(ocr.history) == 10


def test_ocr_history_skips_empty() -> None:
    client = _client(lambda request: httpx.Response(200, json={"success": False, "error": "No text found in image"}))
    ocr = OcrHistory(client)
    assert ocr.scan(b"\x89PNG") is None
    assert len(ocr.history) == 0


def test_stream_listener_reconnects() -> None:
    attempts = []

    def handler(request):
        attempts.append(request.url.params.get("channel"))
        if len(attempts) == 1:
            raise httpx.ConnectError("down", request=request)
        body = (
            'data: {"type": "connected"}\n\n'
            ": keepalive\n\n"
            'data: {"type": "translation", "translation": "hello"}\n\n'
        )
        return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

    events = []
    listener = StreamListener(events.append, base_url="http://hub.test", channel="room", reconnect_delay=0, transport=httpx.MockTransport(handler))
    listener.run(max_events=1)
    assert attempts == ["room", "room"]
    assert events == [{"type": "translation", "translation": "hello"}]
    assert listener.connections == 1
