"""HTTP client for a running TranslateHub server.

``dispatch_realtime`` and ``dispatch_voice`` have the transport signature
CaptureSession expects, so a session can be pointed at either endpoint.
"""
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import httpx

from translatehub.config import client_base_url
from translatehub.errors import DispatchError
from translatehub.history import BoundedHistory
from translatehub.models import OcrEntry, PDFResult, TranslationResult

log = logging.getLogger(__name__)


def _error_from(r: httpx.Response) -> DispatchError:
    try:
        payload = r.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        details = {k: payload[k] for k in ("errorType", "suggestion") if k in payload}
        return DispatchError(str(payload["error"]), status_code=r.status_code, details=details or None)
    text = r.text.strip()
    return DispatchError(text[:500] or f"HTTP {r.status_code}", status_code=r.status_code)


class TranslateHubClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or client_base_url()).rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            r = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise DispatchError(f"Could not reach TranslateHub server: {e}") from e
        if r.status_code >= 400:
            raise _error_from(r)
        return r

    def _json(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        r = self._request(method, path, **kwargs)
        try:
            return r.json()
        except ValueError as e:
            raise DispatchError(f"Malformed response from {path}", status_code=r.status_code) from e

    def health(self) -> Dict[str, Any]:
        return self._json("GET", "/api/health")

    def dispatch_realtime(
        self,
        audio: bytes,
        *,
        source_language: str = "auto",
        target_language: str = "en",
        is_realtime: bool = True,
        channel: Optional[str] = None,
    ) -> TranslationResult:
        data = {
            "sourceLanguage": source_language or "auto",
            "targetLanguage": target_language,
            "isRealtime": "true" if is_realtime else "false",
        }
        if channel:
            data["channel"] = channel
        files = {"audio": ("recording.wav", audio, "audio/wav")}
        return TranslationResult.from_dict(self._json("POST", "/api/realtime", data=data, files=files))

    def dispatch_voice(
        self,
        audio: bytes,
        *,
        source_language: str = "auto",
        target_language: str = "en",
        is_realtime: bool = False,
    ) -> TranslationResult:
        data = {
            "baseLanguage": source_language or "auto",
            "targetLanguage": target_language,
            "isRealtime": "true" if is_realtime else "false",
        }
        files = {"audio": ("recording.wav", audio, "audio/wav")}
        payload = self._json("POST", "/api/voice", data=data, files=files)
        payload.setdefault("isRealtime", is_realtime)
        return TranslationResult.from_dict(payload)

    def translate(self, text: str, target: str, source: Optional[str] = None, auto_detect: bool = False) -> Dict[str, Any]:
        body = {"text": text, "targetLang": target, "autoDetect": auto_detect}
        if source:
            body["sourceLang"] = source
        return self._json("POST", "/api/translate", json=body)

    def ocr(self, image: bytes, filename: str = "image.png", mime_type: str = "image/png") -> Dict[str, Any]:
        return self._json("POST", "/api/ocr", files={"image": (filename, image, mime_type)})

    def speech(self, audio: bytes, language: str = "en", filename: str = "audio.wav") -> str:
        payload = self._json("POST", "/api/speech", data={"language": language}, files={"audio": (filename, audio, "audio/wav")})
        return payload.get("transcription") or ""

    def video(self, video: bytes, filename: str, source: str = "en-US", target: Optional[str] = None) -> Dict[str, Any]:
        data = {"sourceLanguage": source, "targetLanguage": target or source}
        return self._json("POST", "/api/video", data=data, files={"video": (filename, video, "application/octet-stream")})

    def srt(self, subtitles: List[Dict[str, Any]], target: str = "en") -> str:
        r = self._request("POST", "/api/video/srt", json={"subtitles": subtitles, "targetLanguage": target})
        return r.text

    def tts(self, text: str, language: str = "en") -> bytes:
        return self._request("POST", "/api/tts", json={"text": text, "language": language}).content

    def pdf(
        self,
        pdf: bytes,
        filename: str = "document.pdf",
        source: str = "auto",
        target: str = "en",
        include_translation: bool = False,
    ) -> PDFResult:
        data = {
            "sourceLanguage": source,
            "targetLanguage": target,
            "includeTranslation": "true" if include_translation else "false",
        }
        payload = self._json("POST", "/api/pdf", data=data, files={"pdf": (filename, pdf, "application/pdf")})
        return PDFResult(
            original_text=payload.get("originalText") or "",
            summary=payload.get("summary") or "",
            key_points=list(payload.get("keyPoints") or []),
            metadata=payload.get("metadata") or {},
            translation=payload.get("translation"),
        )

    def chat(self, message: str, *, context: Optional[Dict[str, Any]] = None, history: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
        body = {"message": message, "context": context or {}, "conversationHistory": history or []}
        return self._json("POST", "/api/chatbot", json=body)

    def analytics(self, period: int = 30) -> Dict[str, Any]:
        return self._json("GET", "/api/user/analytics", params={"period": period})

    def cost_summary(self, period: int = 30) -> Dict[str, Any]:
        return self._json("GET", "/api/user/cost-tracking", params={"period": period})


class OcrHistory:
    """Scans images through the server and keeps the 10 most recent extractions."""

    def __init__(self, client: TranslateHubClient, history: Optional[BoundedHistory] = None):
        self.client = client
        self.history = history if history is not None else BoundedHistory(10)

    def scan(self, image: bytes, filename: str = "image.png", mime_type: str = "image/png") -> Optional[OcrEntry]:
        payload = self.client.ocr(image, filename, mime_type)
        if not payload.get("success"):
            log.info("ocr: %s", payload.get("error") or "no text found")
            return None
        entry = OcrEntry(
            text=payload.get("text") or "",
            confidence=float(payload.get("confidence") or 0.0),
            language=payload.get("language") or "",
        )
        self.history.add(entry)
        return entry


class StreamListener:
    """Follows /api/realtime/stream, reconnecting after ``reconnect_delay`` on any failure."""

    def __init__(
        self,
        on_event: Callable[[Dict[str, Any]], None],
        base_url: Optional[str] = None,
        channel: str = "default",
        reconnect_delay: float = 3.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.on_event = on_event
        self.base_url = (base_url or client_base_url()).rstrip("/")
        self.channel = channel
        self.reconnect_delay = reconnect_delay
        self._transport = transport
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.connections = 0

    def _follow(self, client: httpx.Client, remaining: Optional[int]) -> int:
        delivered = 0
        with client.stream("GET", "/api/realtime/stream", params={"channel": self.channel}) as r:
            if r.status_code != 200:
                raise DispatchError(f"stream answered HTTP {r.status_code}", status_code=r.status_code)
            self.connections += 1
            for line in r.iter_lines():
                if self._stop.is_set():
                    break
                if not line.startswith("data:"):
                    continue
                try:
                    event = json.loads(line[5:].strip())
                except ValueError:
                    log.warning("stream: skipping malformed event %r", line[:200])
                    continue
                if event.get("type") == "connected":
                    log.debug("stream: connected to channel %s", self.channel)
                    continue
                self.on_event(event)
                delivered += 1
                if remaining is not None and delivered >= remaining:
                    break
        return delivered

    def run(self, max_events: Optional[int] = None) -> None:
        """Deliver events until stopped (or ``max_events`` have been delivered)."""
        delivered = 0
        with httpx.Client(base_url=self.base_url, timeout=httpx.Timeout(10.0, read=None), transport=self._transport) as client:
            while not self._stop.is_set():
                remaining = None if max_events is None else max_events - delivered
                try:
                    delivered += self._follow(client, remaining)
                except (httpx.HTTPError, DispatchError) as e:
                    log.warning("stream: connection lost (%s), reconnecting in %.0fs", e, self.reconnect_delay)
                else:
                    if max_events is not None and delivered >= max_events:
                        return
                    log.info("stream: server closed the stream, reconnecting in %.0fs", self.reconnect_delay)
                self._stop.wait(self.reconnect_delay)

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="sse-listener", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.reconnect_delay + 1)
