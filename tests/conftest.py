from __future__ import annotations

from concurrent.futures import Future
from typing import List, Optional

import pytest

from translatehub.config import Settings
from translatehub.errors import UpstreamError
from translatehub.events import Broadcaster
from translatehub.server import Services, create_app
from translatehub.stt import Transcript, Word
from translatehub.usage import UsageTracker


# --- fakes ---

class FakeGemini:
    available = True

    def __init__(self, detected: str = "es", fail_detect: bool = False, fail_translate: bool = False):
        self.detected = detected
        self.fail_detect = fail_detect
        self.fail_translate = fail_translate
        self.translate_calls: List[tuple] = []
        self.ocr_result = {"text": "STOP", "language": "en", "confidence": 0.95}
        self.chat_calls: List[dict] = []

    def detect_language(self, text: str) -> str:
        if self.fail_detect:
            raise UpstreamError("detect failed")
        return self.detected

    def translate_text(self, text: str, target: str, source: str = "auto") -> str:
        self.translate_calls.append((text, target, source))
        if self.fail_translate:
            raise UpstreamError("translate failed")
        return f"[{target}] {text}"

    def translate_batch(self, texts, target, source="auto"):
        return [f"[{target}] {t}" for t in texts]

    def extract_text(self, image_bytes: bytes, mime_type: str) -> dict:
        return dict(self.ocr_result)

    def chat(self, message, *, system_prompt, history=(), temperature=0.6, max_output_tokens=400):
        self.chat_calls.append({
            "message": message,
            "system_prompt": system_prompt,
            "history": list(history),
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        })
        return f"reply to {message}"


class FakeSTT:
    def __init__(self, transcript: Optional[Transcript] = None, error: Optional[Exception] = None, available: bool = True):
        self.transcript = transcript if transcript is not None else Transcript(text="hola mundo", language="es", confidence=0.9)
        self.error = error
        self.available = available
        self.calls: List[tuple] = []

    def transcribe(self, audio_bytes: bytes, language_code=None, timestamps: bool = False) -> Transcript:
        self.calls.append((len(audio_bytes), language_code, timestamps))
        if self.error is not None:
            raise self.error
        return self.transcript


class FakeTTS:
    provider = "remote-tts"

    def synthesize(self, text: str, language: str = "en") -> bytes:
        return b"ID3" + text.encode()


class FakePDF:
    def __init__(self, result):
        self.result = result
        self.calls: List[dict] = []

    def analyze(self, pdf_bytes, filename, source_language="auto", target_language="en", include_translation=False):
        self.calls.append({"filename": filename, "include_translation": include_translation})
        return self.result


class ImmediateExecutor:
    """Runs submitted work inline."""

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class DeferredExecutor:
    """Queues submitted work until the test runs it, in any order."""

    def __init__(self):
        self.pending: List[tuple] = []

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run(self, index: int):
        future, fn, args, kwargs = self.pending[index]
        future.set_result(fn(*args, **kwargs))
        return future.result()


class FakeSource:
    sample_rate = 16000
    channels = 1

    def __init__(self, fail: Optional[Exception] = None, tail: bytes = b""):
        self.fail = fail
        self.tail = tail
        self.on_chunk = None
        self.opened = 0
        self.closed = 0

    @property
    def active(self) -> bool:
        return self.on_chunk is not None

    def open(self, on_chunk) -> None:
        if self.fail is not None:
            raise self.fail
        self.opened += 1
        self.on_chunk = on_chunk

    def push(self, chunk: bytes) -> None:
        self.on_chunk(chunk)

    def close(self) -> None:
        self.closed += 1
        if self.tail and self.on_chunk is not None:
            self.on_chunk(self.tail)
        self.on_chunk = None


def words(*items):
    return [Word(text=t, start=s, end=e) for t, s, e in items]


# --- fixtures ---

@pytest.fixture
def settings() -> Settings:
    return Settings(gemini_api_key="test", eleven_api_key="test")


@pytest.fixture
def services():
    from translatehub.models import PDFResult

    return Services(
        gemini=FakeGemini(),
        stt=FakeSTT(),
        tts=FakeTTS(),
        pdf=FakePDF(PDFResult(original_text="text", summary="sum", key_points=["a"], metadata={"pages": 1})),
        usage=UsageTracker(),
        broadcaster=Broadcaster(),
    )


@pytest.fixture
def client(settings, services):
    app = create_app(settings, services)
    app.config["TESTING"] = True
    return app.test_client()
