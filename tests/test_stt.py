from __future__ import annotations

from types import SimpleNamespace

import pytest

from translatehub.errors import ServiceUnavailable, UpstreamError
from translatehub.stt import SpeechToText


class _FakeSpeechToText:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    def convert(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return self.response


def _stt(response=None, error=None):
    fake = _FakeSpeechToText(response, error)
    return SpeechToText(None, client=SimpleNamespace(speech_to_text=fake)), fake


def test_transcribe_maps_language_and_words() -> None:
    response = SimpleNamespace(
        text=" hola mundo ",
        language_code="spa",
        language_probability=0.97,
        words=[
            SimpleNamespace(text="hola", start=0.0, end=0.4, type="word"),
            SimpleNamespace(text=" ", start=0.4, end=0.5, type="spacing"),
            SimpleNamespace(text="mundo", start=0.5, end=0.9, type="word"),
        ],
    )
    stt, fake = _stt(response)
    t = stt.transcribe(b"RIFF", "es", timestamps=True)
    assert t.text == "hola mundo"
    assert t.language == "es"
    assert t.confidence == 0.97
    assert [w.text for w in t.words] == ["hola", "mundo"]
    assert fake.kwargs["language_code"] == "spa"
    assert fake.kwargs["timestamps_granularity"] == "word"
    assert fake.kwargs["model_id"] == "scribe_v1"


def test_auto_language_is_left_to_the_service() -> None:
    stt, fake = _stt(SimpleNamespace(text="hi", language_code="eng", language_probability=None, words=None))
    t = stt.transcribe(b"RIFF", "auto")
    assert fake.kwargs["language_code"] is None
    assert t.language == "en"
    assert t.confidence == 0.0


def test_unconfigured() -> None:
    with pytest.raises(ServiceUnavailable):
        SpeechToText(None).transcribe(b"RIFF")


def test_service_failure() -> None:
    stt, _ = _stt(error=RuntimeError("401"))
    with pytest.raises(UpstreamError):
        stt.transcribe(b"RIFF")
