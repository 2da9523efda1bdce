from __future__ import annotations

import pytest
from conftest import FakeGemini, FakeSTT, words

from translatehub import pipeline
from translatehub.audio import encode_wav
from translatehub.errors import NoSpeechDetected, UpstreamError
from translatehub.stt import Transcript


def test_detect_language_falls_back_to_en(services) -> None:
    services.gemini = FakeGemini(fail_detect=True)
    assert pipeline.detect_language(services, "??") == "en"
    assert services.usage.events() == []


def test_same_language_passes_through(services) -> None:
    text, translated = pipeline.translate_if_needed(services, "hello", "en-US", "en")
    assert (text, translated) == ("hello", False)
    assert services.gemini.translate_calls == []


def test_translation_failure_passes_through(services) -> None:
    services.gemini = FakeGemini(fail_translate=True)
    assert pipeline.translate_if_needed(services, "hola", "es", "en") == ("hola", False)


def test_realtime_auto_detects_and_translates(services) -> None:
    r = pipeline.realtime_translate(services, b"RIFF", "auto", "en", True)
    assert r.transcription == "hola mundo"
    assert r.translation == "[en] hola mundo"
    assert r.detected_language == "es"
    assert r.was_translated and r.is_realtime
    assert services.stt.calls[0][1] is None


def test_realtime_detect_failure_uses_en(services) -> None:
    services.gemini = FakeGemini(fail_detect=True)
    r = pipeline.realtime_translate(services, b"RIFF", "auto", "en", False)
    assert r.detected_language == "en"
    assert r.translation == r.transcription
    assert not r.was_translated


def test_realtime_no_speech(services) -> None:
    services.stt = FakeSTT(Transcript(text=""))
    with pytest.raises(NoSpeechDetected):
        pipeline.realtime_translate(services, b"RIFF", "es", "en", True)


def test_estimate_confidence() -> None:
    assert pipeline.estimate_confidence("x" * 120, "es") == 1.0
    assert pipeline.estimate_confidence("x" * 60, "hi") == 0.8
    assert pipeline.estimate_confidence("short", "en") == 0.7
    assert pipeline.estimate_confidence("short", "unknown") == 0.0


def test_voice_prefers_service_language(services) -> None:
    result = pipeline.voice_translate(services, b"RIFF", "auto", "en")
    assert result["detectedLanguage"] == "es"
    assert result["wasTranslated"] is True
    assert result["translatedFrom"] == "es"


def test_video_groups_and_translates(services) -> None:
    services.stt = FakeSTT(Transcript(text="Hello there. Bye", words=words(("Hello", 0, 0.5), ("there.", 0.5, 1.0), ("Bye", 1.2, 1.5))))
    result = pipeline.video_subtitles(services, b"video", "en-US", "es")
    assert result.success and not result.is_mock
    assert [s.text for s in result.subtitles] == ["[es] Hello there.", "[es] Bye"]
    assert result.language == "es"


def test_video_same_language_not_translated(services) -> None:
    services.stt = FakeSTT(Transcript(text="Hi.", words=words(("Hi.", 0, 0.5))))
    result = pipeline.video_subtitles(services, b"video", "en-US", "en")
    assert [s.text for s in result.subtitles] == ["Hi."]


def test_video_stt_failure_gives_demo(services) -> None:
    services.stt = FakeSTT(error=UpstreamError("down"))
    result = pipeline.video_subtitles(services, b"x" * 1_000_000, "fr-FR", "fr")
    assert result.is_mock
    assert len(result.subtitles) == 6
    assert result.subtitles[-1].end == 10.0


def test_video_without_speech(services) -> None:
    services.stt = FakeSTT(Transcript(text="", words=[]))
    result = pipeline.video_subtitles(services, b"video", "en", "es")
    assert not result.success
    assert result.message.startswith("No speech detected")


def test_realtime_bills_wav_duration(services) -> None:
    one_second = encode_wav([b"\x00\x00" * 16000], 16000, 1)
    pipeline.realtime_translate(services, one_second, "auto", "en", True)
    stt = [e for e in services.usage.events() if e.service == "speech-to-text"]
    assert [e.units for e in stt] == [1.0]
    assert stt[0].cost > 0


def test_voice_bills_word_timings_without_wav_header(services) -> None:
    services.stt = FakeSTT(Transcript(text="hola", language="es", words=words(("hola", 0, 2.5))))
    pipeline.voice_translate(services, b"not a wav", "es-ES", "en")
    stt = [e for e in services.usage.events() if e.service == "speech-to-text"]
    assert stt[0].units == 2.5
