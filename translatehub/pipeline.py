"""Speech -> language -> translation flows shared by the HTTP routes.

Background steps (language auto-detection, translation of a transcript) never
fail the request: they log and fall back. Transcription is the authoritative
step and its errors propagate.
"""
import io
import logging
import wave
from dataclasses import dataclass
from typing import List, Optional, Tuple

from translatehub.errors import NoSpeechDetected, TranslateHubError
from translatehub.languages import COMMON_LANGUAGES, base_code
from translatehub.models import Subtitle, TranslationResult
from translatehub.subtitles import demo_subtitles, group_words

log = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.8
VIDEO_FORMATS = ("mp4", "webm", "avi", "mov", "mkv")


@dataclass(frozen=True)
class VideoResult:
    subtitles: List[Subtitle]
    language: str
    is_mock: bool = False
    message: Optional[str] = None

    @property
    def success(self) -> bool:
        return bool(self.subtitles)


def detect_language(services, text: str, default: str = "en") -> str:
    try:
        detected = services.gemini.detect_language(text)
    except TranslateHubError as e:
        log.info("language detection failed, defaulting to %r: %s", default, e)
        return default
    services.usage.record("language-detection", "gemini", len(text), language=detected)
    return detected


def translate_if_needed(services, text: str, source: str, target: str) -> Tuple[str, bool]:
    """Return (translation, was_translated). Same language or failure passes text through."""
    if not text or base_code(source) == base_code(target):
        return text, False
    try:
        translated = services.gemini.translate_text(text, target, source or "auto")
    except TranslateHubError as e:
        log.info("translation %s->%s failed, using original text: %s", source, target, e)
        return text, False
    services.usage.record("translation", "gemini", len(text), language=target)
    return translated, True


def estimate_confidence(text: str, detected: str) -> float:
    """Heuristic confidence for auto-detected translations (the API gives none)."""
    if not detected or detected == "unknown":
        return 0.0
    length = len(text)
    if length > 100:
        confidence = 0.9
    elif length > 50:
        confidence = 0.8
    elif length > 20:
        confidence = 0.7
    else:
        confidence = 0.6
    if detected in COMMON_LANGUAGES:
        confidence = min(confidence + 0.1, 1.0)
    return round(confidence, 2)


def _seconds_of_audio(audio: bytes, transcript) -> float:
    """Billable seconds: the WAV header when there is one, else the last word's end time."""
    if audio[:4] == b"RIFF":
        try:
            with wave.open(io.BytesIO(audio), "rb") as wf:
                if wf.getframerate():
                    return wf.getnframes() / wf.getframerate()
        except (wave.Error, EOFError) as e:
            log.debug("usage: unreadable WAV header, using word timings: %s", e)
    if transcript.words:
        return transcript.words[-1].end
    return 0.0


def realtime_translate(services, audio: bytes, source: str, target: str, is_realtime: bool) -> TranslationResult:
    """Transcribe one capture cycle and translate it into ``target``."""
    transcript = services.stt.transcribe(audio, None if source == "auto" else source)
    services.usage.record("speech-to-text", "elevenlabs", _seconds_of_audio(audio, transcript), language=source)
    if not transcript.text:
        raise NoSpeechDetected("No speech detected in audio")

    detected = source
    if source == "auto":
        detected = detect_language(services, transcript.text)

    translation, was_translated = translate_if_needed(services, transcript.text, detected, target)
    return TranslationResult(
        transcription=transcript.text,
        translation=translation,
        detected_language=detected,
        target_language=target,
        was_translated=was_translated,
        confidence=transcript.confidence or DEFAULT_CONFIDENCE,
        is_realtime=is_realtime,
    )


def voice_translate(services, audio: bytes, base_language: str, target: str) -> dict:
    auto = base_language in ("", "auto")
    transcript = services.stt.transcribe(audio, None if auto else base_language)
    services.usage.record("speech-to-text", "elevenlabs", _seconds_of_audio(audio, transcript), language=base_language)
    if not transcript.text:
        raise NoSpeechDetected(
            "No speech could be transcribed from the audio. "
            "Please speak more clearly or check your microphone."
        )

    if auto:
        detected = transcript.language or detect_language(services, transcript.text)
    else:
        detected = base_code(base_language)

    translation, _ = translate_if_needed(services, transcript.text, detected, target)
    return {
        "transcription": transcript.text,
        "translation": translation,
        "detectedLanguage": detected,
        "targetLanguage": target,
        "translatedFrom": detected,
        "wasTranslated": base_code(detected) != base_code(target),
        "confidence": transcript.confidence,
    }


def translate_subtitles(services, subtitles: List[Subtitle], target: str, source: str) -> List[Subtitle]:
    if not subtitles or base_code(target) == base_code(source):
        return subtitles
    try:
        texts = services.gemini.translate_batch([s.text for s in subtitles], target, source)
    except TranslateHubError as e:
        log.warning("video: subtitle translation failed, keeping originals: %s", e)
        return subtitles
    services.usage.record("translation", "gemini", sum(len(s.text) for s in subtitles), language=target)
    return [Subtitle(start=s.start, end=s.end, text=t) for s, t in zip(subtitles, texts)]


def video_subtitles(services, video: bytes, source_language: str, target_language: str) -> VideoResult:
    source = base_code(source_language)
    target = base_code(target_language) or source
    try:
        transcript = services.stt.transcribe(video, source or None, timestamps=True)
    except TranslateHubError as e:
        log.warning("video: transcription unavailable, returning sample subtitles: %s", e)
        duration = min(30.0, max(5.0, len(video) / 100000))
        return VideoResult(
            subtitles=demo_subtitles(duration, source),
            language=source_language,
            is_mock=True,
            message="Speech recognition failed. Showing sample subtitles for demonstration.",
        )
    services.usage.record("speech-to-text", "elevenlabs", _seconds_of_audio(video, transcript), language=source)

    subtitles = group_words(transcript.words)
    if not subtitles:
        return VideoResult(
            subtitles=[],
            language=source_language,
            message="No speech detected in the video. Please ensure the video contains clear speech audio.",
        )
    source = source or transcript.language
    return VideoResult(
        subtitles=translate_subtitles(services, subtitles, target, source),
        language=target_language or source_language,
    )
