import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, List, Optional

from elevenlabs.client import ElevenLabs

from translatehub.errors import ServiceUnavailable, UpstreamError
from translatehub.languages import from_stt_code, to_stt_code

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Word:
    text: str
    start: float
    end: float


@dataclass(frozen=True)
class Transcript:
    text: str
    language: str = ""
    confidence: float = 0.0
    words: List[Word] = field(default_factory=list)


class SpeechToText:
    """Speech recognition backed by ElevenLabs Scribe."""

    def __init__(self, api_key: Optional[str], model_id: str = "scribe_v1", client: Any = None):
        self.model_id = model_id
        if client is not None:
            self._client = client
        elif api_key:
            self._client = ElevenLabs(api_key=api_key)
        else:
            self._client = None

    @property
    def available(self) -> bool:
        return self._client is not None

    def transcribe(self, audio_bytes: bytes, language_code: Optional[str] = None, timestamps: bool = False) -> Transcript:
        """
        Transcribe an audio (or video) clip.

        Args:
            audio_bytes (bytes): Encoded media, any container the service accepts
            language_code (str, optional): UI language code ('en', 'es', ...); None or 'auto' to detect
            timestamps (bool): Keep word timings (needed for subtitles)

        Returns:
            Transcript: text, detected language (two-letter), confidence and words
        """
        if self._client is None:
            raise ServiceUnavailable("Speech recognition service not available")
        try:
            response = self._client.speech_to_text.convert(
                file=BytesIO(audio_bytes),
                model_id=self.model_id,
                language_code=to_stt_code(language_code),
                tag_audio_events=False,
                timestamps_granularity="word" if timestamps else "none",
            )
        except Exception as e:
            log.exception("stt: transcription request failed")
            raise UpstreamError(f"Speech recognition failed: {e}") from e

        words = []
        for w in getattr(response, "words", None) or []:
            if getattr(w, "type", "word") != "word":
                continue
            if w.start is None or w.end is None:
                continue
            words.append(Word(text=str(w.text).strip(), start=float(w.start), end=float(w.end)))

        return Transcript(
            text=(getattr(response, "text", "") or "").strip(),
            language=from_stt_code(getattr(response, "language_code", None)),
            confidence=float(getattr(response, "language_probability", None) or 0.0),
            words=words,
        )
