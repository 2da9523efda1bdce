import logging
from typing import Callable, Optional

from translatehub.audio import MicrophoneSource
from translatehub.capture import CaptureSession, SessionState
from translatehub.errors import DispatchError
from translatehub.models import TranslationResult

log = logging.getLogger(__name__)

MODES = ("standard", "realtime")

# realtime mode: 2s slices, a dispatch every 4s over the last 5 slices
REALTIME_SLICE_SECONDS = 2.0
REALTIME_INTERVAL = 4.0
REALTIME_TAIL = 5


class TranslatorPanel:
    """State of the floating (picture-in-picture) translator.

    Recording goes through a CaptureSession that dispatches to /api/voice;
    typed edits (swap, retarget) go through /api/translate.
    """

    def __init__(
        self,
        client,
        from_lang: str = "auto",
        to_lang: str = "en",
        mode: str = "standard",
        source_factory: Optional[Callable[[float], object]] = None,
        executor=None,
    ):
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}")
        self.client = client
        self.from_lang = from_lang
        self.to_lang = to_lang
        self.mode = mode
        self.original = ""
        self.translation = ""
        self.detected_language = ""
        self.error: Optional[str] = None
        self._source_factory = source_factory or (lambda slice_seconds: MicrophoneSource(slice_seconds=slice_seconds))
        self._executor = executor
        self.session: Optional[CaptureSession] = None

    def _translate(self, text: str, target: str, source: str) -> str:
        auto = not source or source == "auto"
        try:
            payload = self.client.translate(text, target, None if auto else source, auto_detect=auto)
        except DispatchError as e:
            log.warning("panel: translation to %s failed: %s", target, e.message)
            self.error = e.message
            return ""
        self.error = None
        return payload.get("translatedText") or ""

    def swap(self) -> None:
        new_from = self.to_lang
        new_to = self.from_lang if self.from_lang != "auto" else (self.detected_language or "en")
        self.from_lang, self.to_lang = new_from, new_to
        if self.session is not None:
            self.session.source_language = new_from
            self.session.target_language = new_to

        if self.original and self.translation:
            self.original, self.translation = self.translation, self.original
        elif self.original:
            self.translation = self._translate(self.original, self.to_lang, self.from_lang)
        elif self.translation:
            self.original, self.translation = self.translation, ""

    def retarget(self, to_lang: str) -> None:
        """Change the target language, re-translating whatever is on screen."""
        self.to_lang = to_lang
        if self.session is not None:
            self.session.target_language = to_lang
        if self.original:
            self.translation = self._translate(self.original, to_lang, self.from_lang)

    def speak(self) -> bytes:
        """Synthesize the current translation (mp3 bytes)."""
        if not self.translation:
            raise ValueError("nothing to speak")
        return self.client.tts(self.translation, self.to_lang)

    def set_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}")
        if self.session is not None and self.session.state == SessionState.CAPTURING:
            raise RuntimeError("cannot switch mode while recording")
        self.mode = mode
        self.close()

    def clear(self) -> None:
        self.original = ""
        self.translation = ""
        self.detected_language = ""
        self.error = None
        if self.session is not None:
            self.session.reset()

    def _on_result(self, result: TranslationResult) -> None:
        self.original = result.transcription
        self.translation = result.translation
        if result.detected_language:
            self.detected_language = result.detected_language

    def _on_error(self, message: str) -> None:
        self.error = message

    def bind(self) -> CaptureSession:
        """Build the capture session for the current mode."""
        realtime = self.mode == "realtime"
        source = self._source_factory(REALTIME_SLICE_SECONDS if realtime else 1.0)
        self.session = CaptureSession(
            source,
            self.client.dispatch_voice,
            source_language=self.from_lang,
            target_language=self.to_lang,
            tail_chunks=REALTIME_TAIL,
            dispatch_interval=REALTIME_INTERVAL if realtime else None,
            realtime=realtime,
            finalize=not realtime,
            keep_tail=realtime,
            executor=self._executor,
            on_update=self._on_result,
            on_error=self._on_error,
        )
        return self.session

    def start(self) -> CaptureSession:
        session = self.session or self.bind()
        session.source_language = self.from_lang
        session.target_language = self.to_lang
        self.error = None
        session.start()
        return session

    def stop(self) -> None:
        if self.session is not None:
            self.session.stop()

    def close(self) -> None:
        """Tear down the capture session and its dispatch pool."""
        session, self.session = self.session, None
        if session is not None:
            session.close()
