# Text-to-speech: the remote TTS server, or ElevenLabs streaming synthesis
import logging
from typing import Any, Optional

import httpx
from elevenlabs.client import ElevenLabs

from translatehub.errors import ServiceUnavailable, UpstreamError
from translatehub.languages import tts_voice

log = logging.getLogger(__name__)


class RemoteSynthesizer:
    provider = "remote-tts"

    def __init__(self, url: str, timeout: float = 60.0, transport: Optional[httpx.BaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def synthesize(self, text: str, language: str = "en") -> bytes:
        language_code, voice_name = tts_voice(language)
        body = {"text": text, "languageCode": language_code, "voiceName": voice_name}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(self.url, json=body)
        except httpx.HTTPError as e:
            raise UpstreamError(f"TTS server unreachable: {e}") from e
        if r.status_code >= 400 or not r.content:
            raise UpstreamError("TTS failed", details={"detail": r.text[:500]})
        return r.content


class ElevenLabsSynthesizer:
    provider = "elevenlabs"

    def __init__(
        self,
        api_key: Optional[str],
        voice_id: str = "JBFqnCBsd6RMkjVDRZzb",
        model_id: str = "eleven_multilingual_v2",
        client: Any = None,
    ):
        self.voice_id = voice_id
        self.model_id = model_id
        if client is not None:
            self._client = client
        elif api_key:
            self._client = ElevenLabs(api_key=api_key)
        else:
            self._client = None

    def synthesize(self, text: str, language: str = "en") -> bytes:
        """Synthesize `text` to mp3 bytes using ElevenLabs streaming API.

        The multilingual model picks the language from the text itself.
        """
        if self._client is None:
            raise ServiceUnavailable("Text-to-speech service not configured (ELEVEN_API_KEY)")
        try:
            audio_stream = self._client.text_to_speech.stream(
                text=text,
                voice_id=self.voice_id,
                model_id=self.model_id,
            )
            chunks = [chunk for chunk in audio_stream if isinstance(chunk, bytes)]
        except Exception as e:
            log.exception("tts: elevenlabs synthesis failed")
            raise UpstreamError(f"TTS failed: {e}") from e
        if not chunks:
            raise UpstreamError("TTS returned no audio")
        return b"".join(chunks)


def build_synthesizer(settings):
    if settings.tts_provider == "elevenlabs":
        return ElevenLabsSynthesizer(settings.eleven_api_key, voice_id=settings.voice_id, model_id=settings.tts_model)
    return RemoteSynthesizer(settings.tts_server_url, timeout=settings.http_timeout)
