import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from google import genai
from google.genai import types

from translatehub.errors import ServiceUnavailable, UpstreamError
from translatehub.languages import LANGUAGES, language_name

log = logging.getLogger(__name__)

_BARE_CODE = re.compile(r"^([a-z]{2})(?:[-_][a-z]{2,4})?$")
_QUOTED_CODE = re.compile(r"""['"`]([a-z]{2})(?:[-_][a-z]{2,4})?['"`]""")


def _clean_code_fence(text: str) -> str:
    text = text.strip()
    text = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", text)
    text = re.sub(r"\s*```$", "", text)
    return text.strip()


def _extract_json_block(text: str, opener: str = "{", closer: str = "}") -> Optional[str]:
    cleaned = _clean_code_fence(text)
    start = cleaned.find(opener)
    end = cleaned.rfind(closer)
    if start != -1 and end != -1 and end > start:
        return cleaned[start:end + 1]
    return None


class GeminiClient:
    """Thin wrapper around the Gemini generate_content API.

    Every call raises UpstreamError on failure; callers decide whether the
    failure is surfaced or defaulted.
    """

    def __init__(self, api_key: Optional[str], model: str = "gemini-2.5-flash", client: Any = None):
        self.model = model
        if client is not None:
            self._client = client
        elif api_key:
            self._client = genai.Client(api_key=api_key)
        else:
            self._client = None

    @property
    def available(self) -> bool:
        return self._client is not None

    def _generate(self, contents, config: Optional[types.GenerateContentConfig] = None) -> str:
        if self._client is None:
            raise ServiceUnavailable("Generative language service not configured (GEMINI_API_KEY)")
        try:
            response = self._client.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            raise UpstreamError(f"Gemini request failed: {e}") from e
        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise UpstreamError("Gemini returned an empty response")
        return text

    def translate_text(self, input_text: str, target_lang: str, input_lang: str = "auto") -> str:
        """
        Translate text using Google's Gemini model.

        Args:
            input_text (str): The text to translate
            target_lang (str): The target language code (e.g., 'en', 'es', 'fr', 'de')
            input_lang (str, optional): The input language code. Defaults to "auto" for auto-detection.

        Returns:
            str: The translated text
        """
        from_lang = language_name(input_lang)
        to_lang = language_name(target_lang)

        if input_lang in ("auto", "", None):
            prompt = f"Translate the following text to {to_lang}. Only return the translation, nothing else: {input_text}"
        else:
            prompt = (
                f"Translate the following {from_lang} text to {to_lang}. "
                f"Only return the translation, nothing else: {input_text}"
            )
        return self._generate(prompt)

    def translate_batch(self, texts: Sequence[str], target_lang: str, input_lang: str = "auto") -> List[str]:
        """Translate several lines in one request, preserving order and count."""
        if not texts:
            return []
        to_lang = language_name(target_lang)
        prompt = (
            f"Translate each string of the following JSON array from {language_name(input_lang)} to {to_lang}. "
            "Return ONLY a JSON array of strings with exactly the same number of items, in the same order.\n"
            f"{json.dumps(list(texts), ensure_ascii=False)}"
        )
        raw = self._generate(prompt, types.GenerateContentConfig(response_mime_type="application/json"))
        block = _extract_json_block(raw, "[", "]")
        try:
            translated = json.loads(block or raw)
        except ValueError as e:
            raise UpstreamError("Gemini returned malformed batch translation") from e
        if not isinstance(translated, list) or len(translated) != len(texts):
            raise UpstreamError("Gemini batch translation size mismatch")
        return [str(item).strip() for item in translated]

    def detect_language(self, text: str) -> str:
        prompt = (
            "What language is this text written in? Respond with only the two-letter language code "
            f"(e.g., 'en', 'es', 'fr', 'de', etc.). Text: \"{text}\""
        )
        raw = _clean_code_fence(self._generate(prompt)).lower()
        # a bare code ("fr", "fr-FR"), else the first quoted code in a sentence
        match = _BARE_CODE.match(raw.strip(" .'\"`"))
        candidates = [match.group(1)] if match else _QUOTED_CODE.findall(raw)
        for code in candidates:
            if code in LANGUAGES:
                return code
        raise UpstreamError(f"Unexpected language detection answer: {raw!r}")

    def extract_text(self, image_bytes: bytes, mime_type: str) -> Dict[str, Any]:
        """OCR an image. Returns ``{"text", "language", "confidence"}``."""
        image_part = types.Part.from_bytes(data=image_bytes, mime_type=mime_type)
        prompt = (
            "Perform OCR on the image. Return STRICT JSON ONLY with keys: "
            '{"text": "...", "language": "<two-letter code>", "confidence": 0-100}. '
            "Preserve line breaks in 'text'. If there is no text, use an empty string."
        )
        raw = self._generate(
            [prompt, image_part],
            types.GenerateContentConfig(response_mime_type="application/json"),
        )
        block = _extract_json_block(raw)
        if block is None:
            # plain text answer, no metadata
            return {"text": _clean_code_fence(raw), "language": "", "confidence": 0.0}
        try:
            data = json.loads(block)
        except ValueError as e:
            raise UpstreamError("Gemini returned malformed OCR output") from e
        try:
            confidence = float(data.get("confidence") or 0) / 100.0
        except (TypeError, ValueError):
            confidence = 0.0
        return {
            "text": str(data.get("text") or "").strip(),
            "language": str(data.get("language") or "").strip().lower(),
            "confidence": max(0.0, min(1.0, confidence)),
        }

    def chat(
        self,
        message: str,
        *,
        system_prompt: str,
        history: Sequence[Dict[str, str]] = (),
        temperature: float = 0.6,
        max_output_tokens: int = 400,
    ) -> str:
        contents = []
        for item in history:
            role = "model" if item.get("role") == "assistant" else "user"
            content = str(item.get("content") or "")
            if content:
                contents.append(types.Content(role=role, parts=[types.Part(text=content)]))
        contents.append(types.Content(role="user", parts=[types.Part(text=message)]))
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        return self._generate(contents, config)
