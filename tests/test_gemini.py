from __future__ import annotations

from types import SimpleNamespace

import pytest

from translatehub.errors import ServiceUnavailable, UpstreamError
from translatehub.gemini import GeminiClient, _extract_json_block


class _FakeModels:
    def __init__(self, answers):
        self.answers = list(answers)
        self.calls = []

    def generate_content(self, *, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return SimpleNamespace(text=answer)


def _client(*answers):
    models = _FakeModels(answers)
    return GeminiClient(None, model="gemini-test", client=SimpleNamespace(models=models)), models


def test_unconfigured_client_is_unavailable() -> None:
    g = GeminiClient(None)
    assert not g.available
    with pytest.raises(ServiceUnavailable):
        g.translate_text("hi", "es")


def test_translate_prompt_names_languages() -> None:
    g, models = _client("Hola")
    assert g.translate_text("Hello", "es", "en") == "Hola"
    prompt = models.calls[0]["contents"]
    assert "English text to Spanish" in prompt
    assert models.calls[0]["model"] == "gemini-test"


def test_translate_auto_source() -> None:
    g, models = _client("Bonjour")
    g.translate_text("Hello", "fr")
    assert "to French. Only return the translation" in models.calls[0]["contents"]


def test_upstream_exception_is_wrapped() -> None:
    g, _ = _client(RuntimeError("quota"))
    with pytest.raises(UpstreamError, match="quota"):
        g.translate_text("Hello", "fr")


def test_empty_answer_is_an_error() -> None:
    g, _ = _client("   ")
    with pytest.raises(UpstreamError):
        g.translate_text("Hello", "fr")


def test_detect_language_accepts_bare_code() -> None:
    g, _ = _client("ES\n")
    assert g.detect_language("hola") == "es"


def test_detect_language_accepts_region_code() -> None:
    g, _ = _client("fr-FR.")
    assert g.detect_language("bonjour") == "fr"


def test_detect_language_reads_quoted_code_in_sentence() -> None:
    g, _ = _client("The language is 'fr'.")
    assert g.detect_language("bonjour") == "fr"


def test_detect_language_ignores_unquoted_words() -> None:
    g, _ = _client("The language is: is")
    with pytest.raises(UpstreamError):
        g.detect_language("hola")


def test_detect_language_rejects_unknown_code() -> None:
    g, _ = _client("'zz'")
    with pytest.raises(UpstreamError):
        g.detect_language("hola")


def test_detect_language_rejects_garbage() -> None:
    g, _ = _client("Spanish")
    with pytest.raises(UpstreamError):
        g.detect_language("hola")


def test_translate_batch_keeps_order() -> None:
    g, _ = _client('```json\n["uno", "dos"]\n```')
    assert g.translate_batch(["one", "two"], "es", "en") == ["uno", "dos"]


def test_translate_batch_size_mismatch() -> None:
    g, _ = _client('["uno"]')
    with pytest.raises(UpstreamError):
        g.translate_batch(["one", "two"], "es")


def test_extract_text_scales_confidence() -> None:
    g, _ = _client('{"text": "EXIT", "language": "EN", "confidence": 87}')
    assert g.extract_text(b"\x89PNG", "image/png") == {"text": "EXIT", "language": "en", "confidence": 0.87}


def test_extract_text_plain_answer() -> None:
    g, _ = _client("just words")
    assert g.extract_text(b"\x89PNG", "image/png")["text"] == "just words"


def test_chat_maps_assistant_to_model_role() -> None:
    g, models = _client("sure")
    history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
    assert g.chat("help", system_prompt="be brief", history=history) == "sure"
    contents = models.calls[0]["contents"]
    assert [c.role for c in contents] == ["user", "model", "user"]
    assert contents[-1].parts[0].text == "help"
    assert models.calls[0]["config"].system_instruction == "be brief"


def test_extract_json_block() -> None:
    assert _extract_json_block('noise {"a": 1} tail') == '{"a": 1}'
    assert _extract_json_block("nothing here") is None
