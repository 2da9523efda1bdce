import logging
from typing import Any, Dict, List, Optional

from translatehub.models import Message

log = logging.getLogger(__name__)

HISTORY_LIMIT = 10

BASE_PROMPT = """You are TranslateHub Assistant. Be direct, concise, and helpful. Avoid phrases like "feel free to ask", "I'm here to help", or other redundant politeness. Give specific, actionable answers.

AREAS OF EXPERTISE:
- Translation accuracy, cultural nuances, alternatives (formal/informal, regional)
- Grammar, pronunciation, idioms, conversation practice
- App features: Audio Translator, Text Translator, File to Text
- Troubleshooting: audio quality, recording, file formats, OCR
- Language learning: pronunciation, grammar rules, cultural insights"""

MODE_FOCUS = {
    "main": "CURRENT: Audio Translator - Focus on real-time speech, voice optimization, audio troubleshooting.",
    "translate": "CURRENT: Text Translator - Focus on text accuracy, style, language pairs, batch processing.",
    "speech": "CURRENT: File to Text - Focus on audio files, OCR, transcription accuracy, file formats.",
}


def build_system_prompt(context: Optional[Dict[str, Any]], user_name: str = "User") -> str:
    context = context or {}
    mode = context.get("currentMode") or "main"
    if context.get("systemPrompt"):
        info = f"User: {user_name} | Mode: {mode} | Conversation Mode: {context.get('conversationMode') or 'general'}"
        language = context.get("conversationLanguage")
        if language and language != "auto":
            info += f" | Preferred Language: {language}"
        return f"{context['systemPrompt']}\n\n{info}"

    prompt = f"{BASE_PROMPT}\n\nUser: {user_name} | Mode: {mode}"
    focus = MODE_FOCUS.get(context.get("currentMode"))
    if focus:
        prompt += f"\n\n{focus}"
    return prompt


def generation_params(context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Conversation modes answer shorter and a little more freely."""
    mode = (context or {}).get("conversationMode")
    conversational = bool(mode) and mode != "general"
    return {
        "temperature": 0.8 if conversational else 0.6,
        "max_output_tokens": 300 if conversational else 400,
    }


class ChatSession:
    """Chat transcript for one session; nothing is persisted."""

    def __init__(self, client, context: Optional[Dict[str, Any]] = None):
        self.client = client
        self.context = dict(context or {})
        self.messages: List[Message] = []

    def send(self, text: str) -> Message:
        text = text.strip()
        if not text:
            raise ValueError("message is empty")
        history = [m.as_history() for m in self.messages[-HISTORY_LIMIT:]]
        self.messages.append(Message(role="user", content=text))
        data = self.client.chat(text, context=self.context, history=history)
        reply = Message(
            role="assistant",
            content=data["response"],
            metadata={"context": data.get("context"), "conversationMode": data.get("conversationMode")},
        )
        self.messages.append(reply)
        return reply

    def clear(self) -> None:
        self.messages.clear()
