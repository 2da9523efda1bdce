import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class TranslationResult:
    transcription: str
    translation: str
    detected_language: str
    target_language: str
    was_translated: bool = False
    confidence: float = 0.0
    is_realtime: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transcription": self.transcription,
            "translation": self.translation,
            "detectedLanguage": self.detected_language,
            "targetLanguage": self.target_language,
            "wasTranslated": self.was_translated,
            "confidence": self.confidence,
            "isRealtime": self.is_realtime,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranslationResult":
        transcription = data.get("transcription") or ""
        return cls(
            transcription=transcription,
            translation=data.get("translation") or transcription,
            detected_language=data.get("detectedLanguage") or "",
            target_language=data.get("targetLanguage") or "",
            was_translated=bool(data.get("wasTranslated", False)),
            confidence=float(data.get("confidence") or 0.0),
            is_realtime=bool(data.get("isRealtime", False)),
        )


@dataclass(frozen=True)
class Message:
    role: str
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: str = field(default_factory=_now_iso)
    metadata: Optional[Dict[str, Any]] = None

    def as_history(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class OcrEntry:
    text: str
    confidence: float = 0.0
    language: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: str = field(default_factory=_now_iso)


@dataclass(frozen=True)
class Subtitle:
    start: float
    end: float
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "text": self.text}


@dataclass
class PDFResult:
    original_text: str = ""
    summary: str = ""
    key_points: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    translation: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "originalText": self.original_text,
            "summary": self.summary,
            "keyPoints": list(self.key_points),
            "metadata": dict(self.metadata),
        }
        if self.translation is not None:
            payload["translation"] = self.translation
        return payload
