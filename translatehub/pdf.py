import logging
from typing import Optional

import httpx

from translatehub.errors import InvalidRequest, UpstreamError
from translatehub.models import PDFResult

log = logging.getLogger(__name__)


class PDFAnalyzer:
    """Client for the remote PDF-analysis server (summary, key points, translation)."""

    def __init__(self, url: str, timeout: float = 120.0, transport: Optional[httpx.BaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def analyze(
        self,
        pdf_bytes: bytes,
        filename: str,
        source_language: str = "auto",
        target_language: str = "en",
        include_translation: bool = False,
    ) -> PDFResult:
        files = {"pdf": (filename or "document.pdf", pdf_bytes, "application/pdf")}
        data = {
            "sourceLanguage": source_language,
            "targetLanguage": target_language,
            "includeTranslation": "true" if include_translation else "false",
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(self.url, files=files, data=data)
        except httpx.HTTPError as e:
            raise UpstreamError(f"PDF server unreachable: {e}") from e

        try:
            payload = r.json()
        except ValueError:
            payload = None

        if r.status_code >= 400:
            payload = payload if isinstance(payload, dict) else {}
            message = payload.get("error") or f"HTTP {r.status_code}"
            details = {k: payload[k] for k in ("errorType", "suggestion") if k in payload}
            if payload.get("errorType") == "SCANNED_DOCUMENT":
                raise InvalidRequest(message, details=details)
            raise UpstreamError(message, details=details)

        if not isinstance(payload, dict):
            raise UpstreamError("PDF server returned a malformed response")

        key_points = payload.get("keyPoints") or payload.get("key_points") or []
        metadata = payload.get("metadata") or {}
        metadata.setdefault("fileName", filename)
        return PDFResult(
            original_text=payload.get("originalText") or payload.get("original_text") or "",
            summary=payload.get("summary") or "",
            key_points=[str(p) for p in key_points],
            metadata=metadata,
            translation=payload.get("translation"),
        )
