import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, Response, jsonify, redirect, request, stream_with_context
from werkzeug.middleware.proxy_fix import ProxyFix
from werkzeug.utils import secure_filename

from translatehub.chat import HISTORY_LIMIT, build_system_prompt, generation_params
from translatehub.config import Settings, load_settings
from translatehub.errors import InvalidRequest, NoSpeechDetected, ServiceUnavailable, TranslateHubError
from translatehub.events import Broadcaster
from translatehub.gemini import GeminiClient
from translatehub.pdf import PDFAnalyzer
from translatehub import pipeline
from translatehub.stt import SpeechToText
from translatehub.subtitles import parse_subtitles, to_srt
from translatehub.tts import build_synthesizer
from translatehub.usage import UsageTracker

log = logging.getLogger(__name__)


@dataclass
class Services:
    gemini: GeminiClient
    stt: SpeechToText
    tts: object
    pdf: PDFAnalyzer
    usage: UsageTracker
    broadcaster: Broadcaster


def build_services(settings: Settings) -> Services:
    return Services(
        gemini=GeminiClient(settings.gemini_api_key, model=settings.gemini_model),
        stt=SpeechToText(settings.eleven_api_key, model_id=settings.stt_model),
        tts=build_synthesizer(settings),
        pdf=PDFAnalyzer(settings.pdf_server_url, timeout=max(settings.http_timeout, 120.0)),
        usage=UsageTracker(),
        broadcaster=Broadcaster(),
    )


def _form_flag(name: str) -> bool:
    return (request.form.get(name) or "").strip().lower() == "true"


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return data


def _period_arg() -> int:
    try:
        period = int(request.args.get("period", "30"))
    except ValueError:
        raise InvalidRequest("period must be a whole number of days")
    if period < 1:
        raise InvalidRequest("period must be at least 1")
    return period


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> Flask:
    settings = settings or load_settings()
    services = services or build_services(settings)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 200 * 1024 * 1024
    app.config["SETTINGS"] = settings
    app.extensions["translatehub"] = services
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=1)

    @app.before_request
    def enforce_https():
        # Cloudflare sets this header
        if settings.force_https and request.headers.get("X-Forwarded-Proto") == "http":
            return redirect(request.url.replace("http://", "https://", 1), code=301)

    @app.errorhandler(TranslateHubError)
    def handle_translatehub_error(e):
        if e.status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.path, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(413)
    def handle_too_large(e):
        return jsonify({"error": "Upload too large"}), 413

    @app.route("/api/health")
    def health():
        return jsonify({
            "status": "healthy",
            "services": {
                "gemini": services.gemini.available,
                "speech": services.stt.available,
                "tts": settings.tts_provider,
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @app.route("/api/realtime", methods=["POST"])
    def realtime():
        audio = request.files.get("audio")
        source = request.form.get("sourceLanguage") or "auto"
        target = request.form.get("targetLanguage") or "en"
        is_realtime = _form_flag("isRealtime")
        channel = request.form.get("channel") or "default"

        if not audio:
            return jsonify({"error": "No audio file provided"}), 400
        if not services.stt.available:
            return jsonify({"error": "Speech recognition service not available"}), 503

        try:
            result = pipeline.realtime_translate(services, audio.read(), source, target, is_realtime)
        except NoSpeechDetected:
            raise
        except TranslateHubError:
            log.exception("realtime: speech recognition error")
            return jsonify({"error": "Failed to process audio with speech recognition"}), 500

        payload = result.to_dict()
        services.broadcaster.publish(channel, dict(payload, type="translation"))
        return jsonify(payload)

    @app.route("/api/realtime/stream")
    def realtime_stream():
        channel = request.args.get("channel") or "default"
        headers = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
        return Response(
            stream_with_context(services.broadcaster.stream(channel)),
            mimetype="text/event-stream",
            headers=headers,
        )

    @app.route("/api/translate", methods=["POST"])
    def translate():
        data = _json_body()
        text = (data.get("text") or "").strip()
        target = data.get("targetLang")
        source = data.get("sourceLang")
        auto_detect = bool(data.get("autoDetect")) or not source or source == "auto"

        if not text or not target:
            raise InvalidRequest("Text and target language are required")
        log.debug("translate: %d chars -> %s (source=%s, auto=%s)", len(text), target, source, auto_detect)

        if auto_detect:
            detected = pipeline.detect_language(services, text, default="unknown")
            translated = services.gemini.translate_text(text, target, "auto")
            services.usage.record("translation", "gemini", len(text), language=target)
            return jsonify({
                "translatedText": translated,
                "detectedLang": detected,
                "confidence": pipeline.estimate_confidence(text, detected),
            })

        translated = services.gemini.translate_text(text, target, source)
        services.usage.record("translation", "gemini", len(text), language=target)
        return jsonify({"translatedText": translated})

    @app.route("/api/ocr", methods=["GET", "POST"])
    def ocr():
        if request.method == "GET":
            return jsonify({"message": "OCR API is ready"})

        image = request.files.get("image")
        if not image:
            return jsonify({"success": False, "error": "No image file uploaded"}), 400
        if not (image.mimetype or "").startswith("image/"):
            return jsonify({"success": False, "error": "Invalid file type. Please upload an image."}), 400
        content = image.read()
        if len(content) > settings.max_image_bytes:
            limit_mb = settings.max_image_bytes // (1024 * 1024)
            return jsonify({"success": False, "error": f"File too large. Maximum size is {limit_mb}MB."}), 400

        log.info("ocr: processing %s (%d bytes, %s)", image.filename, len(content), image.mimetype)
        try:
            extracted = services.gemini.extract_text(content, image.mimetype)
        except ServiceUnavailable:
            raise
        except TranslateHubError:
            log.exception("ocr: text extraction failed")
            return jsonify({"success": False, "error": "Failed to process image"}), 500
        services.usage.record("ocr", "gemini", 1, language=extracted["language"])

        if not extracted["text"]:
            return jsonify({"success": False, "error": "No text found in image"})
        return jsonify({
            "success": True,
            "text": extracted["text"],
            "confidence": extracted["confidence"],
            "language": extracted["language"],
            "metadata": {"fileName": image.filename, "size": len(content)},
        })

    @app.route("/api/speech", methods=["GET", "POST"])
    def speech():
        if request.method == "GET":
            return jsonify({"message": "Speech API is ready"})
        audio = request.files.get("audio")
        if not audio:
            return jsonify({"error": "No audio file uploaded"}), 400
        language = request.form.get("language") or "en"
        try:
            transcript = services.stt.transcribe(audio.read(), language)
        except ServiceUnavailable:
            raise
        except TranslateHubError:
            return jsonify({"error": "Failed to process audio"}), 500
        return jsonify({"transcription": transcript.text})

    @app.route("/api/voice", methods=["POST"])
    def voice():
        audio = request.files.get("audio")
        target = request.form.get("targetLanguage") or "en"
        base = request.form.get("baseLanguage") or "auto"

        if not audio:
            return jsonify({"error": "No file uploaded"}), 400
        content = audio.read()
        log.info("voice: %s, %d bytes, %s -> %s", audio.filename, len(content), base, target)
        if len(content) < settings.min_voice_bytes:
            return jsonify({"error": "Audio file too small - please record longer audio"}), 400

        try:
            result = pipeline.voice_translate(services, content, base, target)
        except (NoSpeechDetected, ServiceUnavailable):
            raise
        except TranslateHubError as e:
            log.exception("voice: speech recognition failed")
            return jsonify({"error": f"Speech recognition failed for language {base}: {e.message}"}), 400
        result["isRealtime"] = _form_flag("isRealtime")
        return jsonify(result)

    @app.route("/api/video", methods=["POST"])
    def video():
        upload = request.files.get("video")
        source = request.form.get("sourceLanguage") or "en-US"
        target = request.form.get("targetLanguage") or source

        if not upload:
            return jsonify({"error": "No video file provided"}), 400
        extension = os.path.splitext(upload.filename or "")[1].lower().lstrip(".")
        if extension not in pipeline.VIDEO_FORMATS:
            return jsonify({"error": f"Unsupported video format: {extension}"}), 400

        content = upload.read()
        log.info("video: %s (%d bytes), speech=%s subtitles=%s", upload.filename, len(content), source, target)
        result = pipeline.video_subtitles(services, content, source, target)

        subtitles = [s.to_dict() for s in result.subtitles]
        payload = {
            "success": result.success,
            "subtitles": subtitles,
            "totalSegments": len(subtitles),
            "language": result.language,
            "videoInfo": {
                "name": upload.filename,
                "size": len(content),
                "format": extension.upper(),
                "estimatedDuration": subtitles[-1]["end"] if subtitles else 0,
            },
        }
        if result.is_mock:
            payload["isMockData"] = True
        if result.message:
            payload["message" if result.success else "error"] = result.message
        return jsonify(payload)

    @app.route("/api/video/srt", methods=["POST"])
    def video_srt():
        data = _json_body()
        try:
            subtitles = parse_subtitles(data.get("subtitles"))
        except (AttributeError, TypeError, ValueError):
            raise InvalidRequest("subtitles must be a list of {start, end, text}")
        if not subtitles:
            raise InvalidRequest("No subtitles to export")
        language = data.get("targetLanguage") or "en"
        filename = f"subtitles_{language}_{datetime.now(timezone.utc).date().isoformat()}.srt"
        return Response(
            to_srt(subtitles),
            mimetype="text/plain",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.route("/api/tts", methods=["POST"])
    def tts():
        data = _json_body()
        text = (data.get("text") or "").strip()
        language = data.get("language") or "en"
        if not text:
            raise InvalidRequest("Text is required")
        audio = services.tts.synthesize(text, language)
        services.usage.record("text-to-speech", services.tts.provider, len(text), language=language)
        return Response(audio, mimetype="audio/mpeg")

    @app.route("/api/pdf", methods=["POST"])
    def pdf():
        upload = request.files.get("pdf")
        if not upload:
            return jsonify({"error": "No PDF file uploaded"}), 400
        filename = secure_filename(upload.filename or "") or "document.pdf"
        if upload.mimetype != "application/pdf" and not filename.lower().endswith(".pdf"):
            return jsonify({"error": "Invalid file type. Please upload a PDF."}), 400

        result = services.pdf.analyze(
            upload.read(),
            filename,
            source_language=request.form.get("sourceLanguage") or "auto",
            target_language=request.form.get("targetLanguage") or "en",
            include_translation=_form_flag("includeTranslation"),
        )
        services.usage.record("pdf", "remote-pdf", 1, language=request.form.get("targetLanguage") or "")
        return jsonify(result.to_dict())

    @app.route("/api/chatbot", methods=["GET", "POST"])
    def chatbot():
        if request.method == "GET":
            return jsonify({
                "status": "healthy",
                "service": "TranslateHub Chatbot API",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            })

        data = _json_body()
        message = (data.get("message") or "").strip()
        if not message:
            raise InvalidRequest("Message is required")
        context = data.get("context") or {}
        if not isinstance(context, dict):
            raise InvalidRequest("context must be an object")
        history = data.get("conversationHistory") or []
        if not isinstance(history, list):
            history = []

        response = services.gemini.chat(
            message,
            system_prompt=build_system_prompt(context, user_name=data.get("userName") or "User"),
            history=[h for h in history[-HISTORY_LIMIT:] if isinstance(h, dict)],
            **generation_params(context),
        )
        services.usage.record("chat", "gemini", len(message) + len(response))
        return jsonify({
            "response": response,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "context": context.get("currentMode") or "general",
            "conversationMode": context.get("conversationMode") or "general",
        })

    @app.route("/api/user/analytics")
    def user_analytics():
        return jsonify(services.usage.analytics(_period_arg()))

    @app.route("/api/user/cost-tracking", methods=["GET", "POST"])
    def cost_tracking():
        if request.method == "GET":
            return jsonify(services.usage.cost_summary(_period_arg()))

        data = _json_body()
        provider = data.get("apiProvider")
        service = data.get("serviceType")
        if not provider or not service or data.get("usageAmount") is None or data.get("totalCost") is None:
            raise InvalidRequest("Missing required fields")
        try:
            event = services.usage.record(
                service,
                provider,
                float(data["usageAmount"]),
                cost=float(data["totalCost"]),
                currency=data.get("currency") or "USD",
            )
        except (TypeError, ValueError):
            raise InvalidRequest("usageAmount and totalCost must be numbers")
        return jsonify(event.to_dict()), 201

    return app


def main():
    settings = load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    app = create_app(settings)
    # Run the app: visit http://127.0.0.1:5000/api/health
    app.run(host=settings.host, port=settings.port, threaded=True)


if __name__ == "__main__":
    main()
