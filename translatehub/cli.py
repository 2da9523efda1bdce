"""Command line entry point.

  translatehub serve                      # run the Flask API
  translatehub live --to es               # live microphone translation
  translatehub live --file talk.wav       # replay a WAV file as the microphone
  translatehub translate "Hola" --to en
  translatehub ocr sign.jpg
  translatehub subtitles clip.mp4 --target es --srt clip.srt
  translatehub chat --mode translate
"""
import argparse
import logging
import mimetypes
import os
import sys
import time

from translatehub.audio import MicrophoneSource, WavFileSource, wait_for
from translatehub.capture import CaptureSession
from translatehub.chat import ChatSession
from translatehub.client import OcrHistory, TranslateHubClient
from translatehub.config import load_settings
from translatehub.errors import TranslateHubError

log = logging.getLogger("translatehub")


def _print_result(result) -> None:
    tag = "live " if result.is_realtime else "final"
    print(f"[{tag}] {result.detected_language or '?'} -> {result.target_language}: {result.transcription}")
    if result.was_translated:
        print(f"        {result.translation}")


def cmd_serve(args) -> int:
    from translatehub.server import create_app

    settings = load_settings()
    app = create_app(settings)
    app.run(host=args.host or settings.host, port=args.port or settings.port, threaded=True)
    return 0


def cmd_live(args) -> int:
    client = TranslateHubClient(args.url)
    if args.file:
        source = WavFileSource(args.file, slice_seconds=args.slice)
    else:
        source = MicrophoneSource(slice_seconds=args.slice)

    def transport(audio, **kwargs):
        return client.dispatch_realtime(audio, channel=args.channel, **kwargs)

    session = CaptureSession(
        source,
        transport,
        source_language=args.source,
        target_language=args.to,
        tail_chunks=args.tail,
        dispatch_interval=args.interval,
        on_update=_print_result,
        on_error=lambda message: print(f"error: {message}", file=sys.stderr),
    )
    session.start()
    print("Recording... press Ctrl+C to stop.", file=sys.stderr)
    try:
        if args.file:
            wait_for(source)
        else:
            while source.active:
                time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    session.stop()
    failed = session.error is not None
    log.info("live: %d final result(s) this run", len(session.history))
    session.close()
    client.close()
    return 1 if failed else 0


def cmd_translate(args) -> int:
    with TranslateHubClient(args.url) as client:
        payload = client.translate(args.text, args.to, args.source, auto_detect=args.source is None)
    print(payload["translatedText"])
    if "detectedLang" in payload:
        print(f"(detected {payload['detectedLang']}, confidence {payload['confidence']:.2f})", file=sys.stderr)
    return 0


def cmd_ocr(args) -> int:
    mime_type = mimetypes.guess_type(args.image)[0] or "image/png"
    with open(args.image, "rb") as f:
        content = f.read()
    with TranslateHubClient(args.url) as client:
        entry = OcrHistory(client).scan(content, os.path.basename(args.image), mime_type)
    if entry is None:
        print("No text found in image", file=sys.stderr)
        return 1
    print(entry.text)
    print(f"(language {entry.language or '?'}, confidence {entry.confidence:.2f})", file=sys.stderr)
    return 0


def cmd_subtitles(args) -> int:
    with open(args.video, "rb") as f:
        content = f.read()
    with TranslateHubClient(args.url, timeout=600.0) as client:
        payload = client.video(content, os.path.basename(args.video), args.source, args.target)
        if payload.get("isMockData"):
            print(f"warning: {payload.get('message') or 'demonstration subtitles'}", file=sys.stderr)
        if not payload.get("success"):
            print(payload.get("error") or "No speech detected", file=sys.stderr)
            return 1
        srt = client.srt(payload["subtitles"], args.target or args.source)
    if args.srt:
        with open(args.srt, "w", encoding="utf-8") as f:
            f.write(srt)
        print(f"wrote {payload['totalSegments']} subtitles to {args.srt}", file=sys.stderr)
    else:
        sys.stdout.write(srt)
    return 0


def cmd_chat(args) -> int:
    with TranslateHubClient(args.url) as client:
        session = ChatSession(client, context={"currentMode": args.mode, "conversationMode": args.conversation})
        print("Type a message, or an empty line to quit.", file=sys.stderr)
        while True:
            try:
                line = input("> ")
            except EOFError:
                break
            if not line.strip():
                break
            try:
                reply = session.send(line)
            except TranslateHubError as e:
                print(f"error: {e.message}", file=sys.stderr)
                continue
            print(reply.content)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="translatehub", description="Multilingual translation toolkit")
    parser.add_argument("--url", help="TranslateHub server (default: $TRANSLATEHUB_URL)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("serve", help="run the API server")
    p.add_argument("--host")
    p.add_argument("--port", type=int)
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser("live", help="live speech translation")
    p.add_argument("--file", help="replay a 16-bit PCM WAV file instead of the microphone")
    p.add_argument("--from", dest="source", default="auto")
    p.add_argument("--to", default="en")
    p.add_argument("--slice", type=float, default=1.0, help="seconds per chunk")
    p.add_argument("--interval", type=float, default=2.0, help="seconds between realtime dispatches")
    p.add_argument("--tail", type=int, default=2, help="chunks per realtime dispatch")
    p.add_argument("--channel", default="default", help="SSE channel to publish on")
    p.set_defaults(func=cmd_live)

    p = sub.add_parser("translate", help="translate text")
    p.add_argument("text")
    p.add_argument("--from", dest="source")
    p.add_argument("--to", required=True)
    p.set_defaults(func=cmd_translate)

    p = sub.add_parser("ocr", help="extract text from an image")
    p.add_argument("image")
    p.set_defaults(func=cmd_ocr)

    p = sub.add_parser("subtitles", help="generate subtitles for a video")
    p.add_argument("video")
    p.add_argument("--source", default="en-US", help="spoken language")
    p.add_argument("--target", help="subtitle language (default: spoken language)")
    p.add_argument("--srt", help="write SRT to this path")
    p.set_defaults(func=cmd_subtitles)

    p = sub.add_parser("chat", help="chat with the language assistant")
    p.add_argument("--mode", default="main", choices=["main", "translate", "speech"])
    p.add_argument("--conversation", default="general")
    p.set_defaults(func=cmd_chat)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        return args.func(args)
    except TranslateHubError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
