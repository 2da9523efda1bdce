"""Capture -> chunk -> periodic dispatch -> render -> teardown.

One CaptureSession drives every recording screen: the live translator and the
translator panel. Chunks from a source are buffered; a ticker ships the tail
of the buffer every ``dispatch_interval`` seconds and ``stop()`` ships the
whole buffer as the authoritative final request.

Dispatches may overlap. Each carries (session id, sequence number) and a
result is applied only if it belongs to the current session, is newer than the
last applied result, and, once the session is stopped, is the final dispatch.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from translatehub.audio import encode_wav, rms_level
from translatehub.errors import TranslateHubError
from translatehub.history import BoundedHistory
from translatehub.models import TranslationResult

log = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Ticket:
    session_id: int
    seq: int
    is_realtime: bool


class ChunkBuffer:
    def __init__(self):
        self._chunks: List[bytes] = []
        self._lock = threading.Lock()

    def append(self, chunk: bytes) -> None:
        with self._lock:
            self._chunks.append(chunk)

    def tail(self, n: int) -> List[bytes]:
        with self._lock:
            return list(self._chunks[-n:]) if n > 0 else []

    def all(self) -> List[bytes]:
        with self._lock:
            return list(self._chunks)

    def keep_last(self, n: int) -> None:
        with self._lock:
            if len(self._chunks) > n:
                del self._chunks[:-n]

    def clear(self) -> None:
        with self._lock:
            self._chunks.clear()

    def __len__(self) -> int:
        return len(self._chunks)


class Ticker:
    """Calls ``fn`` every ``interval`` seconds on a daemon thread."""

    def __init__(self, interval: float, fn: Callable[[], object], name: str = "dispatch-ticker"):
        self.interval = interval
        self.fn = fn
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.fn()
            except Exception:
                log.exception("ticker: tick failed")

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1)


class CaptureSession:
    """Reusable capture/dispatch state machine: IDLE -> CAPTURING -> STOPPED -> IDLE.

    ``transport(audio, source_language=..., target_language=..., is_realtime=...)``
    performs one dispatch and returns a TranslationResult or raises a
    TranslateHubError.
    """

    def __init__(
        self,
        source,
        transport: Callable[..., TranslationResult],
        *,
        source_language: str = "auto",
        target_language: str = "en",
        tail_chunks: int = 2,
        dispatch_interval: Optional[float] = 2.0,
        realtime: bool = True,
        finalize: bool = True,
        keep_tail: bool = False,
        history: Optional[BoundedHistory] = None,
        executor=None,
        on_update: Optional[Callable[[TranslationResult], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ):
        self.source = source
        self.transport = transport
        self.source_language = source_language
        self.target_language = target_language
        self.tail_chunks = tail_chunks
        self.dispatch_interval = dispatch_interval
        self.realtime = realtime
        self.finalize = finalize
        self.keep_tail = keep_tail
        self.history = history if history is not None else BoundedHistory(10)
        self.on_update = on_update
        self.on_error = on_error

        self._own_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="dispatch")
        self._ticker: Optional[Ticker] = None
        self._lock = threading.RLock()
        self.buffer = ChunkBuffer()

        self.state = SessionState.IDLE
        self.transcription = ""
        self.translation = ""
        self.last_result: Optional[TranslationResult] = None
        self.error: Optional[str] = None
        self.level = 0.0
        self._session_id = 0
        self._seq = 0
        self._applied_seq = 0
        self._in_flight = 0

    @property
    def session_id(self) -> int:
        return self._session_id

    @property
    def processing(self) -> bool:
        return self._in_flight > 0

    @property
    def sample_rate(self) -> int:
        return getattr(self.source, "sample_rate", 16000)

    @property
    def channels(self) -> int:
        return getattr(self.source, "channels", 1)

    def start(self) -> None:
        with self._lock:
            if self.state == SessionState.CAPTURING:
                raise RuntimeError("capture session already running")
            self._session_id += 1
            self._applied_seq = self._seq
            self.buffer.clear()
            self.transcription = ""
            self.translation = ""
            self.last_result = None
            self.error = None
            self.level = 0.0
            self.state = SessionState.CAPTURING
        try:
            self.source.open(self._on_chunk)
        except Exception as e:
            with self._lock:
                self.state = SessionState.IDLE
                self.error = getattr(e, "message", None) or str(e)
            raise
        if self.realtime and self.dispatch_interval:
            self._ticker = Ticker(self.dispatch_interval, self.tick)
            self._ticker.start()
        log.info("capture: session %d started (%s -> %s)", self._session_id, self.source_language, self.target_language)

    def _on_chunk(self, chunk: bytes) -> None:
        if self.state != SessionState.CAPTURING or not chunk:
            return
        self.buffer.append(chunk)
        self.level = rms_level(chunk)

    def tick(self) -> Optional[Future]:
        """Ship the most recent chunks as one realtime dispatch."""
        if self.state != SessionState.CAPTURING or not self.realtime:
            return None
        chunks = self.buffer.tail(self.tail_chunks)
        if not chunks:
            return None
        future = self._dispatch(encode_wav(chunks, self.sample_rate, self.channels), is_realtime=True)
        if self.keep_tail:
            self.buffer.keep_last(self.tail_chunks)
        return future

    def stop(self, wait: bool = True, finalize: Optional[bool] = None) -> Optional[Future]:
        """Release the source and ship the entire buffer as the final dispatch.

        ``finalize`` overrides the session default for this stop only.
        """
        with self._lock:
            if self.state != SessionState.CAPTURING:
                return None
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None
        try:
            self.source.close()
        finally:
            with self._lock:
                self.state = SessionState.STOPPED
                self.level = 0.0
        log.info("capture: session %d stopped with %d chunks", self._session_id, len(self.buffer))

        chunks = self.buffer.all()
        if finalize is None:
            finalize = self.finalize
        if not finalize or not chunks:
            return None
        future = self._dispatch(encode_wav(chunks, self.sample_rate, self.channels), is_realtime=False)
        if wait:
            future.result()
        return future

    def reset(self) -> None:
        """Back to IDLE; anything still in flight is discarded when it lands."""
        self.stop(wait=False, finalize=False)
        with self._lock:
            self._session_id += 1
            self.buffer.clear()
            self.transcription = ""
            self.translation = ""
            self.last_result = None
            self.error = None
            self.state = SessionState.IDLE

    def close(self) -> None:
        self.reset()
        if self._own_executor:
            self._executor.shutdown(wait=False)

    def _dispatch(self, audio: bytes, is_realtime: bool) -> Future:
        with self._lock:
            self._seq += 1
            ticket = Ticket(self._session_id, self._seq, is_realtime)
            self._in_flight += 1
        future = self._executor.submit(self._run, ticket, audio)
        future.add_done_callback(self._report_crash)
        return future

    @staticmethod
    def _report_crash(future: Future) -> None:
        if future.cancelled():
            return
        e = future.exception()
        if e is not None:
            log.error("capture: dispatch crashed", exc_info=e)

    def _run(self, ticket: Ticket, audio: bytes) -> bool:
        try:
            result = self.transport(
                audio,
                source_language=self.source_language,
                target_language=self.target_language,
                is_realtime=ticket.is_realtime,
            )
        except TranslateHubError as e:
            self._fail(ticket, e)
            return False
        finally:
            with self._lock:
                self._in_flight -= 1
        return self._apply(ticket, result)

    def _apply(self, ticket: Ticket, result: TranslationResult) -> bool:
        with self._lock:
            if ticket.session_id != self._session_id:
                log.debug("capture: dropping result of ended session %d", ticket.session_id)
                return False
            if ticket.is_realtime and self.state != SessionState.CAPTURING:
                log.debug("capture: dropping realtime result %d that landed after stop", ticket.seq)
                return False
            if ticket.seq <= self._applied_seq:
                log.debug("capture: dropping superseded result %d (applied %d)", ticket.seq, self._applied_seq)
                return False
            self._applied_seq = ticket.seq
            self.transcription = result.transcription
            self.translation = result.translation
            self.last_result = result
            if not ticket.is_realtime:
                self.history.add(result)
        if self.on_update is not None:
            self.on_update(result)
        return True

    def _fail(self, ticket: Ticket, e: TranslateHubError) -> None:
        if ticket.is_realtime:
            log.warning("capture: realtime dispatch %d failed: %s", ticket.seq, e.message)
            return
        with self._lock:
            if ticket.session_id != self._session_id:
                return
            self.error = e.message or "Processing failed"
        log.error("capture: final dispatch failed: %s", e.message)
        if self.on_error is not None:
            self.on_error(self.error)
