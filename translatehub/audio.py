import array
import io
import logging
import math
import sys
import threading
import time
import wave
from typing import Callable, Iterable, Optional

from translatehub.errors import CaptureError

log = logging.getLogger(__name__)

ChunkCallback = Callable[[bytes], None]


def encode_wav(chunks: Iterable[bytes], sample_rate: int = 16000, channels: int = 1) -> bytes:
    """Pack PCM16 chunks into a single WAV blob."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        for chunk in chunks:
            wf.writeframes(chunk)
    return buf.getvalue()


def rms_level(pcm16: bytes) -> float:
    """RMS of a PCM16 chunk scaled to 0..1, for level meters only."""
    if len(pcm16) < 2:
        return 0.0
    if len(pcm16) % 2:
        pcm16 = pcm16[:-1]
    a = array.array("h")
    a.frombytes(pcm16)
    if sys.byteorder == "big":
        a.byteswap()
    total = sum(s * s for s in a)
    return min(1.0, math.sqrt(total / len(a)) / 32768.0)


class MicrophoneSource:
    """Microphone capture that delivers fixed-duration PCM16 slices.

    Opening the stream is the permission/device gate; failures raise
    CaptureError and are not retried.
    """

    def __init__(self, slice_seconds: float = 1.0, sample_rate: int = 16000, channels: int = 1, device=None):
        self.slice_seconds = slice_seconds
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device
        self._stream = None
        self._pending = bytearray()
        self._on_chunk: Optional[ChunkCallback] = None
        self._lock = threading.Lock()

    @property
    def slice_bytes(self) -> int:
        return int(self.sample_rate * self.slice_seconds) * self.channels * 2

    @property
    def active(self) -> bool:
        return self._stream is not None

    def _callback(self, indata, frames, time_info, status):
        """Callback that receives audio data from sounddevice."""
        if status:
            log.debug("mic: %s", status)
        with self._lock:
            self._pending.extend(bytes(indata))
            ready = []
            while len(self._pending) >= self.slice_bytes:
                ready.append(bytes(self._pending[: self.slice_bytes]))
                del self._pending[: self.slice_bytes]
        for chunk in ready:
            if self._on_chunk is not None:
                self._on_chunk(chunk)

    def open(self, on_chunk: ChunkCallback) -> None:
        # PortAudio is loaded on import; a host without it has no microphone
        try:
            import sounddevice as sd
        except OSError as e:
            raise CaptureError(f"Audio capture unavailable: {e}") from e
        try:
            sd.check_input_settings(device=self.device, channels=self.channels, dtype="int16", samplerate=self.sample_rate)
        except (ValueError, sd.PortAudioError) as e:
            raise CaptureError(f"No usable microphone found: {e}") from e
        self._on_chunk = on_chunk
        try:
            self._stream = sd.RawInputStream(
                samplerate=self.sample_rate,
                blocksize=int(self.sample_rate * 0.1),
                dtype="int16",
                channels=self.channels,
                device=self.device,
                callback=self._callback,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            self._stream = None
            raise CaptureError("Failed to access microphone. Please check permissions.") from e

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
            stream.close()
        with self._lock:
            tail = bytes(self._pending)
            self._pending.clear()
        # flush the partial slice so the final blob holds everything recorded
        if tail and self._on_chunk is not None:
            self._on_chunk(tail)
        self._on_chunk = None


class WavFileSource:
    """Replays a PCM16 WAV file as if it were a live microphone."""

    def __init__(self, path: str, slice_seconds: float = 1.0, realtime: bool = True):
        self.path = path
        self.slice_seconds = slice_seconds
        self.realtime = realtime
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self.finished = threading.Event()
        try:
            with wave.open(path, "rb") as wf:
                if wf.getsampwidth() != 2:
                    raise CaptureError(f"{path}: only 16-bit PCM WAV is supported")
                self.sample_rate = wf.getframerate()
                self.channels = wf.getnchannels()
        except (OSError, wave.Error) as e:
            raise CaptureError(f"Cannot open audio file {path}: {e}") from e

    @property
    def active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _pump(self, on_chunk: ChunkCallback) -> None:
        frames_per_slice = max(1, int(self.sample_rate * self.slice_seconds))
        try:
            with wave.open(self.path, "rb") as wf:
                while not self._stop.is_set():
                    data = wf.readframes(frames_per_slice)
                    if not data:
                        break
                    on_chunk(data)
                    if self.realtime:
                        self._stop.wait(self.slice_seconds)
        finally:
            self.finished.set()

    def open(self, on_chunk: ChunkCallback) -> None:
        self._stop.clear()
        self.finished.clear()
        self._thread = threading.Thread(target=self._pump, args=(on_chunk,), name="wav-source", daemon=True)
        self._thread.start()

    def close(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)


def wait_for(source, timeout: Optional[float] = None) -> None:
    """Block until a finite source (file replay) has delivered everything."""
    finished = getattr(source, "finished", None)
    if finished is None:
        return
    deadline = None if timeout is None else time.monotonic() + timeout
    while not finished.wait(0.1):
        if deadline is not None and time.monotonic() > deadline:
            return
