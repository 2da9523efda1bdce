import json
import logging
import queue
import threading
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

log = logging.getLogger(__name__)


def sse_message(data: dict) -> str:
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


class Broadcaster:
    """Fan-out of realtime results to Server-Sent Events subscribers, per channel."""

    def __init__(self, max_queue: int = 100):
        self.max_queue = max_queue
        self._subscribers: Dict[str, List[queue.Queue]] = {}
        self._lock = threading.Lock()

    def subscribe(self, channel: str) -> queue.Queue:
        q: queue.Queue = queue.Queue(maxsize=self.max_queue)
        with self._lock:
            self._subscribers.setdefault(channel, []).append(q)
        return q

    def unsubscribe(self, channel: str, q: queue.Queue) -> None:
        with self._lock:
            subs = self._subscribers.get(channel)
            if not subs:
                return
            if q in subs:
                subs.remove(q)
            if not subs:
                del self._subscribers[channel]

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._subscribers.get(channel, []))

    def publish(self, channel: str, data: dict) -> int:
        with self._lock:
            subs = list(self._subscribers.get(channel, []))
        delivered = 0
        for q in subs:
            try:
                q.put_nowait(data)
                delivered += 1
            except queue.Full:
                log.warning("events: subscriber queue full on channel %s, dropping message", channel)
        return delivered

    def stream(self, channel: str, keepalive: float = 15.0, limit: Optional[int] = None) -> Iterator[str]:
        """Yield SSE frames for one subscriber until the client goes away.

        ``limit`` stops after that many data events (besides the greeting).
        """
        q = self.subscribe(channel)
        try:
            yield sse_message({
                "type": "connected",
                "message": "Real-time translation stream established",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            })
            sent = 0
            while limit is None or sent < limit:
                try:
                    data = q.get(timeout=keepalive)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield sse_message(data)
                sent += 1
        finally:
            self.unsubscribe(channel, q)
