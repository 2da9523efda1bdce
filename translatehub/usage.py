import threading
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

# (provider, service) -> USD per unit. Units: characters for text, seconds for audio.
COST_RATES: Dict[tuple, float] = {
    ("gemini", "translation"): 0.000002,
    ("gemini", "language-detection"): 0.000001,
    ("gemini", "chat"): 0.000004,
    ("gemini", "ocr"): 0.0002,
    ("elevenlabs", "speech-to-text"): 0.0001,
    ("elevenlabs", "text-to-speech"): 0.00018,
    ("remote-tts", "text-to-speech"): 0.000016,
    ("remote-pdf", "pdf"): 0.0,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UsageEvent:
    service: str
    provider: str
    units: float
    cost: float
    language: str = ""
    currency: str = "USD"
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["timestamp"] = self.timestamp.isoformat()
        return payload


class UsageTracker:
    """Process-local usage and cost ledger behind the dashboard endpoints."""

    def __init__(self, max_events: int = 10000):
        self.max_events = max_events
        self._events: List[UsageEvent] = []
        self._lock = threading.Lock()

    def record(
        self,
        service: str,
        provider: str,
        units: float,
        *,
        language: str = "",
        cost: Optional[float] = None,
        currency: str = "USD",
        when: Optional[datetime] = None,
    ) -> UsageEvent:
        if cost is None:
            cost = COST_RATES.get((provider, service), 0.0) * float(units)
        event = UsageEvent(
            service=service,
            provider=provider,
            units=float(units),
            cost=float(cost),
            language=language or "",
            currency=currency,
            timestamp=when or _utcnow(),
        )
        with self._lock:
            self._events.append(event)
            if len(self._events) > self.max_events:
                del self._events[: len(self._events) - self.max_events]
        return event

    def events(self, period_days: int = 30, now: Optional[datetime] = None) -> List[UsageEvent]:
        cutoff = (now or _utcnow()) - timedelta(days=period_days)
        with self._lock:
            return [e for e in self._events if e.timestamp >= cutoff]

    def analytics(self, period_days: int = 30, now: Optional[datetime] = None) -> dict:
        events = self.events(period_days, now)
        by_service = Counter(e.service for e in events)
        by_day = Counter(e.timestamp.date().isoformat() for e in events)
        languages = Counter(e.language for e in events if e.language)
        return {
            "period": period_days,
            "totalRequests": len(events),
            "byService": dict(by_service),
            "byDay": dict(sorted(by_day.items())),
            "languages": dict(languages.most_common()),
        }

    def cost_summary(self, period_days: int = 30, now: Optional[datetime] = None) -> dict:
        events = self.events(period_days, now)
        provider_stats: Dict[str, dict] = {}
        service_stats: Dict[str, dict] = {}
        for e in events:
            p = provider_stats.setdefault(e.provider, {"totalCost": 0.0, "totalUsage": 0.0, "serviceTypes": []})
            p["totalCost"] += e.cost
            p["totalUsage"] += e.units
            if e.service not in p["serviceTypes"]:
                p["serviceTypes"].append(e.service)
            s = service_stats.setdefault(e.service, {"totalCost": 0.0, "totalUsage": 0.0, "count": 0})
            s["totalCost"] += e.cost
            s["totalUsage"] += e.units
            s["count"] += 1
        total_cost = sum(e.cost for e in events)
        return {
            "totalCost": total_cost,
            "totalUsage": sum(e.units for e in events),
            "period": period_days,
            "costData": [e.to_dict() for e in reversed(events)],
            "providerStats": provider_stats,
            "serviceStats": service_stats,
            "averageCostPerDay": total_cost / period_days if period_days else 0.0,
        }
