from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

EventType = Literal[
    "SEQUENCE_COMMITTED",
    "STAGE_ENTERED",
    "SEQUENCE_ABANDONED",
]


@dataclass(frozen=True, slots=True)
class TransportEvent:
    type: EventType
    stage: str
    payload: dict[str, Any]
    ts: datetime

    @staticmethod
    def now(*, type: EventType, stage: str, payload: dict[str, Any] | None = None) -> "TransportEvent":
        return TransportEvent(type=type, stage=stage, payload=payload or {}, ts=datetime.now(timezone.utc))
