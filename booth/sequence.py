from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from booth.api.models import TransportStage
from booth.core.events import TransportEvent
from booth.destinations.registry import Destination
from booth.endpoints import TransportEndpoint


def _new_sequence_id() -> str:
    return uuid4().hex


@dataclass(slots=True)
class TransportSequence:
    """One in-flight transport attempt.

    Only the sequencer that was handed this record may advance it.
    """

    traveler_id: str
    origin_endpoint: TransportEndpoint
    destination_endpoint: TransportEndpoint
    destination: Destination
    stage: TransportStage = TransportStage.committed
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    sequence_id: str = field(default_factory=_new_sequence_id)
    history: list[TransportEvent] = field(default_factory=list)
