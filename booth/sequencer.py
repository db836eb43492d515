from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from booth.api.models import TransportStage
from booth.core.events import TransportEvent
from booth.fsm import TransportFSM
from booth.scheduler import DelayScheduler
from booth.sequence import TransportSequence
from booth.streams import Announcer

logger = logging.getLogger(__name__)


class Placement(Protocol):
    def current_location(self, entity_id: str) -> str | None:  # pragma: no cover
        ...

    def relocate(self, entity_id: str, place_id: str) -> bool:  # pragma: no cover
        ...

    def display_name(self, entity_id: str) -> str:  # pragma: no cover
        ...


@dataclass(frozen=True, slots=True)
class StagePlan:
    stage: TransportStage
    delay: float
    # Traveler must still stand in the origin booth when this stage fires.
    guarded: bool


# The final entry resolves to either arrived or aborted.
TIMELINE: tuple[StagePlan, ...] = (
    StagePlan(stage=TransportStage.humming, delay=1, guarded=False),
    StagePlan(stage=TransportStage.dissolving, delay=3, guarded=True),
    StagePlan(stage=TransportStage.suctioned, delay=2, guarded=True),
    StagePlan(stage=TransportStage.arrived, delay=1, guarded=True),
)

TOTAL_DELAY = sum(p.delay for p in TIMELINE)


class TransportSequencer:
    """Drives committed sequences through the timed booth stages.

    Each stage is a separate delayed callback. Before a guarded stage fires the
    traveler's position is re-checked; if they are no longer in the origin booth
    the sequence is dropped without any message.
    """

    def __init__(self, *, placement: Placement, announcer: Announcer, scheduler: DelayScheduler) -> None:
        self._placement = placement
        self._announcer = announcer
        self._scheduler = scheduler
        self._in_flight: dict[str, TransportSequence] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def is_in_flight(self, sequence_id: str) -> bool:
        return sequence_id in self._in_flight

    def start(self, sequence: TransportSequence) -> None:
        if sequence.stage != TransportStage.committed:
            raise ValueError(f"Sequence must start committed (got {sequence.stage.value})")

        sequence.history.append(
            TransportEvent.now(
                type="SEQUENCE_COMMITTED",
                stage=sequence.stage.value,
                payload={"destination": sequence.destination.label},
            )
        )
        self._in_flight[sequence.sequence_id] = sequence
        logger.info(
            "Sequence %s committed: %s -> %s",
            sequence.sequence_id,
            sequence.traveler_id,
            sequence.destination_endpoint.endpoint_id,
        )
        self._schedule(sequence, 0)

    def _schedule(self, sequence: TransportSequence, step: int) -> None:
        plan = TIMELINE[step]
        self._scheduler.after(plan.delay, lambda: self._fire(sequence, step))

    def _traveler_at_origin(self, sequence: TransportSequence) -> bool:
        return self._placement.current_location(sequence.traveler_id) == sequence.origin_endpoint.endpoint_id

    def _fire(self, sequence: TransportSequence, step: int) -> None:
        try:
            self._advance(sequence, step)
        except Exception as e:
            # A broken stage must not leave the sequence stranded in flight.
            self._in_flight.pop(sequence.sequence_id, None)
            sequence.history.append(
                TransportEvent.now(type="SEQUENCE_ABANDONED", stage=sequence.stage.value, payload={"error": repr(e)})
            )
            logger.exception("Sequence %s failed at %s", sequence.sequence_id, TIMELINE[step].stage.value)
            raise

    def _advance(self, sequence: TransportSequence, step: int) -> None:
        plan = TIMELINE[step]

        if plan.guarded and not self._traveler_at_origin(sequence):
            sequence.history.append(TransportEvent.now(type="SEQUENCE_ABANDONED", stage=sequence.stage.value))
            self._in_flight.pop(sequence.sequence_id, None)
            logger.debug("Sequence %s abandoned before %s", sequence.sequence_id, plan.stage.value)
            return

        fsm = TransportFSM(sequence)
        if plan.stage == TransportStage.humming:
            fsm.hum()
            self._on_humming(sequence)
        elif plan.stage == TransportStage.dissolving:
            fsm.dissolve()
            self._on_dissolving(sequence)
        elif plan.stage == TransportStage.suctioned:
            fsm.draw_in()
            self._on_suctioned(sequence)
        elif self._placement.relocate(sequence.traveler_id, sequence.destination_endpoint.endpoint_id):
            fsm.arrive()
            self._on_arrived(sequence)
        else:
            fsm.abort()
            self._on_aborted(sequence)

        fsm.sync_stage_to_model()
        sequence.history.append(TransportEvent.now(type="STAGE_ENTERED", stage=sequence.stage.value))
        logger.debug("Sequence %s entered %s", sequence.sequence_id, sequence.stage.value)

        if fsm.current_state.final:
            self._in_flight.pop(sequence.sequence_id, None)
            logger.info("Sequence %s finished: %s", sequence.sequence_id, sequence.stage.value)
            return

        self._schedule(sequence, step + 1)

    # ---- stage actions ----

    def _on_humming(self, sequence: TransportSequence) -> None:
        self._announcer.tell_room(sequence.origin_endpoint.endpoint_id, "The camera begins to hum softly.")
        self._announcer.tell_entity(sequence.traveler_id, "\n\n", kind="clear")

    def _on_dissolving(self, sequence: TransportSequence) -> None:
        name = self._placement.display_name(sequence.traveler_id)
        self._announcer.tell_room(
            sequence.origin_endpoint.endpoint_id,
            f"{name} dissolves into pure energy.",
            exclude=[sequence.traveler_id],
        )
        self._announcer.tell_entity(
            sequence.traveler_id,
            "As you look down, you then notice that you are being broken down into\nsmall particles.",
        )

    def _on_suctioned(self, sequence: TransportSequence) -> None:
        name = self._placement.display_name(sequence.traveler_id)
        self._announcer.tell_entity(
            sequence.traveler_id,
            "You then feel a strange pulling sensation as you are sucked into the camera.",
        )
        self._announcer.tell_room(
            sequence.origin_endpoint.endpoint_id,
            f"{name}'s energy is sucked into the camera.",
            exclude=[sequence.traveler_id],
        )

    def _on_arrived(self, sequence: TransportSequence) -> None:
        name = self._placement.display_name(sequence.traveler_id)
        self._announcer.tell_entity(sequence.traveler_id, "Suddenly you are standing in a different booth.")
        self._announcer.tell_room(
            sequence.destination_endpoint.endpoint_id,
            f"{name} is thrown out of the camera.",
            exclude=[sequence.traveler_id],
        )

    def _on_aborted(self, sequence: TransportSequence) -> None:
        # The origin booth is the announcement target; the traveler's own position may be stale here.
        name = self._placement.display_name(sequence.traveler_id)
        logger.warning(
            "Sequence %s aborted: %s refused entry to %s",
            sequence.sequence_id,
            sequence.traveler_id,
            sequence.destination_endpoint.endpoint_id,
        )
        self._announcer.tell_entity(sequence.traveler_id, "Something went wrong and you're thrown back.")
        self._announcer.tell_room(
            sequence.origin_endpoint.endpoint_id,
            f"{name} is thrown back from the camera.",
            exclude=[sequence.traveler_id],
        )
        self._announcer.tell_room(
            sequence.destination_endpoint.endpoint_id,
            "The camera flickers for a moment, then goes dark.",
        )
