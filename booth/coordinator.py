from __future__ import annotations

import logging
from dataclasses import dataclass

from booth.core.errors import NotInsideEndpoint, ProvisionFailure, TransportError
from booth.destinations.registry import Destination, DestinationRegistry
from booth.endpoints import EndpointProvisioner
from booth.selector import resolve_selector
from booth.sequence import TransportSequence
from booth.sequencer import TransportSequencer
from booth.streams import Announcer
from booth.world import World

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PressOutcome:
    ok: bool
    message: str
    destination: Destination | None = None
    sequence_id: str | None = None
    # Name of the TransportError subclass when the press was refused.
    error: str | None = None


class TransportCoordinator:
    """Entry point for `press <token>` inside a booth.

    Resolves the button, provisions the destination booth, announces the press
    and hands a committed sequence to the sequencer. Never waits for the
    sequence itself.
    """

    def __init__(
        self,
        *,
        registry: DestinationRegistry,
        provisioner: EndpointProvisioner,
        sequencer: TransportSequencer,
        world: World,
        announcer: Announcer,
    ) -> None:
        self.registry = registry
        self._provisioner = provisioner
        self._sequencer = sequencer
        self._world = world
        self._announcer = announcer

    def _refuse(self, entity_id: str, err: TransportError) -> PressOutcome:
        message = err.user_message
        self._announcer.tell_entity(entity_id, message)
        return PressOutcome(ok=False, message=message, error=type(err).__name__)

    async def press(self, *, entity_id: str, raw_token: str | None) -> PressOutcome:
        entity = self._world.require_entity(entity_id)
        origin = self._provisioner.endpoint_for_place(entity.place_id)
        if origin is None:
            raise NotInsideEndpoint()

        try:
            destination = resolve_selector(registry=self.registry, token=raw_token)
        except TransportError as e:
            logger.debug("Press by %s refused: %s", entity_id, type(e).__name__)
            return self._refuse(entity_id, e)

        try:
            target = await self._provisioner.ensure_endpoint(destination.target_locator)
        except ProvisionFailure as e:
            return self._refuse(entity_id, e)

        message = f"You press the button for {destination.label}."
        self._announcer.tell_entity(entity_id, message)
        self._announcer.tell_room(
            origin.endpoint_id,
            f"{entity.cap_name} presses the button for {destination.label}.",
            exclude=[entity_id],
        )

        sequence = TransportSequence(
            traveler_id=entity_id,
            origin_endpoint=origin,
            destination_endpoint=target,
            destination=destination,
        )
        self._sequencer.start(sequence)

        return PressOutcome(ok=True, message=message, destination=destination, sequence_id=sequence.sequence_id)
