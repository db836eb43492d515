from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from booth.core.errors import ProvisionFailure
from booth.lock import LocationLocks
from booth.world import LocationUnavailable, Place, World

logger = logging.getLogger(__name__)

BOOTH_NAME = "Booth"


@dataclass(frozen=True, slots=True)
class TransportEndpoint:
    """The booth standing at one location.

    `endpoint_id` doubles as the place id of the booth interior, which is where
    travelers stand while they press buttons.
    """

    endpoint_id: str
    host_place_id: str
    created_at: datetime


def endpoint_id_for(location_id: str) -> str:
    return f"booth@{location_id}"


class EndpointProvisioner:
    """Location-keyed store of booths with lazy, idempotent creation.

    Contract:
      - `ensure_endpoint(locator)` activates the location and returns its booth,
        creating it on the first visit.
      - at most one booth is ever created per location, even when several
        callers provision the same never-visited location concurrently.
    """

    def __init__(self, *, world: World, locks: LocationLocks | None = None) -> None:
        self._world = world
        self._locks = locks if locks is not None else LocationLocks()
        self._by_location: dict[str, TransportEndpoint] = {}
        self._by_interior: dict[str, TransportEndpoint] = {}
        self.created_count = 0

    async def ensure_endpoint(self, target_locator: str) -> TransportEndpoint:
        try:
            location = await self._world.activate(target_locator)
        except LocationUnavailable as e:
            logger.warning("Destination %s is unreachable: %s", target_locator, e)
            raise ProvisionFailure(f"Destination {target_locator} is unreachable") from e

        # Building the booth yields to the loop; the lock keeps search and create together.
        async with self._locks.hold(location.place_id):
            return await self._find_or_create(location)

    def endpoint_at(self, location_id: str) -> TransportEndpoint | None:
        return self._by_location.get(location_id)

    def endpoint_for_place(self, place_id: str | None) -> TransportEndpoint | None:
        """Return the booth whose interior is `place_id`."""

        if place_id is None:
            return None
        return self._by_interior.get(place_id)

    def _remember(self, endpoint: TransportEndpoint) -> TransportEndpoint:
        self._by_location[endpoint.host_place_id] = endpoint
        self._by_interior[endpoint.endpoint_id] = endpoint
        return endpoint

    async def _find_or_create(self, location: Place) -> TransportEndpoint:
        existing = self._by_location.get(location.place_id)
        if existing is not None:
            return existing

        # A booth may already stand here from world setup; adopt it instead of building another.
        if location.endpoint_id is not None:
            interior = self._world.place(location.endpoint_id)
            if interior is not None and interior.kind == "booth":
                logger.debug("Adopted booth %s at %s", interior.place_id, location.place_id)
                return self._remember(
                    TransportEndpoint(
                        endpoint_id=interior.place_id,
                        host_place_id=location.place_id,
                        created_at=datetime.now(tz=UTC),
                    )
                )

        endpoint = TransportEndpoint(
            endpoint_id=endpoint_id_for(location.place_id),
            host_place_id=location.place_id,
            created_at=datetime.now(tz=UTC),
        )
        await self._world.build_place(
            Place(
                place_id=endpoint.endpoint_id,
                name=BOOTH_NAME,
                kind="booth",
                exits={"out": location.place_id},
            )
        )
        location.endpoint_id = endpoint.endpoint_id
        self.created_count += 1
        logger.info("Created booth %s at %s", endpoint.endpoint_id, location.place_id)
        return self._remember(endpoint)
