"""In-memory world: places, entities, location activation and placement.

This is the minimal stand-in for the surrounding game's room and movement services.
The transport engine only talks to it through `activate`, `current_location`,
`relocate` and `occupants`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger(__name__)

PlaceKind = Literal["room", "booth"]


class LocationUnavailable(RuntimeError):
    """Raised when a locator cannot be loaded (its domain is offline)."""


@dataclass(slots=True)
class Place:
    place_id: str
    name: str
    kind: PlaceKind = "room"
    occupants: set[str] = field(default_factory=set)
    exits: dict[str, str] = field(default_factory=dict)
    # Booth standing in this room, if any.
    endpoint_id: str | None = None
    capacity: int | None = None

    def has_room(self) -> bool:
        return self.capacity is None or len(self.occupants) < self.capacity


@dataclass(slots=True)
class Entity:
    entity_id: str
    display_name: str
    place_id: str | None = None

    @property
    def cap_name(self) -> str:
        return self.display_name[:1].upper() + self.display_name[1:]


def _name_from_locator(locator: str) -> str:
    tail = locator.rstrip("/").rsplit("/", 1)[-1]
    tail = tail.rsplit(":", 1)[-1]
    if tail.endswith(".c"):
        tail = tail[:-2]
    return tail.replace("_", " ").replace("-", " ").strip() or locator


class World:
    def __init__(self, *, offline_locators: Iterable[str] = (), activation_delay: float = 0.0) -> None:
        self._places: dict[str, Place] = {}
        self._entities: dict[str, Entity] = {}
        self._offline: set[str] = set(offline_locators)
        self._activation_delay = activation_delay

    # ---- location activation ----

    def set_offline(self, locator: str, offline: bool = True) -> None:
        if offline:
            self._offline.add(locator)
        else:
            self._offline.discard(locator)

    async def activate(self, locator: str) -> Place:
        """Resolve a locator into a live place, loading it on first use."""

        # Loading a remote domain yields to the loop, like any real I/O would.
        await asyncio.sleep(self._activation_delay)

        if locator in self._offline:
            raise LocationUnavailable(f"Location {locator} could not be loaded")

        place = self._places.get(locator)
        if place is None:
            place = self._places.setdefault(locator, Place(place_id=locator, name=_name_from_locator(locator)))
            logger.debug("Loaded location %s", locator)
        return place

    # ---- places ----

    def add_place(self, place: Place) -> Place:
        if place.place_id in self._places:
            raise ValueError(f"Place already exists: {place.place_id}")
        self._places[place.place_id] = place
        return place

    async def build_place(self, place: Place) -> Place:
        """Construct a new place; like activation, this yields to the loop."""

        await asyncio.sleep(self._activation_delay)
        return self.add_place(place)

    def place(self, place_id: str) -> Place | None:
        return self._places.get(place_id)

    def require_place(self, place_id: str) -> Place:
        place = self.place(place_id)
        if place is None:
            raise ValueError("Place not found")
        return place

    def occupants(self, place_id: str) -> set[str]:
        place = self._places.get(place_id)
        return set(place.occupants) if place is not None else set()

    # ---- entities ----

    def spawn(self, *, entity_id: str, display_name: str, place_id: str) -> Entity:
        if entity_id in self._entities:
            raise ValueError(f"Entity already exists: {entity_id}")
        place = self.require_place(place_id)
        entity = Entity(entity_id=entity_id, display_name=display_name, place_id=place.place_id)
        place.occupants.add(entity_id)
        self._entities[entity_id] = entity
        return entity

    def entity(self, entity_id: str) -> Entity | None:
        return self._entities.get(entity_id)

    def require_entity(self, entity_id: str) -> Entity:
        entity = self.entity(entity_id)
        if entity is None:
            raise ValueError("Traveler not found")
        return entity

    def remove_entity(self, entity_id: str) -> None:
        entity = self._entities.pop(entity_id, None)
        if entity is None or entity.place_id is None:
            return
        place = self._places.get(entity.place_id)
        if place is not None:
            place.occupants.discard(entity_id)

    def display_name(self, entity_id: str) -> str:
        entity = self._entities.get(entity_id)
        return entity.cap_name if entity is not None else entity_id

    def current_location(self, entity_id: str) -> str | None:
        entity = self._entities.get(entity_id)
        return entity.place_id if entity is not None else None

    def relocate(self, entity_id: str, place_id: str) -> bool:
        """Move an entity; False when the entity or target is gone or the target is full."""

        entity = self._entities.get(entity_id)
        target = self._places.get(place_id)
        if entity is None or target is None:
            return False
        if entity.place_id == place_id:
            return True
        if not target.has_room():
            logger.info("Move of %s into %s refused: place is full", entity_id, place_id)
            return False

        if entity.place_id is not None:
            origin = self._places.get(entity.place_id)
            if origin is not None:
                origin.occupants.discard(entity_id)
        target.occupants.add(entity_id)
        entity.place_id = place_id
        return True
