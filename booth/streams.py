from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Mapping, Protocol, Sequence, cast

import redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Mailbox:
    entity_id: str

    @property
    def key(self) -> str:
        return f"mailbox:{self.entity_id}"


def publish_to_mailbox(*, r: redis.Redis, mailbox: Mailbox, fields: Mapping[str, str]) -> str:
    """Append an entry to an entity's mailbox stream."""

    # redis-py stubs expect field/value unions; we only use string fields/values.
    stream_id = r.xadd(mailbox.key, {str(k): str(v) for k, v in fields.items()})
    return cast(str, stream_id)


def publish_many(*, r: redis.Redis, entries: Sequence[tuple[str, Mapping[str, str]]]) -> list[str]:
    ids: list[str] = []
    for key, fields in entries:
        stream_id = r.xadd(key, {str(k): str(v) for k, v in fields.items()})
        ids.append(cast(str, stream_id))
    return ids


class Occupancy(Protocol):
    def occupants(self, place_id: str) -> Iterable[str]:  # pragma: no cover
        ...


class Announcer(Protocol):
    def tell_entity(self, entity_id: str, text: str, *, kind: str = "message") -> None:  # pragma: no cover
        ...

    def tell_room(self, place_id: str, text: str, *, exclude: Iterable[str] = ()) -> None:  # pragma: no cover
        ...


class StreamAnnouncer:
    """Announcement service backed by per-entity Redis Streams.

    Fire-and-forget: a room broadcast is fanned out to each occupant's mailbox at call time.
    A Redis failure drops the message with a warning; callers never see it.
    """

    def __init__(self, *, r: redis.Redis, occupancy: Occupancy) -> None:
        self._r = r
        self._occupancy = occupancy

    def _fields(self, *, kind: str, text: str, place_id: str | None = None) -> dict[str, str]:
        fields = {"type": kind, "text": text, "ts": datetime.now(tz=UTC).isoformat()}
        if place_id is not None:
            fields["place_id"] = place_id
        return fields

    def tell_entity(self, entity_id: str, text: str, *, kind: str = "message") -> None:
        try:
            publish_to_mailbox(r=self._r, mailbox=Mailbox(entity_id=entity_id), fields=self._fields(kind=kind, text=text))
        except redis.RedisError as e:
            logger.warning("Dropped message for %s: %s", entity_id, e)

    def tell_room(self, place_id: str, text: str, *, exclude: Iterable[str] = ()) -> None:
        skip = set(exclude)
        fields = self._fields(kind="room", text=text, place_id=place_id)
        entries = [
            (Mailbox(entity_id=eid).key, fields) for eid in sorted(self._occupancy.occupants(place_id)) if eid not in skip
        ]
        if not entries:
            return
        try:
            publish_many(r=self._r, entries=entries)
        except redis.RedisError as e:
            logger.warning("Dropped room message for %s: %s", place_id, e)


def read_mailbox(*, r: redis.Redis, entity_id: str, count: int = 20, start: str = "-", end: str = "+") -> list[dict[str, object]]:
    entries = r.xrange(Mailbox(entity_id=entity_id).key, min=start, max=end, count=count)
    return [{"id": mid, "fields": fields} for mid, fields in entries]
