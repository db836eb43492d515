from __future__ import annotations

from collections.abc import Iterable

import fakeredis
import pytest
import redis

from booth.api.models import TransportStage
from booth.runtime import BoothRuntime
from booth.sequence import TransportSequence
from booth.sequencer import TIMELINE, TOTAL_DELAY, TransportSequencer
from conftest import Boarder, ManualScheduler, mailbox_texts


async def _committed(runtime: BoothRuntime, board: Boarder, registry_label: str = "Gotham") -> TransportSequence:
    origin = await board("bugs", display_name="bugs")
    dest = runtime.registry.lookup_by_label(registry_label)
    assert dest is not None
    target = await runtime.provisioner.ensure_endpoint(dest.target_locator)
    return TransportSequence(traveler_id="bugs", origin_endpoint=origin, destination_endpoint=target, destination=dest)


def test_timeline_delays() -> None:
    assert [p.delay for p in TIMELINE] == [1, 3, 2, 1]
    assert [p.guarded for p in TIMELINE] == [False, True, True, True]
    assert TOTAL_DELAY == 7


@pytest.mark.asyncio
async def test_stages_fire_in_order_no_sooner_than_their_delays(
    runtime: BoothRuntime, board: Boarder, scheduler: ManualScheduler
) -> None:
    seq = await _committed(runtime, board)
    runtime.sequencer.start(seq)

    assert seq.stage == TransportStage.committed
    assert runtime.sequencer.is_in_flight(seq.sequence_id)

    checkpoints = [
        (0.5, TransportStage.committed),
        (0.5, TransportStage.humming),
        (2.5, TransportStage.humming),
        (0.5, TransportStage.dissolving),
        (2.0, TransportStage.suctioned),
        (0.75, TransportStage.suctioned),
        (0.25, TransportStage.arrived),
    ]
    for step, expected in checkpoints:
        scheduler.advance(step)
        assert seq.stage == expected, f"at t={scheduler.now}"

    assert runtime.world.current_location("bugs") == seq.destination_endpoint.endpoint_id
    assert not runtime.sequencer.is_in_flight(seq.sequence_id)
    assert scheduler.pending == 0
    assert [e.type for e in seq.history] == ["SEQUENCE_COMMITTED"] + ["STAGE_ENTERED"] * 4


@pytest.mark.asyncio
async def test_traveler_and_onlookers_get_stage_messages(
    runtime: BoothRuntime, board: Boarder, scheduler: ManualScheduler, r: fakeredis.FakeRedis
) -> None:
    seq = await _committed(runtime, board)
    # An onlooker in the origin booth and one waiting in the destination booth.
    runtime.world.spawn(entity_id="daffy", display_name="daffy", place_id=seq.origin_endpoint.endpoint_id)
    runtime.world.spawn(entity_id="porky", display_name="porky", place_id=seq.destination_endpoint.endpoint_id)

    runtime.sequencer.start(seq)
    scheduler.advance(TOTAL_DELAY)

    assert mailbox_texts(r, "bugs") == [
        "The camera begins to hum softly.",
        "\n\n",
        "As you look down, you then notice that you are being broken down into\nsmall particles.",
        "You then feel a strange pulling sensation as you are sucked into the camera.",
        "Suddenly you are standing in a different booth.",
    ]
    assert mailbox_texts(r, "daffy") == [
        "The camera begins to hum softly.",
        "Bugs dissolves into pure energy.",
        "Bugs's energy is sucked into the camera.",
    ]
    assert mailbox_texts(r, "porky") == ["Bugs is thrown out of the camera."]


@pytest.mark.asyncio
@pytest.mark.parametrize("leave_at, last_stage", [(2.0, TransportStage.humming), (5.0, TransportStage.dissolving), (6.5, TransportStage.suctioned)])
async def test_leaving_origin_abandons_the_rest_silently(
    runtime: BoothRuntime,
    board: Boarder,
    scheduler: ManualScheduler,
    r: fakeredis.FakeRedis,
    leave_at: float,
    last_stage: TransportStage,
) -> None:
    seq = await _committed(runtime, board)
    runtime.sequencer.start(seq)

    scheduler.advance(leave_at)
    assert runtime.world.relocate("bugs", seq.origin_endpoint.host_place_id)
    before = len(mailbox_texts(r, "bugs"))

    scheduler.advance(TOTAL_DELAY)

    assert seq.stage == last_stage
    assert seq.history[-1].type == "SEQUENCE_ABANDONED"
    assert runtime.world.current_location("bugs") == seq.origin_endpoint.host_place_id
    assert len(mailbox_texts(r, "bugs")) == before
    assert runtime.sequencer.in_flight == 0
    assert scheduler.pending == 0


@pytest.mark.asyncio
async def test_traveler_vanishing_mid_sequence_abandons_it(
    runtime: BoothRuntime, board: Boarder, scheduler: ManualScheduler
) -> None:
    seq = await _committed(runtime, board)
    runtime.sequencer.start(seq)
    scheduler.advance(1)

    runtime.world.remove_entity("bugs")
    scheduler.advance(TOTAL_DELAY)

    assert seq.stage == TransportStage.humming
    assert runtime.sequencer.in_flight == 0


@pytest.mark.asyncio
async def test_hum_fires_even_if_traveler_already_left(
    runtime: BoothRuntime, board: Boarder, scheduler: ManualScheduler, r: fakeredis.FakeRedis
) -> None:
    seq = await _committed(runtime, board)
    runtime.world.spawn(entity_id="daffy", display_name="daffy", place_id=seq.origin_endpoint.endpoint_id)
    runtime.sequencer.start(seq)
    runtime.world.relocate("bugs", seq.origin_endpoint.host_place_id)

    scheduler.advance(TOTAL_DELAY)

    assert seq.stage == TransportStage.humming
    assert mailbox_texts(r, "daffy") == ["The camera begins to hum softly."]


@pytest.mark.asyncio
async def test_refused_relocation_aborts_and_throws_traveler_back(
    runtime: BoothRuntime, board: Boarder, scheduler: ManualScheduler, r: fakeredis.FakeRedis
) -> None:
    seq = await _committed(runtime, board)
    runtime.world.spawn(entity_id="daffy", display_name="daffy", place_id=seq.origin_endpoint.endpoint_id)
    runtime.world.spawn(entity_id="porky", display_name="porky", place_id=seq.destination_endpoint.endpoint_id)
    runtime.world.require_place(seq.destination_endpoint.endpoint_id).capacity = 1

    runtime.sequencer.start(seq)
    scheduler.advance(TOTAL_DELAY)

    assert seq.stage == TransportStage.aborted
    assert runtime.world.current_location("bugs") == seq.origin_endpoint.endpoint_id
    assert runtime.sequencer.in_flight == 0
    assert mailbox_texts(r, "bugs")[-1] == "Something went wrong and you're thrown back."
    assert mailbox_texts(r, "daffy")[-1] == "Bugs is thrown back from the camera."
    assert mailbox_texts(r, "porky") == ["The camera flickers for a moment, then goes dark."]


@pytest.mark.asyncio
async def test_sequence_must_start_committed(runtime: BoothRuntime, board: Boarder) -> None:
    seq = await _committed(runtime, board)
    seq.stage = TransportStage.humming

    with pytest.raises(ValueError):
        runtime.sequencer.start(seq)
    assert runtime.sequencer.in_flight == 0


@pytest.mark.asyncio
async def test_redis_outage_mid_sequence_still_delivers_traveler(
    runtime: BoothRuntime,
    board: Boarder,
    scheduler: ManualScheduler,
    r: fakeredis.FakeRedis,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    seq = await _committed(runtime, board)
    runtime.sequencer.start(seq)

    def _down(*args: object, **kwargs: object) -> str:
        raise redis.ConnectionError("redis down")

    monkeypatch.setattr(r, "xadd", _down)
    scheduler.advance(TOTAL_DELAY)

    assert seq.stage == TransportStage.arrived
    assert runtime.world.current_location("bugs") == seq.destination_endpoint.endpoint_id
    assert runtime.sequencer.in_flight == 0
    assert scheduler.pending == 0


class _ExplodingAnnouncer:
    def tell_entity(self, entity_id: str, text: str, *, kind: str = "message") -> None:
        raise RuntimeError("announcer broke")

    def tell_room(self, place_id: str, text: str, *, exclude: Iterable[str] = ()) -> None:
        raise RuntimeError("announcer broke")


@pytest.mark.asyncio
async def test_failing_stage_drops_the_sequence(
    runtime: BoothRuntime, board: Boarder, scheduler: ManualScheduler
) -> None:
    seq = await _committed(runtime, board)
    sequencer = TransportSequencer(placement=runtime.world, announcer=_ExplodingAnnouncer(), scheduler=scheduler)
    sequencer.start(seq)

    with pytest.raises(RuntimeError):
        scheduler.advance(TOTAL_DELAY)

    assert sequencer.in_flight == 0
    assert scheduler.pending == 0
    assert seq.history[-1].type == "SEQUENCE_ABANDONED"
    assert runtime.world.current_location("bugs") == seq.origin_endpoint.endpoint_id
