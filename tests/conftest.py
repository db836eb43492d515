from __future__ import annotations

import heapq
import itertools
from collections.abc import Awaitable, Callable, Generator
from pathlib import Path

import fakeredis
import pytest
from fastapi.testclient import TestClient

from booth.destinations.registry import DestinationRegistry, load_destinations_csv
from booth.endpoints import TransportEndpoint
from booth.runtime import BoothRuntime, build_runtime
from booth.world import World

TESTS_ROOT = Path(__file__).resolve().parent


class ManualScheduler:
    """Deterministic delay scheduler: callbacks only run when the test advances time."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, Callable[[], None]]] = []
        self._tie = itertools.count()

    def after(self, delay: float, callback: Callable[[], None]) -> None:
        heapq.heappush(self._queue, (self.now + delay, next(self._tie), callback))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def advance(self, units: float) -> None:
        target = self.now + units
        while self._queue and self._queue[0][0] <= target:
            due, _, callback = heapq.heappop(self._queue)
            self.now = due
            callback()
        self.now = target


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def registry() -> DestinationRegistry:
    return load_destinations_csv(TESTS_ROOT / "assets" / "destinations.csv")


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def world() -> World:
    return World()


@pytest.fixture()
def runtime(r: fakeredis.FakeRedis, registry: DestinationRegistry, scheduler: ManualScheduler, world: World) -> BoothRuntime:
    return build_runtime(r=r, registry=registry, scheduler=scheduler, world=world)


Boarder = Callable[..., Awaitable[TransportEndpoint]]


@pytest.fixture()
def board(runtime: BoothRuntime) -> Boarder:
    """Spawn a traveler at `locator` and put them inside the booth standing there."""

    async def _board(traveler_id: str, *, display_name: str | None = None, locator: str = "loc:toontown") -> TransportEndpoint:
        place = await runtime.world.activate(locator)
        runtime.world.spawn(entity_id=traveler_id, display_name=display_name or traveler_id, place_id=place.place_id)
        endpoint = await runtime.provisioner.ensure_endpoint(locator)
        assert runtime.world.relocate(traveler_id, endpoint.endpoint_id)
        return endpoint

    return _board


def mailbox_texts(r: fakeredis.FakeRedis, entity_id: str) -> list[str]:
    return [fields["text"] for _, fields in r.xrange(f"mailbox:{entity_id}")]


@pytest.fixture()
def client(runtime: BoothRuntime, monkeypatch: pytest.MonkeyPatch) -> Generator[TestClient, None, None]:
    import booth.runtime as runtime_module
    from booth.api.deps import get_booth_runtime
    from booth.main import app

    # Startup reuses an initialized runtime instead of connecting to a real Redis.
    monkeypatch.setattr(runtime_module, "_RUNTIME", runtime)

    app.dependency_overrides[get_booth_runtime] = lambda: runtime
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
