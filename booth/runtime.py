from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import redis

from booth.coordinator import TransportCoordinator
from booth.destinations.registry import DestinationRegistry, load_destinations
from booth.endpoints import EndpointProvisioner
from booth.scheduler import DelayScheduler, LoopScheduler
from booth.sequencer import TransportSequencer
from booth.settings import BoothSettings, settings_from_env
from booth.streams import StreamAnnouncer
from booth.world import World


@dataclass(slots=True)
class BoothRuntime:
    """Everything one booth network needs, wired together once."""

    r: redis.Redis
    world: World
    registry: DestinationRegistry
    provisioner: EndpointProvisioner
    sequencer: TransportSequencer
    coordinator: TransportCoordinator
    announcer: StreamAnnouncer


def build_runtime(
    *,
    r: redis.Redis,
    registry: DestinationRegistry,
    scheduler: DelayScheduler,
    world: World | None = None,
) -> BoothRuntime:
    world = world or World()
    announcer = StreamAnnouncer(r=r, occupancy=world)
    provisioner = EndpointProvisioner(world=world)
    sequencer = TransportSequencer(placement=world, announcer=announcer, scheduler=scheduler)
    coordinator = TransportCoordinator(
        registry=registry,
        provisioner=provisioner,
        sequencer=sequencer,
        world=world,
        announcer=announcer,
    )
    return BoothRuntime(
        r=r,
        world=world,
        registry=registry,
        provisioner=provisioner,
        sequencer=sequencer,
        coordinator=coordinator,
        announcer=announcer,
    )


_RUNTIME: BoothRuntime | None = None


def init_runtime(*, project_root: Path, r: redis.Redis, settings: BoothSettings | None = None) -> BoothRuntime:
    """Build the process-wide runtime once.

    Safe to call multiple times; subsequent calls return the already built instance.
    """

    global _RUNTIME
    if _RUNTIME is None:
        s = settings or settings_from_env()
        _RUNTIME = build_runtime(
            r=r,
            registry=load_destinations(root=project_root, strict=s.strict_destinations),
            scheduler=LoopScheduler(unit_seconds=s.time_unit_seconds),
            world=World(offline_locators=s.offline_locators),
        )
    return _RUNTIME


def reset_runtime_for_tests() -> None:
    global _RUNTIME
    _RUNTIME = None


def get_runtime() -> BoothRuntime:
    if _RUNTIME is None:
        raise RuntimeError("Runtime not initialized. Call init_runtime() at startup.")
    return _RUNTIME


def init_runtime_for_app() -> BoothRuntime:
    # project root is one level up from this file: booth/runtime.py
    from booth.infra.redis_client import create_redis

    if _RUNTIME is not None:
        return _RUNTIME
    project_root = Path(__file__).resolve().parents[1]
    return init_runtime(project_root=project_root, r=create_redis())
