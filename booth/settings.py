from __future__ import annotations

import os
from dataclasses import dataclass


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True, slots=True)
class BoothSettings:
    redis_url: str
    # Wall-clock seconds per delay unit of the transport timeline.
    time_unit_seconds: float
    strict_destinations: bool
    offline_locators: frozenset[str]


def settings_from_env() -> BoothSettings:
    raw_unit = os.environ.get("BOOTH_TIME_UNIT_SECONDS", "1.0")
    try:
        unit = float(raw_unit)
    except ValueError as e:
        raise RuntimeError(f"BOOTH_TIME_UNIT_SECONDS must be a number (got {raw_unit!r})") from e
    if unit < 0:
        raise RuntimeError("BOOTH_TIME_UNIT_SECONDS must be >= 0")

    offline = os.environ.get("BOOTH_OFFLINE_LOCATORS", "")

    return BoothSettings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        time_unit_seconds=unit,
        strict_destinations=_truthy(os.environ.get("BOOTH_STRICT_DESTINATIONS")),
        offline_locators=frozenset(s.strip() for s in offline.split(",") if s.strip()),
    )
