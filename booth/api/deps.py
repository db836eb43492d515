from __future__ import annotations

from booth.runtime import BoothRuntime, get_runtime


def get_booth_runtime() -> BoothRuntime:
    return get_runtime()
