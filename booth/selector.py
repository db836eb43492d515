from __future__ import annotations

import re

from booth.core.errors import NoSelector, UnknownDestination
from booth.destinations.registry import Destination, DestinationRegistry

_BUTTON_PREFIX = re.compile(r"^buttons?\s+", re.IGNORECASE)
_ORDINAL = re.compile(r"\d+")


def _strip_button_word(token: str) -> str:
    # "press button 4" and "press buttons gotham" mean the same as "press 4" / "press gotham".
    stripped = _BUTTON_PREFIX.sub("", token, count=1).strip()
    return stripped or token


def resolve_selector(*, registry: DestinationRegistry, token: str | None) -> Destination:
    """Resolve a pressed button by label first, then by its number."""

    raw = (token or "").strip()
    if not raw:
        raise NoSelector()

    selector = _strip_button_word(raw)

    dest = registry.lookup_by_label(selector)
    if dest is not None:
        return dest

    if _ORDINAL.fullmatch(selector):
        digits = selector.lstrip("0") or "0"
        # A number longer than the largest ordinal can never be a button.
        if len(digits) <= len(str(registry.count)):
            dest = registry.lookup_by_ordinal(int(digits))
            if dest is not None:
                return dest

    raise UnknownDestination()
