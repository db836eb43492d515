from __future__ import annotations

import csv
import os
import re
from dataclasses import dataclass
from pathlib import Path


def _norm_key(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip().casefold()


class RegistryConfigError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class Destination:
    label: str
    ordinal: int
    target_locator: str


@dataclass(frozen=True, slots=True)
class DestinationRegistry:
    """Button directory of the booth.

    Labels are for display and forgiving lookup; ordinals are the numbers printed
    beside the buttons and always form the dense range 1..count.
    """

    destinations: tuple[Destination, ...]
    _key_to_destination: dict[str, Destination]
    _ordinal_to_destination: dict[int, Destination]

    @staticmethod
    def from_rows(rows: list[tuple[str, int, str]], *, reindex: bool = False) -> "DestinationRegistry":
        """Build the registry from `(label, ordinal, target_locator)` rows.

        With `reindex=True`, gaps and duplicate ordinals are repaired by renumbering
        in (ordinal, insertion order); otherwise they are configuration errors.
        """

        key_to_destination: dict[str, Destination] = {}
        ordered = rows
        if reindex:
            indexed = sorted(enumerate(rows), key=lambda item: (item[1][1], item[0]))
            ordered = [(label, n, locator) for n, (_, (label, _, locator)) in enumerate(indexed, start=1)]

        ordinal_to_destination: dict[int, Destination] = {}
        for label, ordinal, locator in ordered:
            label = label.strip()
            if not label:
                raise RegistryConfigError("Destination label must not be empty")
            if not locator.strip():
                raise RegistryConfigError(f"Destination {label!r} has no locator")

            key = _norm_key(label)
            if key in key_to_destination:
                raise RegistryConfigError(f"Duplicate destination label: {label}")
            if ordinal in ordinal_to_destination:
                raise RegistryConfigError(f"Duplicate destination ordinal: {ordinal}")

            dest = Destination(label=label, ordinal=ordinal, target_locator=locator.strip())
            key_to_destination[key] = dest
            ordinal_to_destination[ordinal] = dest

        expected = set(range(1, len(ordinal_to_destination) + 1))
        if set(ordinal_to_destination) != expected:
            got = ",".join(str(n) for n in sorted(ordinal_to_destination))
            raise RegistryConfigError(f"Destination ordinals must be 1..{len(expected)} without gaps (got: {got})")

        return DestinationRegistry(
            destinations=tuple(ordinal_to_destination[n] for n in sorted(ordinal_to_destination)),
            _key_to_destination=key_to_destination,
            _ordinal_to_destination=ordinal_to_destination,
        )

    @property
    def count(self) -> int:
        return len(self.destinations)

    def lookup_by_label(self, label: str) -> Destination | None:
        return self._key_to_destination.get(_norm_key(label))

    def lookup_by_ordinal(self, n: int) -> Destination | None:
        if n < 1 or n > self.count:
            return None
        return self._ordinal_to_destination.get(n)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, str) and self.lookup_by_label(item) is not None


def _read_csv_rows(path: Path) -> list[list[str]]:
    try:
        with path.open(encoding="utf-8-sig", newline="") as f:
            raw = f.read()
    except FileNotFoundError as e:
        raise RegistryConfigError(f"Destinations file not found: {path}") from e

    reader = csv.reader(raw.splitlines())
    rows = [[c.strip() for c in row if c is not None] for row in reader]
    return [row for row in rows if any(cell.strip() for cell in row)]


def load_destinations_csv(path: Path, *, reindex: bool = False) -> DestinationRegistry:
    rows = _read_csv_rows(path)
    if not rows:
        raise RegistryConfigError(f"Empty destinations CSV: {path}")

    header = [c.casefold() for c in rows[0]]
    if header[:3] != ["label", "ordinal", "locator"]:
        raise RegistryConfigError(f"Unexpected header in {path}: {rows[0]}")

    out: list[tuple[str, int, str]] = []
    for row in rows[1:]:
        if len(row) < 3:
            continue
        label, ordinal, locator = row[0], row[1], row[2]
        try:
            n = int(ordinal)
        except ValueError as e:
            raise RegistryConfigError(f"Bad ordinal {ordinal!r} for {label!r} in {path}") from e
        out.append((label, n, locator))

    return DestinationRegistry.from_rows(out, reindex=reindex)


DEFAULT_DESTINATIONS: tuple[tuple[str, int, str], ...] = (
    ("Gilligan", 1, "/d/Gilligan/roo/foyer"),
    ("Marvel", 2, "/d/Gotham/marvel/quest/rooms/forest/forest22"),
    ("Hanna Barbera", 3, "/d/HB/jellystone/rooms/js_path"),
    ("Sesame", 4, "/d/sesame/rooms/sesame_00"),
    ("Present", 5, "/creators/t/texan/bttf/1985/rooms/twinpinesmall"),
    ("Gotham", 6, "/d/Gotham/gotham/streets/rooms/main-st-1"),
    ("Simpsons", 7, "/d/Simpsons/park/park1"),
    ("Warner Bros.", 8, "/d/WB/rooms/city02"),
    ("Port Looney", 9, "/d/portlooney/start.c"),
)


def load_destinations(*, root: Path, strict: bool | None = None) -> DestinationRegistry:
    """Load `<root>/assets/destinations.csv`, falling back to the built-in directory.

    Strict mode (BOOTH_STRICT_DESTINATIONS=1) makes a missing or broken file fatal.
    """

    if strict is None:
        strict = os.getenv("BOOTH_STRICT_DESTINATIONS", "").strip().lower() in {"1", "true", "yes"}

    try:
        return load_destinations_csv(root / "assets" / "destinations.csv")
    except RegistryConfigError:
        if strict:
            raise
        return DestinationRegistry.from_rows(list(DEFAULT_DESTINATIONS))
