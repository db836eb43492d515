from __future__ import annotations

from dataclasses import dataclass

from booth.coordinator import PressOutcome
from booth.core.errors import NotInsideEndpoint, ProvisionFailure
from booth.runtime import BoothRuntime

ACTION_NAMES: frozenset[str] = frozenset({"press", "push", "enter", "out", "leave", "read", "exa", "buttons"})

_BOOTH_NAMES = frozenset({"booth", "transporter", "transporter booth"})
_READABLE = frozenset({"sign", "instructions"})

SIGN_TEXT = (
    "                    LOONEY TRANSPORTATION BOOTH\n"
    "\n"
    "                 This machine is very easy to use.\n"
    " 1. Examine the buttons and decide where you want to go.\n"
    " 2. Press the button that is beside the name of the place you\n"
    "    want to go.\n"
    "             Ex: 'press <num>' or 'press <name of domain>'\n"
)


@dataclass(frozen=True, slots=True)
class ActionResult:
    verb: str
    ok: bool
    message: str
    press: PressOutcome | None = None


def _norm_args(args: str | None) -> str:
    return " ".join((args or "").split()).casefold()


async def _enter_booth(rt: BoothRuntime, *, traveler_id: str, args: str) -> ActionResult:
    target = _norm_args(args)
    if not target:
        return ActionResult(verb="enter", ok=False, message="Enter what?")
    if target not in _BOOTH_NAMES:
        return ActionResult(verb="enter", ok=False, message=f"There is no {args.strip()} to enter.")

    entity = rt.world.require_entity(traveler_id)
    if rt.provisioner.endpoint_for_place(entity.place_id) is not None:
        return ActionResult(verb="enter", ok=False, message="You are already inside!")
    if entity.place_id is None:
        raise ValueError("Traveler is nowhere")

    outside = entity.place_id
    try:
        endpoint = await rt.provisioner.ensure_endpoint(outside)
    except ProvisionFailure as e:
        return ActionResult(verb="enter", ok=False, message=e.user_message)
    if not rt.world.relocate(traveler_id, endpoint.endpoint_id):
        return ActionResult(verb="enter", ok=False, message="The booth is too crowded.")

    rt.announcer.tell_room(outside, f"{entity.cap_name} enters the booth.", exclude=[traveler_id])
    rt.announcer.tell_room(endpoint.endpoint_id, f"{entity.cap_name} enters.", exclude=[traveler_id])
    return ActionResult(verb="enter", ok=True, message="You step into the booth.")


def _leave_booth(rt: BoothRuntime, *, verb: str, traveler_id: str, args: str) -> ActionResult:
    entity = rt.world.require_entity(traveler_id)
    endpoint = rt.provisioner.endpoint_for_place(entity.place_id)
    if endpoint is None:
        return ActionResult(verb=verb, ok=False, message="Leave???")

    target = _norm_args(args)
    if target and target != "booth":
        return ActionResult(verb=verb, ok=False, message=f"{verb.capitalize()} what?")

    if not rt.world.relocate(traveler_id, endpoint.host_place_id):
        return ActionResult(verb=verb, ok=False, message="Something blocks the way out.")

    rt.announcer.tell_room(endpoint.endpoint_id, f"{entity.cap_name} leaves the Booth.", exclude=[traveler_id])
    rt.announcer.tell_room(endpoint.host_place_id, f"{entity.cap_name} comes out of the booth.", exclude=[traveler_id])
    return ActionResult(verb=verb, ok=True, message="You step out of the booth.")


def _button_list(rt: BoothRuntime) -> str:
    lines = [f"You see {rt.registry.count} buttons. You can go to:"]
    lines.extend(f" {d.ordinal:>2} | {d.label}" for d in rt.registry.destinations)
    return "\n".join(lines)


async def dispatch_action(*, rt: BoothRuntime, traveler_id: str, action: str, args: str = "") -> ActionResult:
    """Entry point for the HTTP layer and tests.

    Booth controls (`press`, `read`/`exa`, `buttons`) are only available from inside a
    booth; asking for them elsewhere is a ValueError for the caller to report.
    """

    if action not in ACTION_NAMES:
        raise ValueError(f"Unknown action: {action}")

    if action == "enter":
        return await _enter_booth(rt, traveler_id=traveler_id, args=args)

    if action in {"out", "leave"}:
        return _leave_booth(rt, verb=action, traveler_id=traveler_id, args=args)

    entity = rt.world.require_entity(traveler_id)
    if rt.provisioner.endpoint_for_place(entity.place_id) is None:
        raise NotInsideEndpoint()

    if action in {"read", "exa"}:
        if _norm_args(args) not in _READABLE:
            return ActionResult(verb=action, ok=False, message="Read what?")
        return ActionResult(verb=action, ok=True, message=SIGN_TEXT)

    if action == "buttons":
        return ActionResult(verb=action, ok=True, message=_button_list(rt))

    outcome = await rt.coordinator.press(entity_id=traveler_id, raw_token=args)
    return ActionResult(verb=action, ok=outcome.ok, message=outcome.message, press=outcome)
