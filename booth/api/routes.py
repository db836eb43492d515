from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from booth.actions import ACTION_NAMES, dispatch_action
from booth.api.deps import get_booth_runtime
from booth.api.models import (
    ActionRequest,
    ActionResponse,
    DestinationListResponse,
    DestinationView,
    TravelerCreateRequest,
    TravelerState,
)
from booth.destinations.registry import Destination
from booth.runtime import BoothRuntime
from booth.streams import Mailbox, read_mailbox
from booth.world import LocationUnavailable

router = APIRouter()


def _destination_view(d: Destination) -> DestinationView:
    return DestinationView(ordinal=d.ordinal, label=d.label, locator=d.target_locator)


def _traveler_state(rt: BoothRuntime, traveler_id: str) -> TravelerState:
    entity = rt.world.entity(traveler_id)
    if entity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Traveler not found")
    endpoint = rt.provisioner.endpoint_for_place(entity.place_id)
    return TravelerState(
        traveler_id=entity.entity_id,
        display_name=entity.display_name,
        place_id=entity.place_id,
        endpoint_id=endpoint.endpoint_id if endpoint is not None else None,
    )


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/destinations", response_model=DestinationListResponse)
async def list_destinations_route(rt: BoothRuntime = Depends(get_booth_runtime)) -> DestinationListResponse:
    return DestinationListResponse(destinations=[_destination_view(d) for d in rt.registry.destinations])


@router.post("/travelers", response_model=TravelerState, status_code=status.HTTP_201_CREATED)
async def create_traveler_route(
    payload: TravelerCreateRequest,
    rt: BoothRuntime = Depends(get_booth_runtime),
) -> TravelerState:
    try:
        place = await rt.world.activate(payload.locator)
        rt.world.spawn(entity_id=payload.traveler_id, display_name=payload.display_name, place_id=place.place_id)
    except LocationUnavailable as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return _traveler_state(rt, payload.traveler_id)


@router.get("/travelers/{traveler_id}", response_model=TravelerState)
async def get_traveler_route(traveler_id: str, rt: BoothRuntime = Depends(get_booth_runtime)) -> TravelerState:
    return _traveler_state(rt, traveler_id)


@router.post("/travelers/{traveler_id}/actions/{action}", response_model=ActionResponse)
async def traveler_action_route(
    traveler_id: str,
    action: str,
    payload: ActionRequest,
    rt: BoothRuntime = Depends(get_booth_runtime),
) -> ActionResponse:
    if rt.world.entity(traveler_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Traveler not found")

    try:
        if action not in ACTION_NAMES:
            raise ValueError(f"Unknown action: {action}")
        result = await dispatch_action(rt=rt, traveler_id=traveler_id, action=action, args=payload.args)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    press = result.press
    return ActionResponse(
        verb=result.verb,
        ok=result.ok,
        message=result.message,
        traveler=_traveler_state(rt, traveler_id),
        sequence_id=press.sequence_id if press is not None else None,
        destination=_destination_view(press.destination) if press is not None and press.destination else None,
    )


@router.get("/travelers/{traveler_id}/mailbox")
async def get_traveler_mailbox_route(
    traveler_id: str,
    count: int = 20,
    start: str = "-",
    end: str = "+",
    rt: BoothRuntime = Depends(get_booth_runtime),
) -> dict[str, object]:
    """Read a traveler's announcement stream."""

    if count < 1 or count > 200:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="count must be between 1 and 200")

    try:
        messages = read_mailbox(r=rt.r, entity_id=traveler_id, count=count, start=start, end=end)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    return {"traveler_id": traveler_id, "stream": Mailbox(entity_id=traveler_id).key, "messages": messages}
