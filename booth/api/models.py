from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class TransportStage(StrEnum):
    committed = "committed"
    humming = "humming"
    dissolving = "dissolving"
    suctioned = "suctioned"
    arrived = "arrived"
    aborted = "aborted"


class DestinationView(BaseModel):
    ordinal: int
    label: str
    locator: str


class DestinationListResponse(BaseModel):
    destinations: list[DestinationView]


class TravelerCreateRequest(BaseModel):
    traveler_id: str = Field(..., min_length=1, max_length=64)
    display_name: str = Field(..., min_length=1, max_length=64)
    locator: str = Field(..., min_length=1)


class TravelerState(BaseModel):
    traveler_id: str
    display_name: str
    place_id: str | None = None

    # Booth the traveler stands in, if any.
    endpoint_id: str | None = None


class ActionRequest(BaseModel):
    args: str = Field(default="", max_length=200)


class ActionResponse(BaseModel):
    verb: str
    ok: bool
    message: str
    traveler: TravelerState

    # Set when a press committed a transport sequence.
    sequence_id: str | None = None
    destination: DestinationView | None = None
