"""Schemas for room creation and lookup."""
from __future__ import annotations

from pydantic import Field

from app.schemas.common import ApiModel


class CreateRoomResponse(ApiModel):
    success: bool = True
    room_id: str
    join_url: str = Field(..., description="Link the second participant opens to join the room")


class RoomInfoResponse(ApiModel):
    success: bool = True
    room_id: str
    peers: int = Field(0, description="Peers currently joined to the room's signaling channel")
