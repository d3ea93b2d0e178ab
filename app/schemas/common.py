"""Shared schema pieces: camelCase wire names, room id shape."""
from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Room ids double as directory names, so only plain path-safe characters.
ROOM_ID_PATTERN = r"^[A-Za-z0-9_-]{1,128}$"

RoomId = Annotated[str, Field(pattern=ROOM_ID_PATTERN, description="Application room id")]


class ApiModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(ApiModel):
    success: bool = False
    error: str
    hint: str | None = None
