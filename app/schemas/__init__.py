"""Pydantic schemas for API request/response."""
from app.schemas.common import ApiModel, ErrorResponse
from app.schemas.recording import (
    AcquisitionResponse,
    RecordingConfigResponse,
    RecordingStatusResponse,
    RoomRequest,
    SessionDescriptor,
    StartRecordingRequest,
    StartRecordingResponse,
)
from app.schemas.rooms import CreateRoomResponse, RoomInfoResponse

__all__ = [
    "AcquisitionResponse",
    "ApiModel",
    "CreateRoomResponse",
    "ErrorResponse",
    "RecordingConfigResponse",
    "RecordingStatusResponse",
    "RoomInfoResponse",
    "RoomRequest",
    "SessionDescriptor",
    "StartRecordingRequest",
    "StartRecordingResponse",
]
