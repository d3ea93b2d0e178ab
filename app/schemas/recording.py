"""
Schemas for the recording API (start / stop / download / status / config).

Roles are validated as one of exactly two values; anything else is a 422.
"""
from __future__ import annotations

from pydantic import Field

from app.recording.models import ListingStatus, Role
from app.schemas.common import ApiModel, RoomId


class StartRecordingRequest(ApiModel):
    room_id: RoomId
    role: Role = Field(..., description="interviewer (room creator) or interviewee")


class RoomRequest(ApiModel):
    """Body of stop and download: just the room."""

    room_id: RoomId


class SessionDescriptor(ApiModel):
    sid: str
    name: str


class StartRecordingResponse(ApiModel):
    success: bool = True
    session: SessionDescriptor
    token: str = Field(..., description="Access credential scoped to the session, for the video SDK")
    identity: str
    room_name: str = Field(..., description="Vendor room name the client connects to")
    reused: bool = False
    recovered: bool = False


class AcquisitionResponse(ApiModel):
    """Ack of stop / download. Transcription (if started) continues in the background."""

    success: bool = True
    room_id: str
    status: ListingStatus
    artifacts_downloaded: int = 0
    failed_artifacts: list[str] = Field(default_factory=list)
    transcription_started: bool = False
    message: str


class RecordingStatusResponse(ApiModel):
    success: bool = True
    active: bool
    session_id: str | None = None
    session_name: str | None = None
    duration_seconds: int | None = None


class RecordingConfigResponse(ApiModel):
    success: bool = True
    recording_configured: bool
    transcription_configured: bool
    asr_backend: str
    diarization_fallback: str
