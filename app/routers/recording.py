"""
Recording API: vendor session lifecycle, artifact acquisition, stored recordings.

Every response carries `success`. Domain errors map to:
  ProviderNotConfiguredError -> 503, RoomNotTrackedError -> 404 (with recovery hint),
  ArtifactDownloadError / ProviderError -> 502.
Stop and download acknowledge once artifacts are on disk; transcription then
runs in the background and is polled via GET /transcript/{roomId}.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse

from app.config import Settings
from app.errors import (
    ArtifactDownloadError,
    ProviderError,
    ProviderNotConfiguredError,
    RecordingError,
    RoomNotTrackedError,
)
from app.recording import AcquisitionResult, ListingStatus, RecordingAcquisition
from app.schemas.common import ErrorResponse
from app.schemas.recording import (
    AcquisitionResponse,
    RecordingConfigResponse,
    RecordingStatusResponse,
    RoomRequest,
    SessionDescriptor,
    StartRecordingRequest,
    StartRecordingResponse,
)
from app.services import ProviderHub, TranscriptionLauncher
from app.session_store import SessionRegistry
from app.storage import RecordingStorage

logger = logging.getLogger(__name__)

DOWNLOAD_HINT = "Use POST /recording/download to recover recordings by room id"


def error_response(status_code: int, error: str, hint: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, hint=hint).model_dump(by_alias=True, exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def map_recording_error(exc: RecordingError) -> JSONResponse:
    if isinstance(exc, ProviderNotConfiguredError):
        return error_response(503, str(exc))
    if isinstance(exc, RoomNotTrackedError):
        return error_response(404, str(exc), hint=DOWNLOAD_HINT)
    if isinstance(exc, ArtifactDownloadError):
        return error_response(502, str(exc))
    if isinstance(exc, ProviderError):
        return error_response(502, f"Recording provider error: {exc}")
    return error_response(500, str(exc))


def _acquisition_message(result: AcquisitionResult, transcription_started: bool) -> str:
    if result.status is ListingStatus.PERMANENTLY_ABSENT:
        return "The recording session no longer exists; nothing to transcribe."
    if result.status is ListingStatus.NOT_YET_AVAILABLE:
        return "No recordings available yet; retry later with POST /recording/download."
    downloaded = len(result.downloaded)
    message = f"Downloaded {downloaded} recording(s)."
    if result.failed:
        message += f" {len(result.failed)} failed to download."
    if transcription_started:
        message += " Transcription is processing in the background; poll GET /transcript/{roomId}."
    else:
        message += " Transcription is not configured; recordings are stored only."
    return message


def create_recording_router(
    settings: Settings,
    hub: ProviderHub,
    registry: SessionRegistry,
    acquisition: RecordingAcquisition,
    launcher: TranscriptionLauncher,
    storage: RecordingStorage,
) -> APIRouter:
    router = APIRouter()

    def _ack(result: AcquisitionResult) -> AcquisitionResponse:
        started = False
        if result.downloaded:
            started = launcher.launch(result.room_id, result.artifacts)
        return AcquisitionResponse(
            room_id=result.room_id,
            status=result.status,
            artifacts_downloaded=len(result.downloaded),
            failed_artifacts=[a.artifact_id for a in result.failed],
            transcription_started=started,
            message=_acquisition_message(result, started),
        )

    @router.post("/recording/start", response_model=StartRecordingResponse)
    async def start_recording(payload: StartRecordingRequest):
        try:
            result = await registry.start_session(payload.room_id, payload.role)
        except RecordingError as exc:
            logger.warning("start_recording failed for room %s: %s", payload.room_id, exc)
            return map_recording_error(exc)
        return StartRecordingResponse(
            session=SessionDescriptor(**result.session.as_descriptor()),
            token=result.token,
            identity=result.identity,
            room_name=result.session.session_name,
            reused=result.reused,
            recovered=result.recovered,
        )

    @router.post("/recording/stop", response_model=AcquisitionResponse)
    async def stop_recording(payload: RoomRequest):
        room_id = payload.room_id
        try:
            session = await registry.stop_session(room_id)
            result = await acquisition.acquire(room_id, session.session_id)
        except RecordingError as exc:
            logger.warning("stop_recording failed for room %s: %s", room_id, exc)
            return map_recording_error(exc)
        return _ack(result)

    @router.post("/recording/download", response_model=AcquisitionResponse)
    async def download_recording(payload: RoomRequest):
        """Re-trigger acquisition; falls back to a vendor lookup by name when the registry lost the room."""
        room_id = payload.room_id
        try:
            tracked = registry.get(room_id)
            if tracked is not None:
                session_id = tracked.session_id
            else:
                located = await acquisition.locate_session(room_id)
                if located is None:
                    return error_response(404, f"No recording session found for room {room_id}")
                session_id = located.sid
            result = await acquisition.acquire(room_id, session_id, settle=False)
        except RecordingError as exc:
            logger.warning("download_recording failed for room %s: %s", room_id, exc)
            return map_recording_error(exc)
        return _ack(result)

    @router.get("/recording/status/{room_id}", response_model=RecordingStatusResponse)
    async def recording_status(room_id: str):
        session = registry.get(room_id)
        if session is None:
            return error_response(404, f"No active recording for room {room_id}", hint=DOWNLOAD_HINT)
        return RecordingStatusResponse(
            active=True,
            session_id=session.session_id,
            session_name=session.session_name,
            duration_seconds=session.duration_seconds(),
        )

    @router.post("/recording/webhook")
    async def recording_webhook(request: Request) -> dict:
        """Vendor status callback. Logged only; acquisition never depends on it."""
        form = await request.form()
        logger.info(
            "Recording webhook: event=%s room=%s sid=%s",
            form.get("StatusCallbackEvent"),
            form.get("RoomName"),
            form.get("RoomSid"),
        )
        return {"success": True}

    @router.get("/recording/config", response_model=RecordingConfigResponse)
    async def recording_config():
        return RecordingConfigResponse(
            recording_configured=hub.recording_configured,
            transcription_configured=hub.transcription_configured,
            asr_backend=settings.ASR_BACKEND,
            diarization_fallback=settings.DIARIZATION_FALLBACK,
        )

    @router.get("/recordings")
    async def list_recordings() -> dict:
        return {"success": True, "recordings": storage.list_recordings()}

    @router.get("/recordings/{room_id}/{filename}")
    async def serve_recording(room_id: str, filename: str):
        try:
            path = storage.artifact_path(room_id, filename)
        except ValueError:
            return error_response(404, "Recording not found")
        if not path.is_file():
            return error_response(404, "Recording not found")
        return FileResponse(path, filename=filename)

    return router
