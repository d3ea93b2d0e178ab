"""
FastAPI app: interview rooms with peer-to-peer signaling, cloud recording,
and background transcription of the recorded tracks.

HTTP:
  POST /rooms                          create a room -> {roomId, joinUrl}
  GET  /room/{roomId}                  ensure room exists (shared link) -> roster size
  POST /recording/start|stop|download  vendor session lifecycle and acquisition
  GET  /recording/status/{roomId}      live session info
  GET  /transcript/{roomId}?format=    rendered transcript, 404 until ready
WebSocket:
  /ws/signaling                        join / offer / answer / ice-candidate / leave

Services are wired once in create_app() and handed to router factories.
Vendor clients are built lazily, so rooms and signaling need no credentials.
"""
from __future__ import annotations

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket

from app.asr import ASREngine, load_whisper_model
from app.audio import AudioTranscoder
from app.config import Settings, get_settings
from app.diarization import ExternalDiarizer
from app.recording import RecordingAcquisition
from app.routers import create_recording_router, create_transcript_router
from app.schemas.rooms import CreateRoomResponse, RoomInfoResponse
from app.services import BackgroundTaskSupervisor, ProviderHub, TranscriptionLauncher
from app.session_store import SessionRegistry
from app.signaling import SignalingRelay
from app.storage import RecordingStorage
from app.video import VideoProvider
from app.websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def configure_logging(settings: Settings) -> None:
    """Console handler (plus file when LOG_FILE is set) on the app logger tree."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    app_logger = logging.getLogger("app")
    app_logger.setLevel(level)
    app_logger.handlers.clear()
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    app_logger.addHandler(console)

    if settings.LOG_FILE:
        log_dir = os.path.dirname(settings.LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(settings.LOG_FILE, encoding="utf-8")
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    # Vendor request lines stay out of INFO output
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _join_url(settings: Settings, request: Request, room_id: str) -> str:
    base = settings.BASE_URL.rstrip("/") or str(request.base_url).rstrip("/")
    return f"{base}/room/{room_id}"


def create_app(
    settings: Settings | None = None,
    *,
    video_provider: VideoProvider | None = None,
    asr_engine: ASREngine | None = None,
    transcoder: AudioTranscoder | None = None,
    external_diarizer: ExternalDiarizer | None = None,
    sleep=asyncio.sleep,
) -> FastAPI:
    settings = settings or get_settings()

    relay = SignalingRelay(ttl_seconds=settings.ROOM_TTL_SECONDS)
    hub = ProviderHub(settings, video_provider=video_provider, asr_engine=asr_engine)
    storage = RecordingStorage(settings.RECORDINGS_DIR)
    supervisor = BackgroundTaskSupervisor()
    registry = SessionRegistry(hub.video)
    acquisition = RecordingAcquisition(
        hub.video,
        storage,
        settle_seconds=settings.RECORDING_SETTLE_SECONDS,
        list_attempts=settings.RECORDING_LIST_ATTEMPTS,
        list_delay_seconds=settings.RECORDING_LIST_DELAY_SECONDS,
        sleep=sleep,
    )
    launcher = TranscriptionLauncher(
        settings,
        hub,
        storage,
        transcoder or AudioTranscoder(settings.TRANSCODE_FORMAT, settings.TRANSCODE_BITRATE),
        supervisor,
        external_diarizer=external_diarizer,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Load Whisper model once at startup when using local backend (singleton)
        if settings.ASR_BACKEND == "local" and asr_engine is None:
            loop = asyncio.get_event_loop()
            hub.whisper_model = await loop.run_in_executor(
                None,
                load_whisper_model,
                settings.LOCAL_WHISPER_MODEL,
                settings.LOCAL_WHISPER_DEVICE,
                settings.LOCAL_WHISPER_COMPUTE_TYPE,
            )
            logger.info("Local Whisper model %s loaded", settings.LOCAL_WHISPER_MODEL)
        sweeper = asyncio.create_task(relay.run_sweeper(settings.ROOM_SWEEP_INTERVAL_SECONDS))
        logger.info(
            "Started: recording=%s transcription=%s (%s)",
            hub.recording_configured,
            hub.transcription_configured,
            settings.ASR_BACKEND,
        )
        yield
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
        await supervisor.shutdown()
        await hub.aclose()
        hub.whisper_model = None

    app = FastAPI(
        title="Interview Recorder",
        description="Two-party interview rooms with cloud recording and merged transcripts",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.relay = relay
    app.state.hub = hub
    app.state.storage = storage
    app.state.supervisor = supervisor
    app.state.registry = registry

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.post("/rooms", response_model=CreateRoomResponse)
    async def create_room(request: Request) -> CreateRoomResponse:
        room = relay.create_room()
        return CreateRoomResponse(room_id=room.room_id, join_url=_join_url(settings, request, room.room_id))

    @app.get("/room/{room_id}", response_model=RoomInfoResponse)
    async def get_room(room_id: str) -> RoomInfoResponse:
        room = relay.ensure_room(room_id)
        return RoomInfoResponse(room_id=room.room_id, peers=len(room.peers))

    @app.websocket("/ws/signaling")
    async def websocket_signaling(websocket: WebSocket) -> None:
        await websocket.accept()
        manager = WebSocketManager(websocket, relay)
        await manager.run()

    app.include_router(create_recording_router(settings, hub, registry, acquisition, launcher, storage))
    app.include_router(create_transcript_router(storage))
    return app


configure_logging(get_settings())
app = create_app()
