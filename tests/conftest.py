"""
Pytest configuration and shared fakes.

No test touches the network, ffmpeg or a real Whisper model: the vendor,
recognizer and transcoder are replaced by the in-memory fakes below.
"""
import asyncio
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from app.asr.base import ASREngine, ASRResult, SegmentTimestamp
from app.audio.transcoder import AudioTranscoder, TranscodeError
from app.config import Settings
from app.errors import ProviderError, SessionNotFoundError
from app.main import create_app
from app.storage import RecordingStorage
from app.video.base import ProviderParticipant, ProviderRecording, ProviderSession, VideoProvider


async def no_sleep(_seconds: float) -> None:
    return None


class FakeVideoProvider(VideoProvider):
    """In-memory vendor. Sessions, participants, recordings and media are plain dicts."""

    name = "fake"

    def __init__(self) -> None:
        self.sessions: dict[str, ProviderSession] = {}
        self.participants: dict[str, list[ProviderParticipant]] = {}
        self.recordings: dict[str, list[ProviderRecording]] = {}
        # Per-session queue of listings returned before falling back to self.recordings
        self.listing_script: dict[str, list[list[ProviderRecording]]] = {}
        self.media: dict[str, bytes] = {}
        self.failing_downloads: set[str] = set()
        self.create_calls = 0
        self.complete_calls = 0
        self.list_recording_calls = 0
        self.download_calls = 0
        self.closed = False

    def add_session(self, sid: str, name: str, status: str = "in-progress", duration: float | None = None):
        session = ProviderSession(
            sid=sid,
            name=name,
            status=status,
            duration_seconds=duration,
            created_at=datetime.now(timezone.utc),
        )
        self.sessions[sid] = session
        return session

    def add_recording(
        self,
        session_id: str,
        sid: str,
        *,
        track_name: str = "",
        participant_sid: str | None = None,
        codec: str = "opus",
        type: str = "audio",
        media: bytes = b"OggS-fake-audio",
    ) -> ProviderRecording:
        recording = ProviderRecording(
            sid=sid,
            codec=codec,
            track_name=track_name,
            media_url=f"/Recordings/{sid}/Media",
            type=type,
            size_bytes=len(media),
            participant_sid=participant_sid,
        )
        self.recordings.setdefault(session_id, []).append(recording)
        self.media[sid] = media
        return recording

    async def create_session(self, name: str) -> ProviderSession:
        self.create_calls += 1
        sid = f"RM{self.create_calls:04d}"
        await asyncio.sleep(0)
        return self.add_session(sid, name)

    async def fetch_session(self, session_id: str) -> ProviderSession:
        await asyncio.sleep(0)
        if session_id not in self.sessions:
            raise SessionNotFoundError(f"no session {session_id}", status_code=404)
        return self.sessions[session_id]

    async def list_sessions(self, status: str = "in-progress") -> list[ProviderSession]:
        return [s for s in self.sessions.values() if s.status == status]

    async def complete_session(self, session_id: str) -> ProviderSession:
        self.complete_calls += 1
        session = await self.fetch_session(session_id)
        session.status = "completed"
        return session

    async def list_participants(self, session_id: str) -> list[ProviderParticipant]:
        return list(self.participants.get(session_id, []))

    async def list_recordings(self, session_id: str) -> list[ProviderRecording]:
        self.list_recording_calls += 1
        if session_id not in self.sessions:
            raise SessionNotFoundError(f"no session {session_id}", status_code=404)
        script = self.listing_script.get(session_id)
        if script:
            return script.pop(0)
        return list(self.recordings.get(session_id, []))

    async def download_recording(self, recording: ProviderRecording, dest: Path) -> int:
        self.download_calls += 1
        if recording.sid in self.failing_downloads:
            raise ProviderError(f"media for {recording.sid} unavailable", status_code=500)
        data = self.media[recording.sid]
        dest.write_bytes(data)
        return len(data)

    def issue_token(self, identity: str, session_name: str) -> str:
        return f"token:{identity}:{session_name}"

    async def aclose(self) -> None:
        self.closed = True


class FakeASREngine(ASREngine):
    """
    Recognizer keyed by artifact id: the first key contained in the file name wins.
    A value that is an exception instance is raised instead of returned.
    """

    name = "fake-asr"

    def __init__(self, results: dict[str, ASRResult | Exception] | None = None) -> None:
        self.results = results or {}
        self.calls: list[Path] = []

    async def transcribe_file(self, path: Path, language: str | None = None) -> ASRResult:
        self.calls.append(path)
        await asyncio.sleep(0)
        for key, value in self.results.items():
            if key in path.name:
                if isinstance(value, Exception):
                    raise value
                return value
        return ASRResult(text="", segments=[], duration=0.0, language=language)


class CopyTranscoder(AudioTranscoder):
    """Copies instead of invoking ffmpeg; fails for sources whose name contains a listed key."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        super().__init__("mp3", "128k")
        self.fail_for = fail_for or set()

    def _convert_sync(self, src: Path, dest: Path) -> Path:
        if any(key in src.name for key in self.fail_for):
            raise TranscodeError(f"Could not convert {src.name} to mp3: corrupt input")
        shutil.copyfile(src, dest)
        return dest


def asr_result(*segments: tuple[float, float, str], duration: float | None = None) -> ASRResult:
    segs = [SegmentTimestamp(start=s, end=e, text=t) for s, e, t in segments]
    return ASRResult(
        text=" ".join(s.text for s in segs),
        segments=segs,
        duration=duration,
        language="en",
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        RECORDINGS_DIR=str(tmp_path / "recordings"),
        RECORDING_SETTLE_SECONDS=0,
        RECORDING_LIST_ATTEMPTS=3,
        RECORDING_LIST_DELAY_SECONDS=0,
        TWILIO_ACCOUNT_SID="",
        OPENAI_API_KEY="",
        ASR_BACKEND="openai",
        BASE_URL="http://interviews.test",
    )


@pytest.fixture
def storage(settings: Settings) -> RecordingStorage:
    return RecordingStorage(settings.RECORDINGS_DIR)


@pytest.fixture
def video() -> FakeVideoProvider:
    return FakeVideoProvider()


@pytest.fixture
def asr() -> FakeASREngine:
    return FakeASREngine()


@pytest.fixture
def transcoder() -> CopyTranscoder:
    return CopyTranscoder()


@pytest.fixture
def app(settings, video, asr, transcoder):
    return create_app(
        settings,
        video_provider=video,
        asr_engine=asr,
        transcoder=transcoder,
        sleep=no_sleep,
    )


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
