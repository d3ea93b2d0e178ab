"""
TranscriptionLauncher: builds the pipeline and hands a room to the supervisor.

Launching never blocks the caller; the transcript appears on disk when the
background task completes.
"""
from __future__ import annotations

import logging
from typing import Sequence

from app.audio import AudioTranscoder
from app.config import Settings
from app.diarization import ExternalDiarizer
from app.errors import ProviderNotConfiguredError
from app.recording.models import Artifact
from app.services.background import BackgroundTaskSupervisor
from app.services.providers import ProviderHub
from app.storage import RecordingStorage
from app.transcript.pipeline import TranscriptionPipeline

logger = logging.getLogger(__name__)


class TranscriptionLauncher:
    def __init__(
        self,
        settings: Settings,
        hub: ProviderHub,
        storage: RecordingStorage,
        transcoder: AudioTranscoder,
        supervisor: BackgroundTaskSupervisor,
        external_diarizer: ExternalDiarizer | None = None,
    ) -> None:
        self._settings = settings
        self._hub = hub
        self._storage = storage
        self._transcoder = transcoder
        self._supervisor = supervisor
        self._external_diarizer = external_diarizer

    def pipeline(self) -> TranscriptionPipeline:
        """Raises ProviderNotConfiguredError when no recognizer is available."""
        return TranscriptionPipeline(
            self._hub.asr(),
            self._transcoder,
            self._storage,
            language=self._settings.TRANSCRIPTION_LANGUAGE,
            diarization_mode=self._settings.DIARIZATION_FALLBACK,
            gap_sec=self._settings.DIARIZATION_SPEAKER_GAP_SEC,
            external_diarizer=self._external_diarizer,
        )

    def launch(self, room_id: str, artifacts: Sequence[Artifact] | None = None) -> bool:
        """
        Start background transcription. False when recognition is not configured.
        A room whose transcription is still running is not launched twice.
        """
        name = f"transcribe:{room_id}"
        if self._supervisor.is_running(name):
            logger.info("Transcription for room %s already running; not relaunching", room_id)
            return True
        try:
            pipeline = self.pipeline()
        except ProviderNotConfiguredError as e:
            logger.warning("Transcription for room %s skipped: %s", room_id, e)
            return False
        self._supervisor.spawn(name, pipeline.run(room_id, artifacts))
        return True
