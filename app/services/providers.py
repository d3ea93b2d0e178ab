"""
ProviderHub: lazily built external collaborators.

Nothing vendor-specific is constructed at startup, so rooms and signaling work
without any credentials. The first operation that needs a provider builds it;
missing credentials surface there as ProviderNotConfiguredError.
"""
from __future__ import annotations

import logging
from typing import Any

from app.asr import ASREngine, create_asr_engine
from app.config import Settings
from app.video import VideoProvider, create_twilio_provider

logger = logging.getLogger(__name__)


class ProviderHub:
    def __init__(
        self,
        settings: Settings,
        video_provider: VideoProvider | None = None,
        asr_engine: ASREngine | None = None,
    ) -> None:
        self._settings = settings
        self._video = video_provider
        self._asr = asr_engine
        # faster-whisper model, loaded in the app lifespan when ASR_BACKEND=local
        self.whisper_model: Any = None

    def video(self) -> VideoProvider:
        if self._video is None:
            self._video = create_twilio_provider(self._settings)
            logger.info("Recording provider ready: %s", type(self._video).__name__)
        return self._video

    def asr(self) -> ASREngine:
        if self._asr is None:
            self._asr = create_asr_engine(self._settings, self.whisper_model)
            logger.info("Speech recognition ready: %s", self._asr.name)
        return self._asr

    @property
    def recording_configured(self) -> bool:
        return self._video is not None or self._settings.recording_configured

    @property
    def transcription_configured(self) -> bool:
        if self._asr is not None:
            return True
        if self._settings.ASR_BACKEND == "local":
            return self.whisper_model is not None
        return self._settings.transcription_configured

    async def aclose(self) -> None:
        if self._video is not None:
            await self._video.aclose()
        if self._asr is not None:
            await self._asr.aclose()
