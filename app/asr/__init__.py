"""ASR: swappable Whisper-compatible engines."""
from __future__ import annotations

from typing import Any

from app.config import Settings
from app.errors import ProviderNotConfiguredError

from .base import ASREngine, ASRResult, SegmentTimestamp, normalize_text
from .local_whisper import LocalWhisperEngine, load_whisper_model
from .openai_whisper import OpenAIWhisperEngine


def create_asr_engine(settings: Settings, model: Any = None) -> ASREngine:
    """Engine for ASR_BACKEND. Local uses the model loaded at startup."""
    if settings.ASR_BACKEND == "local":
        if model is None:
            raise ProviderNotConfiguredError("Local Whisper", ["whisper model (not loaded at startup)"])
        return LocalWhisperEngine(model=model, beam_size=settings.LOCAL_WHISPER_BEAM_SIZE)
    if not settings.OPENAI_API_KEY:
        raise ProviderNotConfiguredError("OpenAI Whisper", ["OPENAI_API_KEY"])
    return OpenAIWhisperEngine(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_TRANSCRIPTION_MODEL,
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.OPENAI_HTTP_TIMEOUT_SECONDS,
    )


__all__ = [
    "ASREngine",
    "ASRResult",
    "SegmentTimestamp",
    "normalize_text",
    "LocalWhisperEngine",
    "OpenAIWhisperEngine",
    "create_asr_engine",
    "load_whisper_model",
]
