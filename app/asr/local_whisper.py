"""
LocalWhisperEngine: Whisper-compatible ASR using faster-whisper.

- Model loaded ONCE at startup (singleton, injected at construction).
- Runs in executor so event loop stays responsive.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from app.asr.base import ASREngine, ASRResult, SegmentTimestamp, normalize_text

# Type for shared WhisperModel (loaded at startup)
WhisperModelT = Any


def load_whisper_model(model_name: str, device: str, compute_type: str) -> WhisperModelT:
    """Load faster-whisper model once. Called at startup when ASR_BACKEND=local."""
    try:
        from faster_whisper import WhisperModel
    except ImportError as err:
        raise ImportError(
            "faster-whisper is required for ASR_BACKEND=local. "
            "Install with: pip install faster-whisper"
        ) from err
    return WhisperModel(model_name, device=device, compute_type=compute_type)


class LocalWhisperEngine(ASREngine):
    """Local Whisper via faster-whisper. Uses shared model (singleton)."""

    name = "faster-whisper"

    def __init__(self, model: WhisperModelT, beam_size: int = 5) -> None:
        if model is None:
            raise ValueError("LocalWhisperEngine needs a loaded WhisperModel")
        self._model = model
        self._beam_size = beam_size

    def _transcribe_sync(self, path: Path, language: str | None) -> ASRResult:
        segments, info = self._model.transcribe(
            str(path),
            language=language,
            beam_size=self._beam_size,
            vad_filter=True,
        )
        seg_ts: list[SegmentTimestamp] = []
        for seg in segments:
            t = normalize_text(seg.text)
            if t:
                seg_ts.append(SegmentTimestamp(start=float(seg.start), end=float(seg.end), text=t))
        return ASRResult(
            text=" ".join(s.text for s in seg_ts),
            segments=seg_ts,
            duration=getattr(info, "duration", None),
            language=getattr(info, "language", None) or language,
        )

    async def transcribe_file(self, path: Path, language: str | None = None) -> ASRResult:
        """Run _transcribe_sync in executor so event loop is not blocked."""
        if language and language.lower() == "auto":
            language = None
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._transcribe_sync, path, language)
