"""
OpenAIWhisperEngine: Whisper via the OpenAI audio transcription API.

Multipart upload with response_format=verbose_json so the reply carries
segments, duration and detected language. Uses httpx.AsyncClient directly.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from app.asr.base import ASREngine, ASRResult, SegmentTimestamp, normalize_text

logger = logging.getLogger(__name__)

_MIME_TYPES = {".mp3": "audio/mpeg", ".wav": "audio/wav", ".webm": "audio/webm", ".ogg": "audio/ogg"}


def _parse_verbose_json(data: dict[str, Any], language: str | None) -> ASRResult:
    segments: list[SegmentTimestamp] = []
    for seg in data.get("segments") or []:
        text = normalize_text(seg.get("text"))
        if not text:
            continue
        segments.append(SegmentTimestamp(start=float(seg["start"]), end=float(seg["end"]), text=text))
    return ASRResult(
        text=(data.get("text") or "").strip(),
        segments=segments,
        duration=data.get("duration"),
        language=data.get("language") or language,
    )


class OpenAIWhisperEngine(ASREngine):
    """Remote Whisper. One request per file; no retries (the pipeline records failures)."""

    name = "openai-whisper"

    def __init__(
        self,
        api_key: str,
        model: str = "whisper-1",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 300.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = model
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
        )

    async def transcribe_file(self, path: Path, language: str | None = None) -> ASRResult:
        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")
        form = {"model": self._model, "response_format": "verbose_json"}
        if language and language.lower() != "auto":
            form["language"] = language
        mime = _MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")

        logger.info("Sending %s to Whisper (model=%s)", path.name, self._model)
        with open(path, "rb") as audio_file:
            resp = await self._client.post(
                "/audio/transcriptions",
                data=form,
                files={"file": (path.name, audio_file, mime)},
            )
        if resp.status_code != 200:
            raise RuntimeError(f"Whisper API returned {resp.status_code}: {resp.text[:200]}")
        result = _parse_verbose_json(resp.json(), language)
        logger.info(
            "Whisper transcribed %s: %d segment(s), %s chars",
            path.name,
            len(result.segments),
            len(result.text),
        )
        return result

    async def aclose(self) -> None:
        await self._client.aclose()
