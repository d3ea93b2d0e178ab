"""
TranscriptionPipeline: local artifacts -> merged, labelled transcript on disk.

Per artifact: transcode -> recognize. A failure is captured in that
artifact's TranscriptionResult (text FAILED_TEXT, error set) and the batch
carries on. Artifacts are processed concurrently; result order follows the
input order regardless of completion order.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Sequence

from app.asr.base import ASREngine
from app.audio.transcoder import AudioTranscoder
from app.diarization import ExternalDiarizer, diarize
from app.diarization.speaker_tracker import DiarizationMode
from app.recording.models import Artifact
from app.recording.speakers import assign_ordinal_speakers, speaker_from_filename
from app.storage import RecordingStorage
from app.transcript.merger import merge
from app.transcript.models import FAILED_TEXT, MergedTranscript, TranscriptDocument, TranscriptionResult
from app.transcript.writer import TranscriptWriter

logger = logging.getLogger(__name__)


def artifact_from_file(path: Path) -> Artifact:
    """Rebuild an Artifact from a stored <speaker>_<track>_<id>.<codec> file."""
    stem = path.stem
    parts = stem.split("_")
    if len(parts) >= 3:
        artifact_id = parts[-1]
        track_name = "_".join(parts[1:-1])
    else:
        artifact_id = stem
        track_name = ""
    return Artifact(
        artifact_id=artifact_id,
        codec=path.suffix.lstrip("."),
        track_name=track_name,
        size_bytes=path.stat().st_size if path.exists() else None,
        resolution=speaker_from_filename(path.name),
        path=path,
    )


class TranscriptionPipeline:
    def __init__(
        self,
        engine: ASREngine,
        transcoder: AudioTranscoder,
        storage: RecordingStorage,
        *,
        language: str | None = "en",
        diarization_mode: DiarizationMode = "auto",
        gap_sec: float = 0.5,
        external_diarizer: ExternalDiarizer | None = None,
    ) -> None:
        self._engine = engine
        self._transcoder = transcoder
        self._storage = storage
        self._language = language
        self._diarization_mode = diarization_mode
        self._gap_sec = gap_sec
        self._external_diarizer = external_diarizer
        self._writer = TranscriptWriter(storage)

    async def transcribe(self, artifact: Artifact) -> TranscriptionResult:
        """One artifact -> result. Never raises for per-artifact failures."""
        resolution = artifact.resolution
        if resolution.is_unresolved and artifact.path is not None:
            resolution = speaker_from_filename(artifact.path.name)
        file = artifact.path.name if artifact.path is not None else artifact.filename

        if not artifact.downloaded:
            return TranscriptionResult(
                artifact_id=artifact.artifact_id,
                file=file,
                resolution=resolution,
                text=FAILED_TEXT,
                error=artifact.error or "artifact not available locally",
            )

        converted: Path | None = None
        try:
            converted = await self._transcoder.transcode(artifact.path, artifact.path.parent)
            asr = await self._engine.transcribe_file(converted, language=self._language)
        except Exception as e:
            logger.error("Transcription of %s (%s) failed: %s", file, resolution.speaker.value, e)
            return TranscriptionResult(
                artifact_id=artifact.artifact_id,
                file=file,
                resolution=resolution,
                text=FAILED_TEXT,
                error=str(e) or type(e).__name__,
            )
        finally:
            if converted is not None:
                try:
                    converted.unlink()
                except FileNotFoundError:
                    pass

        logger.info(
            "Transcribed %s (%s): %d segments, %d chars",
            file,
            resolution.speaker.value,
            len(asr.segments),
            len(asr.text),
        )
        return TranscriptionResult(
            artifact_id=artifact.artifact_id,
            file=file,
            resolution=resolution,
            text=asr.text,
            segments=list(asr.segments),
            duration=asr.duration,
            language=asr.language,
        )

    async def transcribe_all(self, room_id: str, artifacts: Sequence[Artifact]) -> list[TranscriptionResult]:
        results = list(await asyncio.gather(*(self.transcribe(a) for a in artifacts)))
        relabelled = assign_ordinal_speakers([r.resolution for r in results], context=f"room {room_id}")
        for result, resolution in zip(results, relabelled):
            result.resolution = resolution
        return results

    async def build_document(self, room_id: str, results: list[TranscriptionResult]) -> TranscriptDocument:
        merged = merge(results)
        outcome = await diarize(
            merged.segments,
            results,
            mode=self._diarization_mode,
            gap_sec=self._gap_sec,
            external=self._external_diarizer,
        )
        return TranscriptDocument(
            room_id=room_id,
            results=results,
            merged=MergedTranscript(segments=outcome.segments),
            diarization_applied=outcome.applied,
            diarization_method=outcome.method,
        )

    async def run(self, room_id: str, artifacts: Sequence[Artifact] | None = None) -> TranscriptDocument | None:
        """
        Transcribe a room and write transcript.json / transcript.txt.
        Artifacts default to the files already stored for the room.
        Returns None when there is nothing local to transcribe.
        """
        if artifacts is None:
            artifacts = [artifact_from_file(p) for p in self._storage.list_artifact_files(room_id)]
        if not any(a.downloaded for a in artifacts):
            logger.warning("No local artifacts to transcribe for room %s", room_id)
            return None

        logger.info("Transcribing %d artifact(s) for room %s", len(artifacts), room_id)
        results = await self.transcribe_all(room_id, artifacts)
        document = await self.build_document(room_id, results)
        self._writer.write(document)
        failed = document.failed_artifacts
        if failed:
            logger.warning("Room %s transcript written with %d failed artifact(s): %s", room_id, len(failed), failed)
        return document
