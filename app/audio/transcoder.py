"""
AudioTranscoder: vendor media (opus/mka/webm) -> format the recognizer accepts.

pydub drives ffmpeg. Conversion is blocking, so it runs in an executor. The
output is a temporary <stem>_temp.<fmt> next to the source; callers remove it
once recognition is done. Storage listings skip *_temp files.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

logger = logging.getLogger(__name__)


class TranscodeError(RuntimeError):
    """ffmpeg could not read or write the audio."""


class AudioTranscoder:
    def __init__(self, fmt: str = "mp3", bitrate: str = "128k") -> None:
        self._format = fmt
        self._bitrate = bitrate

    def output_path(self, src: Path, out_dir: Path) -> Path:
        return out_dir / f"{src.stem}_temp.{self._format}"

    def _convert_sync(self, src: Path, dest: Path) -> Path:
        """Decode src with ffmpeg and export dest. Blocking; run in executor."""
        try:
            segment = AudioSegment.from_file(str(src))
            export_kwargs = {"format": self._format}
            if self._format == "mp3":
                export_kwargs["bitrate"] = self._bitrate
            segment.export(str(dest), **export_kwargs)
        except (CouldntDecodeError, OSError) as e:
            raise TranscodeError(f"Could not convert {src.name} to {self._format}: {e}") from e
        logger.info(
            "Converted %s -> %s (%d KB)",
            src.name,
            dest.name,
            dest.stat().st_size // 1024 if dest.exists() else 0,
        )
        return dest

    async def transcode(self, src: Path, out_dir: Path) -> Path:
        dest = self.output_path(src, out_dir)
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._convert_sync, src, dest)
