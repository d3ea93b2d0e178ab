"""
RecordingStorage: per-room files under RECORDINGS_DIR.

  <room>/artifacts/<speaker>_<track>_<artifactId>.<codec>   raw vendor media
  <room>/transcript.json, <room>/transcript.txt               rendered documents

Artifact files are write-once. Transcript documents are written to a temp
file and renamed so pollers never observe a half-written document.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

ARTIFACTS_DIRNAME = "artifacts"
TRANSCRIPT_JSON = "transcript.json"
TRANSCRIPT_TEXT = "transcript.txt"
AUDIO_EXTENSIONS = (".opus", ".mka", ".webm", ".mp4", ".ogg", ".wav")


def safe_component(value: str) -> str:
    """Reject anything that is not a single plain path component."""
    if not value or value in (".", "..") or "/" in value or "\\" in value or "\x00" in value:
        raise ValueError(f"Invalid path component: {value!r}")
    return value


class RecordingStorage:
    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    def room_dir(self, room_id: str) -> Path:
        return self.base_dir / safe_component(room_id)

    def artifacts_dir(self, room_id: str, create: bool = False) -> Path:
        path = self.room_dir(room_id) / ARTIFACTS_DIRNAME
        if create:
            path.mkdir(parents=True, exist_ok=True)
        return path

    def artifact_path(self, room_id: str, filename: str) -> Path:
        return self.artifacts_dir(room_id) / safe_component(filename)

    def list_artifact_files(self, room_id: str) -> list[Path]:
        directory = self.artifacts_dir(room_id)
        if not directory.is_dir():
            return []
        return sorted(
            p
            for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in AUDIO_EXTENSIONS and not p.stem.endswith("_temp")
        )

    # --- transcript documents ---

    def transcript_path(self, room_id: str, fmt: str = "text") -> Path:
        name = TRANSCRIPT_JSON if fmt == "json" else TRANSCRIPT_TEXT
        return self.room_dir(room_id) / name

    def has_transcript(self, room_id: str) -> bool:
        return self.transcript_path(room_id, "text").is_file()

    def write_transcript(self, room_id: str, document: dict[str, Any], text: str) -> tuple[Path, Path]:
        room_dir = self.room_dir(room_id)
        room_dir.mkdir(parents=True, exist_ok=True)
        json_path = self.transcript_path(room_id, "json")
        text_path = self.transcript_path(room_id, "text")
        _write_atomic(json_path, json.dumps(document, ensure_ascii=False, indent=2))
        _write_atomic(text_path, text)
        logger.info("Transcript saved: %s, %s", json_path, text_path)
        return json_path, text_path

    def read_transcript_text(self, room_id: str) -> str | None:
        path = self.transcript_path(room_id, "text")
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def read_transcript_json(self, room_id: str) -> dict[str, Any] | None:
        path = self.transcript_path(room_id, "json")
        if not path.is_file():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def list_recordings(self) -> list[dict[str, Any]]:
        """Rooms with artifacts or a transcript, newest first."""
        if not self.base_dir.is_dir():
            return []
        out: list[dict[str, Any]] = []
        for room_dir in self.base_dir.iterdir():
            if not room_dir.is_dir():
                continue
            room_id = room_dir.name
            files = [p.name for p in self.list_artifact_files(room_id)]
            has_transcript = self.has_transcript(room_id)
            if not files and not has_transcript:
                continue
            mtime = room_dir.stat().st_mtime
            out.append(
                {
                    "roomId": room_id,
                    "date": datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat(),
                    "files": files,
                    "path": f"/recordings/{room_id}",
                    "hasTranscript": has_transcript,
                    "transcriptPath": f"/transcript/{room_id}" if has_transcript else None,
                    "_mtime": mtime,
                }
            )
        out.sort(key=lambda r: r["_mtime"], reverse=True)
        for r in out:
            del r["_mtime"]
        return out


def _write_atomic(path: Path, content: str) -> None:
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(content)
    os.replace(tmp, path)
