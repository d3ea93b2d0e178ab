"""Transcript polling endpoint: 404 until the background pipeline has written the document."""
from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse, PlainTextResponse

from app.routers.recording import error_response
from app.storage import RecordingStorage

logger = logging.getLogger(__name__)


def create_transcript_router(storage: RecordingStorage) -> APIRouter:
    router = APIRouter()

    @router.get("/transcript/{room_id}")
    async def get_transcript(room_id: str, fmt: Literal["text", "json"] = Query("text", alias="format")):
        try:
            if fmt == "json":
                document = storage.read_transcript_json(room_id)
            else:
                document = storage.read_transcript_text(room_id)
        except ValueError:
            return error_response(404, "Transcript not found")
        if document is None:
            logger.debug("Transcript for room %s not ready (format=%s)", room_id, fmt)
            return error_response(
                404,
                "Transcript not found",
                hint="Transcription may still be processing; retry shortly",
            )
        if fmt == "json":
            return JSONResponse(content={"success": True, "transcript": document})
        return PlainTextResponse(document)

    return router
