"""HTTP routers, built by factories from wired services."""
from app.routers.recording import create_recording_router
from app.routers.transcript import create_transcript_router

__all__ = ["create_recording_router", "create_transcript_router"]
