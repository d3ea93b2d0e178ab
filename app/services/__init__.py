"""Application services: provider wiring, background work, transcription launch."""
from app.services.background import BackgroundTaskSupervisor
from app.services.providers import ProviderHub
from app.services.transcription import TranscriptionLauncher

__all__ = ["BackgroundTaskSupervisor", "ProviderHub", "TranscriptionLauncher"]
