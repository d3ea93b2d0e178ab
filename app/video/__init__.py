"""Video: swappable cloud recording providers."""
from .base import ProviderParticipant, ProviderRecording, ProviderSession, VideoProvider
from .twilio import TwilioVideoProvider, create_twilio_provider

__all__ = [
    "ProviderParticipant",
    "ProviderRecording",
    "ProviderSession",
    "VideoProvider",
    "TwilioVideoProvider",
    "create_twilio_provider",
]
