"""Audio: transcoding of recorded tracks before recognition."""
from .transcoder import AudioTranscoder, TranscodeError

__all__ = ["AudioTranscoder", "TranscodeError"]
