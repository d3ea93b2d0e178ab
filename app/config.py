"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Public base URL (join links, vendor status callback). Empty = derive from request.
    BASE_URL: str = ""

    # Rooms: empty rooms older than TTL are dropped by the periodic sweep
    ROOM_TTL_SECONDS: float = 3600.0
    ROOM_SWEEP_INTERVAL_SECONDS: float = 300.0

    # Twilio Video (recording provider). Empty = recording endpoints answer 503.
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_API_KEY_SID: str = ""
    TWILIO_API_KEY_SECRET: str = ""
    TWILIO_ROOM_TYPE: Literal["group", "group-small"] = "group"
    TWILIO_MAX_PARTICIPANTS: int = 10
    TWILIO_MEDIA_REGION: str = "us1"
    TWILIO_TOKEN_TTL_SECONDS: int = 14400  # 4 hours
    TWILIO_HTTP_TIMEOUT_SECONDS: float = 30.0

    # Artifact acquisition: settle after finalize, then bounded list retries
    RECORDINGS_DIR: str = "./recordings"
    RECORDING_SETTLE_SECONDS: float = 5.0
    RECORDING_LIST_ATTEMPTS: int = 4
    RECORDING_LIST_DELAY_SECONDS: float = 6.0

    # ASR backend: "openai" (hosted Whisper) | "local" (faster-whisper)
    ASR_BACKEND: Literal["openai", "local"] = "openai"
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_TRANSCRIPTION_MODEL: str = "whisper-1"
    OPENAI_HTTP_TIMEOUT_SECONDS: float = 300.0
    TRANSCRIPTION_LANGUAGE: str = "en"  # "auto" = let the engine detect

    # Local Whisper (when ASR_BACKEND=local); model loaded once at startup
    LOCAL_WHISPER_MODEL: str = "base"  # base | small | medium | large-v3
    LOCAL_WHISPER_DEVICE: Literal["cpu", "cuda"] = "cpu"
    LOCAL_WHISPER_COMPUTE_TYPE: Literal["int8", "float16"] = "int8"
    LOCAL_WHISPER_BEAM_SIZE: int = 5

    # Transcoding before recognition (pydub / ffmpeg)
    TRANSCODE_FORMAT: Literal["mp3", "wav"] = "mp3"
    TRANSCODE_BITRATE: str = "128k"

    # Silence-gap speaker fallback.
    # auto = only when every speaker label came from ordinal guessing; always; off.
    DIARIZATION_FALLBACK: Literal["auto", "always", "off"] = "auto"
    DIARIZATION_SPEAKER_GAP_SEC: float = 0.5

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path empty = console only
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def recording_configured(self) -> bool:
        return all(
            (
                self.TWILIO_ACCOUNT_SID,
                self.TWILIO_AUTH_TOKEN,
                self.TWILIO_API_KEY_SID,
                self.TWILIO_API_KEY_SECRET,
            )
        )

    @property
    def transcription_configured(self) -> bool:
        if self.ASR_BACKEND == "local":
            return True
        return bool(self.OPENAI_API_KEY)


def get_settings() -> Settings:
    return Settings()
