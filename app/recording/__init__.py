"""Recording: session roles, artifact acquisition and speaker resolution."""
from .acquisition import RecordingAcquisition
from .models import (
    AcquisitionResult,
    Artifact,
    ArtifactListing,
    ListingStatus,
    RecordingSession,
    ResolutionKind,
    ResolutionMethod,
    Role,
    Speaker,
    SpeakerResolution,
    StartResult,
)

__all__ = [
    "RecordingAcquisition",
    "AcquisitionResult",
    "Artifact",
    "ArtifactListing",
    "ListingStatus",
    "RecordingSession",
    "ResolutionKind",
    "ResolutionMethod",
    "Role",
    "Speaker",
    "SpeakerResolution",
    "StartResult",
]
