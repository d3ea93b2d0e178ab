"""
Speaker resolution for recorded artifacts.

Ordered fallback chain, first hit wins:
1. participant: the artifact's participant reference matches a known participant
   whose identity is a role identity -> RESOLVED.
2. track_name: a role keyword appears in the track name -> INFERRED.
3. filename: a role keyword leads (or appears in) the local file name -> INFERRED.
   Used when artifacts are re-read from disk and only the name survives.
4. ordinal: last resort over the whole batch; the first unresolved artifact is
   the Interviewer, later ones the Interviewee -> INFERRED, logged as a warning.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from app.recording.models import ResolutionMethod, Speaker, SpeakerResolution
from app.video.base import ProviderParticipant, ProviderRecording

logger = logging.getLogger(__name__)

_KEYWORD_RE = re.compile(r"interview(er|ee)", re.IGNORECASE)


def speaker_from_text(text: str | None) -> Speaker:
    """First role keyword in text; Unknown if none."""
    if not text:
        return Speaker.UNKNOWN
    match = _KEYWORD_RE.search(text)
    if match is None:
        return Speaker.UNKNOWN
    return Speaker.INTERVIEWER if match.group(1).lower() == "er" else Speaker.INTERVIEWEE


def speaker_from_identity(identity: str | None) -> Speaker:
    """Credential identity -> speaker. Only exact role identities count."""
    normalized = (identity or "").strip().lower()
    for speaker in (Speaker.INTERVIEWER, Speaker.INTERVIEWEE):
        if normalized == speaker.slug:
            return speaker
    return Speaker.UNKNOWN


def resolve_recording_speaker(
    recording: ProviderRecording,
    participants: Iterable[ProviderParticipant],
) -> SpeakerResolution:
    """Tiers 1 and 2 for one vendor recording."""
    if recording.participant_sid:
        for participant in participants:
            if participant.sid != recording.participant_sid:
                continue
            speaker = speaker_from_identity(participant.identity)
            if speaker is not Speaker.UNKNOWN:
                return SpeakerResolution.resolved(speaker)
            logger.info(
                "Recording %s belongs to participant %s with non-role identity %r",
                recording.sid,
                participant.sid,
                participant.identity,
            )
            break

    speaker = speaker_from_text(recording.track_name)
    if speaker is not Speaker.UNKNOWN:
        return SpeakerResolution.inferred(speaker, ResolutionMethod.TRACK_NAME)
    return SpeakerResolution.unresolved()


def speaker_from_filename(filename: str) -> SpeakerResolution:
    """Tier 3: re-derive from a local artifact file name (<speaker>_<track>_<id>.<codec>)."""
    prefix = filename.split("_", 1)[0].lower()
    for speaker in (Speaker.INTERVIEWER, Speaker.INTERVIEWEE):
        if prefix == speaker.slug:
            return SpeakerResolution.inferred(speaker, ResolutionMethod.FILENAME)
    if prefix == Speaker.UNKNOWN.slug:
        return SpeakerResolution.unresolved()
    speaker = speaker_from_text(filename)
    if speaker is not Speaker.UNKNOWN:
        return SpeakerResolution.inferred(speaker, ResolutionMethod.FILENAME)
    return SpeakerResolution.unresolved()


def assign_ordinal_speakers(
    resolutions: Sequence[SpeakerResolution],
    context: str = "",
) -> list[SpeakerResolution]:
    """
    Tier 4 over a batch, in order: first unresolved -> Interviewer, the rest -> Interviewee.
    Already-labelled entries are returned unchanged.
    """
    out: list[SpeakerResolution] = []
    seen_unresolved = False
    for index, resolution in enumerate(resolutions):
        if not resolution.is_unresolved:
            out.append(resolution)
            continue
        speaker = Speaker.INTERVIEWEE if seen_unresolved else Speaker.INTERVIEWER
        seen_unresolved = True
        logger.warning(
            "Speaker for item %d%s unresolved; ordinal fallback assigned %s",
            index,
            f" ({context})" if context else "",
            speaker.value,
        )
        out.append(SpeakerResolution.inferred(speaker, ResolutionMethod.ORDINAL))
    return out
