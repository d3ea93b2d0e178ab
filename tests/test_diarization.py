"""
Tests for the silence-gap speaker fallback and the policy choosing when it runs.
"""
import pytest

from app.diarization import METHOD_NONE, METHOD_SILENCE_GAP, ExternalDiarizer, SpeakerTracker, diarize
from app.recording.models import ResolutionMethod, Speaker, SpeakerResolution
from app.transcript import MergedSegment, TranscriptionResult


def _segments(*starts, speaker=Speaker.UNKNOWN):
    return [MergedSegment(start=s, end=s, text=f"t{i}", speaker=speaker, artifact_id="A") for i, s in enumerate(starts)]


def _result(resolution):
    return TranscriptionResult(artifact_id="A", file="a.opus", resolution=resolution, text="")


ORDINAL = SpeakerResolution.inferred(Speaker.INTERVIEWER, ResolutionMethod.ORDINAL)
FROM_FILENAME = SpeakerResolution.inferred(Speaker.INTERVIEWER, ResolutionMethod.FILENAME)


def test_alternation_flips_only_across_long_gaps():
    labelled = SpeakerTracker(gap_sec=0.5).assign(_segments(0.0, 0.3, 5.0, 5.2))

    assert [s.speaker for s in labelled] == [
        Speaker.INTERVIEWER,
        Speaker.INTERVIEWER,
        Speaker.INTERVIEWEE,
        Speaker.INTERVIEWEE,
    ]


def test_gap_is_measured_from_previous_end():
    segments = [
        MergedSegment(0.0, 4.0, "long answer", Speaker.UNKNOWN, "A"),
        MergedSegment(4.2, 5.0, "follow-up", Speaker.UNKNOWN, "A"),
        MergedSegment(6.0, 7.0, "reply", Speaker.UNKNOWN, "A"),
    ]
    labelled = SpeakerTracker(gap_sec=0.5).assign(segments)
    assert [s.speaker for s in labelled] == [Speaker.INTERVIEWER, Speaker.INTERVIEWER, Speaker.INTERVIEWEE]


def test_gap_equal_to_threshold_does_not_flip():
    labelled = SpeakerTracker(gap_sec=0.5).assign(_segments(0.0, 0.5))
    assert [s.speaker for s in labelled] == [Speaker.INTERVIEWER, Speaker.INTERVIEWER]


def test_assign_does_not_mutate_input():
    original = _segments(0.0, 3.0)
    SpeakerTracker().assign(original)
    assert all(s.speaker is Speaker.UNKNOWN for s in original)


@pytest.mark.asyncio
async def test_auto_applies_when_all_labels_are_last_resort():
    outcome = await diarize(_segments(0.0, 3.0), [_result(ORDINAL), _result(SpeakerResolution.unresolved())])

    assert outcome.applied is True
    assert outcome.method == METHOD_SILENCE_GAP
    assert [s.speaker for s in outcome.segments] == [Speaker.INTERVIEWER, Speaker.INTERVIEWEE]


@pytest.mark.asyncio
async def test_auto_keeps_filename_labels():
    segments = _segments(0.0, 3.0, speaker=Speaker.INTERVIEWEE)
    outcome = await diarize(segments, [_result(FROM_FILENAME), _result(ORDINAL)])

    assert outcome.applied is False
    assert outcome.method == METHOD_NONE
    assert [s.speaker for s in outcome.segments] == [Speaker.INTERVIEWEE, Speaker.INTERVIEWEE]


@pytest.mark.asyncio
async def test_always_and_off_modes():
    segments = _segments(0.0, 3.0, speaker=Speaker.INTERVIEWEE)

    forced = await diarize(segments, [_result(FROM_FILENAME)], mode="always")
    disabled = await diarize(segments, [_result(ORDINAL)], mode="off")

    assert forced.applied and forced.segments[0].speaker is Speaker.INTERVIEWER
    assert not disabled.applied


class ReverseDiarizer(ExternalDiarizer):
    name = "voiceprint"

    async def diarize(self, segments, results):
        return [
            MergedSegment(s.start, s.end, s.text, Speaker.INTERVIEWEE, s.artifact_id) for s in segments
        ]


class BrokenDiarizer(ExternalDiarizer):
    name = "broken"

    async def diarize(self, segments, results):
        raise RuntimeError("model missing")


@pytest.mark.asyncio
async def test_external_diarizer_takes_precedence():
    outcome = await diarize(_segments(0.0, 3.0), [_result(ORDINAL)], external=ReverseDiarizer())

    assert outcome.method == "voiceprint"
    assert all(s.speaker is Speaker.INTERVIEWEE for s in outcome.segments)


@pytest.mark.asyncio
async def test_failing_external_diarizer_falls_back_to_silence_gap():
    outcome = await diarize(_segments(0.0, 3.0), [_result(ORDINAL)], external=BrokenDiarizer())
    assert outcome.method == METHOD_SILENCE_GAP
