"""
Tests for merge ordering and the text/JSON renderings of a transcript.
"""
from datetime import datetime, timezone

from app.recording.models import ResolutionMethod, Speaker, SpeakerResolution
from app.transcript import (
    FAILED_TEXT,
    MergedSegment,
    MergedTranscript,
    Segment,
    TranscriptDocument,
    TranscriptionResult,
    format_timestamp,
    merge,
    parse_transcript_text,
    render_json,
    render_text,
)


def _result(artifact_id, speaker, *segments, error=None):
    return TranscriptionResult(
        artifact_id=artifact_id,
        file=f"{speaker.slug}_track_{artifact_id}.opus",
        resolution=SpeakerResolution.inferred(speaker, ResolutionMethod.FILENAME),
        text=FAILED_TEXT if error else " ".join(t for _, _, t in segments),
        segments=[Segment(start=s, end=e, text=t) for s, e, t in segments],
        error=error,
    )


def _document(results, merged=None, **kwargs):
    return TranscriptDocument(
        room_id="room-1",
        results=results,
        merged=merged if merged is not None else merge(results),
        generated_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        **kwargs,
    )


def test_merge_interleaves_by_start():
    x = _result("X", Speaker.INTERVIEWER, (5, 7, "x-late"), (1, 3, "x-early"))
    y = _result("Y", Speaker.INTERVIEWEE, (2, 4, "y"))

    merged = merge([x, y])

    assert [(s.artifact_id, s.start, s.end) for s in merged.segments] == [("X", 1, 3), ("Y", 2, 4), ("X", 5, 7)]
    assert [s.speaker for s in merged.segments] == [Speaker.INTERVIEWER, Speaker.INTERVIEWEE, Speaker.INTERVIEWER]


def test_merge_ties_keep_input_order_and_overlaps():
    x = _result("X", Speaker.INTERVIEWER, (1.0, 2.0, "a"), (1.0, 1.5, "b"))
    y = _result("Y", Speaker.INTERVIEWEE, (1.0, 3.0, "c"))

    merged = merge([x, y])

    assert [s.text for s in merged.segments] == ["a", "b", "c"]


def test_merge_skips_failed_results_without_segments():
    ok = _result("A", Speaker.INTERVIEWER, (0, 1, "hi"))
    failed = _result("B", Speaker.INTERVIEWEE, error="boom")
    assert [s.artifact_id for s in merge([ok, failed]).segments] == ["A"]


def test_format_timestamp_floors_to_minutes_and_seconds():
    assert format_timestamp(0.0) == "00:00"
    assert format_timestamp(59.99) == "00:59"
    assert format_timestamp(61.2) == "01:01"
    assert format_timestamp(3725.0) == "62:05"


def test_render_text_conversation_form():
    x = _result("X", Speaker.INTERVIEWER, (0.0, 1.0, "Hello"))
    y = _result("Y", Speaker.INTERVIEWEE, (65.4, 66.0, "Hi there"))

    text = render_text(_document([x, y]))

    assert "Room: room-1" in text
    assert "CONVERSATION WITH TIMESTAMPS:" in text
    assert "[00:00] Interviewer: Hello" in text
    assert "[01:05] Interviewee: Hi there" in text
    assert text.index("Hello") < text.index("Hi there")


def test_render_text_falls_back_to_per_speaker_form():
    failed = _result("X", Speaker.INTERVIEWER, error="ffmpeg exploded")
    empty = TranscriptionResult(
        artifact_id="Y",
        file="interviewee_track_Y.opus",
        resolution=SpeakerResolution.inferred(Speaker.INTERVIEWEE, ResolutionMethod.FILENAME),
        text="",
    )

    text = render_text(_document([failed, empty]))

    assert "FULL TRANSCRIPTIONS BY SPEAKER:" in text
    assert "INTERVIEWER:" in text
    assert FAILED_TEXT in text
    assert "[No transcription available]" in text
    assert "Failed artifacts: X" in text


def test_render_text_notes_diarization():
    x = _result("X", Speaker.INTERVIEWER, (0.0, 1.0, "Hello"))
    text = render_text(_document([x], diarization_applied=True, diarization_method="silence-gap"))
    assert "inferred by silence-gap" in text


def test_round_trip_render_and_parse_preserves_speaker_text_order():
    merged = MergedTranscript(
        segments=[
            MergedSegment(0.2, 1.0, "Tell me about yourself.", Speaker.INTERVIEWER, "X"),
            MergedSegment(1.4, 4.0, "Sure: I build [audio] tools.", Speaker.INTERVIEWEE, "Y"),
            MergedSegment(1.4, 2.0, "Overlapping remark", Speaker.INTERVIEWER, "X"),
            MergedSegment(75.9, 80.0, "Thanks!", Speaker.INTERVIEWER, "X"),
        ]
    )
    text = render_text(_document([], merged=merged))

    parsed = parse_transcript_text(text)

    assert [(line.speaker, line.text) for line in parsed] == merged.pairs()
    assert [line.seconds for line in parsed] == [0, 1, 1, 75]


def test_render_json_document_shape():
    x = _result("X", Speaker.INTERVIEWER, (0.0, 1.0, "Hello"))
    failed = _result("Y", Speaker.INTERVIEWEE, error="boom")

    doc = render_json(_document([x, failed]))

    assert doc["roomId"] == "room-1"
    assert doc["artifactCount"] == 2
    assert doc["diarizationApplied"] is False
    assert doc["diarizationMethod"] == "none"
    assert doc["generatedAt"] == "2026-01-02T03:04:05+00:00"
    assert doc["failedArtifacts"] == ["Y"]
    assert doc["speakerLabelsHeuristic"] is True
    assert doc["mergedSegments"] == [
        {"start": 0.0, "end": 1.0, "text": "Hello", "speaker": "Interviewer", "artifactId": "X"}
    ]
    per_artifact = doc["perArtifactResults"][0]
    assert per_artifact["speakerResolution"]["method"] == "filename"
    assert doc["perArtifactResults"][1]["text"] == FAILED_TEXT
