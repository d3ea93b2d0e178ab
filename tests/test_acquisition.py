"""
Tests for RecordingAcquisition: bounded retry listing, speaker resolution across
connected and disconnected participants, per-artifact download isolation.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from app.errors import ArtifactDownloadError, ProviderError
from app.recording import ListingStatus, RecordingAcquisition, ResolutionKind, ResolutionMethod, Speaker
from app.video.base import ProviderParticipant


@pytest.fixture
def sleep():
    return AsyncMock(return_value=None)


@pytest.fixture
def acquisition(video, storage, sleep):
    return RecordingAcquisition(
        lambda: video,
        storage,
        settle_seconds=5.0,
        list_attempts=3,
        list_delay_seconds=6.0,
        sleep=sleep,
    )


@pytest.fixture
def finished_session(video):
    session = video.add_session("RM1", "room_room-1_1", status="completed")
    video.participants["RM1"] = [
        ProviderParticipant(sid="PA1", identity="interviewer", status="disconnected"),
        ProviderParticipant(sid="PA2", identity="interviewee", status="disconnected"),
    ]
    return session


@pytest.mark.asyncio
async def test_acquire_downloads_and_labels_by_participant(acquisition, video, storage, finished_session):
    video.add_recording("RM1", "RT1", track_name="mic-a", participant_sid="PA1")
    video.add_recording("RM1", "RT2", track_name="mic-b", participant_sid="PA2")

    result = await acquisition.acquire("room-1", "RM1")

    assert result.status is ListingStatus.FOUND
    assert [a.speaker for a in result.artifacts] == [Speaker.INTERVIEWER, Speaker.INTERVIEWEE]
    assert all(a.resolution.kind is ResolutionKind.RESOLVED for a in result.artifacts)
    names = sorted(p.name for p in storage.list_artifact_files("room-1"))
    assert names == ["interviewee_mic-b_RT2.opus", "interviewer_mic-a_RT1.opus"]


@pytest.mark.asyncio
async def test_settle_then_retry_until_recordings_appear(acquisition, video, sleep, finished_session):
    recording = video.add_recording("RM1", "RT1", participant_sid="PA1")
    video.listing_script["RM1"] = [[], [], [recording]]

    result = await acquisition.acquire("room-1", "RM1")

    assert result.status is ListingStatus.FOUND
    assert video.list_recording_calls == 3
    # settle + two retry delays
    assert [c.args[0] for c in sleep.await_args_list] == [5.0, 6.0, 6.0]


@pytest.mark.asyncio
async def test_empty_after_all_attempts_is_not_yet_available(acquisition, video, finished_session):
    result = await acquisition.acquire("room-1", "RM1")

    assert result.status is ListingStatus.NOT_YET_AVAILABLE
    assert result.artifacts == []
    assert video.list_recording_calls == 3


@pytest.mark.asyncio
async def test_missing_session_is_permanently_absent(acquisition, video):
    result = await acquisition.acquire("room-1", "RM-gone", settle=False)

    assert result.status is ListingStatus.PERMANENTLY_ABSENT
    assert video.list_recording_calls == 1


@pytest.mark.asyncio
async def test_track_name_keyword_when_participant_unknown(acquisition, video, finished_session):
    video.add_recording("RM1", "RT1", track_name="interviewee-audio", participant_sid="PA-unknown")

    result = await acquisition.acquire("room-1", "RM1")

    artifact = result.artifacts[0]
    assert artifact.speaker is Speaker.INTERVIEWEE
    assert artifact.resolution.method is ResolutionMethod.TRACK_NAME


@pytest.mark.asyncio
async def test_ordinal_fallback_for_unresolvable_artifacts(acquisition, video, finished_session):
    video.add_recording("RM1", "RT1", track_name="audio")
    video.add_recording("RM1", "RT2", track_name="audio")

    result = await acquisition.acquire("room-1", "RM1")

    assert [a.speaker for a in result.artifacts] == [Speaker.INTERVIEWER, Speaker.INTERVIEWEE]
    assert all(a.resolution.method is ResolutionMethod.ORDINAL for a in result.artifacts)
    assert all(a.resolution.as_dict()["heuristic"] for a in result.artifacts)


@pytest.mark.asyncio
async def test_video_tracks_are_skipped(acquisition, video, finished_session):
    video.add_recording("RM1", "RT1", participant_sid="PA1")
    video.add_recording("RM1", "RTV", participant_sid="PA1", type="video", codec="h264")

    result = await acquisition.acquire("room-1", "RM1")

    assert [a.artifact_id for a in result.artifacts] == ["RT1"]


@pytest.mark.asyncio
async def test_one_failed_download_does_not_abort_others(acquisition, video, storage, finished_session):
    video.add_recording("RM1", "RT1", participant_sid="PA1")
    video.add_recording("RM1", "RT2", participant_sid="PA2")
    video.failing_downloads.add("RT2")

    result = await acquisition.acquire("room-1", "RM1")

    assert [a.artifact_id for a in result.downloaded] == ["RT1"]
    assert [a.artifact_id for a in result.failed] == ["RT2"]
    assert "unavailable" in result.failed[0].error
    assert result.failed[0].path is None
    assert not list(storage.artifacts_dir("room-1").glob("*.part"))


@pytest.mark.asyncio
async def test_every_download_failing_raises(acquisition, video, finished_session):
    video.add_recording("RM1", "RT1", participant_sid="PA1")
    video.failing_downloads.add("RT1")

    with pytest.raises(ArtifactDownloadError) as exc_info:
        await acquisition.acquire("room-1", "RM1")
    assert "RT1" in exc_info.value.failures


@pytest.mark.asyncio
async def test_existing_artifact_is_not_downloaded_again(acquisition, video, finished_session):
    video.add_recording("RM1", "RT1", participant_sid="PA1")
    await acquisition.acquire("room-1", "RM1")
    await acquisition.acquire("room-1", "RM1")

    assert video.download_calls == 1


@pytest.mark.asyncio
async def test_participant_listing_failure_falls_back_to_track_names(acquisition, video, finished_session, monkeypatch):
    video.add_recording("RM1", "RT1", track_name="interviewer-mic", participant_sid="PA1")
    monkeypatch.setattr(video, "list_participants", AsyncMock(side_effect=ProviderError("boom")))

    result = await acquisition.acquire("room-1", "RM1")

    assert result.artifacts[0].resolution.method is ResolutionMethod.TRACK_NAME


@pytest.mark.asyncio
async def test_locate_session_prefers_in_progress(acquisition, video):
    video.add_session("RM-old", "room_room-1_100", status="completed")
    video.add_session("RM-live", "room_room-1_200", status="in-progress")

    located = await acquisition.locate_session("room-1")

    assert located.sid == "RM-live"


@pytest.mark.asyncio
async def test_locate_session_falls_back_to_completed(acquisition, video):
    video.add_session("RM-old", "room_room-1_100", status="completed")
    video.add_session("RM-other", "room_room-2_100", status="in-progress")

    assert (await acquisition.locate_session("room-1")).sid == "RM-old"
    assert await acquisition.locate_session("room-9") is None


@pytest.mark.asyncio
async def test_track_name_with_path_separator_still_downloads(acquisition, video, storage, finished_session):
    video.add_recording("RM1", "RT1", track_name="camera/mic", participant_sid="PA1")
    video.add_recording("RM1", "RT2", track_name="mic", participant_sid="PA2")

    result = await acquisition.acquire("room-1", "RM1")

    assert [a.error for a in result.artifacts] == [None, None]
    names = sorted(p.name for p in storage.list_artifact_files("room-1"))
    assert names == ["interviewee_mic_RT2.opus", "interviewer_camera-mic_RT1.opus"]


@pytest.mark.asyncio
async def test_concurrent_acquisitions_of_one_room_do_not_collide(acquisition, video, storage, finished_session, monkeypatch):
    payload = b"x" * 64
    video.add_recording("RM1", "RT1", track_name="mic", participant_sid="PA1", media=payload)
    calls = []

    async def chunked_download(recording, dest):
        calls.append(recording.sid)
        with open(dest, "ab") as f:
            for i in range(0, len(payload), 16):
                f.write(payload[i:i + 16])
                await asyncio.sleep(0)
        return len(payload)

    monkeypatch.setattr(video, "download_recording", chunked_download)

    first, second = await asyncio.gather(
        acquisition.acquire("room-1", "RM1"),
        acquisition.acquire("room-1", "RM1"),
    )

    assert len(first.downloaded) == 1
    assert len(second.downloaded) == 1
    assert calls == ["RT1"]
    [path] = storage.list_artifact_files("room-1")
    assert path.read_bytes() == payload
    assert len(acquisition._locks) == 0
