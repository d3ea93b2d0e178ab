"""
TwilioVideoProvider: Twilio Video REST API v1 over httpx.

- Rooms are created with recordParticipantsOnConnect so each track is recorded.
- Account SID + auth token authenticate REST calls and media downloads.
- Access tokens are HS256 JWTs signed with the API key secret (python-jose),
  carrying the identity and a video grant for one room name.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx
from jose import jwt

from app.config import Settings
from app.errors import ProviderError, ProviderNotConfiguredError, SessionNotFoundError
from app.video.base import ProviderParticipant, ProviderRecording, ProviderSession, VideoProvider

logger = logging.getLogger(__name__)

TWILIO_VIDEO_BASE_URL = "https://video.twilio.com/v1"
DOWNLOAD_CHUNK_BYTES = 64 * 1024


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _session_from_json(data: dict[str, Any]) -> ProviderSession:
    return ProviderSession(
        sid=data["sid"],
        name=data.get("unique_name") or "",
        status=data.get("status") or "",
        duration_seconds=data.get("duration"),
        created_at=_parse_datetime(data.get("date_created")),
    )


def _recording_from_json(data: dict[str, Any]) -> ProviderRecording:
    grouping = data.get("grouping_sids") or {}
    links = data.get("links") or {}
    return ProviderRecording(
        sid=data["sid"],
        codec=data.get("codec") or "",
        track_name=data.get("track_name") or "",
        media_url=links.get("media") or f"/Recordings/{data['sid']}/Media",
        container=data.get("container"),
        type=data.get("type"),
        status=data.get("status"),
        size_bytes=data.get("size"),
        duration_seconds=data.get("duration"),
        participant_sid=grouping.get("participant_sid"),
    )


class TwilioVideoProvider(VideoProvider):
    """Twilio Video rooms as recording sessions."""

    name = "twilio"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        api_key_sid: str,
        api_key_secret: str,
        *,
        room_type: str = "group",
        max_participants: int = 10,
        media_region: str = "us1",
        status_callback: str | None = None,
        token_ttl_seconds: int = 14400,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._account_sid = account_sid
        self._api_key_sid = api_key_sid
        self._api_key_secret = api_key_secret
        self._room_type = room_type
        self._max_participants = max_participants
        self._media_region = media_region
        self._status_callback = status_callback
        self._token_ttl_seconds = token_ttl_seconds
        self._client = client or httpx.AsyncClient(
            base_url=TWILIO_VIDEO_BASE_URL,
            auth=(account_sid, auth_token),
            timeout=timeout,
            follow_redirects=True,
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderError(f"Twilio {method} {url} failed: {e}") from e
        if resp.status_code == 404:
            raise SessionNotFoundError(f"Twilio resource not found: {url}", status_code=404)
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("message") or resp.text
            except ValueError:
                detail = resp.text
            raise ProviderError(
                f"Twilio {method} {url} returned {resp.status_code}: {detail}",
                status_code=resp.status_code,
            )
        return resp.json()

    async def create_session(self, name: str) -> ProviderSession:
        form = {
            "UniqueName": name,
            "Type": self._room_type,
            "RecordParticipantsOnConnect": "true",
            "MaxParticipants": str(self._max_participants),
            "MediaRegion": self._media_region,
        }
        if self._status_callback:
            form["StatusCallback"] = self._status_callback
            form["StatusCallbackMethod"] = "POST"
        data = await self._request("POST", "/Rooms", data=form)
        session = _session_from_json(data)
        logger.info("Twilio room created: sid=%s name=%s", session.sid, session.name)
        return session

    async def fetch_session(self, session_id: str) -> ProviderSession:
        return _session_from_json(await self._request("GET", f"/Rooms/{session_id}"))

    async def list_sessions(self, status: str = "in-progress") -> list[ProviderSession]:
        data = await self._request("GET", "/Rooms", params={"Status": status, "PageSize": 50})
        return [_session_from_json(room) for room in data.get("rooms", [])]

    async def complete_session(self, session_id: str) -> ProviderSession:
        try:
            data = await self._request("POST", f"/Rooms/{session_id}", data={"Status": "completed"})
        except SessionNotFoundError:
            raise
        except ProviderError as e:
            # Twilio rejects completing a room that is already completed
            if e.status_code is None or e.status_code >= 500:
                raise
            session = await self.fetch_session(session_id)
            if session.status != "completed":
                raise
            logger.info("Twilio room %s already completed", session_id)
            return session
        return _session_from_json(data)

    async def list_participants(self, session_id: str) -> list[ProviderParticipant]:
        # Twilio lists only one status per call; disconnected ones still own recordings
        seen: dict[str, ProviderParticipant] = {}
        for status in ("connected", "disconnected"):
            data = await self._request(
                "GET",
                f"/Rooms/{session_id}/Participants",
                params={"Status": status, "PageSize": 50},
            )
            for p in data.get("participants", []):
                seen.setdefault(
                    p["sid"],
                    ProviderParticipant(sid=p["sid"], identity=p.get("identity") or "", status=p.get("status") or status),
                )
        return list(seen.values())

    async def list_recordings(self, session_id: str) -> list[ProviderRecording]:
        data = await self._request("GET", f"/Rooms/{session_id}/Recordings", params={"PageSize": 50})
        return [_recording_from_json(r) for r in data.get("recordings", [])]

    async def download_recording(self, recording: ProviderRecording, dest: Path) -> int:
        url = recording.media_url
        # Links may be absolute, host-relative ("/v1/...") or base-relative
        if url.startswith("/v1/"):
            url = f"https://video.twilio.com{url}"
        written = 0
        try:
            async with self._client.stream("GET", url) as resp:
                if resp.status_code >= 400:
                    raise ProviderError(
                        f"Media download for {recording.sid} returned {resp.status_code}",
                        status_code=resp.status_code,
                    )
                with open(dest, "wb") as f:
                    async for chunk in resp.aiter_bytes(DOWNLOAD_CHUNK_BYTES):
                        f.write(chunk)
                        written += len(chunk)
        except httpx.HTTPError as e:
            raise ProviderError(f"Media download for {recording.sid} failed: {e}") from e
        return written

    def issue_token(self, identity: str, session_name: str) -> str:
        now = int(time.time())
        claims = {
            "jti": f"{self._api_key_sid}-{now}",
            "iss": self._api_key_sid,
            "sub": self._account_sid,
            "nbf": now,
            "exp": now + self._token_ttl_seconds,
            "grants": {"identity": identity, "video": {"room": session_name}},
        }
        return jwt.encode(
            claims,
            self._api_key_secret,
            algorithm="HS256",
            headers={"cty": "twilio-fpa;v=1"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()


def create_twilio_provider(settings: Settings) -> TwilioVideoProvider:
    """Build the provider or raise ProviderNotConfiguredError naming the missing keys."""
    required = {
        "TWILIO_ACCOUNT_SID": settings.TWILIO_ACCOUNT_SID,
        "TWILIO_AUTH_TOKEN": settings.TWILIO_AUTH_TOKEN,
        "TWILIO_API_KEY_SID": settings.TWILIO_API_KEY_SID,
        "TWILIO_API_KEY_SECRET": settings.TWILIO_API_KEY_SECRET,
    }
    missing = [key for key, value in required.items() if not value]
    if missing:
        raise ProviderNotConfiguredError("Twilio", missing)
    callback = f"{settings.BASE_URL.rstrip('/')}/recording/webhook" if settings.BASE_URL else None
    return TwilioVideoProvider(
        settings.TWILIO_ACCOUNT_SID,
        settings.TWILIO_AUTH_TOKEN,
        settings.TWILIO_API_KEY_SID,
        settings.TWILIO_API_KEY_SECRET,
        room_type=settings.TWILIO_ROOM_TYPE,
        max_participants=settings.TWILIO_MAX_PARTICIPANTS,
        media_region=settings.TWILIO_MEDIA_REGION,
        status_callback=callback,
        token_ttl_seconds=settings.TWILIO_TOKEN_TTL_SECONDS,
        timeout=settings.TWILIO_HTTP_TIMEOUT_SECONDS,
    )
