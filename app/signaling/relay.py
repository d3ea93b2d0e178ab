"""
SignalingRelay: forwards WebRTC negotiation messages between the peers of a room.

The relay knows nothing about offer/answer semantics. Collision-free negotiation
comes from the asymmetry of what peers are told:

- A joining peer first receives the current roster ("other-users"); an empty
  roster means it is first in the room and must wait.
- Peers already in the room receive a "user-joined" event instead.

The peer that sees a non-empty roster (the later joiner) sends the offer; the
earlier peer only answers. Only one peer of a pair ever sees a non-empty roster.

Delivery is put_nowait into per-peer outboxes, so every operation here is
synchronous and never blocks on I/O. A message for a peer that has already
gone is dropped silently; signaling is racy by nature.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

SIGNAL_KINDS = frozenset({"offer", "answer", "ice-candidate"})


class Outbox(Protocol):
    def put_nowait(self, item: Any) -> None: ...


@dataclass
class Room:
    """One call room. peers keeps join order."""

    room_id: str
    created_at: float
    peers: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.peers


def generate_room_id() -> str:
    return str(uuid.uuid4())


def generate_peer_id() -> str:
    """Peer id for one signaling connection (UUID hex, 12 chars)."""
    return uuid.uuid4().hex[:12]


class SignalingRelay:
    """Room roster plus message forwarding. Single owner of room state."""

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._rooms: dict[str, Room] = {}
        self._peer_rooms: dict[str, str] = {}
        self._outboxes: dict[str, Outbox] = {}

    # --- rooms ---

    def create_room(self, room_id: str | None = None) -> Room:
        """Register a new room (POST /rooms). Reuses an existing room with the same id."""
        return self.ensure_room(room_id or generate_room_id())

    def ensure_room(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id, created_at=self._clock())
            self._rooms[room_id] = room
            logger.info("Room created: %s", room_id)
        return room

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def room_of(self, peer_id: str) -> str | None:
        return self._peer_rooms.get(peer_id)

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    # --- peers ---

    def join(self, room_id: str, peer_id: str, outbox: Outbox) -> list[str]:
        """
        Add peer_id to room_id (creating the room if absent).

        The joiner's outbox gets "other-users" with the roster before anyone else
        hears about it; existing peers get "user-joined". Returns the roster.
        """
        current = self._peer_rooms.get(peer_id)
        if current is not None and current != room_id:
            self.leave(peer_id)

        room = self.ensure_room(room_id)
        others = [p for p in room.peers if p != peer_id]
        if peer_id not in room.peers:
            room.peers.append(peer_id)
        self._peer_rooms[peer_id] = room_id
        self._outboxes[peer_id] = outbox

        self._deliver(peer_id, {"type": "other-users", "roomId": room_id, "peers": list(others)})
        for other in others:
            self._deliver(other, {"type": "user-joined", "peerId": peer_id})
        logger.info("Peer %s joined room %s (%d already present)", peer_id, room_id, len(others))
        return others

    def relay(
        self,
        kind: str,
        payload: Any,
        from_peer: str,
        to_peer: str | None = None,
        to_room: str | None = None,
    ) -> int:
        """
        Forward payload verbatim, tagged with the sender.

        to_peer targets one peer; otherwise the message is broadcast to to_room
        (default: the sender's room), excluding the sender. Returns the number
        of outboxes the message reached.
        """
        if kind not in SIGNAL_KINDS:
            raise ValueError(f"Unsupported signal kind: {kind!r}")
        message = {"type": kind, "from": from_peer, "payload": payload}

        if to_peer is not None:
            return 1 if self._deliver(to_peer, message) else 0

        room_id = to_room or self._peer_rooms.get(from_peer)
        room = self._rooms.get(room_id) if room_id else None
        if room is None:
            logger.debug("Relay %s from %s: no target room", kind, from_peer)
            return 0
        delivered = 0
        for peer in room.peers:
            if peer != from_peer and self._deliver(peer, message):
                delivered += 1
        return delivered

    def leave(self, peer_id: str) -> str | None:
        """Remove peer from its room and tell the rest. Empty rooms wait for the sweep."""
        self._outboxes.pop(peer_id, None)
        room_id = self._peer_rooms.pop(peer_id, None)
        if room_id is None:
            return None
        room = self._rooms.get(room_id)
        if room is None:
            return room_id
        if peer_id in room.peers:
            room.peers.remove(peer_id)
        for other in room.peers:
            self._deliver(other, {"type": "user-left", "peerId": peer_id})
        logger.info("Peer %s left room %s (%d remaining)", peer_id, room_id, len(room.peers))
        return room_id

    # --- TTL sweep ---

    def sweep(self, now: float | None = None) -> list[str]:
        """Drop empty rooms created more than ttl_seconds ago. Returns removed ids."""
        now = self._clock() if now is None else now
        expired = [
            room_id
            for room_id, room in self._rooms.items()
            if room.is_empty and now - room.created_at > self._ttl_seconds
        ]
        for room_id in expired:
            del self._rooms[room_id]
        if expired:
            logger.info("Swept %d expired room(s)", len(expired))
        return expired

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Periodic sweep; runs until cancelled (lifespan shutdown)."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()

    def _deliver(self, peer_id: str, message: dict[str, Any]) -> bool:
        outbox = self._outboxes.get(peer_id)
        if outbox is None:
            logger.debug("Dropping %s for unknown peer %s", message.get("type"), peer_id)
            return False
        try:
            outbox.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Outbox full for peer %s, dropping %s", peer_id, message.get("type"))
            return False
        return True
