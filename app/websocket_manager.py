"""
WebSocketManager: one signaling WebSocket = one peer.

Client messages (JSON text):
  {"type": "join", "roomId": "..."}
  {"type": "offer" | "answer" | "ice-candidate", "to": "<peerId>"?, "roomId": "..."?, "payload": ...}
  {"type": "leave"}

Relay operations run inline per message and only enqueue; a writer task drains
the outbox to the socket so a slow client never stalls the receive loop.
Disconnect implies leave.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

from app.signaling.relay import SIGNAL_KINDS, SignalingRelay, generate_peer_id

logger = logging.getLogger(__name__)

# Bound per-peer backlog; a peer this far behind is dropping messages anyway
OUTBOX_MAX_MESSAGES = 256


class WebSocketManager:
    """Bridges one accepted WebSocket to the shared SignalingRelay."""

    def __init__(self, websocket: WebSocket, relay: SignalingRelay) -> None:
        self._ws = websocket
        self._relay = relay
        self.peer_id = generate_peer_id()
        self._outbox: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(maxsize=OUTBOX_MAX_MESSAGES)
        self._writer_task: asyncio.Task[None] | None = None
        self._closed = False

    async def _writer(self) -> None:
        """Drain outbox to the socket. None = close."""
        while True:
            message = await self._outbox.get()
            if message is None:
                break
            if self._closed:
                continue
            try:
                await self._ws.send_text(json.dumps(message))
            except Exception as e:
                logger.debug("Send to peer %s failed: %s", self.peer_id, e)
                self._closed = True

    def _send_error(self, error: str) -> None:
        try:
            self._outbox.put_nowait({"type": "error", "error": error})
        except asyncio.QueueFull:
            pass

    def handle_message(self, raw: str) -> None:
        """Dispatch one client message to the relay. Malformed input answers with an error."""
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError:
            self._send_error("Invalid JSON")
            return
        if not isinstance(msg, dict):
            self._send_error("Message must be a JSON object")
            return

        kind = msg.get("type")
        if kind == "join":
            room_id = msg.get("roomId")
            if not isinstance(room_id, str) or not room_id.strip():
                self._send_error("roomId is required to join")
                return
            self._relay.join(room_id.strip(), self.peer_id, self._outbox)
        elif kind in SIGNAL_KINDS:
            to_peer, to_room = msg.get("to"), msg.get("roomId")
            if not all(v is None or isinstance(v, str) for v in (to_peer, to_room)):
                self._send_error("to and roomId must be strings")
                return
            self._relay.relay(
                kind,
                msg.get("payload"),
                self.peer_id,
                to_peer=to_peer,
                to_room=to_room,
            )
        elif kind == "leave":
            self._relay.leave(self.peer_id)
        else:
            self._send_error(f"Unknown message type: {kind!r}")

    async def run(self) -> None:
        """Main loop: announce peer id, dispatch text frames until disconnect."""
        self._writer_task = asyncio.create_task(self._writer())
        self._outbox.put_nowait({"type": "connected", "peerId": self.peer_id})
        try:
            while not self._closed:
                msg = await self._ws.receive()
                if msg.get("type") == "websocket.disconnect":
                    break
                text = msg.get("text")
                if text is None:
                    self._send_error("Binary frames are not supported")
                    continue
                self.handle_message(text)
        finally:
            self._relay.leave(self.peer_id)
            self._closed = True
            # Wake the writer; it may be blocked on an empty queue
            try:
                self._outbox.put_nowait(None)
            except asyncio.QueueFull:
                self._writer_task.cancel()
            try:
                await asyncio.wait_for(self._writer_task, timeout=5.0)
            except (asyncio.CancelledError, asyncio.TimeoutError):
                self._writer_task.cancel()
