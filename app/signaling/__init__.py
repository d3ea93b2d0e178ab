"""Signaling: room roster and offer/answer/ICE forwarding."""
from .relay import SIGNAL_KINDS, Room, SignalingRelay, generate_peer_id, generate_room_id

__all__ = ["SIGNAL_KINDS", "Room", "SignalingRelay", "generate_peer_id", "generate_room_id"]
