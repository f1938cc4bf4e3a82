# sync.py
"""
Sync Module
Keeps every observer of the auction on the latest state.

Two transports with different lifetimes:
  - BroadcastChannel: named pub/sub, delivers only to receivers open right now
  - the persisted snapshot (SQLite), read by observers that start late
SyncChannel writes both from the same serialized payload.
"""

import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from auction_state import AuctionState
from config import CHANNEL_NAME, SNAPSHOT_KEY
from database import Database
from errors import SnapshotError

logger = logging.getLogger("AuctionBot.Sync")

RESET_SIGNAL = {"reset": True}

Handler = Callable[[Any], None]


def is_reset(message: Any) -> bool:
    return isinstance(message, dict) and message.get("reset") is True


class BroadcastChannel:
    """
    Process-wide publish/subscribe keyed by channel name.

    post_message() reaches every *other* open instance with the same name.
    Each receiver gets its own decoded copy of the message; nothing is
    replayed for instances opened after the post.
    """

    _registry: Dict[str, List["BroadcastChannel"]] = {}
    _registry_lock = threading.Lock()

    def __init__(self, name: str = CHANNEL_NAME):
        self.name = name
        self._handlers: List[Handler] = []
        self.closed = False
        with self._registry_lock:
            self._registry.setdefault(name, []).append(self)

    def subscribe(self, handler: Handler):
        self._handlers.append(handler)

    def unsubscribe(self, handler: Handler):
        if handler in self._handlers:
            self._handlers.remove(handler)

    def post_message(self, message: Any):
        if self.closed:
            raise RuntimeError(f"Broadcast channel '{self.name}' is closed")

        wire = json.dumps(message)
        with self._registry_lock:
            receivers = [
                ch for ch in self._registry.get(self.name, []) if ch is not self
            ]

        for receiver in receivers:
            receiver._deliver(json.loads(wire))

    def _deliver(self, message: Any):
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception:
                logger.exception(
                    f"Subscriber on '{self.name}' failed to handle a message"
                )

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._handlers.clear()
        with self._registry_lock:
            peers = self._registry.get(self.name, [])
            if self in peers:
                peers.remove(self)
            if not peers:
                self._registry.pop(self.name, None)


class SyncChannel:
    """Snapshot store + broadcast, used by the controller and displays alike"""

    def __init__(
        self,
        db: Database,
        channel_name: str = CHANNEL_NAME,
        key: str = SNAPSHOT_KEY,
    ):
        self.db = db
        self.key = key
        self.channel = BroadcastChannel(channel_name)

    def publish(self, state: AuctionState):
        """Persist the snapshot, then broadcast the same payload.

        A failed snapshot write propagates before anything is broadcast.
        """
        payload = json.dumps(state.to_dict())
        self.db.save_snapshot(self.key, payload)
        self.channel.post_message(json.loads(payload))

    def publish_reset(self):
        self.db.clear_snapshot(self.key)
        self.channel.post_message(RESET_SIGNAL)
        logger.info("Published reset signal")

    def restore(self) -> Optional[AuctionState]:
        """Latest persisted state, or None for a fresh session.

        Raises SnapshotError if the stored payload cannot be decoded.
        """
        raw = self.db.get_snapshot(self.key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot is not a JSON object")
        return AuctionState.from_dict(data)

    def discard_snapshot(self):
        self.db.clear_snapshot(self.key)

    def subscribe(self, handler: Handler):
        self.channel.subscribe(handler)

    def close(self):
        self.channel.close()
