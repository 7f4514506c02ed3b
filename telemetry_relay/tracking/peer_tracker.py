"""Liveness tracking for the origins sending datagrams to the listener."""

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from telemetry_relay.data_interface.telemetry_data import format_timestamp

LISTENING_KEY = "server"
LIVENESS_WINDOW_S = 30.0


class PeerStatus(str, Enum):
    ACTIVE = "active"
    LISTENING = "listening"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class PeerView:
    """Read-only copy of one peer entry."""

    id: str
    address: str
    port: int
    status: PeerStatus
    last_activity: float
    messages_received: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "address": self.address,
            "port": self.port,
            "status": self.status.value,
            "lastActivity": format_timestamp(
                datetime.fromtimestamp(self.last_activity, tz=timezone.utc)
            ),
            "messagesReceived": self.messages_received,
        }


class PeerTracker:
    """Keeps one entry per datagram origin, keyed by "address:port".

    Entries are never removed. A single lock guards the map so every
    upsert and sweep is seen whole by snapshot readers.
    """

    def __init__(
        self,
        liveness_window_s: float = LIVENESS_WINDOW_S,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.liveness_window_s = liveness_window_s
        self._clock = clock or time.time
        self._peers: Dict[str, PeerView] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key_for(address: str, port: int) -> str:
        return f"{address}:{port}"

    def mark_listening(self, address: str, port: int) -> PeerView:
        """Register the bound listening endpoint itself."""
        view = PeerView(
            id=LISTENING_KEY,
            address=address,
            port=port,
            status=PeerStatus.LISTENING,
            last_activity=self._clock(),
            messages_received=0,
        )
        with self._lock:
            self._peers[LISTENING_KEY] = view
        return view

    def upsert(self, address: str, port: int) -> PeerView:
        """Record one datagram from an origin and return its new state."""
        key = self.key_for(address, port)
        now = self._clock()
        with self._lock:
            existing = self._peers.get(key)
            view = PeerView(
                id=key,
                address=address,
                port=port,
                status=PeerStatus.ACTIVE,
                last_activity=now,
                messages_received=existing.messages_received + 1 if existing else 1,
            )
            self._peers[key] = view
        return view

    def sweep(self, now: Optional[float] = None) -> List[str]:
        """Mark peers silent for longer than the liveness window as inactive.

        Returns the keys that changed state.
        """
        if now is None:
            now = self._clock()
        expired = []
        with self._lock:
            for key, view in self._peers.items():
                if view.status != PeerStatus.ACTIVE:
                    continue
                if now - view.last_activity > self.liveness_window_s:
                    self._peers[key] = PeerView(
                        id=view.id,
                        address=view.address,
                        port=view.port,
                        status=PeerStatus.INACTIVE,
                        last_activity=view.last_activity,
                        messages_received=view.messages_received,
                    )
                    expired.append(key)
        if expired:
            print(f"[PeerTracker] Marked inactive: {', '.join(expired)}")
        return expired

    def get(self, key: str) -> Optional[PeerView]:
        with self._lock:
            return self._peers.get(key)

    def snapshot(self) -> List[PeerView]:
        with self._lock:
            return list(self._peers.values())

    def __len__(self):
        with self._lock:
            return len(self._peers)
