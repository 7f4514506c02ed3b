from .peer_tracker import LISTENING_KEY, PeerStatus, PeerTracker, PeerView

__all__ = ["LISTENING_KEY", "PeerStatus", "PeerTracker", "PeerView"]
