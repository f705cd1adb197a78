import threading
from typing import Dict


class LocationRateLimiter:
    """Per-player ceiling on accepted location updates.

    An update is accepted iff at least ``interval_ms`` elapsed since the last
    accepted one for the same player. Rejected updates do not move the window.
    """

    def __init__(self, interval_ms: int = 1000):
        self.interval_ms = interval_ms
        self._last_accepted: Dict[str, int] = {}
        self._lock = threading.Lock()

    def try_acquire(self, player_id: str, now: int) -> bool:
        with self._lock:
            last = self._last_accepted.get(player_id)
            if last is not None and now - last < self.interval_ms:
                return False
            self._last_accepted[player_id] = now
            return True

    def forget(self, player_id: str) -> None:
        with self._lock:
            self._last_accepted.pop(player_id, None)

    def __len__(self):
        return len(self._last_accepted)
