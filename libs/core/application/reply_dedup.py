from __future__ import annotations

import threading


class ReplyDeduplicator:
    """Membership set of reply ids that already received a response.

    The set is never pruned; its lifetime is bounded by the polling campaign.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seen: set[str] = set()

    def has_responded(self, reply_id: str) -> bool:
        with self._lock:
            return reply_id in self._seen

    def mark_responded(self, reply_id: str) -> None:
        with self._lock:
            self._seen.add(reply_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()
