"""In-memory store of the latest scan result per page session.

- One entry per page session, replaced by every completed scan (last writer wins)
- Entries are dropped when the session navigates to a new top-level location
- No size or time eviction; nothing survives a process restart
"""

import logging
import threading
from typing import Dict, Optional

from .analyzer.result_models import ScanResult

logger = logging.getLogger(__name__)


class ScanSessionStore:
    """
    Session-scoped result cache.

    Usage:
        store = ScanSessionStore()
        store.put(session_id, result)
        cached = store.get(session_id)
        store.invalidate(session_id)  # on navigation
    """

    def __init__(self):
        self._results: Dict[str, ScanResult] = {}
        self._lock = threading.RLock()

    def put(self, session_id: str, result: ScanResult) -> None:
        """Record the latest result for a session, superseding any earlier one."""
        with self._lock:
            previous = self._results.get(session_id)
            self._results[session_id] = result
        if previous is not None:
            logger.debug(f"Superseded cached result for session {session_id}")

    def get(self, session_id: str) -> Optional[ScanResult]:
        with self._lock:
            return self._results.get(session_id)

    def invalidate(self, session_id: str) -> bool:
        """Drop the session's result. Returns True if one was cached."""
        with self._lock:
            removed = self._results.pop(session_id, None)
        if removed is not None:
            logger.debug(f"Invalidated cached result for session {session_id}")
        return removed is not None

    def clear(self) -> None:
        with self._lock:
            self._results.clear()

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._results

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"cached_sessions": len(self._results)}
