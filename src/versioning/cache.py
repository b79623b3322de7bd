"""Concurrency-safe resolution state cache keyed by version identifier."""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional, Tuple

from .models import ResolutionState


class VersionCache:
    """Mapping from version identifier to resolution state.

    Every update goes through :meth:`compute`, which holds a lock dedicated
    to the key for the whole read-decide-write step. Callers asking for the
    same identifier are serialized and observe each other's outcome; other
    identifiers proceed in parallel. Entries are never evicted.
    """

    def __init__(self) -> None:
        self._states: Dict[str, ResolutionState] = {}
        self._key_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def compute(
        self,
        key: str,
        fn: Callable[[Optional[ResolutionState]], ResolutionState],
    ) -> ResolutionState:
        """Atomically replace the state of ``key`` with ``fn(current)``.

        ``fn`` receives None when no entry exists. If ``fn`` raises, the
        previous state is kept and the exception propagates.
        """
        with self._lock_for(key):
            with self._lock:
                current = self._states.get(key)
            updated = fn(current)
            with self._lock:
                self._states[key] = updated
            return updated

    def get(self, key: str) -> Optional[ResolutionState]:
        with self._lock:
            return self._states.get(key)

    def items(self) -> List[Tuple[str, ResolutionState]]:
        """Point-in-time snapshot of all entries."""
        with self._lock:
            return list(self._states.items())

    def clear(self) -> None:
        """Drop every state. Per-key locks are kept so in-flight computes stay serialized."""
        with self._lock:
            self._states.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._states

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
