"""
Single-flight gate for rebuilds.

At most one build runs at a time and at most one more is queued behind it.
"""

from __future__ import annotations

import threading


class BuildGuard:
    """Two-flag state machine: ``building`` and ``pending``.

    Every transition happens under one short lock, so each method is atomic
    with respect to the others. Nothing ever blocks waiting for a build to
    finish: callers either proceed or mark pending and return.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._building = False
        self._pending = False

    @property
    def building(self) -> bool:
        return self._building

    @property
    def pending(self) -> bool:
        return self._pending

    def try_start(self) -> bool:
        """Transition building false -> true. Returns False if already building."""
        with self._lock:
            if self._building:
                return False
            self._building = True
            return True

    def mark_pending(self) -> None:
        """Record that a change arrived while a build was in flight."""
        with self._lock:
            self._pending = True

    def complete(self) -> bool:
        """Finish the current build.

        Clears ``building`` and reads-and-clears ``pending``. Returns True when
        a follow-up build should start right away. The caller must still win
        ``try_start()`` before running it.
        """
        with self._lock:
            self._building = False
            follow_up = self._pending
            self._pending = False
            return follow_up

    def __repr__(self) -> str:
        return f"BuildGuard(building={self._building}, pending={self._pending})"
