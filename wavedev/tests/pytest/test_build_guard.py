"""
Tests for the single-flight build guard.
"""

from __future__ import annotations

import threading

import pytest

from wavedev.build.guard import BuildGuard


@pytest.mark.evergreen
class TestBuildGuard:
    """One running build, at most one queued."""

    def test_single_build(self) -> None:
        guard = BuildGuard()
        assert guard.try_start()
        assert not guard.try_start()
        assert not guard.complete()
        # Free again after completion
        assert guard.try_start()
        guard.complete()

    def test_complete_without_pending_returns_false(self) -> None:
        guard = BuildGuard()
        guard.try_start()
        assert guard.complete() is False
        assert guard.building is False

    def test_pending_returns_true_exactly_once(self) -> None:
        guard = BuildGuard()
        assert guard.try_start()
        assert not guard.try_start()
        guard.mark_pending()

        assert guard.complete() is True
        assert guard.try_start()
        assert guard.complete() is False

    def test_multiple_marks_collapse_to_one(self) -> None:
        guard = BuildGuard()
        guard.try_start()
        guard.mark_pending()
        guard.mark_pending()
        guard.mark_pending()

        assert guard.complete() is True
        assert guard.complete() is False

    def test_complete_clears_building(self) -> None:
        guard = BuildGuard()
        guard.try_start()
        guard.mark_pending()
        guard.complete()
        assert guard.building is False
        assert guard.pending is False

    def test_try_start_is_exclusive_across_threads(self) -> None:
        guard = BuildGuard()
        barrier = threading.Barrier(16)
        wins: list[bool] = []
        lock = threading.Lock()

        def contend() -> None:
            barrier.wait()
            won = guard.try_start()
            with lock:
                wins.append(won)

        threads = [threading.Thread(target=contend) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert wins.count(True) == 1
