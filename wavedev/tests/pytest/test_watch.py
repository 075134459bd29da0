"""
Tests for change filtering, debouncing, and watcher startup.
"""

from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path

import pytest

from wavedev.commands.watch import ChangeEvent, ChangeFilter, ChangeWatcher, Debouncer
from wavedev.core.errors import WatchError


# =============================================================================
# ChangeFilter
# =============================================================================


@pytest.mark.evergreen
class TestChangeFilter:
    """Only engine sources and the manifest are relevant."""

    @pytest.fixture
    def engine(self, tmp_path: Path) -> Path:
        return tmp_path / "proj" / "engine"

    def test_accepts_rust_source(self, engine: Path) -> None:
        assert ChangeFilter(engine).is_relevant(engine / "src" / "lib.rs")

    def test_accepts_nested_rust_source(self, engine: Path) -> None:
        assert ChangeFilter(engine).is_relevant(engine / "src" / "dsp" / "filter.rs")

    def test_accepts_manifest(self, engine: Path) -> None:
        assert ChangeFilter(engine).is_relevant(engine / "Cargo.toml")

    def test_rejects_build_output(self, engine: Path) -> None:
        f = ChangeFilter(engine)
        assert not f.is_relevant(engine / "target" / "debug" / "build" / "out.rs")
        assert not f.is_relevant(engine / "target" / "Cargo.toml")

    @pytest.mark.parametrize("name", [
        "lib.rs.swp",
        "lib.rs.swo",
        "lib.rs~",
        ".#lib.rs",
        ".hidden.rs",
    ])
    def test_rejects_editor_and_hidden_files(self, engine: Path, name: str) -> None:
        assert not ChangeFilter(engine).is_relevant(engine / "src" / name)

    def test_rejects_hidden_directory(self, engine: Path) -> None:
        assert not ChangeFilter(engine).is_relevant(engine / "src" / ".cache" / "x.rs")

    def test_rejects_other_extensions(self, engine: Path) -> None:
        f = ChangeFilter(engine)
        assert not f.is_relevant(engine / "src" / "notes.md")
        assert not f.is_relevant(engine / "Cargo.lock")

    def test_dotted_ancestor_does_not_hide_project(self, tmp_path: Path) -> None:
        engine = tmp_path / ".workspace" / "proj" / "engine"
        assert ChangeFilter(engine).is_relevant(engine / "src" / "lib.rs")


# =============================================================================
# Debouncer
# =============================================================================


@pytest.mark.evergreen
class TestDebouncer:
    """Bursts collapse into one callback after the quiet period."""

    def test_burst_fires_once_with_deduplicated_paths(self) -> None:
        calls: list[list[Path]] = []
        fired = threading.Event()

        def callback(paths: list[Path]) -> None:
            calls.append(paths)
            fired.set()

        debouncer = Debouncer(0.1, callback)
        for _ in range(3):
            debouncer.trigger(Path("a.rs"))
            debouncer.trigger(Path("b.rs"))

        assert fired.wait(2.0)
        time.sleep(0.2)
        assert len(calls) == 1
        assert calls[0] == [Path("a.rs"), Path("b.rs")]

    def test_each_event_resets_the_timer(self) -> None:
        fired_at: list[float] = []
        debouncer = Debouncer(0.15, lambda paths: fired_at.append(time.monotonic()))

        start = time.monotonic()
        for _ in range(4):
            debouncer.trigger(Path("a.rs"))
            time.sleep(0.05)

        time.sleep(0.4)
        assert len(fired_at) == 1
        # Last trigger at ~0.15s plus the 0.15s quiet period
        assert fired_at[0] - start >= 0.28

    def test_separate_bursts_fire_separately(self) -> None:
        calls: list[list[Path]] = []
        debouncer = Debouncer(0.05, calls.append)

        debouncer.trigger(Path("a.rs"))
        time.sleep(0.3)
        debouncer.trigger(Path("b.rs"))
        time.sleep(0.3)

        assert calls == [[Path("a.rs")], [Path("b.rs")]]

    def test_cancel_drops_pending_events(self) -> None:
        calls: list[list[Path]] = []
        debouncer = Debouncer(0.1, calls.append)
        debouncer.trigger(Path("a.rs"))
        debouncer.cancel()
        debouncer.trigger(Path("b.rs"))
        time.sleep(0.3)
        assert calls == []

    def test_stale_timer_does_not_flush_newer_paths(self) -> None:
        calls: list[list[Path]] = []
        debouncer = Debouncer(10.0, calls.append)
        try:
            debouncer.trigger(Path("a.rs"))
            stale = debouncer._generation
            debouncer.trigger(Path("b.rs"))

            # An earlier timer that was already running when trigger() cancelled it
            debouncer._fire(stale)
            assert calls == []

            debouncer._fire(debouncer._generation)
            assert calls == [[Path("a.rs"), Path("b.rs")]]
        finally:
            debouncer.cancel()


# =============================================================================
# ChangeEvent
# =============================================================================


@pytest.mark.evergreen
class TestChangeEvent:

    def test_describe_truncates(self) -> None:
        event = ChangeEvent(paths=tuple(Path(f"f{i}.rs") for i in range(5)))
        assert event.describe() == "f0.rs, f1.rs, f2.rs (+2 more)"

    def test_describe_empty(self) -> None:
        assert ChangeEvent().describe() == "sources changed"


# =============================================================================
# ChangeWatcher
# =============================================================================


@pytest.mark.evergreen
class TestChangeWatcher:
    """Watcher startup and delivery onto the event loop."""

    @pytest.mark.asyncio
    async def test_missing_source_dir_is_fatal(self, tmp_path: Path) -> None:
        engine = tmp_path / "engine"
        engine.mkdir()
        watcher = ChangeWatcher(engine, asyncio.Queue(), asyncio.get_running_loop())
        with pytest.raises(WatchError):
            watcher.start()

    @pytest.mark.asyncio
    async def test_source_edit_produces_one_event(self, engine_project: Path) -> None:
        engine = engine_project / "engine"
        queue: asyncio.Queue = asyncio.Queue()
        watcher = ChangeWatcher(engine, queue, asyncio.get_running_loop(), debounce_seconds=0.2)
        watcher.start()
        try:
            await asyncio.sleep(0.2)
            lib = engine / "src" / "lib.rs"
            for i in range(3):
                lib.write_text(f"// edit {i}\n")
            # Noise that must not trigger anything
            (engine / "src" / "lib.rs.swp").write_text("x")

            event = await asyncio.wait_for(queue.get(), timeout=5.0)
            assert isinstance(event, ChangeEvent)
            assert all(p.suffix == ".rs" for p in event.paths)

            await asyncio.sleep(0.6)
            assert queue.empty()
        finally:
            watcher.stop()
