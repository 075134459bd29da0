"""
Change watching for the plugin engine.

Monitors engine sources and the crate manifest, filters out noise, and
coalesces bursts of file events into single change signals.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileSystemEvent

from wavedev.core.errors import WatchError
from wavedev.core.utils import log, timestamp


# =============================================================================
# Constants
# =============================================================================

DEBOUNCE_SECONDS = 0.5

EDITOR_TEMP_SUFFIXES = (".swp", ".swo", ".swx", ".tmp")


# =============================================================================
# Change Event
# =============================================================================


@dataclass(frozen=True)
class ChangeEvent:
    """One coalesced "the watched tree changed" signal."""

    timestamp: float = field(default_factory=time.time)
    paths: tuple[Path, ...] = ()

    def describe(self) -> str:
        names = [p.name for p in self.paths]
        if not names:
            return "sources changed"
        if len(names) <= 3:
            return ", ".join(names)
        return f"{', '.join(names[:3])} (+{len(names) - 3} more)"


# =============================================================================
# Change Filter
# =============================================================================


class ChangeFilter:
    """Decides whether a path change should trigger a rebuild."""

    def __init__(self, engine_dir: Path):
        self.engine_dir = engine_dir
        self.target_dir = engine_dir / "target"

    def is_relevant(self, path: Path) -> bool:
        # Build output
        if _is_under(path, self.target_dir):
            return False

        # Hidden files and directories (relative to the engine so a dotted
        # parent of the project does not hide everything)
        rel_parts = path.relative_to(self.engine_dir).parts if _is_under(path, self.engine_dir) else path.parts
        if any(part.startswith(".") for part in rel_parts):
            return False

        name = path.name
        if name.endswith("~") or name.endswith(EDITOR_TEMP_SUFFIXES):
            return False

        return path.suffix == ".rs" or name == "Cargo.toml"


def _is_under(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


# =============================================================================
# Debouncer
# =============================================================================


class Debouncer:
    """Batches rapid file change events into a single signal.

    Collects paths until `delay` seconds pass with no further event, then
    fires the callback once with the de-duplicated path list.
    """

    def __init__(self, delay: float, callback: Callable[[list[Path]], None]):
        self.delay = delay
        self.callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._pending_paths: dict[Path, None] = {}
        self._cancelled = False
        self._generation = 0

    def trigger(self, path: Path) -> None:
        """Register a change event. Resets the debounce timer."""
        with self._lock:
            if self._cancelled:
                return
            self._pending_paths[path] = None

            if self._timer is not None:
                self._timer.cancel()

            # A timer already past cancel() sees a stale generation and backs off
            self._generation += 1
            self._timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int) -> None:
        """Called after the quiet period."""
        with self._lock:
            if generation != self._generation:
                return
            if not self._pending_paths or self._cancelled:
                return
            paths = list(self._pending_paths)
            self._pending_paths.clear()
            self._timer = None

        self.callback(paths)

    def cancel(self) -> None:
        """Cancel any pending timer and refuse further events."""
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending_paths.clear()


# =============================================================================
# File System Event Handler
# =============================================================================


class EngineEventHandler(FileSystemEventHandler):
    """Forwards relevant file system events to the debouncer."""

    def __init__(self, change_filter: ChangeFilter, debouncer: Debouncer):
        super().__init__()
        self.change_filter = change_filter
        self.debouncer = debouncer

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        # Editors that save via rename produce temp -> real moves
        self._handle(event.dest_path)

    def _handle(self, src: str | bytes) -> None:
        if isinstance(src, bytes):
            src = src.decode("utf-8", errors="replace")
        path = Path(src)
        if self.change_filter.is_relevant(path):
            self.debouncer.trigger(path)


# =============================================================================
# Watcher
# =============================================================================


class ChangeWatcher:
    """Watches engine/src and engine/Cargo.toml, emitting ChangeEvents.

    Events are delivered on the asyncio loop's thread through
    ``loop.call_soon_threadsafe`` onto a single-consumer queue.
    """

    def __init__(
        self,
        engine_dir: Path,
        queue: asyncio.Queue,
        loop: asyncio.AbstractEventLoop,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ):
        self.engine_dir = engine_dir
        self.queue = queue
        self.loop = loop
        self.debouncer = Debouncer(debounce_seconds, self._emit)
        self.handler = EngineEventHandler(ChangeFilter(engine_dir), self.debouncer)
        self.observer = Observer()
        self._started = False

    def _emit(self, paths: list[Path]) -> None:
        event = ChangeEvent(paths=tuple(paths))
        if self.loop.is_closed():
            return
        log.info("")
        log.info(f"[{timestamp()}] File change detected: {event.describe()}")
        self.loop.call_soon_threadsafe(self.queue.put_nowait, event)

    def start(self) -> None:
        """Schedule watches and start the observer thread. Raises WatchError."""
        src_dir = self.engine_dir / "src"
        if not src_dir.is_dir():
            raise WatchError(f"Engine source directory not found: {src_dir}")

        watch_targets: list[tuple[str, Path, bool]] = [("Sources", src_dir, True)]
        # Cargo.toml is watched through its directory; the filter keeps only it
        if (self.engine_dir / "Cargo.toml").is_file():
            watch_targets.append(("Manifest", self.engine_dir, False))

        for label, path, recursive in watch_targets:
            try:
                self.observer.schedule(self.handler, str(path), recursive=recursive)
            except OSError as e:
                raise WatchError(f"Could not watch {label} ({path}): {e}") from e
            log.step(f"Watching: {label} ({path})")

        try:
            self.observer.start()
        except OSError as e:
            raise WatchError(f"Failed to start file watcher: {e}") from e
        self._started = True

    def stop(self) -> None:
        self.debouncer.cancel()
        if self._started:
            self.observer.stop()
            self.observer.join(timeout=5)
            self._started = False
