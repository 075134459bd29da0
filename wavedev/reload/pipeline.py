"""
Hot-reload rebuild pipeline.

On each coalesced change: take the build guard, build, extract parameters in
an isolated helper, swap them into the store and tell clients to re-fetch.
Any failure leaves the store and every client connection untouched; the next
attempt happens on the next source change.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Optional

from wavedev.core.utils import log
from wavedev.core.errors import (
    BuildFailed,
    ExtractionErrorKind,
    ExtractionFailed,
    WavedevError,
)
from wavedev.build.guard import BuildGuard
from wavedev.build.invoker import BuildInvoker
from wavedev.build.artifacts import copy_to_temp, find_plugin_library, remove_temp_copy
from wavedev.build.caching import write_cached_params
from wavedev.extract.supervisor import ExtractionSupervisor
from wavedev.params.models import ParameterDescriptor
from wavedev.params.store import ParameterStore, ReplaceSummary
from wavedev.session.broadcaster import SessionBroadcaster
from wavedev.commands.watch import ChangeEvent

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = auto()
    BUILDING = auto()
    EXTRACTING = auto()
    APPLYING = auto()
    FAILED = auto()


@dataclass
class RebuildOutcome:
    """What one build-extract-apply attempt produced."""

    success: bool
    summary: Optional[ReplaceSummary] = None
    error: Optional[WavedevError] = None
    elapsed: float = 0.0


class RebuildPipeline:
    """Coordinates builds, extraction, store replacement and notification."""

    def __init__(
        self,
        engine_dir: Path,
        store: ParameterStore,
        broadcaster: SessionBroadcaster,
        invoker: BuildInvoker,
        supervisor: ExtractionSupervisor,
        guard: Optional[BuildGuard] = None,
        library_finder: Callable[[Path], Path] = find_plugin_library,
        write_sidecar: bool = True,
    ):
        self.engine_dir = engine_dir
        self.store = store
        self.broadcaster = broadcaster
        self.invoker = invoker
        self.supervisor = supervisor
        self.guard = guard or BuildGuard()
        self.library_finder = library_finder
        self.write_sidecar = write_sidecar

        self.state = PipelineState.IDLE
        self._rebuild_count = 0
        self._closing = False
        self._cycle_task: Optional[asyncio.Task] = None

    @property
    def rebuild_count(self) -> int:
        return self._rebuild_count

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def on_change(self, event: Optional[ChangeEvent] = None) -> Optional[asyncio.Task]:
        """Start a rebuild cycle, or queue one if a build is already running.

        Never waits for a build. Returns the cycle task when one was started.
        Must be called on the event loop thread.
        """
        if self._closing:
            return None

        if not self.guard.try_start():
            self.guard.mark_pending()
            log.step("Build already in progress, queuing rebuild...")
            return None

        self._cycle_task = asyncio.get_running_loop().create_task(self._run_cycle())
        return self._cycle_task

    async def handle_change(self, event: Optional[ChangeEvent] = None) -> None:
        """Dispatch a change and wait for the cycle it started, if any."""
        task = self.on_change(event)
        if task is not None:
            await task

    async def run(self, queue: asyncio.Queue) -> None:
        """Consume change events until cancelled or closed."""
        while not self._closing:
            event = await queue.get()
            self.on_change(event)

    async def _run_cycle(self) -> None:
        # The guard is held on entry
        while True:
            try:
                await self.rebuild_once()
            finally:
                follow_up = self.guard.complete()
                self.state = PipelineState.IDLE

            if not follow_up or self._closing:
                break
            # Lost the race: whoever started that build covers our change
            if not self.guard.try_start():
                break
            log.step("Pending changes detected, rebuilding...")

    # -------------------------------------------------------------------------
    # One attempt
    # -------------------------------------------------------------------------

    async def rebuild_once(self) -> RebuildOutcome:
        """Build, extract, apply. Reports exactly one outcome line.

        Failures are reported and returned, never raised. Cancellation
        propagates.
        """
        self._rebuild_count += 1
        start = time.monotonic()
        log.step("Rebuilding plugin...")

        try:
            params = await self._build_and_extract()
            summary = self._apply(params)
        except WavedevError as e:
            self.state = PipelineState.FAILED
            outcome = RebuildOutcome(success=False, error=e, elapsed=time.monotonic() - start)
            self._report_failure(e)
            return outcome
        except asyncio.CancelledError:
            self.state = PipelineState.FAILED
            raise
        except Exception as e:
            # Internal bug; still must not take the session down
            logger.exception("Rebuild pipeline error")
            self.state = PipelineState.FAILED
            error = WavedevError(f"Internal pipeline error: {e}")
            log.error(f"Hot-reload failed: {error}")
            return RebuildOutcome(success=False, error=error, elapsed=time.monotonic() - start)

        elapsed = time.monotonic() - start
        log.success(f"Hot-reload complete: {summary.count} parameters{summary.describe()}")
        return RebuildOutcome(success=True, summary=summary, elapsed=elapsed)

    async def _build_and_extract(self) -> list[ParameterDescriptor]:
        self.state = PipelineState.BUILDING
        result = await self.invoker.run()
        if self._closing:
            raise WavedevError("Build cancelled due to shutdown")
        if not result.success:
            raise BuildFailed(result.diagnostics, result.elapsed)
        log.success(f"Build succeeded in {result.elapsed:.1f}s")

        self.state = PipelineState.EXTRACTING
        params = await self.extract_from_engine()

        if self.write_sidecar:
            write_cached_params(self.engine_dir, params)
        return params

    async def extract_from_engine(self) -> list[ParameterDescriptor]:
        """Locate the built library and extract its descriptors in a helper.

        Raises ArtifactNotFound or ExtractionFailed.
        """
        library = self.library_finder(self.engine_dir)
        temp_copy = copy_to_temp(library)
        try:
            result = await self.supervisor.extract(temp_copy)
        finally:
            remove_temp_copy(temp_copy)

        if not result.ok:
            raise ExtractionFailed(result.kind, result.diagnostic, artifact_path=library)
        return result.params or []

    def _apply(self, params: list[ParameterDescriptor]) -> ReplaceSummary:
        self.state = PipelineState.APPLYING
        summary = self.store.replace(params)

        # Only after the swap above is visible to readers
        try:
            self.broadcaster.broadcast_parameters_changed()
        except Exception as e:
            # The swap stands; clients catch up on their next fetch
            logger.warning("Failed to notify clients: %s", e)
            log.warning(f"Failed to notify UI clients: {e}")
        return summary

    def _report_failure(self, error: WavedevError) -> None:
        if isinstance(error, BuildFailed):
            log.error(f"Build failed after {error.elapsed:.1f}s; keeping previous parameters")
            for line in error.render().splitlines():
                log.info(f"    {line}")
        elif isinstance(error, ExtractionFailed):
            message = f"Parameter extraction failed ({error.error_kind.label}): {error.diagnostic}"
            if error.error_kind is ExtractionErrorKind.PAYLOAD_PARSE:
                message += " [helper/host contract bug]"
            if error.error_kind is ExtractionErrorKind.TIMEOUT and error.artifact_path:
                message += f" (built library: {error.artifact_path})"
            log.error(message)
        else:
            log.error(f"Hot-reload failed ({error.kind}): {error}")

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Stop accepting changes and stop any in-flight work."""
        self._closing = True
        self.invoker.terminate()
        task = self._cycle_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
