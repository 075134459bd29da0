"""
Development session for a plugin project.

Loads the initial parameter set, serves it over WebSocket, and hot-reloads it
whenever the engine sources change. Runs until Ctrl+C.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
from pathlib import Path

from wavedev.core.utils import log, configure_logging, plural
from wavedev.core.errors import BuildFailed, ExtractionFailed, WatchError
from wavedev.build.config import DevConfig, build_config
from wavedev.build.artifacts import read_package_name
from wavedev.build.caching import read_cached_params, write_cached_params
from wavedev.build.invoker import BuildInvoker
from wavedev.extract.supervisor import ExtractionSupervisor
from wavedev.params.models import ParameterDescriptor
from wavedev.params.store import ParameterStore
from wavedev.session.broadcaster import SessionBroadcaster
from wavedev.reload.pipeline import RebuildPipeline
from wavedev.commands.watch import ChangeWatcher


# =============================================================================
# Startup
# =============================================================================


async def load_initial_params(config: DevConfig, pipeline: RebuildPipeline) -> list[ParameterDescriptor]:
    """Initial parameter set: sidecar cache if fresh, else build + extract.

    Failures here are fatal; the session has nothing to serve without them.
    """
    if config.use_cache:
        cached = read_cached_params(config.engine_dir)
        if cached is not None:
            log.success(f"Loaded {plural(len(cached), 'parameter')} (cached)")
            return cached

    log.step("Building for metadata discovery...")
    result = await pipeline.invoker.run()
    if not result.success:
        raise BuildFailed(result.diagnostics, result.elapsed)
    log.success(f"Build succeeded in {result.elapsed:.1f}s")

    log.step("Loading plugin metadata...")
    params = await pipeline.extract_from_engine()
    write_cached_params(config.engine_dir, params)
    log.success(f"Loaded {plural(len(params), 'parameter')}")
    return params


def create_pipeline(config: DevConfig, store: ParameterStore, broadcaster: SessionBroadcaster) -> RebuildPipeline:
    invoker = BuildInvoker(
        config.engine_dir,
        command=config.build_command,
        package_name=read_package_name(config.engine_dir),
    )
    supervisor = ExtractionSupervisor(config.helper_command, config.extract_timeout)
    return RebuildPipeline(
        engine_dir=config.engine_dir,
        store=store,
        broadcaster=broadcaster,
        invoker=invoker,
        supervisor=supervisor,
    )


# =============================================================================
# Session
# =============================================================================


async def run_session(config: DevConfig) -> int:
    loop = asyncio.get_running_loop()

    store = ParameterStore()
    broadcaster = SessionBroadcaster(store, port=config.port)
    pipeline = create_pipeline(config, store, broadcaster)

    store.replace(await load_initial_params(config, pipeline))

    await broadcaster.start()
    log.success(f"WebSocket server: ws://127.0.0.1:{broadcaster.bound_port}")

    queue: asyncio.Queue = asyncio.Queue()
    watcher = ChangeWatcher(config.engine_dir, queue, loop, config.debounce_seconds)
    try:
        watcher.start()
    except WatchError:
        await broadcaster.close()
        raise

    shutdown = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except (NotImplementedError, RuntimeError):
            # Windows: Ctrl+C arrives as KeyboardInterrupt instead
            pass

    consumer = loop.create_task(pipeline.run(queue))

    log.info("")
    log.info("Watching for changes... (Ctrl+C to stop)")
    log.info("")

    try:
        await shutdown.wait()
    finally:
        log.info("")
        log.header("Shutting down")

        watcher.stop()
        consumer.cancel()
        try:
            await consumer
        except asyncio.CancelledError:
            pass
        await pipeline.shutdown()
        await broadcaster.close()

        log.info(f"Rebuilds performed: {pipeline.rebuild_count}")
        log.success("Dev session stopped")

    return 0


# =============================================================================
# Command
# =============================================================================


def cmd_start(args: argparse.Namespace) -> int:
    """Execute the start command."""
    config = build_config(
        project=Path(args.project) if args.project else None,
        port=args.port,
        extract_timeout=args.timeout,
        use_cache=not args.no_cache,
        verbose=args.verbose,
    )
    configure_logging(config.verbose)

    log.header(f"wavedev: {config.project_root.name}")
    log.table_row("Engine", str(config.engine_dir), col1_width=12)
    log.table_row("Port", str(config.port), col1_width=12)
    log.table_row("Timeout", f"{config.extract_timeout:g}s", col1_width=12)

    try:
        return asyncio.run(run_session(config))
    except BuildFailed as e:
        log.error("Initial build failed; cannot start the session")
        for line in e.render().splitlines():
            log.info(f"    {line}")
        return 1
    except ExtractionFailed as e:
        log.error(f"Could not load plugin parameters ({e.error_kind.label}): {e.diagnostic}")
        return 1
