"""
Sidecar parameter cache.

After each successful extraction the descriptor list is written next to the
build output so the next session can start without a discovery build.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from wavedev.core.utils import log, PARAM_SIDECAR_FILENAME
from wavedev.build.artifacts import find_plugin_library, resolve_debug_dir
from wavedev.core.errors import ArtifactNotFound
from wavedev.params.models import (
    ParameterDescriptor,
    dump_descriptor_list,
    parse_descriptor_list,
)


# =============================================================================
# Paths
# =============================================================================


def sidecar_path(engine_dir: Path) -> Path:
    return resolve_debug_dir(engine_dir) / PARAM_SIDECAR_FILENAME


def newest_mtime_under(root: Path) -> Optional[float]:
    """Most recent mtime of any file under root, or None if there are none."""
    if not root.is_dir():
        return None
    newest: Optional[float] = None
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        try:
            mtime = path.stat().st_mtime
        except OSError:
            continue
        if newest is None or mtime > newest:
            newest = mtime
    return newest


# =============================================================================
# Cache Operations
# =============================================================================


def read_cached_params(engine_dir: Path) -> Optional[list[ParameterDescriptor]]:
    """Return cached descriptors if the sidecar is still valid.

    Valid means newer than both the built library and every file under
    engine/src. Returns None otherwise.
    """
    try:
        path = sidecar_path(engine_dir)
        if not path.exists():
            return None
        library = find_plugin_library(engine_dir)
    except ArtifactNotFound:
        return None

    sidecar_mtime = path.stat().st_mtime

    if library.stat().st_mtime > sidecar_mtime:
        log.dim("Sidecar cache stale (library newer), rebuilding...")
        return None

    src_mtime = newest_mtime_under(engine_dir / "src")
    if src_mtime is not None and src_mtime > sidecar_mtime:
        log.dim("Sidecar cache stale (engine source newer), rebuilding...")
        return None

    try:
        return parse_descriptor_list(path.read_bytes())
    except (OSError, ValueError) as e:
        log.warning(f"Ignoring unreadable sidecar cache {path}: {e}")
        return None


def write_cached_params(engine_dir: Path, params: Iterable[ParameterDescriptor]) -> Optional[Path]:
    """Write the sidecar cache. Failures are reported as warnings only."""
    try:
        path = sidecar_path(engine_dir)
        path.write_text(dump_descriptor_list(params, pretty=True))
    except (ArtifactNotFound, OSError) as e:
        log.warning(f"Failed to update param cache: {e}")
        return None
    return path
