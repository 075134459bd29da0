"""
Artifact discovery for built plugin libraries.

Finds the shared library produced by the engine build, handling platform
extensions, crate-name matching, and workspace vs. project-local target
directories.
"""

from __future__ import annotations

import logging
import shutil
import sys
import tempfile
import time
import tomllib
from pathlib import Path
from typing import Optional

from wavedev.core.errors import ArtifactNotFound

logger = logging.getLogger(__name__)


# =============================================================================
# Platform
# =============================================================================


def library_extension(platform: Optional[str] = None) -> str:
    """Shared-library extension for the platform (without the dot)."""
    platform = platform or sys.platform
    if platform == "darwin":
        return "dylib"
    if platform.startswith("win"):
        return "dll"
    return "so"


def library_prefix(platform: Optional[str] = None) -> str:
    platform = platform or sys.platform
    return "" if platform.startswith("win") else "lib"


# =============================================================================
# Cargo Manifest
# =============================================================================


def _read_manifest(engine_dir: Path) -> Optional[dict]:
    cargo_toml = engine_dir / "Cargo.toml"
    try:
        with open(cargo_toml, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.debug("Could not read %s: %s", cargo_toml, e)
        return None


def read_package_name(engine_dir: Path) -> Optional[str]:
    """Return ``[package] name`` from the engine's Cargo.toml."""
    manifest = _read_manifest(engine_dir)
    if not manifest:
        return None
    name = manifest.get("package", {}).get("name")
    return name if isinstance(name, str) else None


def read_crate_name(engine_dir: Path) -> Optional[str]:
    """Return ``[lib] name``, falling back to the package name."""
    manifest = _read_manifest(engine_dir)
    if not manifest:
        return None
    lib_name = manifest.get("lib", {}).get("name")
    if isinstance(lib_name, str):
        return lib_name
    name = manifest.get("package", {}).get("name")
    return name if isinstance(name, str) else None


# =============================================================================
# Discovery
# =============================================================================


def resolve_debug_dir(engine_dir: Path) -> Path:
    """Locate the debug build directory (project-local, then workspace)."""
    engine_debug = engine_dir / "target" / "debug"
    if engine_debug.is_dir():
        return engine_debug

    workspace_debug = engine_dir.parent / "target" / "debug"
    if workspace_debug.is_dir():
        return workspace_debug

    raise ArtifactNotFound(
        "Build output directory not found. Tried:\n"
        f"    - {engine_debug}\n"
        f"    - {workspace_debug}"
    )


def find_plugin_library(engine_dir: Path, platform: Optional[str] = None) -> Path:
    """Find the plugin library in the engine's debug directory.

    Preference order: the library named after the crate, the only
    candidate, then the most recently modified candidate.
    """
    debug_dir = resolve_debug_dir(engine_dir)
    ext = library_extension(platform)
    prefix = library_prefix(platform)

    candidates = [
        p for p in debug_dir.iterdir()
        if p.is_file() and p.suffix == f".{ext}" and p.name.startswith(prefix)
        and (prefix or not p.name.startswith("lib"))
    ]

    if not candidates:
        raise ArtifactNotFound(
            f"No plugin library found in {debug_dir}. "
            'Make sure the engine crate has crate-type = ["cdylib"] in Cargo.toml.'
        )

    crate_name = read_crate_name(engine_dir)
    if crate_name:
        expected = f"{prefix}{crate_name.replace('-', '_')}.{ext}".lower()
        for path in candidates:
            if path.name.lower() == expected:
                return path

    if len(candidates) == 1:
        return candidates[0]

    return max(candidates, key=lambda p: p.stat().st_mtime)


def copy_to_temp(library: Path) -> Path:
    """Copy the library to a unique temp path.

    Platform loaders cache handles by path, so reloading from the build
    location can hand back the previous build's code.
    """
    stamp = int(time.time() * 1000)
    dest = Path(tempfile.gettempdir()) / f"wavecraft_hotreload_{stamp}{library.suffix}"
    n = 0
    while dest.exists():
        n += 1
        dest = dest.with_name(f"wavecraft_hotreload_{stamp}_{n}{library.suffix}")
    shutil.copy2(library, dest)
    return dest


def remove_temp_copy(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove temp library copy %s: %s", path, e)
