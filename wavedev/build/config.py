"""
Session configuration for wavedev.

Constants, the DevConfig dataclass, wavedev.yaml loading, and project
detection.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from wavedev.core.utils import CONFIG_FILENAME
from wavedev.core.errors import ConfigError, ProjectNotFoundError

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_DEBOUNCE_SECONDS",
    "DEFAULT_EXTRACT_TIMEOUT",
    "DevConfig",
    "default_helper_command",
    "detect_project",
    "load_config_file",
    "build_config",
]

# =============================================================================
# Constants
# =============================================================================

DEFAULT_PORT = 9000
DEFAULT_DEBOUNCE_SECONDS = 0.5
DEFAULT_EXTRACT_TIMEOUT = 30.0

# Keys wavedev.yaml may set, with their accepted types
FILE_KEYS: dict[str, tuple[type, ...]] = {
    "port": (int,),
    "debounce_seconds": (int, float),
    "extract_timeout": (int, float),
    "build_command": (list,),
    "helper_command": (list,),
}


def default_helper_command() -> list[str]:
    """Re-invoke this package in a fresh interpreter for extraction."""
    return [sys.executable, "-m", "wavedev"]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class DevConfig:
    """Configuration for a development session."""

    project_root: Path
    engine_dir: Path
    port: int = DEFAULT_PORT
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    extract_timeout: float = DEFAULT_EXTRACT_TIMEOUT
    build_command: Optional[list[str]] = None  # None -> cargo default with --package
    helper_command: list[str] = field(default_factory=default_helper_command)
    use_cache: bool = True
    verbose: bool = False


# =============================================================================
# Project Detection
# =============================================================================


def detect_project(start: Path) -> tuple[Path, Path]:
    """Walk upward from start to the plugin project.

    Returns (project_root, engine_dir). A directory with engine/Cargo.toml is
    a project root; a directory with Cargo.toml and src/ is itself the engine.
    """
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / "engine" / "Cargo.toml").is_file():
            return candidate, candidate / "engine"
        if (candidate / "Cargo.toml").is_file() and (candidate / "src").is_dir():
            # Standalone engine crate, or the engine dir of a project
            if candidate.name == "engine":
                return candidate.parent, candidate
            return candidate, candidate

    raise ProjectNotFoundError(
        f"No plugin project found at or above {start}. "
        "Expected engine/Cargo.toml."
    )


# =============================================================================
# Config File
# =============================================================================


def load_config_file(project_root: Path) -> dict[str, Any]:
    """Load and validate wavedev.yaml. Missing file -> {}."""
    path = project_root / CONFIG_FILENAME
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")

    result: dict[str, Any] = {}
    for key, value in data.items():
        if key not in FILE_KEYS:
            logger.warning("Ignoring unknown key %r in %s", key, path)
            continue
        expected = FILE_KEYS[key]
        # bool is an int subclass but never a valid number here
        if isinstance(value, bool) or not isinstance(value, expected):
            names = " or ".join(t.__name__ for t in expected)
            raise ConfigError(f"{path}: {key} must be {names}, got {value!r}")
        if isinstance(value, list) and not (value and all(isinstance(v, str) for v in value)):
            raise ConfigError(f"{path}: {key} must be a non-empty list of strings")
        result[key] = value
    return result


def build_config(
    project: Optional[Path] = None,
    port: Optional[int] = None,
    extract_timeout: Optional[float] = None,
    use_cache: bool = True,
    verbose: bool = False,
) -> DevConfig:
    """Resolve the project and merge wavedev.yaml with CLI overrides."""
    project_root, engine_dir = detect_project(project or Path.cwd())
    overrides = load_config_file(project_root)

    config = DevConfig(project_root=project_root, engine_dir=engine_dir)
    for key, value in overrides.items():
        setattr(config, key, value)

    if port is not None:
        config.port = port
    if extract_timeout is not None:
        config.extract_timeout = extract_timeout
    config.use_cache = use_cache
    config.verbose = verbose

    if not (0 < config.port < 65536):
        raise ConfigError(f"Port out of range: {config.port}")
    if config.extract_timeout <= 0:
        raise ConfigError(f"Extraction timeout must be positive: {config.extract_timeout}")
    if config.debounce_seconds < 0:
        raise ConfigError(f"Debounce period cannot be negative: {config.debounce_seconds}")
    return config
