"""
wavedev.core - Foundation layer for the wavedev CLI.

Exports the operator logger, shared constants and the error hierarchy.
"""

from wavedev.core.utils import (
    # Logging
    log,
    Logger,
    configure_logging,
    timestamp,
    plural,
    # Constants
    PARAM_SIDECAR_FILENAME,
    CONFIG_FILENAME,
)
from wavedev.core.errors import (
    WavedevError,
    ConfigError,
    ProjectNotFoundError,
    WatchError,
    BuildFailed,
    ArtifactNotFound,
    ExtractionErrorKind,
    ExtractionFailed,
    ParameterNotFound,
    ParameterOutOfRange,
)

__all__ = [
    # Logging
    "log",
    "Logger",
    "configure_logging",
    "timestamp",
    "plural",
    # Constants
    "PARAM_SIDECAR_FILENAME",
    "CONFIG_FILENAME",
    # Errors
    "WavedevError",
    "ConfigError",
    "ProjectNotFoundError",
    "WatchError",
    "BuildFailed",
    "ArtifactNotFound",
    "ExtractionErrorKind",
    "ExtractionFailed",
    "ParameterNotFound",
    "ParameterOutOfRange",
]
