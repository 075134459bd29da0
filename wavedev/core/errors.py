"""
Exception hierarchy for wavedev.

Everything raised below the rebuild pipeline derives from WavedevError so the
pipeline boundary can report each failure with its own kind.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from wavedev.build.invoker import Diagnostic


class WavedevError(Exception):
    """Base class for all wavedev errors."""

    kind = "error"


class ConfigError(WavedevError):
    """Invalid wavedev.yaml or CLI configuration."""

    kind = "config"


class ProjectNotFoundError(WavedevError):
    """No plugin project (engine/Cargo.toml) was found."""

    kind = "project"


class WatchError(WavedevError):
    """The change watcher could not be started. Fatal for the session."""

    kind = "watch"


class BuildFailed(WavedevError):
    """The external build command exited unsuccessfully."""

    kind = "build"

    def __init__(self, diagnostics: list["Diagnostic"], elapsed: float = 0.0):
        self.diagnostics = diagnostics
        self.elapsed = elapsed
        super().__init__(f"Build failed with {len(diagnostics)} diagnostic(s)")

    def render(self) -> str:
        return "\n".join(d.render() for d in self.diagnostics)


class ArtifactNotFound(WavedevError):
    """The build succeeded but no loadable library could be located."""

    kind = "artifact"


class ExtractionErrorKind(str, Enum):
    """How an extraction attempt failed."""

    VALIDATION = "validation"
    LOAD = "load"
    TIMEOUT = "timeout"
    CRASH = "crash"
    PAYLOAD_PARSE = "payload_parse"

    @property
    def label(self) -> str:
        return {
            ExtractionErrorKind.VALIDATION: "invalid artifact",
            ExtractionErrorKind.LOAD: "load failure",
            ExtractionErrorKind.TIMEOUT: "timeout",
            ExtractionErrorKind.CRASH: "helper crashed",
            ExtractionErrorKind.PAYLOAD_PARSE: "payload parse failure",
        }[self]


class ExtractionFailed(WavedevError):
    """Parameter extraction from a built artifact failed."""

    kind = "extraction"

    def __init__(
        self,
        error_kind: ExtractionErrorKind,
        diagnostic: str,
        artifact_path: Optional[Path] = None,
    ):
        self.error_kind = error_kind
        self.diagnostic = diagnostic
        self.artifact_path = artifact_path
        super().__init__(f"Extraction failed ({error_kind.label}): {diagnostic}")


class ParameterNotFound(WavedevError):
    """No parameter with the given id is in the store."""

    kind = "parameter"

    def __init__(self, param_id: str):
        self.param_id = param_id
        super().__init__(f"Parameter not found: {param_id}")


class ParameterOutOfRange(WavedevError):
    """A value outside the parameter's declared domain was rejected."""

    kind = "parameter"

    def __init__(self, param_id: str, value: float):
        self.param_id = param_id
        self.value = value
        super().__init__(f"Parameter {param_id} value {value} out of range")
