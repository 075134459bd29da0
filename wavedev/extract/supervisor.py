"""
Process-isolated parameter extraction.

Loading a freshly built plugin library runs its native initializers, which
can block indefinitely inside the platform loader. That work cannot be
interrupted from inside the process, so the load happens in a disposable
child (``<helper> extract-params <path>``) that is killed outright when it
overruns its timeout.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from wavedev.core.errors import ExtractionErrorKind
from wavedev.build.artifacts import library_extension
from wavedev.params.models import ParameterDescriptor, parse_descriptor_list

logger = logging.getLogger(__name__)


# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK = 0
EXIT_VALIDATION = 1
EXIT_LOAD = 2
EXIT_SYMBOL = 3
EXIT_SERIALIZE = 4
EXIT_BAD_PAYLOAD = 5

_LOAD_EXITS = {EXIT_LOAD, EXIT_SYMBOL, EXIT_SERIALIZE, EXIT_BAD_PAYLOAD}


def classify_exit(returncode: int) -> ExtractionErrorKind:
    """Map a non-zero helper exit status to an error kind."""
    if returncode == EXIT_VALIDATION:
        return ExtractionErrorKind.VALIDATION
    if returncode in _LOAD_EXITS:
        return ExtractionErrorKind.LOAD
    # Negative codes are signals; anything else is outside the contract
    return ExtractionErrorKind.CRASH


# =============================================================================
# Request / Result
# =============================================================================


@dataclass(frozen=True)
class ExtractionRequest:
    artifact_path: Path
    timeout: float


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction attempt. Exactly one of params / kind is set."""

    params: Optional[list[ParameterDescriptor]] = None
    kind: Optional[ExtractionErrorKind] = None
    diagnostic: str = ""
    exit_code: Optional[int] = None
    elapsed: float = 0.0
    artifact_path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.kind is None


def validate_artifact(path: Path, platform: Optional[str] = None) -> Optional[str]:
    """Return a diagnostic if path is not a loadable library for this platform."""
    if not path.exists():
        return f"Plugin library not found: {path}\nEnsure the plugin was built successfully."
    if not path.is_file():
        return f"Plugin library is not a file: {path}"
    expected = library_extension(platform)
    actual = path.suffix.lstrip(".")
    if actual != expected:
        return f"Invalid library extension: expected '.{expected}', got '{actual or '<none>'}'"
    return None


# =============================================================================
# Supervisor
# =============================================================================


class ExtractionSupervisor:
    """Runs the extraction helper in a child process with a hard timeout."""

    def __init__(self, helper_command: Sequence[str], timeout: float = 30.0):
        if not helper_command:
            raise ValueError("helper_command must not be empty")
        self.helper_command = list(helper_command)
        self.timeout = timeout

    async def extract(self, artifact_path: Path, timeout: Optional[float] = None) -> ExtractionResult:
        request = ExtractionRequest(Path(artifact_path), timeout if timeout is not None else self.timeout)
        return await self.run(request)

    async def run(self, request: ExtractionRequest) -> ExtractionResult:
        path = request.artifact_path
        start = time.monotonic()

        problem = validate_artifact(path)
        if problem:
            return ExtractionResult(
                kind=ExtractionErrorKind.VALIDATION,
                diagnostic=problem,
                artifact_path=path,
            )

        cmd = [*self.helper_command, "extract-params", str(path)]
        logger.debug("Spawning extraction helper: %s", cmd)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            return ExtractionResult(
                kind=ExtractionErrorKind.CRASH,
                diagnostic=f"Failed to spawn extraction helper {cmd[0]!r}: {e}",
                artifact_path=path,
                elapsed=time.monotonic() - start,
            )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), request.timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            elapsed = time.monotonic() - start
            return ExtractionResult(
                kind=ExtractionErrorKind.TIMEOUT,
                diagnostic=(
                    f"Parameter extraction timed out after {request.timeout:g}s; "
                    "the helper was killed. This usually means a native "
                    "initializer in the plugin's dependencies hung while the "
                    f"library was loading. Artifact: {path}"
                ),
                exit_code=process.returncode,
                elapsed=elapsed,
                artifact_path=path,
            )
        except asyncio.CancelledError:
            # Shutdown; never leave the child behind
            await self._kill(process)
            raise

        elapsed = time.monotonic() - start
        err_text = stderr.decode("utf-8", errors="replace").strip()
        code = process.returncode

        if code != EXIT_OK:
            kind = classify_exit(code)
            if code is not None and code < 0:
                detail = f"helper terminated by signal {-code}"
            else:
                detail = f"helper exited with code {code}"
            return ExtractionResult(
                kind=kind,
                diagnostic=err_text or detail,
                exit_code=code,
                elapsed=elapsed,
                artifact_path=path,
            )

        try:
            params = parse_descriptor_list(stdout.strip())
        except ValueError as e:
            preview = stdout[:200].decode("utf-8", errors="replace")
            return ExtractionResult(
                kind=ExtractionErrorKind.PAYLOAD_PARSE,
                diagnostic=(
                    "Helper exited successfully but its output is not a valid "
                    f"parameter list (helper/host schema mismatch?): {e}\n"
                    f"Output: {preview!r}"
                ),
                exit_code=code,
                elapsed=elapsed,
                artifact_path=path,
            )

        if err_text:
            logger.debug("Extraction helper stderr: %s", err_text)
        return ExtractionResult(params=params, exit_code=code, elapsed=elapsed, artifact_path=path)

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        """Unconditionally kill the helper and its process group, then reap it."""
        if process.returncode is None:
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except (ProcessLookupError, PermissionError, AttributeError):
                pass
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()
        logger.debug("Extraction helper %s reaped (status %s)", process.pid, process.returncode)
