"""
Build invocation for the plugin engine.

Runs the configured build command in the engine directory and classifies the
result. On failure, compiler diagnostics are recovered from cargo's JSON
message stream.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import signal
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_BUILD_COMMAND = [
    "cargo", "build",
    "--lib",
    "--features", "_param-discovery",
    "--message-format=json",
]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class Diagnostic:
    """One compiler message (or the raw stderr when nothing structured was found)."""

    message: str
    file: Optional[str] = None
    line: Optional[int] = None
    level: str = "error"

    def render(self) -> str:
        if self.file and self.line is not None:
            location = f"{self.file}:{self.line}: "
        elif self.file:
            location = f"{self.file}: "
        else:
            location = ""
        return f"{location}{self.message.rstrip()}"


@dataclass
class BuildResult:
    """Outcome of one build invocation."""

    success: bool
    diagnostics: list[Diagnostic] = field(default_factory=list)
    elapsed: float = 0.0
    returncode: Optional[int] = None


# =============================================================================
# Diagnostic Parsing
# =============================================================================


def _primary_span(message: dict) -> tuple[Optional[str], Optional[int]]:
    spans = message.get("spans") or []
    for span in spans:
        if span.get("is_primary"):
            return span.get("file_name"), span.get("line_start")
    if spans:
        return spans[0].get("file_name"), spans[0].get("line_start")
    return None, None


def parse_diagnostics(stdout: str, stderr: str) -> list[Diagnostic]:
    """Extract compiler messages from cargo's ``--message-format=json`` output.

    Only error-level messages are kept when any exist, since warnings are
    noise on a failed build. Falls back to the raw stderr as one diagnostic.
    """
    found: list[Diagnostic] = []
    for line in (stdout + "\n" + stderr).splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(record, dict) or record.get("reason") != "compiler-message":
            continue

        message = record.get("message") or {}
        text = message.get("rendered") or message.get("message")
        if not text:
            continue
        file_name, line_no = _primary_span(message)
        found.append(Diagnostic(
            message=text,
            file=file_name,
            line=line_no,
            level=message.get("level", "error"),
        ))

    errors = [d for d in found if d.level in ("error", "error: internal compiler error")]
    if errors:
        return errors
    if found:
        return found

    raw = stderr.strip()
    return [Diagnostic(message=raw or "Build failed with no diagnostic output")]


# =============================================================================
# Invoker
# =============================================================================


class BuildInvoker:
    """Runs the build command as an opaque, well-behaved collaborator.

    No timeout is applied; the build runs to natural completion. The only
    early exit is ``terminate()`` during shutdown.
    """

    def __init__(
        self,
        engine_dir: Path,
        command: Optional[Sequence[str]] = None,
        package_name: Optional[str] = None,
    ):
        self.engine_dir = engine_dir
        self.command = list(command) if command else list(DEFAULT_BUILD_COMMAND)
        # --package only applies to the default cargo command
        if package_name and not command:
            self.command += ["--package", package_name]
        self._process: Optional[asyncio.subprocess.Process] = None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def run(self) -> BuildResult:
        """Run the build and wait for it."""
        start = time.monotonic()
        logger.debug("Running build: %s (cwd=%s)", " ".join(self.command), self.engine_dir)

        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                cwd=self.engine_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            return BuildResult(
                success=False,
                diagnostics=[Diagnostic(message=f"Failed to spawn build command {self.command[0]!r}: {e}")],
                elapsed=time.monotonic() - start,
            )

        self._process = process
        try:
            stdout, stderr = await process.communicate()
        finally:
            self._process = None

        elapsed = time.monotonic() - start
        if process.returncode == 0:
            return BuildResult(success=True, elapsed=elapsed, returncode=0)

        diagnostics = parse_diagnostics(
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )
        return BuildResult(
            success=False,
            diagnostics=diagnostics,
            elapsed=elapsed,
            returncode=process.returncode,
        )

    def terminate(self) -> None:
        """Stop an in-flight build (shutdown only)."""
        process = self._process
        if process is None or process.returncode is not None:
            return
        logger.debug("Terminating build process %s", process.pid)
        try:
            os.killpg(process.pid, signal.SIGTERM)
        except (ProcessLookupError, PermissionError, AttributeError):
            pass
        try:
            process.terminate()
        except ProcessLookupError:
            pass
