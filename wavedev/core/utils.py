"""
Shared utilities for the wavedev CLI.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import Optional, TextIO

# =============================================================================
# Constants
# =============================================================================

# Sidecar file written next to the build output after each extraction
PARAM_SIDECAR_FILENAME = "wavecraft-params.json"

# Per-project overrides, looked up in the project root
CONFIG_FILENAME = "wavedev.yaml"


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Colored operator-facing logger with --no-color support.

    Every line goes to the same stream (stdout by default) so success and
    failure messages stay interleaved in emission order.
    """

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "magenta": "\033[95m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(self, use_color: Optional[bool] = None, stream: Optional[TextIO] = None):
        self._stream = stream
        if use_color is None:
            self._use_color = self.stream.isatty()
        else:
            self._use_color = use_color

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so pytest's capsys/capfd replacements are honoured
        return self._stream if self._stream is not None else sys.stdout

    def set_color(self, use_color: bool) -> None:
        """Set whether to use color output."""
        self._use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def _emit(self, line: str) -> None:
        print(line, file=self.stream, flush=True)

    def header(self, message: str) -> None:
        """Print a section header."""
        self._emit(f"\n{self._color('===', 'cyan')} {self._color(message, 'bold')} {self._color('===', 'cyan')}")

    def info(self, message: str) -> None:
        """Print an info message."""
        self._emit(f"  {message}")

    def step(self, message: str) -> None:
        """Print a progress step inside a larger operation."""
        self._emit(f"  {self._color('->', 'dim')} {message}")

    def success(self, message: str) -> None:
        """Print a success message."""
        self._emit(f"  {self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        self._emit(f"  {self._color('[WARN]', 'yellow')} {message}")

    def error(self, message: str) -> None:
        """Print an error message."""
        self._emit(f"  {self._color('[ERROR]', 'red')} {message}")

    def dim(self, message: str) -> None:
        """Print a dim/secondary message."""
        self._emit(f"  {self._color(message, 'dim')}")

    def table_row(self, col1: str, col2: str, col1_width: int = 30) -> None:
        """Print a table row with two columns."""
        self._emit(f"  {col1:<{col1_width}} {col2}")


# Global logger instance
log = Logger()


def timestamp() -> str:
    """Wall-clock time for change lines, e.g. 14:02:31."""
    return datetime.now().strftime("%H:%M:%S")


def configure_logging(verbose: bool = False) -> None:
    """Route stdlib logging to stdout alongside the operator log."""
    logging.basicConfig(
        stream=sys.stdout,
        level=logging.DEBUG if verbose else logging.WARNING,
        format="  [%(levelname)s] %(name)s: %(message)s",
    )


def plural(count: int, noun: str) -> str:
    """Return '1 client' / '3 clients'."""
    return f"{count} {noun}{'s' if count != 1 else ''}"
