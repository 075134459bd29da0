"""
Hidden helper subcommand: ``wavedev extract-params <path>``.

Invoked by the session in a disposable child process. Stdout carries only
the JSON payload; see wavedev.extract.helper for the exit codes.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from wavedev.extract.helper import run_helper


def cmd_extract_params(args: argparse.Namespace) -> int:
    """Execute the extract-params command."""
    return run_helper(Path(args.path))
