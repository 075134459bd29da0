"""
Child-side extraction: load a plugin library and read its parameter metadata.

This module is what runs inside the disposable helper process. Stdout is
reserved for the JSON payload; every diagnostic goes to stderr.
"""

from __future__ import annotations

import ctypes
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

from wavedev.extract.supervisor import (
    EXIT_BAD_PAYLOAD,
    EXIT_LOAD,
    EXIT_OK,
    EXIT_SERIALIZE,
    EXIT_SYMBOL,
    EXIT_VALIDATION,
    validate_artifact,
)
from wavedev.params.models import ParameterDescriptor, dump_descriptor_list, parse_descriptor_list

logger = logging.getLogger(__name__)

GET_PARAMS_SYMBOL = "wavecraft_get_params_json"
FREE_STRING_SYMBOL = "wavecraft_free_string"


class HelperError(Exception):
    """A failure inside the helper, carrying its process exit code."""

    def __init__(self, exit_code: int, message: str):
        self.exit_code = exit_code
        super().__init__(message)


# =============================================================================
# Library Access
# =============================================================================


def _load_library(path: Path) -> ctypes.CDLL:
    try:
        return ctypes.CDLL(str(path))
    except OSError as e:
        raise HelperError(EXIT_LOAD, f"Failed to load library {path}: {e}") from e


def _bind(lib: ctypes.CDLL, path: Path):
    try:
        get_params = getattr(lib, GET_PARAMS_SYMBOL)
        free_string = getattr(lib, FREE_STRING_SYMBOL)
    except AttributeError as e:
        raise HelperError(
            EXIT_SYMBOL,
            f"Required symbol not found in {path}: {e}. "
            "Was the engine built with --features _param-discovery?",
        ) from e

    # Returned as c_void_p so the pointer can be handed back to free_string
    get_params.restype = ctypes.c_void_p
    get_params.argtypes = []
    free_string.restype = None
    free_string.argtypes = [ctypes.c_void_p]
    return get_params, free_string


def read_params_json(path: Path) -> str:
    """Call the library's JSON export and return the raw string."""
    lib = _load_library(path)
    get_params, free_string = _bind(lib, path)

    ptr = get_params()
    if not ptr:
        raise HelperError(EXIT_BAD_PAYLOAD, f"{GET_PARAMS_SYMBOL} returned null")
    try:
        raw = ctypes.string_at(ptr)
    finally:
        free_string(ptr)

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise HelperError(EXIT_BAD_PAYLOAD, f"{GET_PARAMS_SYMBOL} returned invalid UTF-8: {e}") from e


def extract_params(path: Path) -> list[ParameterDescriptor]:
    """Validate, load and read descriptors from a plugin library."""
    problem = validate_artifact(path)
    if problem:
        raise HelperError(EXIT_VALIDATION, problem)

    raw = read_params_json(path)
    try:
        return parse_descriptor_list(raw)
    except ValueError as e:
        raise HelperError(EXIT_SERIALIZE, f"Library returned malformed parameter JSON: {e}") from e


def run_helper(path: Path, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None) -> int:
    """Entry point of ``wavedev extract-params``. Returns the exit code."""
    out = stdout or sys.stdout
    err = stderr or sys.stderr

    try:
        params = extract_params(path)
        payload = dump_descriptor_list(params)
    except HelperError as e:
        print(f"error: {e}", file=err)
        return e.exit_code
    except (TypeError, ValueError) as e:
        print(f"error: failed to serialize parameters: {e}", file=err)
        return EXIT_SERIALIZE

    out.write(payload + "\n")
    out.flush()
    return EXIT_OK


# =============================================================================
# In-process Load
# =============================================================================


def load_parameters_in_process(path: Path) -> list[ParameterDescriptor]:
    """Load descriptors inside the calling process.

    Only for callers that need the library resident in this process (a live
    processing host holding its function table). A hanging native
    initializer will block the caller with no way to recover. The rebuild
    pipeline never uses this.
    """
    logger.warning(
        "Loading %s in-process: a hanging native initializer will block this "
        "process. Use the extraction helper unless the library must stay resident.",
        path,
    )
    try:
        return extract_params(Path(path))
    except HelperError as e:
        raise RuntimeError(str(e)) from e
