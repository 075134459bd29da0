"""
wavedev.extract - Parameter extraction from built plugin libraries.
"""

from wavedev.extract.supervisor import (
    ExtractionRequest,
    ExtractionResult,
    ExtractionSupervisor,
    classify_exit,
    validate_artifact,
)
from wavedev.extract.helper import (
    HelperError,
    extract_params,
    load_parameters_in_process,
    run_helper,
)

__all__ = [
    "ExtractionRequest",
    "ExtractionResult",
    "ExtractionSupervisor",
    "classify_exit",
    "validate_artifact",
    "HelperError",
    "extract_params",
    "load_parameters_in_process",
    "run_helper",
]
