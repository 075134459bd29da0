"""
wavedev.params - Parameter metadata and the live parameter store.
"""

from wavedev.params.models import (
    ParameterKind,
    ParameterDescriptor,
    parse_descriptor_list,
    dump_descriptor_list,
)
from wavedev.params.store import (
    ParameterStore,
    ReplaceSummary,
    merge_preserving_values,
)

__all__ = [
    "ParameterKind",
    "ParameterDescriptor",
    "parse_descriptor_list",
    "dump_descriptor_list",
    "ParameterStore",
    "ReplaceSummary",
    "merge_preserving_values",
]
