"""
wavedev.reload - The hot-reload rebuild pipeline.
"""

from wavedev.reload.pipeline import (
    PipelineState,
    RebuildOutcome,
    RebuildPipeline,
)

__all__ = [
    "PipelineState",
    "RebuildOutcome",
    "RebuildPipeline",
]
