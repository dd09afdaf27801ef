"""
Pipeline infrastructure for armcnv.

This package provides the core abstractions for the resumable pipeline:
- PipelineContext: Container for all pipeline state and data
- Stage: Abstract base class for all pipeline components
- StageSpec / StepRunner: Idempotent execution of external steps
- RunDirectory: Scratch workspace of a run (fresh or resumed)
- PipelineRunner: Executes the stage sequence
"""

from .context import PipelineContext
from .runner import PipelineRunner
from .stage import Stage
from .steps import StageSpec, StepRunner, is_valid_artifact
from .workspace import RunDirectory

__all__ = [
    "PipelineContext",
    "Stage",
    "StageSpec",
    "StepRunner",
    "is_valid_artifact",
    "RunDirectory",
    "PipelineRunner",
]
