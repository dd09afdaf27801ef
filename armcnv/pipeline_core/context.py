"""
PipelineContext - Single source of truth for pipeline state and data.

This module provides the PipelineContext dataclass that flows through all stages,
carrying configuration, the run directory, artifact paths and the decisions
made along the way.
"""

import argparse
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Set, TYPE_CHECKING

from .steps import StepRunner

if TYPE_CHECKING:
    from ..recenter import RecenterDecision
    from .workspace import RunDirectory

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Container for all pipeline state and data - the single source of truth.

    Attributes
    ----------
    args : argparse.Namespace
        Parsed command-line arguments
    config : Dict[str, Any]
        Merged configuration from file and CLI
    run_dir : RunDirectory
        Scratch directory holding every artifact of the run
    sample_id : str
        Identifier substituted into the final report
    step_runner : StepRunner
        Executes external steps with skip-if-valid semantics
    start_time : datetime
        Pipeline execution start time
    completed_stages : Set[str]
        Names of stages that have completed successfully
    stage_results : Dict[str, Any]
        Optional results stored by stages
    artifacts : Dict[str, Path]
        Named artifact paths produced (or inherited) so far
    target_chromosomes : FrozenSet[str]
        Chromosomes present in the target annotation
    tool_versions : Dict[str, str]
        Versions reported by the external tools
    data_ratio : str, optional
        Control/tumor mapped-read ratio passed to the copy-number step
    recenter_delta : float, optional
        Centering delta computed from the called segments
    recenter_decision : RecenterDecision, optional
        Branch taken for recentering
    final_output_path : Path, optional
        Merged segmentation report inside the run directory
    """

    # --- Immutable Configuration ---
    args: argparse.Namespace
    config: Dict[str, Any]
    run_dir: "RunDirectory"
    sample_id: str = "sample"
    step_runner: StepRunner = field(default_factory=StepRunner)
    start_time: datetime = field(default_factory=datetime.now)

    # --- Mutable State & Data Artifacts ---
    completed_stages: Set[str] = field(default_factory=set)
    stage_results: Dict[str, Any] = field(default_factory=dict)
    artifacts: Dict[str, Path] = field(default_factory=dict)

    target_chromosomes: FrozenSet[str] = frozenset()
    tool_versions: Dict[str, str] = field(default_factory=dict)

    data_ratio: Optional[str] = None
    recenter_delta: Optional[float] = None
    recenter_decision: Optional["RecenterDecision"] = None

    final_output_path: Optional[Path] = None

    @property
    def dry_run(self) -> bool:
        """Whether external commands are only logged."""
        return self.step_runner.dry_run

    def mark_complete(self, stage_name: str, result: Any = None) -> None:
        """Mark a stage as complete with optional result storage.

        Parameters
        ----------
        stage_name : str
            Name of the stage to mark complete
        result : Any, optional
            Optional result to store for the stage
        """
        self.completed_stages.add(stage_name)
        if result is not None:
            self.stage_results[stage_name] = result
        logger.debug(f"Stage '{stage_name}' marked as complete")

    def is_complete(self, stage_name: str) -> bool:
        """Check if a stage has been completed."""
        return stage_name in self.completed_stages

    def get_result(self, stage_name: str) -> Optional[Any]:
        """Get the stored result for a completed stage."""
        return self.stage_results.get(stage_name)

    def add_artifact(self, key: str, path: Path) -> None:
        """Register a named artifact."""
        self.artifacts[key] = Path(path)

    def get_artifact(self, key: str) -> Path:
        """Return a registered artifact path.

        Raises
        ------
        KeyError
            If no stage has registered the artifact yet
        """
        if key not in self.artifacts:
            raise KeyError(f"Artifact '{key}' has not been produced by any stage")
        return self.artifacts[key]

    def get_execution_time(self) -> float:
        """Get the elapsed execution time in seconds."""
        return (datetime.now() - self.start_time).total_seconds()

    def __repr__(self) -> str:
        """Return string representation showing key state information."""
        return (
            f"PipelineContext("
            f"sample_id='{self.sample_id}', "
            f"stages_completed={len(self.completed_stages)}, "
            f"artifacts={len(self.artifacts)}, "
            f"execution_time={self.get_execution_time():.1f}s)"
        )
