"""
PipelineRunner - Executes stages in their fixed order.

The copy-number pipeline is a linear sequence: one external process runs at a
time and the runner blocks until it exits. The runner validates the stage list,
executes each stage, and logs a timing summary.
"""

import logging
import time
from typing import Dict, List

from .context import PipelineContext
from .stage import Stage

logger = logging.getLogger(__name__)


class PipelineRunner:
    """Executes stages sequentially in the order given."""

    def __init__(self):
        """Initialize the pipeline runner."""
        self._execution_times: Dict[str, float] = {}

    def run(self, stages: List[Stage], context: PipelineContext) -> PipelineContext:
        """Execute all stages in order.

        Parameters
        ----------
        stages : List[Stage]
            Stages to execute
        context : PipelineContext
            Initial pipeline context

        Returns
        -------
        PipelineContext
            Final context after all stages complete

        Raises
        ------
        ValueError
            If the stage list contains duplicate names or a stage is listed
            before one of its dependencies
        """
        start_time = time.time()
        self.validate_order(stages)
        logger.info(f"Starting pipeline execution with {len(stages)} stages")

        for stage in stages:
            stage_start = time.time()
            context = stage(context)
            self._execution_times[stage.name] = time.time() - stage_start

        total_time = time.time() - start_time
        logger.info(f"Pipeline execution completed in {total_time:.1f}s")
        self._log_execution_summary()
        return context

    def validate_order(self, stages: List[Stage]) -> None:
        """Check that names are unique and every dependency precedes its dependent."""
        seen = set()
        for stage in stages:
            if stage.name in seen:
                raise ValueError(f"Duplicate stage name detected: {stage.name}")
            missing = stage.dependencies - seen
            if missing:
                raise ValueError(
                    f"Stage '{stage.name}' is scheduled before its dependencies: "
                    f"{', '.join(sorted(missing))}"
                )
            seen.add(stage.name)

    def plan(self, stages: List[Stage]) -> List[str]:
        """Return the stage names in execution order without running anything."""
        self.validate_order(stages)
        return [stage.name for stage in stages]

    @property
    def execution_times(self) -> Dict[str, float]:
        """Per-stage wall clock times of the last run."""
        return dict(self._execution_times)

    def _log_execution_summary(self) -> None:
        """Log summary of stage execution times."""
        if not self._execution_times:
            return

        logger.info("=" * 60)
        logger.info("Stage Execution Summary")
        logger.info("=" * 60)

        sorted_times = sorted(self._execution_times.items(), key=lambda x: x[1], reverse=True)
        total_time = sum(self._execution_times.values())

        for stage_name, elapsed in sorted_times:
            percentage = (elapsed / total_time) * 100 if total_time > 0 else 0
            logger.info(f"{stage_name:30s} {elapsed:6.1f}s ({percentage:4.1f}%)")

        logger.info("-" * 60)
        logger.info(f"{'Total stage time:':30s} {total_time:6.1f}s")
        logger.info("=" * 60)
