"""
Stage - Abstract base class for all pipeline stages.

This module provides the unified Stage abstraction that all pipeline components
inherit from, ensuring consistent behavior and interface across the pipeline.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Set

from .context import PipelineContext
from .error_handling import PipelineError

logger = logging.getLogger(__name__)


class Stage(ABC):
    """Abstract base class for all pipeline stages.

    Each stage declares its dependencies and implements ``_process``. Stages
    that wrap external tools build StageSpecs and hand them to the context's
    StepRunner, so the skip-if-valid rule applies to every external call.

    The stage execution is handled by __call__, which validates dependencies,
    logs execution and tracks timing.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for the stage.

        Returns
        -------
        str
            The stage name used for dependency tracking and logging
        """
        pass

    @property
    def dependencies(self) -> Set[str]:
        """Stage names that must complete before this stage.

        Returns
        -------
        Set[str]
            Set of stage names this stage depends on
        """
        return set()

    @property
    def description(self) -> str:
        """Human-readable description for logging."""
        return f"Stage: {self.name}"

    def __call__(self, context: PipelineContext) -> PipelineContext:
        """Execute the stage with dependency validation, logging and timing.

        Parameters
        ----------
        context : PipelineContext
            The pipeline context

        Returns
        -------
        PipelineContext
            Updated context after stage execution

        Raises
        ------
        PipelineError
            If dependencies are not satisfied or the stage fails
        """
        missing_deps = [dep for dep in sorted(self.dependencies) if not context.is_complete(dep)]
        if missing_deps:
            raise PipelineError(
                f"Stage '{self.name}' requires these stages to complete first: "
                f"{', '.join(missing_deps)}",
                stage=self.name,
            )

        if context.is_complete(self.name):
            logger.info(f"Stage '{self.name}' already complete, skipping")
            return context

        logger.info(f"Executing {self.description}")
        start_time = time.time()

        try:
            updated_context = self._process(context)
        except Exception as e:
            elapsed = time.time() - start_time
            logger.error(f"Stage '{self.name}' failed after {elapsed:.1f}s: {e}")
            raise

        elapsed = time.time() - start_time
        updated_context.mark_complete(self.name)
        logger.info(f"Stage '{self.name}' completed in {elapsed:.1f}s")
        return updated_context

    @abstractmethod
    def _process(self, context: PipelineContext) -> PipelineContext:
        """Core processing logic - must be implemented by subclasses.

        Parameters
        ----------
        context : PipelineContext
            The pipeline context

        Returns
        -------
        PipelineContext
            Updated context after processing
        """
        pass

    def __repr__(self) -> str:
        """Return string representation of the stage."""
        deps = f", depends_on={self.dependencies}" if self.dependencies else ""
        return f"{self.__class__.__name__}(name='{self.name}'{deps})"
