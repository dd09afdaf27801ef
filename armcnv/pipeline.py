# File: armcnv/pipeline.py
# Location: armcnv/armcnv/pipeline.py

"""
Pipeline orchestration module.

This module assembles the fixed stage sequence of a copy-number run and
executes it inside a run directory:

- Create a fresh run directory or resume an existing one.
- Build the PipelineContext with the merged configuration and a StepRunner.
- Run every stage in order. Each external step is skipped when its artifact
  is already valid, so re-running against the same directory only redoes the
  work that did not finish.
- Emit the merged report before the run directory is torn down.
"""

import argparse
import logging
from typing import Any, Dict, List

from .pipeline_core import PipelineContext, PipelineRunner, RunDirectory, Stage, StepRunner
from .stages import (
    AlignmentStatisticsStage,
    ArmMergeStage,
    ArmSplitStage,
    ChromosomeValidationStage,
    CopyCallerStage,
    CopyNumberFilterStage,
    CopyNumberStage,
    DataRatioStage,
    MetadataStage,
    PileupStage,
    RecenterStage,
    ReportOutputStage,
    SegmentationStage,
    ToolVersionCheckStage,
)

logger = logging.getLogger("armcnv")


def build_pipeline_stages(args: argparse.Namespace) -> List[Stage]:
    """Build the list of stages for one run.

    Parameters
    ----------
    args : argparse.Namespace
        Command-line arguments

    Returns
    -------
    List[Stage]
        Stages in execution order
    """
    return [
        ToolVersionCheckStage(),
        ChromosomeValidationStage(),
        AlignmentStatisticsStage(),
        DataRatioStage(),
        PileupStage(),
        CopyNumberStage(),
        CopyNumberFilterStage(),
        CopyCallerStage(),
        RecenterStage(),
        ArmSplitStage(),
        SegmentationStage(),
        ArmMergeStage(),
        MetadataStage(),
        ReportOutputStage(),
    ]


def open_run_directory(args: argparse.Namespace) -> RunDirectory:
    """Create or resume the run directory requested on the command line."""
    keep = getattr(args, "keep_artifacts", False)
    resume_dir = getattr(args, "resume_dir", None)
    if resume_dir:
        return RunDirectory.resume(resume_dir, keep_artifacts=keep)
    return RunDirectory.create(args.scratch_root, sample_id=args.sample_id, keep_artifacts=keep)


def run_pipeline(args: argparse.Namespace, config: Dict[str, Any]) -> PipelineContext:
    """Run the copy-number pipeline for one tumor/normal pair.

    Parameters
    ----------
    args : argparse.Namespace
        Validated command-line arguments
    config : dict
        Configuration merged from defaults, ``--config`` and CLI options

    Returns
    -------
    PipelineContext
        Final context; its run directory may already be removed

    Raises
    ------
    PipelineError
        On any validation, tool or decision failure. The run directory is kept.
    """
    stages = build_pipeline_stages(args)
    runner = PipelineRunner()
    logger.debug(f"Execution plan: {' -> '.join(runner.plan(stages))}")

    with open_run_directory(args) as run_dir:
        context = PipelineContext(
            args=args,
            config=config,
            run_dir=run_dir,
            sample_id=args.sample_id,
            step_runner=StepRunner(dry_run=getattr(args, "dry_run", False)),
        )
        context = runner.run(stages, context)

        step_runner = context.step_runner
        logger.info(
            f"Pipeline completed: {len(step_runner.invocations)} steps run, "
            f"{len(step_runner.skipped)} reused from {run_dir.path}"
        )
    return context
