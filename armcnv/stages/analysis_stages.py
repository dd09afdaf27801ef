"""
Analysis stages from called segments to the merged segmentation report.

This module contains the stages that follow segment calling:
- Recentering decision and, when needed, re-calling with a shift
- Chromosome-arm split of the recentered calls
- Circular binary segmentation (DNAcopy via Rscript)
- Arm merge and sample-label substitution
"""

import logging
import os
from pathlib import Path
from typing import Set

from ..arms import merge_arm_file, split_arm_file
from ..pipeline_core import PipelineContext, Stage, StageSpec, is_valid_artifact
from ..pipeline_core.workspace import safe_name
from ..recenter import (
    DEFAULT_THRESHOLD,
    NO_SHIFT_DECISION,
    classify_delta,
    compute_delta_from_file,
    expected_recenter_chromosomes,
)
from ..segmentation import render_segmentation_script
from .processing_stages import copycaller_spec

logger = logging.getLogger(__name__)


def link_artifact(target: Path, link: Path) -> None:
    """Point ``link`` at ``target`` with a relative symlink, replacing a stale one."""
    if link.is_symlink() or link.exists():
        link.unlink()
    link.symlink_to(os.path.relpath(target, link.parent))


class RecenterStage(Stage):
    """Decide whether the called segments need recentering and apply it."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "recenter"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Recenter called segments"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"copy_caller"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Compute the delta, classify it and produce the recentered calls.

        A shift re-invokes copyCaller on the filtered table with the
        ``--recenter-down`` or ``--recenter-up`` amount. Without a shift the
        recentered artifact is a symlink to the called one.
        """
        called = context.get_artifact("called")
        filtered = context.get_artifact("copynumber_filtered")
        recentered = context.run_dir.get_path("varscan.copynumber.called.recentered")

        if context.dry_run and not is_valid_artifact(called):
            logger.warning("DRY RUN: called segments not available, assuming no recentering")
            decision = NO_SHIFT_DECISION
        else:
            expected = expected_recenter_chromosomes(
                context.target_chromosomes,
                configured=context.config.get("recenter_chromosomes"),
                excluded=context.config.get("recenter_exclude_chromosomes"),
            )
            context.recenter_delta = compute_delta_from_file(called, expected)
            decision = classify_delta(
                context.recenter_delta,
                threshold=context.config.get("recenter_threshold", DEFAULT_THRESHOLD),
            )

        context.recenter_decision = decision
        logger.info(f"Recenter decision: {decision.branch} ({decision.magnitude:.4f})")

        if decision.shifts:
            spec = copycaller_spec(
                context,
                "copy_caller_recenter",
                filtered,
                recentered,
                decision.caller_arguments(),
            )
        else:

            def link_called(path):
                link_artifact(called, path)

            spec = StageSpec(
                name="recenter_alias",
                command=link_called,
                output=recentered,
                inputs=(called,),
            )
        context.step_runner.run(spec)

        context.add_artifact("recentered", recentered)
        return context


class ArmSplitStage(Stage):
    """Rewrite chromosomes of the recentered calls into arm identifiers."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "arm_split"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Split recentered calls into chromosome arms"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"recenter"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Write the arm-qualified recentered calls."""
        recentered = context.get_artifact("recentered")
        centromeres = Path(context.args.centromeres)
        output = context.run_dir.get_path("recentered.arms.tsv")

        def write_arms(path):
            split_arm_file(recentered, centromeres, path)

        context.step_runner.run(
            StageSpec(
                name="arm_split",
                command=write_arms,
                output=output,
                inputs=(recentered, centromeres),
            )
        )
        context.add_artifact("arms", output)
        return context


class SegmentationStage(Stage):
    """Segment the arm-split log-ratios with DNAcopy."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "segmentation"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Circular binary segmentation (DNAcopy)"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"arm_split"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Render the R script and run it through Rscript."""
        arms = context.get_artifact("arms")
        output = context.run_dir.get_path("segments.arms.tsv")
        script = context.run_dir.get_path("segment.R")

        if not context.dry_run:
            render_segmentation_script(
                arms,
                output,
                script,
                undo_sd=context.config.get("undo_sd", 4),
                sample_placeholder=context.config.get("segment_sample_placeholder", "Sample.1"),
            )

        command = (context.config["tools"]["rscript"], "--vanilla", str(script))
        context.step_runner.run(
            StageSpec(name="segmentation", command=command, output=output, inputs=(arms,))
        )
        context.add_artifact("segments", output)
        return context


class ArmMergeStage(Stage):
    """Collapse arm identifiers and label segments with the sample ID."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "arm_merge"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Merge arm-level segments into the sample report"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"segmentation"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Write the merged per-sample segment table."""
        segments = context.get_artifact("segments")
        # Sample ID is part of the name so a run with another ID is not memoized
        output = context.run_dir.get_path(f"{safe_name(context.sample_id)}.segments.tsv")
        sample_id = context.sample_id
        placeholder = context.config.get("segment_sample_placeholder", "Sample.1")
        centromeres = Path(context.args.centromeres)

        def write_merged(path):
            merge_arm_file(segments, path, sample_id, placeholder, centromeres)

        context.step_runner.run(
            StageSpec(
                name="arm_merge",
                command=write_merged,
                output=output,
                inputs=(segments, centromeres),
            )
        )
        context.add_artifact("report", output)
        context.final_output_path = output
        return context
