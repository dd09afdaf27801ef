"""
Output stages for the merged segmentation report.

This module contains the stages that run after the report is built:
- Run metadata (run_metadata.json in the run directory)
- Report output to stdout or a file
"""

import json
import logging
import shutil
import sys
from pathlib import Path
from typing import Set

from ..pipeline_core import PipelineContext, Stage
from ..version import __version__

logger = logging.getLogger(__name__)


class MetadataStage(Stage):
    """Write a JSON record of the run into the run directory."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "metadata"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Write run metadata"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"arm_merge"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Collect inputs, tool versions and decisions into run_metadata.json."""
        if context.dry_run:
            logger.debug("DRY RUN: metadata not written")
            return context

        args = context.args
        decision = context.recenter_decision
        metadata = {
            "armcnv_version": __version__,
            "sample_id": context.sample_id,
            "run_date": context.start_time.isoformat(),
            "run_directory": str(context.run_dir.path),
            "resumed": context.run_dir.resumed,
            "input_files": {
                "control_bam": args.control_bam,
                "tumor_bam": args.tumor_bam,
                "reference": args.reference,
                "centromeres": args.centromeres,
                "targets": args.targets,
            },
            "parameters": {
                "min_mapq": context.config.get("min_mapq"),
                "undo_sd": context.config.get("undo_sd"),
                "recenter_threshold": context.config.get("recenter_threshold"),
            },
            "tool_versions": context.tool_versions,
            "data_ratio": context.data_ratio,
            "recenter_delta": context.recenter_delta,
            "recenter_branch": decision.branch if decision else None,
            "recenter_magnitude": decision.magnitude if decision else None,
            "invoked_steps": list(context.step_runner.invocations),
            "skipped_steps": list(context.step_runner.skipped),
            "execution_time": f"{context.get_execution_time():.1f} seconds",
        }

        metadata_path = context.run_dir.get_path("run_metadata.json")
        with open(metadata_path, "w") as f:
            json.dump(metadata, f, indent=2, default=str)
        logger.info(f"Run metadata written to {metadata_path}")
        context.add_artifact("metadata", metadata_path)
        return context


class ReportOutputStage(Stage):
    """Emit the merged segmentation report."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "report_output"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Write the segmentation report"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"arm_merge"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Copy the report to ``--output-file`` or stdout."""
        report = context.final_output_path
        if context.dry_run:
            logger.info("DRY RUN: no report produced")
            return context

        output_file = getattr(context.args, "output_file", None)
        if output_file in (None, "stdout", "-"):
            logger.info("Writing report to stdout")
            with open(report, "r", encoding="utf-8") as src:
                shutil.copyfileobj(src, sys.stdout)
            sys.stdout.flush()
            return context

        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(report, output_path)
        logger.info(f"Report written to {output_path}")
        return context
