"""
Processing stages from alignments to called copy-number segments.

This module contains the stages that wrap the external tools:
- Alignment statistics (samtools flagstat) for control and tumor
- Data ratio computation from the two flagstat reports
- Pileup generation (samtools mpileup) with the reference-base sanity check
- Copy-number estimation (VarScan copynumber)
- Filtering of the copy-number table
- Segment calling (VarScan copyCaller)

Every external call goes through the context's StepRunner, so a stage whose
artifact is already valid in the run directory does not run its tool again.
"""

import logging
from pathlib import Path
from typing import List, Set

import pandas as pd

from ..chromosomes import check_pileup_reference_bases
from ..pipeline_core import PipelineContext, Stage, StageSpec, is_valid_artifact
from ..ratio import data_ratio_from_reports
from ..utils import java_heap_option

logger = logging.getLogger(__name__)

DRY_RUN_RATIO = "1.00"


def varscan_command(context: PipelineContext, *args) -> List[str]:
    """Build a VarScan command line including the Java heap option."""
    varscan = context.config["tools"]["varscan"]
    return [varscan] + java_heap_option(context.config.get("varscan_java_heap")) + list(args)


def copycaller_spec(
    context: PipelineContext, name: str, input_path: Path, output: Path, extra_args=()
) -> StageSpec:
    """Describe a VarScan copyCaller invocation writing ``output`` and ``output.homdel``."""
    homdel = output.with_name(output.name + ".homdel")
    command = varscan_command(
        context,
        "copyCaller",
        str(input_path),
        "--output-file",
        str(output),
        "--output-homdel-file",
        str(homdel),
        *extra_args,
    )
    return StageSpec(name=name, command=tuple(command), output=output, inputs=(input_path,))


class AlignmentStatisticsStage(Stage):
    """Run samtools flagstat on the control and tumor alignments."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "alignment_statistics"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Alignment statistics for control and tumor"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"chromosome_validation"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Produce control.flagstat and tumor.flagstat."""
        samtools = context.config["tools"]["samtools"]
        alignments = (("control", context.args.control_bam), ("tumor", context.args.tumor_bam))
        for role, bam in alignments:
            output = context.run_dir.get_path(f"{role}.flagstat")
            context.step_runner.run(
                StageSpec(
                    name=f"{role}_flagstat",
                    command=(samtools, "flagstat", bam),
                    output=output,
                    inputs=(Path(bam),),
                    capture_stdout=True,
                )
            )
            context.add_artifact(f"{role}_flagstat", output)
        return context


class DataRatioStage(Stage):
    """Compute the control/tumor mapped-read ratio."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "data_ratio"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Compute normal/tumor data ratio"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"alignment_statistics"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Parse both flagstat reports into a two-digit ratio."""
        control = context.get_artifact("control_flagstat")
        tumor = context.get_artifact("tumor_flagstat")

        if context.dry_run and not (is_valid_artifact(control) and is_valid_artifact(tumor)):
            logger.warning(f"DRY RUN: flagstat reports not available, using ratio {DRY_RUN_RATIO}")
            context.data_ratio = DRY_RUN_RATIO
            return context

        context.data_ratio = data_ratio_from_reports(
            control, tumor, precision=context.config.get("ratio_precision", 2)
        )
        return context


class PileupStage(Stage):
    """Generate a joint control/tumor pileup over the target regions."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "pileup"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Generate control/tumor pileup"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"chromosome_validation"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Run samtools mpileup, then check the reference-base column."""
        args = context.args
        output = context.run_dir.get_path("normal_tumor.mpileup")
        command = (
            context.config["tools"]["samtools"],
            "mpileup",
            "-q",
            str(context.config.get("min_mapq", 1)),
            "-f",
            args.reference,
            "-l",
            args.targets,
            args.control_bam,
            args.tumor_bam,
        )
        context.step_runner.run(
            StageSpec(
                name="mpileup",
                command=command,
                output=output,
                inputs=(
                    Path(args.reference),
                    Path(args.targets),
                    Path(args.control_bam),
                    Path(args.tumor_bam),
                ),
                capture_stdout=True,
            )
        )
        context.add_artifact("pileup", output)

        if context.dry_run:
            return context

        check_pileup_reference_bases(
            output,
            max_positions=context.config.get("pileup_sanity_positions", 100000),
            unknown_base=context.config.get("unknown_base", "N"),
        )
        return context


class CopyNumberStage(Stage):
    """Estimate raw copy number with VarScan copynumber."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "copynumber"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Estimate copy number (VarScan copynumber)"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"pileup", "data_ratio"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Run VarScan copynumber on the pileup with the data ratio."""
        pileup = context.get_artifact("pileup")
        prefix = context.run_dir.get_path("varscan")
        output = prefix.with_name(prefix.name + ".copynumber")
        command = varscan_command(
            context,
            "copynumber",
            str(pileup),
            str(prefix),
            "--mpileup",
            "1",
            "--data-ratio",
            context.data_ratio,
        )
        context.step_runner.run(
            StageSpec(name="copynumber", command=tuple(command), output=output, inputs=(pileup,))
        )
        context.add_artifact("copynumber", output)
        return context


def filter_copynumber(input_path, output_path, chromosomes) -> int:
    """
    Keep copy-number regions on target chromosomes with a numeric log-ratio.

    Returns
    -------
    int
        Number of regions written
    """
    df = pd.read_csv(input_path, sep="\t", dtype=str, keep_default_na=False)
    keep = pd.to_numeric(df["log2_ratio"], errors="coerce").notna()
    if chromosomes:
        keep &= df["chrom"].isin(set(chromosomes))
    filtered = df[keep]
    dropped = len(df) - len(filtered)
    if dropped:
        logger.info(f"Dropped {dropped} of {len(df)} copy-number regions")
    filtered.to_csv(output_path, sep="\t", index=False)
    return len(filtered)


class CopyNumberFilterStage(Stage):
    """Drop copy-number regions that cannot be called."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "copynumber_filter"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Filter copy-number regions"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"copynumber"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Write the filtered copy-number table."""
        copynumber = context.get_artifact("copynumber")
        output = context.run_dir.get_path("varscan.copynumber.filtered")
        chromosomes = context.target_chromosomes

        def write_filtered(path):
            filter_copynumber(copynumber, path, chromosomes)

        context.step_runner.run(
            StageSpec(
                name="copynumber_filter",
                command=write_filtered,
                output=output,
                inputs=(copynumber,),
            )
        )
        context.add_artifact("copynumber_filtered", output)
        return context


class CopyCallerStage(Stage):
    """Call copy-number segments with VarScan copyCaller."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "copy_caller"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Call copy-number segments (VarScan copyCaller)"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"copynumber_filter"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Produce the called table and its homozygous-deletion companion."""
        filtered = context.get_artifact("copynumber_filtered")
        output = context.run_dir.get_path("varscan.copynumber.called")
        context.step_runner.run(copycaller_spec(context, "copy_caller", filtered, output))
        context.add_artifact("called", output)
        return context
