"""
Setup stages that gate the run.

These stages are cheap and read-only. They make sure the external tools are
usable and that every input agrees with the reference genome before any
expensive computation starts.
"""

import logging
from typing import Set

from ..chromosomes import validate_chromosome_sets
from ..pipeline_core import PipelineContext, Stage
from ..utils import check_tool_versions

logger = logging.getLogger(__name__)


class ToolVersionCheckStage(Stage):
    """Verify that samtools, VarScan and Rscript are installed in usable versions."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "tool_version_check"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Check external tool availability and versions"

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Record tool versions, failing on missing or outdated tools."""
        versions = check_tool_versions(
            context.config["tools"], context.config.get("min_tool_versions", {})
        )
        for tool, version in versions.items():
            logger.info(f"{tool}: {version}")
        context.tool_versions = versions
        return context


class ChromosomeValidationStage(Stage):
    """Check that alignments and annotations only use reference chromosomes."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "chromosome_validation"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Validate chromosome naming against the reference genome"

    @property
    def dependencies(self) -> Set[str]:
        """Return the set of stage names this stage depends on."""
        return {"tool_version_check"}

    def _process(self, context: PipelineContext) -> PipelineContext:
        """Extract chromosome sets and compare them with the reference."""
        args = context.args
        sets = validate_chromosome_sets(
            reference=args.reference,
            alignments=[args.control_bam, args.tumor_bam],
            annotations=[args.centromeres, args.targets],
            samtools=context.config["tools"]["samtools"],
        )
        context.target_chromosomes = sets[args.targets]
        logger.info(
            f"Inputs consistent with reference ({len(sets[args.reference])} sequences, "
            f"{len(context.target_chromosomes)} target chromosomes)"
        )
        return context
