"""
Pipeline stages for armcnv.

This package contains all stage implementations organized by category:
- setup_stages: Tool version check and chromosome consistency validation
- processing_stages: Alignment statistics, pileup, copy number and segment calling
- analysis_stages: Recentering, arm split, segmentation and arm merge
- output_stages: Run metadata and report output
"""

from .analysis_stages import ArmMergeStage, ArmSplitStage, RecenterStage, SegmentationStage
from .output_stages import MetadataStage, ReportOutputStage
from .processing_stages import (
    AlignmentStatisticsStage,
    CopyCallerStage,
    CopyNumberFilterStage,
    CopyNumberStage,
    DataRatioStage,
    PileupStage,
)
from .setup_stages import ChromosomeValidationStage, ToolVersionCheckStage

__all__ = [
    # Setup stages
    "ToolVersionCheckStage",
    "ChromosomeValidationStage",
    # Processing stages
    "AlignmentStatisticsStage",
    "DataRatioStage",
    "PileupStage",
    "CopyNumberStage",
    "CopyNumberFilterStage",
    "CopyCallerStage",
    # Analysis stages
    "RecenterStage",
    "ArmSplitStage",
    "SegmentationStage",
    "ArmMergeStage",
    # Output stages
    "MetadataStage",
    "ReportOutputStage",
]
