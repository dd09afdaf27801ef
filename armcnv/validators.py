# File: armcnv/validators.py
# Location: armcnv/armcnv/validators.py

"""
Validation module for armcnv.

This module provides functions to validate:
- Alignment files (existence, non-empty, recognized extension)
- The reference FASTA and its samtools index
- Centromere and target annotations (existence, non-empty)
- The sample identifier and run directory options

These validations ensure that all critical inputs are present before any
external tool is started. Genome consistency between the inputs is checked
later by the chromosome validation stage.
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

from .pipeline_core.error_handling import ArgumentError, validate_file_exists
from .utils import is_alignment_file

logger = logging.getLogger("armcnv")


def validate_alignment_file(bam_path: Optional[str], description: str) -> Path:
    """
    Validate that an alignment file exists, is non-empty and looks like an alignment.

    Parameters
    ----------
    bam_path : str or None
        Path to the BAM/CRAM/SAM file.
    description : str
        Role of the file in the run (e.g. "control alignment").

    Raises
    ------
    ArgumentError
        If the file is missing, empty or has an unknown extension.
    """
    path = validate_file_exists(bam_path, description)
    if not is_alignment_file(path):
        raise ArgumentError(f"{description} is not a BAM, CRAM or SAM file: {path}")
    return path


def validate_reference(fasta_path: Optional[str]) -> Path:
    """
    Validate the reference FASTA and its index.

    The index is expected next to the FASTA with the standard naming
    convention (e.g. genome.fa.fai).

    Raises
    ------
    ArgumentError
        If the FASTA or its index is missing or empty.
    """
    path = validate_file_exists(fasta_path, "reference FASTA")
    index_path = Path(f"{path}.fai")
    if not index_path.exists():
        raise ArgumentError(
            f"FASTA index file not found: {index_path}. "
            f"Please index your FASTA file with 'samtools faidx {path}'"
        )
    validate_file_exists(index_path, "FASTA index")
    return path


def validate_sample_id(sample_id: Optional[str]) -> None:
    """Reject empty sample identifiers and ones containing tabs or newlines."""
    if not sample_id or not sample_id.strip():
        raise ArgumentError("Sample ID must not be empty")
    if any(c in sample_id for c in "\t\r\n"):
        raise ArgumentError(f"Sample ID must not contain tabs or newlines: {sample_id!r}")


def validate_inputs(args: argparse.Namespace) -> None:
    """
    Validate every input file and option of a run.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command-line arguments.

    Raises
    ------
    ArgumentError
        On the first invalid input.
    """
    validate_alignment_file(args.control_bam, "control alignment")
    validate_alignment_file(args.tumor_bam, "tumor alignment")
    validate_reference(args.reference)
    validate_file_exists(args.centromeres, "centromere annotation")
    validate_file_exists(args.targets, "target annotation")
    validate_sample_id(args.sample_id)

    resume_dir = getattr(args, "resume_dir", None)
    if resume_dir and not Path(resume_dir).is_dir():
        raise ArgumentError(f"Resume directory does not exist: {resume_dir}")

    logger.debug("All input files validated")
