# File: armcnv/ratio.py
# Location: armcnv/armcnv/ratio.py

"""
Normal/tumor data ratio from ``samtools flagstat`` reports.

VarScan copynumber needs the ratio of control to tumor mapped reads to
normalize depth; it is computed here from the two flagstat artifacts.
"""

import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .pipeline_core import is_valid_artifact
from .pipeline_core.error_handling import StageInputError
from .utils import open_text

logger = logging.getLogger("armcnv")

# "123456 + 0 mapped (99.50% : N/A)" in samtools >= 1.0, "123456 mapped (99.50%...)" before
MAPPED_LINE = re.compile(r"^\s*(\d+)(?:\s*\+\s*\d+)?\s+mapped\s+\(")


@dataclass(frozen=True)
class AlignmentMetrics:
    """Mapped read count parsed from a flagstat report."""

    mapped_read_count: int


def parse_flagstat(path) -> AlignmentMetrics:
    """
    Parse the mapped read count from a flagstat report.

    Raises
    ------
    StageInputError
        If the report is invalid or has no ``mapped (`` line
    """
    if not is_valid_artifact(path):
        raise StageInputError(f"Alignment statistics report is missing or invalid: {path}", path)

    with open_text(path) as fh:
        for line in fh:
            m = MAPPED_LINE.match(line)
            if m:
                return AlignmentMetrics(int(m.group(1)))
    raise StageInputError(f"No 'mapped' line found in alignment statistics report {path}", path)


def compute_data_ratio(
    control: AlignmentMetrics, tumor: AlignmentMetrics, precision: int = 2
) -> str:
    """
    Return control/tumor mapped reads as a fixed-precision decimal string.

    >>> compute_data_ratio(AlignmentMetrics(88), AlignmentMetrics(100))
    '0.88'

    Raises
    ------
    StageInputError
        If the tumor has no mapped reads
    """
    if tumor.mapped_read_count <= 0:
        raise StageInputError(
            "Cannot compute data ratio: tumor alignment has no mapped reads "
            f"(control={control.mapped_read_count}, tumor={tumor.mapped_read_count})"
        )
    quantum = Decimal(1).scaleb(-precision)
    try:
        ratio = (Decimal(control.mapped_read_count) / Decimal(tumor.mapped_read_count)).quantize(
            quantum, rounding=ROUND_HALF_UP
        )
    except InvalidOperation as e:
        raise StageInputError(f"Cannot compute data ratio: {e}")
    return str(ratio)


def data_ratio_from_reports(control_report, tumor_report, precision: int = 2) -> str:
    """Parse both flagstat reports and return the data ratio."""
    control = parse_flagstat(control_report)
    tumor = parse_flagstat(tumor_report)
    ratio = compute_data_ratio(control, tumor, precision)
    logger.info(
        f"Data ratio {ratio} (control mapped={control.mapped_read_count}, "
        f"tumor mapped={tumor.mapped_read_count})"
    )
    return ratio
