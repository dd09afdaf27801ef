# File: armcnv/recenter.py
# Location: armcnv/armcnv/recenter.py

"""
Recentering decision for called copy-number segments.

The centering delta summarizes how far the called log-ratios sit from zero.
It drives the only data-dependent branch of the pipeline:

- delta below -threshold: call again with ``--recenter-down |delta|``
- delta above +threshold: call again with ``--recenter-up delta``
- otherwise: no shift, the called artifact is aliased as the recentered one
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from .pipeline_core.error_handling import DecisionInputError

logger = logging.getLogger("armcnv")

DEFAULT_THRESHOLD = 0.2

SHIFT_DOWN = "shift_down"
SHIFT_UP = "shift_up"
NO_SHIFT = "no_shift"


@dataclass(frozen=True)
class RecenterDecision:
    """Outcome of classifying a centering delta.

    Attributes
    ----------
    branch : str
        One of ``shift_down``, ``shift_up`` or ``no_shift``
    magnitude : float
        Non-negative amount to recenter by (0.0 for ``no_shift``)
    """

    branch: str
    magnitude: float = 0.0

    @property
    def shifts(self) -> bool:
        """Whether the call step has to be re-invoked."""
        return self.branch != NO_SHIFT

    def caller_arguments(self) -> List[str]:
        """Extra copyCaller arguments for this branch."""
        if self.branch == SHIFT_DOWN:
            return ["--recenter-down", format_magnitude(self.magnitude)]
        if self.branch == SHIFT_UP:
            return ["--recenter-up", format_magnitude(self.magnitude)]
        return []


NO_SHIFT_DECISION = RecenterDecision(NO_SHIFT, 0.0)


def format_magnitude(value: float) -> str:
    """Render a recenter amount for the command line, e.g. 0.2001 -> '0.2001'."""
    return f"{value:.6g}"


def classify_delta(delta: float, threshold: float = DEFAULT_THRESHOLD) -> RecenterDecision:
    """
    Classify a centering delta into a recenter branch.

    The thresholds are exclusive: a delta of exactly -0.2 or 0.2 does not shift.

    >>> classify_delta(-0.2001)
    RecenterDecision(branch='shift_down', magnitude=0.2001)
    >>> classify_delta(-0.2).branch
    'no_shift'
    """
    if delta < -threshold:
        return RecenterDecision(SHIFT_DOWN, abs(delta))
    if delta > threshold:
        return RecenterDecision(SHIFT_UP, delta)
    return NO_SHIFT_DECISION


def expected_recenter_chromosomes(
    target_chromosomes: Iterable[str],
    configured: Optional[Iterable[str]] = None,
    excluded: Optional[Iterable[str]] = None,
) -> List[str]:
    """
    Chromosomes the delta must cover.

    An explicit ``configured`` list wins; otherwise the target chromosomes
    minus the ``excluded`` names (sex chromosomes and mitochondria by default).
    """
    if configured:
        return sorted(set(configured))
    excluded_set = set(excluded or [])
    return sorted(set(target_chromosomes) - excluded_set)


def compute_delta(
    called: pd.DataFrame,
    expected_chromosomes: Iterable[str],
    chrom_col: str = "chrom",
    ratio_col: str = "adjusted_log_ratio",
    weight_col: str = "num_positions",
) -> float:
    """
    Compute the centering delta of a called copy-number table.

    Each chromosome contributes its log-ratio mean weighted by the number of
    positions per region; the delta is the median of those chromosome means.

    Raises
    ------
    DecisionInputError
        If the table lacks usable rows or does not cover every expected chromosome
    """
    for col in (chrom_col, ratio_col):
        if col not in called.columns:
            raise DecisionInputError(f"Called segment table has no '{col}' column")

    df = pd.DataFrame(
        {
            "chrom": called[chrom_col].astype(str),
            "ratio": pd.to_numeric(called[ratio_col], errors="coerce"),
            "weight": (
                pd.to_numeric(called[weight_col], errors="coerce")
                if weight_col in called.columns
                else 1.0
            ),
        }
    ).dropna()
    df = df[df["weight"] > 0]
    if df.empty:
        raise DecisionInputError("Called segment table contains no usable log-ratio rows")

    expected = set(expected_chromosomes)
    covered = set(df["chrom"])
    missing = expected - covered
    if missing:
        raise DecisionInputError(
            "Cannot compute recenter delta: no called segments on "
            f"{', '.join(sorted(missing))}"
        )

    if expected:
        df = df[df["chrom"].isin(expected)]

    df = df.assign(weighted=df["ratio"] * df["weight"])
    grouped = df.groupby("chrom")[["weighted", "weight"]].sum()
    chromosome_means = grouped["weighted"] / grouped["weight"]
    delta = float(np.median(chromosome_means.to_numpy()))
    logger.debug(f"Per-chromosome means: {chromosome_means.round(4).to_dict()}")
    return delta


def compute_delta_from_file(called_path, expected_chromosomes: Iterable[str]) -> float:
    """Read a VarScan copyCaller table and compute its centering delta."""
    called = pd.read_csv(called_path, sep="\t", dtype={"chrom": str})
    delta = compute_delta(called, expected_chromosomes)
    logger.info(f"Recenter delta for {called_path}: {delta:.4f}")
    return delta
