# File: armcnv/arms.py
# Location: armcnv/armcnv/arms.py

"""
Chromosome-arm split and merge.

Before segmentation every record's chromosome is rewritten to an
arm-qualified identifier (``chr1`` -> ``chr1.p`` / ``chr1.q``) so the
segmentation engine never proposes a breakpoint across a centromere. After
segmentation the qualifier is stripped again and the placeholder sample label
written by the segmentation engine is replaced by the real sample identifier.

Only the chromosome and sample fields are rewritten; all other columns are
passed through unchanged.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

import pandas as pd

logger = logging.getLogger("armcnv")

ARM_SEPARATOR = "."
ARM_SUFFIX_PATTERN = r"\.[pq]$"


def load_centromeres(path) -> Dict[str, Tuple[int, int]]:
    """
    Load centromere boundaries from a tab-delimited annotation.

    Columns are chromosome, start, end. Several rows for one chromosome (e.g.
    the two ``acen`` bands of a cytoband file) are collapsed to the outermost
    boundaries. Header, comment and track lines are ignored.

    Returns
    -------
    dict
        Chromosome to (start, end)
    """
    raw = pd.read_csv(
        path,
        sep="\t",
        header=None,
        usecols=[0, 1, 2],
        names=["chrom", "start", "end"],
        dtype=str,
        comment="#",
    )
    raw["start"] = pd.to_numeric(raw["start"], errors="coerce")
    raw["end"] = pd.to_numeric(raw["end"], errors="coerce")
    raw = raw.dropna()
    bounds = raw.groupby("chrom").agg(start=("start", "min"), end=("end", "max"))
    centromeres = {row.Index: (int(row.start), int(row.end)) for row in bounds.itertuples()}
    logger.debug(f"Loaded centromeres for {len(centromeres)} chromosomes from {path}")
    return centromeres


def assign_arm(start: int, end: int, centromere: Tuple[int, int]) -> str:
    """
    Return ``p`` or ``q`` for a record relative to a centromere.

    A record ending at or before the centromere start is on p, one starting at
    or after the centromere end is on q. Records overlapping the centromere go
    to the arm their midpoint falls on.
    """
    cen_start, cen_end = centromere
    if end <= cen_start:
        return "p"
    if start >= cen_end:
        return "q"
    return "p" if (start + end) / 2 < (cen_start + cen_end) / 2 else "q"


def split_arms(
    df: pd.DataFrame,
    centromeres: Dict[str, Tuple[int, int]],
    chrom_col: str = "chrom",
    start_col: str = "chr_start",
    end_col: str = "chr_stop",
) -> pd.DataFrame:
    """
    Rewrite the chromosome column into arm-qualified identifiers.

    Chromosomes without a centromere entry keep their name unchanged.

    Parameters
    ----------
    df : pd.DataFrame
        Records with chromosome, start and end columns
    centromeres : dict
        Output of :func:`load_centromeres`
    """
    result = df.copy()
    if result.empty:
        return result

    chrom = result[chrom_col].astype(str)
    starts = pd.to_numeric(result[start_col])
    ends = pd.to_numeric(result[end_col])
    result[chrom_col] = [
        f"{name}{ARM_SEPARATOR}{assign_arm(start, end, centromeres[name])}"
        if name in centromeres
        else name
        for name, start, end in zip(chrom, starts, ends)
    ]

    unknown = sorted(set(chrom) - set(centromeres))
    if unknown:
        logger.warning(f"No centromere annotation for {', '.join(unknown)}; left unsplit")
    return result


def merge_arms(
    df: pd.DataFrame,
    sample_id: str,
    placeholder: str = "Sample.1",
    chrom_col: str = "chrom",
    sample_col: str = "ID",
    centromeres: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """
    Strip arm qualifiers and substitute the sample identifier.

    Parameters
    ----------
    df : pd.DataFrame
        Segmentation output with arm-qualified chromosomes
    sample_id : str
        Identifier to write into ``sample_col``
    placeholder : str
        Sample label emitted by the segmentation engine
    centromeres : dict or iterable of str, optional
        Chromosomes that were arm-split. A ``.p``/``.q`` suffix is only removed
        when the remaining name is one of them, so names the split left alone
        come back unchanged. Without it every such suffix is removed.
    """
    result = df.copy()
    chrom = result[chrom_col].astype(str)
    base = chrom.str.replace(ARM_SUFFIX_PATTERN, "", regex=True)
    if centromeres is not None:
        base = base.where(base.isin(list(centromeres)), chrom)
    result[chrom_col] = base
    if sample_col in result.columns:
        result[sample_col] = result[sample_col].replace(placeholder, sample_id)
    return result


def split_arm_file(input_path, centromere_path, output_path) -> int:
    """Arm-split a VarScan called table on disk. Returns the number of records."""
    df = pd.read_csv(input_path, sep="\t", dtype=str, keep_default_na=False)
    centromeres = load_centromeres(centromere_path)
    split = split_arms(df, centromeres)
    split.to_csv(output_path, sep="\t", index=False)
    logger.info(f"Split {len(split)} records into chromosome arms: {output_path}")
    return len(split)


def merge_arm_file(
    input_path,
    output_path,
    sample_id: str,
    placeholder: str = "Sample.1",
    centromere_path=None,
) -> int:
    """Merge an arm-level segment table on disk. Returns the number of segments."""
    df = pd.read_csv(input_path, sep="\t", dtype=str, keep_default_na=False)
    centromeres = load_centromeres(centromere_path) if centromere_path is not None else None
    merged = merge_arms(df, sample_id, placeholder, centromeres=centromeres)
    merged.to_csv(output_path, sep="\t", index=False)
    logger.info(f"Merged {len(merged)} segments for sample '{sample_id}': {output_path}")
    return len(merged)
