# File: armcnv/chromosomes.py
# Location: armcnv/armcnv/chromosomes.py

"""
Chromosome-set consistency checks.

This module provides:
- Extraction of chromosome name sets from a reference FASTA, from alignment
  headers (via ``samtools view -H``) and from tab-delimited annotations.
- validate_chromosome_sets: every alignment/annotation set must be a subset of
  the reference set. Runs before any expensive stage.
- check_pileup_reference_bases: after pileup generation, fails the run when the
  sampled reference-base column is entirely the unknown placeholder, which
  points to a genome/alignment naming mismatch that passed the set check.
"""

import logging
from itertools import islice
from typing import Dict, FrozenSet, Iterable, Optional

from .pipeline_core.error_handling import ConsistencyError
from .utils import open_text, run_command

logger = logging.getLogger("armcnv")

SKIPPED_ANNOTATION_PREFIXES = ("#", "track", "browser")


def reference_chromosomes(fasta_path: str) -> FrozenSet[str]:
    """
    Return the sequence identifiers of a FASTA file.

    The identifier is the header text after ``>`` up to the first whitespace.
    """
    names = set()
    with open_text(fasta_path) as fh:
        for line in fh:
            if line.startswith(">"):
                fields = line[1:].split()
                if fields:
                    names.add(fields[0])
    logger.debug(f"Reference {fasta_path}: {len(names)} sequences")
    return frozenset(names)


def alignment_chromosomes(alignment_path: str, samtools: str = "samtools") -> FrozenSet[str]:
    """
    Return the sequence dictionary (``@SQ SN:``) entries of an alignment header.

    Parameters
    ----------
    alignment_path : str
        BAM/CRAM/SAM file
    samtools : str
        samtools executable
    """
    header = run_command([samtools, "view", "-H", alignment_path])
    return parse_sequence_dictionary(header)


def parse_sequence_dictionary(header: str) -> FrozenSet[str]:
    """Extract ``SN`` values from the ``@SQ`` lines of a SAM header."""
    names = set()
    for line in header.splitlines():
        if not line.startswith("@SQ"):
            continue
        for tag in line.rstrip("\n").split("\t")[1:]:
            if tag.startswith("SN:"):
                names.add(tag[3:])
                break
    return frozenset(names)


def annotation_chromosomes(annotation_path: str) -> FrozenSet[str]:
    """Return the unique values of the first tab-delimited column of an annotation."""
    names = set()
    with open_text(annotation_path) as fh:
        for line in fh:
            if not line.strip() or line.startswith(SKIPPED_ANNOTATION_PREFIXES):
                continue
            names.add(line.split("\t", 1)[0].strip())
    return frozenset(names)


def check_subset(name: str, chromosomes: Iterable[str], reference: FrozenSet[str]) -> None:
    """
    Raise ConsistencyError if ``chromosomes`` is not a subset of ``reference``.

    Parameters
    ----------
    name : str
        File the set was extracted from (used in the message)
    chromosomes : iterable of str
        Set to check
    reference : frozenset of str
        Reference genome chromosome set
    """
    missing = set(chromosomes) - set(reference)
    if missing:
        shown = ", ".join(sorted(missing)[:10])
        more = f" (and {len(missing) - 10} more)" if len(missing) > 10 else ""
        raise ConsistencyError(
            f"{name} contains chromosomes absent from the reference genome: {shown}{more}",
            file_path=name,
            chromosomes=missing,
        )
    logger.debug(f"{name}: chromosome set is consistent with the reference")


def validate_chromosome_sets(
    reference: str,
    alignments: Iterable[str],
    annotations: Iterable[str],
    samtools: str = "samtools",
) -> Dict[str, FrozenSet[str]]:
    """
    Check every alignment and annotation against the reference genome.

    Parameters
    ----------
    reference : str
        Reference FASTA
    alignments : iterable of str
        Alignment files
    annotations : iterable of str
        Tab-delimited annotation files (chromosome in column 1)
    samtools : str
        samtools executable

    Returns
    -------
    dict
        File path to extracted chromosome set, including the reference

    Raises
    ------
    ConsistencyError
        If any set is not a subset of the reference set
    """
    logger.info("Validating chromosome naming across inputs")
    ref_set = reference_chromosomes(reference)
    if not ref_set:
        raise ConsistencyError(f"No sequences found in reference genome {reference}", reference)

    sets = {reference: ref_set}
    for path in alignments:
        sets[path] = alignment_chromosomes(path, samtools)
        check_subset(path, sets[path], ref_set)
    for path in annotations:
        sets[path] = annotation_chromosomes(path)
        check_subset(path, sets[path], ref_set)
    return sets


def check_pileup_reference_bases(
    pileup_path: str, max_positions: int = 100000, unknown_base: Optional[str] = "N"
) -> int:
    """
    Fail if every sampled pileup position has an unknown reference base.

    Parameters
    ----------
    pileup_path : str
        samtools mpileup output (reference base in column 3)
    max_positions : int
        Number of leading positions to sample
    unknown_base : str
        Placeholder base written when the reference sequence is unavailable

    Returns
    -------
    int
        Number of positions sampled

    Raises
    ------
    ConsistencyError
        If all sampled reference bases are the unknown placeholder
    """
    unknown = (unknown_base or "N").upper()
    sampled = 0
    known = 0
    with open_text(pileup_path) as fh:
        for line in islice(fh, max_positions):
            fields = line.split("\t")
            if len(fields) < 3:
                continue
            sampled += 1
            if fields[2].upper() != unknown:
                known += 1
                break

    if sampled and not known:
        raise ConsistencyError(
            f"All of the first {sampled} pileup positions in {pileup_path} have reference "
            f"base '{unknown}'; the alignments were probably made against a different "
            "genome build or naming convention than the reference",
            file_path=str(pileup_path),
        )
    logger.debug(f"Pileup reference-base check passed ({sampled} positions read)")
    return sampled
