"""Shared pytest fixtures for all test modules."""

from argparse import Namespace
from pathlib import Path
from typing import Dict
from unittest.mock import patch

import pandas as pd
import pytest

from armcnv.config import load_config
from armcnv.pipeline_core import PipelineContext, RunDirectory, StepRunner
from mocks import MockCopyNumberTools, which_everything

REFERENCE_FASTA = """>chr1 assembled chromosome 1
ACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGT
ACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGT
>chr2 assembled chromosome 2
TTGACCATTGACCATTGACCATTGACCATTGACCATTGACCATTGACCATTGACCATTGA
>chrX
NNNNNNNNNNACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTACGTAC
"""

REFERENCE_FAI = "chr1\t120\t28\t60\t61\nchr2\t60\t179\t60\t61\nchrX\t60\t247\t60\t61\n"

CENTROMERES = """# chrom\tstart\tend
chr1\t500000\t550000\tacen
chr1\t550000\t600000\tacen
chr2\t400000\t450000\tacen
chrX\t580000\t620000\tacen
"""

TARGETS = """track name=exome description="test targets"
chr1\t100000\t100200\ttarget_1
chr1\t200000\t200150\ttarget_2
chr1\t700000\t700300\ttarget_3
chr1\t800000\t800100\ttarget_4
chr2\t100000\t100200\ttarget_5
chr2\t300000\t300100\ttarget_6
chr2\t500000\t500250\ttarget_7
chr2\t600000\t600100\ttarget_8
"""


@pytest.fixture
def genome_inputs(tmp_path) -> Dict[str, Path]:
    """Write a small, mutually consistent set of run inputs."""
    inputs_dir = tmp_path / "inputs"
    inputs_dir.mkdir()

    reference = inputs_dir / "genome.fa"
    reference.write_text(REFERENCE_FASTA)
    Path(f"{reference}.fai").write_text(REFERENCE_FAI)

    control = inputs_dir / "control.bam"
    control.write_bytes(b"BAM\x01control")
    tumor = inputs_dir / "tumor.bam"
    tumor.write_bytes(b"BAM\x01tumor")

    centromeres = inputs_dir / "centromeres.tsv"
    centromeres.write_text(CENTROMERES)
    targets = inputs_dir / "targets.bed"
    targets.write_text(TARGETS)

    return {
        "reference": reference,
        "control_bam": control,
        "tumor_bam": tumor,
        "centromeres": centromeres,
        "targets": targets,
    }


@pytest.fixture
def cli_args(genome_inputs, tmp_path):
    """Return a builder of command lines for the genome inputs."""

    def build(*extra, scratch_root=None, resume_dir=None):
        argv = [
            "-c",
            str(genome_inputs["control_bam"]),
            "-t",
            str(genome_inputs["tumor_bam"]),
            "-r",
            str(genome_inputs["reference"]),
            "-C",
            str(genome_inputs["centromeres"]),
            "-e",
            str(genome_inputs["targets"]),
        ]
        if resume_dir is not None:
            argv += ["-n", str(resume_dir)]
        else:
            argv += ["-s", str(scratch_root or tmp_path / "scratch")]
        return argv + list(extra)

    return build


@pytest.fixture
def mock_tools():
    """Replace samtools, VarScan and Rscript with in-process fakes."""
    tools = MockCopyNumberTools()
    with patch("armcnv.utils.subprocess.run", side_effect=tools), patch(
        "armcnv.utils.shutil.which", side_effect=which_everything
    ):
        yield tools


@pytest.fixture
def called_table() -> pd.DataFrame:
    """A VarScan copyCaller table covering chr1, chr2 and chrX."""
    return pd.DataFrame(
        {
            "chrom": ["chr1", "chr1", "chr1", "chr2", "chr2", "chrX"],
            "chr_start": [100001, 200001, 700001, 100001, 500001, 100001],
            "chr_stop": [100200, 200150, 700300, 100200, 500250, 100100],
            "num_positions": [200, 100, 100, 300, 100, 100],
            "normal_depth": [40.0] * 6,
            "tumor_depth": [38.0] * 6,
            "adjusted_log_ratio": [-0.5, -0.2, -0.8, -0.3, -0.7, -1.5],
            "gc_content": [45.0] * 6,
            "region_call": ["neutral"] * 6,
            "raw_ratio": [-0.5, -0.2, -0.8, -0.3, -0.7, -1.5],
        }
    )


@pytest.fixture
def make_context(genome_inputs, tmp_path):
    """Return a builder of PipelineContexts over a run directory in tmp_path."""

    def build(config=None, dry_run=False, completed=(), sample_id="S1", output_file=None):
        run_path = tmp_path / "run"
        run_path.mkdir(exist_ok=True)
        args = Namespace(
            **{key: str(path) for key, path in genome_inputs.items()},
            sample_id=sample_id,
            output_file=output_file,
            dry_run=dry_run,
        )
        cfg = load_config()
        cfg["varscan_java_heap"] = None
        cfg.update(config or {})
        context = PipelineContext(
            args=args,
            config=cfg,
            run_dir=RunDirectory(run_path, keep_artifacts=True),
            sample_id=sample_id,
            step_runner=StepRunner(dry_run=dry_run),
        )
        for name in completed:
            context.mark_complete(name)
        return context

    return build
