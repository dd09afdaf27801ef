"""Tests for analysis stages."""

import os

import pandas as pd
import pytest

from armcnv.pipeline_core.error_handling import DecisionInputError
from armcnv.recenter import NO_SHIFT, SHIFT_DOWN, SHIFT_UP
from armcnv.stages.analysis_stages import (
    ArmMergeStage,
    ArmSplitStage,
    RecenterStage,
    SegmentationStage,
    link_artifact,
)


@pytest.fixture
def recenter_context(make_context):
    """Context with called and filtered tables registered, ready for recentering."""

    def build(called_df, **kwargs):
        context = make_context(completed=["copy_caller"], **kwargs)
        context.target_chromosomes = frozenset({"chr1", "chr2"})

        called = context.run_dir.get_path("varscan.copynumber.called")
        called_df.to_csv(called, sep="\t", index=False)
        context.add_artifact("called", called)

        filtered = context.run_dir.get_path("varscan.copynumber.filtered")
        copynumber = called_df.rename(columns={"adjusted_log_ratio": "log2_ratio"})
        copynumber.drop(columns=["region_call", "raw_ratio"]).to_csv(
            filtered, sep="\t", index=False
        )
        context.add_artifact("copynumber_filtered", filtered)
        return context

    return build


class TestRecenterStage:
    """Test RecenterStage."""

    def test_no_shift_links_called(self, recenter_context, called_table, mock_tools):
        """Test that a centered table is aliased, not copied or re-called."""
        centered = called_table.assign(adjusted_log_ratio=0.05)
        context = recenter_context(centered)

        RecenterStage()(context)

        recentered = context.get_artifact("recentered")
        assert context.recenter_decision.branch == NO_SHIFT
        assert recentered.is_symlink()
        assert os.readlink(recentered) == "varscan.copynumber.called"
        assert mock_tools.tool_calls("copyCaller") == []
        assert context.step_runner.invocations == ["recenter_alias"]

    def test_shift_down_recalls(self, recenter_context, called_table, mock_tools):
        """Test that a negative delta re-invokes copyCaller with --recenter-down."""
        context = recenter_context(called_table)

        RecenterStage()(context)

        assert context.recenter_delta == pytest.approx(-0.45)
        assert context.recenter_decision.branch == SHIFT_DOWN
        (call,) = mock_tools.tool_calls("copyCaller")
        assert call[-2:] == ["--recenter-down", "0.45"]
        recentered = context.get_artifact("recentered")
        assert not recentered.is_symlink()
        assert recentered.name == "varscan.copynumber.called.recentered"

    def test_shift_up_recalls(self, recenter_context, called_table, mock_tools):
        """Test that a positive delta re-invokes copyCaller with --recenter-up."""
        shifted = called_table.assign(adjusted_log_ratio=called_table["adjusted_log_ratio"] + 1.0)
        context = recenter_context(shifted)

        RecenterStage()(context)

        assert context.recenter_decision.branch == SHIFT_UP
        (call,) = mock_tools.tool_calls("copyCaller")
        assert call[-2:] == ["--recenter-up", "0.55"]

    def test_configured_threshold(self, recenter_context, called_table, mock_tools):
        """Test that the threshold comes from the configuration."""
        context = recenter_context(called_table, config={"recenter_threshold": 0.5})

        RecenterStage()(context)

        assert context.recenter_decision.branch == NO_SHIFT

    def test_missing_expected_chromosome(self, recenter_context, called_table):
        """Test that a called table without an expected chromosome fails the run."""
        context = recenter_context(called_table)
        context.target_chromosomes = frozenset({"chr1", "chr2", "chr3"})

        with pytest.raises(DecisionInputError, match="chr3"):
            RecenterStage()(context)

    def test_dry_run_without_calls(self, make_context):
        """Test that dry-run without called segments assumes no shift."""
        context = make_context(dry_run=True, completed=["copy_caller"])
        context.add_artifact("called", context.run_dir.get_path("varscan.copynumber.called"))
        context.add_artifact(
            "copynumber_filtered", context.run_dir.get_path("varscan.copynumber.filtered")
        )

        RecenterStage()(context)

        assert context.recenter_decision.branch == NO_SHIFT
        assert not context.run_dir.get_path("varscan.copynumber.called.recentered").exists()


def test_link_artifact_replaces_stale_link(tmp_path):
    """A broken alias left by an earlier run is replaced."""
    target = tmp_path / "called"
    target.write_text("a\nb\n")
    link = tmp_path / "recentered"
    link.symlink_to("gone")

    link_artifact(target, link)

    assert os.readlink(link) == "called"
    assert link.read_text() == "a\nb\n"


class TestArmSplitStage:
    """Test ArmSplitStage."""

    def test_split(self, make_context, called_table):
        """Test recentered calls are rewritten to arm identifiers."""
        context = make_context(completed=["recenter"])
        recentered = context.run_dir.get_path("varscan.copynumber.called.recentered")
        called_table.to_csv(recentered, sep="\t", index=False)
        context.add_artifact("recentered", recentered)

        ArmSplitStage()(context)

        arms = pd.read_csv(context.get_artifact("arms"), sep="\t", dtype=str)
        assert arms["chrom"].tolist() == [
            "chr1.p",
            "chr1.p",
            "chr1.q",
            "chr2.p",
            "chr2.q",
            "chrX.p",
        ]
        assert arms["adjusted_log_ratio"].tolist()[0] == "-0.5"


class TestSegmentationStage:
    """Test SegmentationStage."""

    def test_rscript_invocation(self, make_context, mock_tools):
        """Test the rendered script and the Rscript command line."""
        context = make_context(config={"undo_sd": 2.5}, completed=["arm_split"])
        arms = context.run_dir.get_path("recentered.arms.tsv")
        arms.write_text(
            "chrom\tchr_start\tchr_stop\tnum_positions\tadjusted_log_ratio\n"
            "chr1.p\t100\t200\t100\t0.1\n"
            "chr1.q\t900\t1000\t100\t-0.1\n"
        )
        context.add_artifact("arms", arms)

        SegmentationStage()(context)

        script = context.run_dir.get_path("segment.R")
        (call,) = [c for c in mock_tools.calls if c[0] == "Rscript"]
        assert call == ["Rscript", "--vanilla", str(script)]
        assert "undo.SD = 2.5" in script.read_text()
        segments = pd.read_csv(context.get_artifact("segments"), sep="\t")
        assert segments["chrom"].tolist() == ["chr1.p", "chr1.q"]
        assert set(segments["ID"]) == {"Sample.1"}


class TestArmMergeStage:
    """Test ArmMergeStage."""

    def test_merge(self, make_context):
        """Test the report strips arm suffixes and carries the sample ID."""
        context = make_context(completed=["segmentation"], sample_id="PATIENT_7")
        segments = context.run_dir.get_path("segments.arms.tsv")
        segments.write_text(
            "ID\tchrom\tloc.start\tloc.end\tnum.mark\tseg.mean\n"
            "Sample.1\tchr1.p\t100\t200\t10\t0.1234\n"
            "Sample.1\tchr1.q\t900\t1000\t12\t-0.5\n"
        )
        context.add_artifact("segments", segments)

        ArmMergeStage()(context)

        report = context.final_output_path
        assert report.name == "PATIENT_7.segments.tsv"
        assert report.read_text() == (
            "ID\tchrom\tloc.start\tloc.end\tnum.mark\tseg.mean\n"
            "PATIENT_7\tchr1\t100\t200\t10\t0.1234\n"
            "PATIENT_7\tchr1\t900\t1000\t12\t-0.5\n"
        )

    def test_unsplit_contig_name_kept(self, make_context):
        """Test a contig without a centromere entry keeps a trailing .p."""
        context = make_context(completed=["segmentation"])
        segments = context.run_dir.get_path("segments.arms.tsv")
        segments.write_text(
            "ID\tchrom\tloc.start\tloc.end\tnum.mark\tseg.mean\n"
            "Sample.1\tchr2.p\t100\t200\t10\t0.1\n"
            "Sample.1\tcontig.p\t100\t200\t4\t0.2\n"
        )
        context.add_artifact("segments", segments)

        ArmMergeStage()(context)

        lines = context.final_output_path.read_text().splitlines()
        assert [line.split("\t")[1] for line in lines[1:]] == ["chr2", "contig.p"]
