"""Tests for the normal/tumor data ratio."""

import pytest

from armcnv.pipeline_core.error_handling import StageInputError
from armcnv.ratio import (
    AlignmentMetrics,
    compute_data_ratio,
    data_ratio_from_reports,
    parse_flagstat,
)
from mocks import flagstat_text


class TestParseFlagstat:
    """Test parse_flagstat."""

    def test_current_format(self, tmp_path):
        """Test the 'N + M mapped (' line of current samtools."""
        report = tmp_path / "tumor.flagstat"
        report.write_text(flagstat_text(4321))

        assert parse_flagstat(report) == AlignmentMetrics(4321)

    def test_legacy_format(self, tmp_path):
        """Test the 'N mapped (' line of old samtools releases."""
        report = tmp_path / "tumor.flagstat"
        report.write_text("1000 in total\n0 duplicates\n990 mapped (99.00%:nan%)\n")

        assert parse_flagstat(report).mapped_read_count == 990

    def test_truncated_report(self, tmp_path):
        """Test a single-line report is rejected."""
        report = tmp_path / "tumor.flagstat"
        report.write_text("[bam_flagstat] error reading file\n")

        with pytest.raises(StageInputError, match="missing or invalid"):
            parse_flagstat(report)

    def test_no_mapped_line(self, tmp_path):
        """Test a report without a mapped count is rejected."""
        report = tmp_path / "tumor.flagstat"
        report.write_text("100 + 0 in total\n0 + 0 duplicates\n")

        with pytest.raises(StageInputError, match="No 'mapped' line"):
            parse_flagstat(report)


class TestComputeDataRatio:
    """Test compute_data_ratio."""

    def test_two_decimal_places(self):
        """Test the ratio is rendered with two decimals."""
        assert compute_data_ratio(AlignmentMetrics(88), AlignmentMetrics(100)) == "0.88"
        assert compute_data_ratio(AlignmentMetrics(100), AlignmentMetrics(100)) == "1.00"

    def test_half_up_rounding(self):
        """Test 0.125 rounds to 0.13."""
        assert compute_data_ratio(AlignmentMetrics(125), AlignmentMetrics(1000)) == "0.13"

    def test_configured_precision(self):
        """Test the number of decimals follows the precision argument."""
        assert compute_data_ratio(AlignmentMetrics(1), AlignmentMetrics(3), precision=4) == "0.3333"

    def test_tumor_without_reads(self):
        """Test a tumor with zero mapped reads is an input error."""
        with pytest.raises(StageInputError, match="no mapped reads"):
            compute_data_ratio(AlignmentMetrics(88), AlignmentMetrics(0))


def test_data_ratio_from_reports(tmp_path):
    """Test the ratio is computed from two flagstat reports."""
    control = tmp_path / "control.flagstat"
    tumor = tmp_path / "tumor.flagstat"
    control.write_text(flagstat_text(5000))
    tumor.write_text(flagstat_text(4000))

    assert data_ratio_from_reports(control, tumor) == "1.25"
