"""
Test module for utility functions in armcnv/utils.py.

This module contains tests for command execution, tool discovery and
version checks, and the VarScan Java heap setting.
"""

import subprocess
from unittest.mock import Mock, patch

import pytest

from armcnv.pipeline_core.error_handling import ToolNotFoundError, ToolVersionError
from armcnv.utils import (
    check_tool_versions,
    get_tool_version,
    is_alignment_file,
    java_heap_option,
    parse_version,
    run_command,
)

TOOLS = {"samtools": "samtools", "varscan": "varscan", "rscript": "Rscript"}


class TestRunCommand:
    """Tests for run_command."""

    @patch("armcnv.utils.subprocess.run")
    def test_returns_stdout(self, mock_run):
        """Test stdout is returned when no output file is given."""
        mock_run.return_value = Mock(returncode=0, stdout="@SQ\tSN:chr1\n", stderr="")

        assert run_command(["samtools", "view", "-H", "t.bam"]) == "@SQ\tSN:chr1\n"

    @patch("armcnv.utils.subprocess.run")
    def test_writes_output_file(self, mock_run, tmp_path):
        """Test stdout is redirected into the output file."""
        mock_run.return_value = Mock(returncode=0, stdout=None, stderr="")
        output = tmp_path / "out.txt"

        assert run_command(["samtools", "flagstat", "t.bam"], str(output)) == str(output)
        assert mock_run.call_args.kwargs["stdout"].name == str(output)

    @patch("armcnv.utils.subprocess.run")
    def test_nonzero_exit(self, mock_run):
        """Test a failing command raises CalledProcessError with its stderr."""
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="bad input")

        with pytest.raises(subprocess.CalledProcessError) as exc_info:
            run_command(["varscan", "copyCaller"])
        assert exc_info.value.stderr == "bad input"


class TestToolVersions:
    """Tests for tool version retrieval and checks."""

    def test_get_tool_version(self, mock_tools):
        """Test versions are parsed from each tool's output."""
        assert get_tool_version("samtools") == "1.17"
        assert get_tool_version("varscan") == "2.4.6"
        assert get_tool_version("rscript", "Rscript") == "4.3.1"

    def test_unknown_tool(self):
        """Test tools without a version parser report N/A."""
        assert get_tool_version("bwa") == "N/A"

    def test_missing_executable(self):
        """Test an executable that cannot be started reports N/A."""
        with patch("armcnv.utils.subprocess.run", side_effect=OSError("no such file")):
            assert get_tool_version("samtools") == "N/A"

    @pytest.mark.parametrize(
        "version,expected",
        [("1.17", (1, 17)), ("2.4.6", (2, 4, 6)), ("1.10-dirty", (1, 10)), ("N/A", ())],
    )
    def test_parse_version(self, version, expected):
        """Test dotted versions become comparable tuples."""
        assert parse_version(version) == expected

    def test_check_tool_versions(self, mock_tools):
        """Test all tools pass the packaged minimum versions."""
        versions = check_tool_versions(TOOLS, {"samtools": "1.3", "varscan": "2.4"})
        assert versions == {"samtools": "1.17", "varscan": "2.4.6", "rscript": "4.3.1"}

    def test_version_compared_numerically(self, mock_tools):
        """Test 1.17 is newer than 1.9."""
        check_tool_versions(TOOLS, {"samtools": "1.9"})

        with pytest.raises(ToolVersionError):
            check_tool_versions(TOOLS, {"varscan": "2.10"})

    def test_tool_not_on_path(self):
        """Test a tool missing from PATH is reported by name."""
        with patch("armcnv.utils.shutil.which", return_value=None):
            with pytest.raises(ToolNotFoundError, match="samtools"):
                check_tool_versions(TOOLS, {})


class TestJavaHeap:
    """Tests for java_heap_option."""

    def test_disabled(self):
        """Test an empty setting adds no argument."""
        assert java_heap_option(None) == []
        assert java_heap_option("") == []

    def test_literal(self):
        """Test a literal heap size is passed through."""
        assert java_heap_option("12g") == ["-Xmx12g"]

    @pytest.mark.parametrize(
        "available,expected", [(64.0, "-Xmx16g"), (10.0, "-Xmx5g"), (1.0, "-Xmx1g")]
    )
    def test_auto(self, available, expected):
        """Test the automatic heap is half the available memory within 1-16 GB."""
        with patch("armcnv.utils.get_available_memory_gb", return_value=available):
            assert java_heap_option("auto") == [expected]


def test_is_alignment_file():
    """Test alignment detection by extension."""
    assert is_alignment_file("tumor.bam")
    assert is_alignment_file("/data/NORMAL.CRAM")
    assert not is_alignment_file("tumor.bam.bai")
