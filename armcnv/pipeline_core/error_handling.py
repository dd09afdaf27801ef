"""
Error taxonomy and validation helpers for the copy-number pipeline.

Every error raised here is fatal for the run. A failed run is recovered by
re-running against the same run directory, where already-valid artifacts are
skipped.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, stage: Optional[str] = None, details: Optional[Dict] = None):
        """Initialize pipeline error.

        Parameters
        ----------
        message : str
            Error message
        stage : str, optional
            Stage where error occurred
        details : dict, optional
            Additional error details
        """
        super().__init__(message)
        self.stage = stage
        self.details = details or {}


class ArgumentError(PipelineError):
    """Raised when a required input is missing, unreadable or the run mode is ambiguous."""


class ConsistencyError(PipelineError):
    """Raised when input files disagree about the reference genome."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        chromosomes: Optional[Iterable[str]] = None,
        stage: Optional[str] = None,
    ):
        """Initialize consistency error."""
        details = {}
        if file_path is not None:
            details["file"] = file_path
        if chromosomes is not None:
            details["chromosomes"] = sorted(chromosomes)
        super().__init__(message, stage, details)


class ToolNotFoundError(PipelineError):
    """Raised when a required external tool is not found."""

    def __init__(self, tool: str, stage: Optional[str] = None):
        """Initialize tool not found error."""
        message = f"Required tool '{tool}' not found in PATH"
        super().__init__(message, stage, {"tool": tool})


class ToolVersionError(PipelineError):
    """Raised when an external tool does not report the expected version."""

    def __init__(self, tool: str, found: str, required: str):
        """Initialize tool version error."""
        message = f"Tool '{tool}' has version '{found}', at least '{required}' is required"
        super().__init__(message, None, {"tool": tool, "found": found, "required": required})


class StageInputError(PipelineError):
    """Raised when an upstream artifact is missing or invalid as a stage is about to run."""

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        stage: Optional[str] = None,
    ):
        """Initialize stage input error."""
        super().__init__(message, stage, {"path": str(path)} if path is not None else None)


class StageOutputError(PipelineError):
    """Raised when a stage ran but its declared output is not a valid artifact."""

    def __init__(self, stage_name: str, path: Union[str, Path]):
        """Initialize stage output error."""
        message = (
            f"Stage '{stage_name}' did not produce a valid output: {path} "
            "is missing or has fewer than two lines"
        )
        super().__init__(message, stage_name, {"path": str(path)})


class DecisionInputError(PipelineError):
    """Raised when the recenter delta cannot be computed over all expected chromosomes."""


class StageExecutionError(PipelineError):
    """Raised when a step command fails or an in-process step raises."""

    def __init__(self, stage_name: str, original_error: Exception):
        """Initialize stage execution error."""
        message = f"Stage '{stage_name}' failed: {str(original_error)}"
        super().__init__(
            message,
            stage_name,
            {
                "original_error": str(original_error),
                "error_type": type(original_error).__name__,
            },
        )
        self.original_error = original_error


def validate_file_exists(file_path: Union[str, Path], description: str) -> Path:
    """Validate that a required input file exists, is non-empty and readable.

    Parameters
    ----------
    file_path : str or Path
        Path to validate
    description : str
        Human-readable role of the file, used in the error message

    Returns
    -------
    Path
        Validated path object

    Raises
    ------
    ArgumentError
        If the file is missing, empty or unreadable
    """
    if not file_path:
        raise ArgumentError(f"No {description} provided")

    path = Path(file_path)

    if not path.exists():
        raise ArgumentError(f"{description} not found: {path}")

    if not path.is_file():
        raise ArgumentError(f"{description} is not a regular file: {path}")

    if path.stat().st_size == 0:
        raise ArgumentError(f"{description} is empty: {path}")

    try:
        with open(path, "rb"):
            pass
    except PermissionError:
        raise ArgumentError(f"Cannot read {description}: {path}")

    return path


def validate_output_directory(output_dir: Union[str, Path], create: bool = True) -> Path:
    """Validate a directory that the pipeline will write into.

    Parameters
    ----------
    output_dir : str or Path
        Directory path
    create : bool
        Whether to create the directory if it doesn't exist

    Returns
    -------
    Path
        Validated directory path

    Raises
    ------
    ArgumentError
        If the path is not a directory or cannot be created or written to
    """
    path = Path(output_dir)

    if path.exists():
        if not path.is_dir():
            raise ArgumentError(f"Not a directory: {path}")
    elif create:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            raise ArgumentError(f"Cannot create directory: {path}")
    else:
        raise ArgumentError(f"Directory does not exist: {path}")

    # Check if writable
    test_file = path / ".write_test"
    try:
        test_file.touch()
        test_file.unlink()
    except PermissionError:
        raise ArgumentError(f"Cannot write to directory: {path}")

    return path
