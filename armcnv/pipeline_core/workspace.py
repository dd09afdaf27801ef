"""
RunDirectory - Scratch workspace management for a pipeline run.

This module provides the RunDirectory class that owns every intermediate
artifact of a run. A run directory is either created fresh under a scratch
root or resumed from a previous run, in which case its artifacts are reused.
"""

import logging
import re
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List, Union

from .error_handling import ArgumentError, validate_output_directory

logger = logging.getLogger(__name__)


def safe_name(sample_id: str) -> str:
    """Return ``sample_id`` reduced to characters safe for file names."""
    return re.sub(r"[^A-Za-z0-9_.-]", "_", sample_id or "") or "sample"


class RunDirectory:
    """Manages the scratch directory of a single pipeline run.

    The directory is removed on normal completion unless ``keep_artifacts`` is
    set. On any failure it is left in place so the run can be resumed or
    inspected.

    Attributes
    ----------
    path : Path
        The run directory
    keep_artifacts : bool
        Keep the directory after successful completion
    resumed : bool
        True if the directory was inherited from a previous run
    """

    PREFIX = "armcnv_"

    def __init__(
        self, path: Union[str, Path], keep_artifacts: bool = False, resumed: bool = False
    ):
        """Wrap an existing run directory.

        Use :meth:`create` or :meth:`resume` rather than calling this directly.
        """
        self.path = Path(path)
        self.keep_artifacts = keep_artifacts
        self.resumed = resumed

    @classmethod
    def create(
        cls, scratch_root: Union[str, Path], sample_id: str = "sample", keep_artifacts: bool = False
    ) -> "RunDirectory":
        """Create a uniquely named run directory under ``scratch_root``.

        Parameters
        ----------
        scratch_root : str or Path
            Parent directory; created if missing
        sample_id : str
            Included in the directory name for readability
        keep_artifacts : bool
            Keep the directory after successful completion
        """
        root = validate_output_directory(scratch_root, create=True)
        safe_sample = safe_name(sample_id)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = Path(tempfile.mkdtemp(prefix=f"{cls.PREFIX}{safe_sample}_{timestamp}_", dir=root))
        logger.info(f"Created run directory: {path}")
        return cls(path, keep_artifacts=keep_artifacts, resumed=False)

    @classmethod
    def resume(cls, path: Union[str, Path], keep_artifacts: bool = False) -> "RunDirectory":
        """Reuse an existing run directory verbatim.

        Prior contents are not inspected here; each step decides lazily whether
        its artifact is still valid.
        """
        path = Path(path)
        if not path.is_dir():
            raise ArgumentError(f"Resume directory does not exist: {path}")
        logger.info(f"Resuming run directory: {path}")
        return cls(path, keep_artifacts=keep_artifacts, resumed=True)

    def get_path(self, name: str) -> Path:
        """Return the path of an artifact inside the run directory.

        Parameters
        ----------
        name : str
            Artifact file name

        Returns
        -------
        Path
            Full path in the run directory
        """
        return self.path / name

    def list_artifacts(self) -> List[Path]:
        """List all files in the run directory."""
        if self.path.exists():
            return sorted(self.path.glob("*"))
        return []

    def cleanup(self) -> None:
        """Remove all artifacts and the run directory itself."""
        if self.path.exists():
            shutil.rmtree(self.path)
            logger.debug(f"Removed run directory: {self.path}")

    def __repr__(self) -> str:
        """Return string representation of the run directory."""
        return f"RunDirectory(path='{self.path}', resumed={self.resumed})"

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Tear down on success; keep everything on failure for resume."""
        if exc_type is not None:
            logger.error(
                f"Run failed; artifacts kept in {self.path}. "
                f"Re-run with --resume-dir {self.path} to continue."
            )
            return False
        if self.keep_artifacts:
            logger.info(f"Keeping run artifacts in {self.path}")
        else:
            self.cleanup()
        return False
