"""
Idempotent step execution.

A pipeline step is described by an immutable StageSpec. The StepRunner treats
the step's declared output file as the memoization key: if the output already
exists and looks like a real result, the step is skipped. This is what makes a
crashed or interrupted run resumable against the same run directory.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Tuple, Union

from .. import utils
from .error_handling import (
    PipelineError,
    StageExecutionError,
    StageInputError,
    StageOutputError,
)

logger = logging.getLogger(__name__)

Command = Union[Tuple[str, ...], Callable[[Path], None]]


def is_valid_artifact(path: Union[str, Path]) -> bool:
    """Return True if the artifact exists and has at least two lines.

    Several wrapped tools write a single diagnostic line to their output path
    on failure while still exiting with status 0, so a file with zero or one
    line is never accepted as a result. Lines are counted on raw bytes, so
    the encoding of the content does not matter.
    """
    path = Path(path)
    if not path.is_file():
        return False
    try:
        with utils.open_binary(path) as fh:
            first = fh.readline()
            second = fh.readline()
    except (OSError, EOFError) as e:
        logger.debug(f"Could not read artifact {path}: {e}")
        return False
    return bool(first) and bool(second)


@dataclass(frozen=True)
class StageSpec:
    """Immutable description of one external (or in-process) step.

    Attributes
    ----------
    name : str
        Step name used in logs and errors
    command : tuple of str or callable
        argv of the external tool, or a callable for in-process transformations.
        A callable receives the path to write; the runner moves that file onto
        ``output`` once the callable returns.
    output : Path
        Declared output; the step is complete iff this artifact is valid
    inputs : tuple of Path
        Declared inputs, checked for validity before running (alignments excepted)
    capture_stdout : bool
        Redirect the command's stdout into ``output``
    """

    name: str
    command: Command
    output: Path
    inputs: Tuple[Path, ...] = ()
    capture_stdout: bool = False

    def __post_init__(self):
        # Normalize to immutable tuples of Path so specs compare and hash cleanly
        object.__setattr__(self, "inputs", tuple(Path(p) for p in self.inputs))
        object.__setattr__(self, "output", Path(self.output))
        if not callable(self.command):
            object.__setattr__(self, "command", tuple(str(c) for c in self.command))

    def describe(self) -> str:
        """Return a printable form of the command."""
        if callable(self.command):
            func_name = getattr(self.command, "__name__", repr(self.command))
            return f"<python: {func_name}>"
        text = " ".join(self.command)
        if self.capture_stdout:
            text += f" > {self.output}"
        return text


class StepRunner:
    """Executes StageSpecs with skip-if-valid semantics.

    Attributes
    ----------
    dry_run : bool
        Log commands instead of executing them
    invocations : list of str
        Names of the steps whose command was actually invoked
    """

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run
        self.invocations: List[str] = []
        self.skipped: List[str] = []

    def run(self, spec: StageSpec) -> bool:
        """Run a step unless its output is already valid.

        Returns
        -------
        bool
            True if the command was invoked, False if it was skipped or only logged
        """
        if is_valid_artifact(spec.output):
            logger.info(f"Step '{spec.name}': output {spec.output} already present, skipping")
            self.skipped.append(spec.name)
            return False

        self._check_inputs(spec)

        if self.dry_run:
            logger.info(f"DRY RUN [{spec.name}]: {spec.describe()}")
            return False

        logger.info(f"Step '{spec.name}': {spec.describe()}")
        self._invoke(spec)
        self.invocations.append(spec.name)

        if not is_valid_artifact(spec.output):
            raise StageOutputError(spec.name, spec.output)
        return True

    def _check_inputs(self, spec: StageSpec) -> None:
        for path in spec.inputs:
            if utils.is_alignment_file(path):
                continue
            if is_valid_artifact(path):
                continue
            message = (
                f"Step '{spec.name}' requires {path}, which is missing or has fewer than two lines"
            )
            if self.dry_run:
                logger.warning(message)
                continue
            raise StageInputError(message, path, spec.name)

    def _invoke(self, spec: StageSpec) -> None:
        if not callable(spec.command) and not spec.capture_stdout:
            try:
                utils.run_command(list(spec.command))
            except (subprocess.CalledProcessError, OSError) as e:
                raise StageExecutionError(spec.name, e)
            return

        # Output lands under a temporary name so an interrupted write never
        # leaves a valid-looking artifact behind.
        partial = spec.output.with_name(spec.output.name + ".partial")
        try:
            if callable(spec.command):
                spec.command(partial)
            else:
                utils.run_command(list(spec.command), output_file=str(partial))
            if partial.is_symlink() or partial.exists():
                os.replace(partial, spec.output)
        except PipelineError:
            raise
        except Exception as e:
            raise StageExecutionError(spec.name, e)
        finally:
            if partial.is_symlink() or partial.exists():
                partial.unlink()
