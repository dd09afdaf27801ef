# File: armcnv/utils.py
# Location: armcnv/armcnv/utils.py

"""
Utility functions module.

Provides helper functions for running commands, checking tool availability,
retrieving and comparing tool versions, reading (possibly gzipped) text
artifacts, and sizing the Java heap for VarScan.
"""

import logging
import re
import shutil
import subprocess
from typing import Dict, List, Optional, Tuple

import psutil
import smart_open

from .pipeline_core.error_handling import ToolNotFoundError, ToolVersionError

logger = logging.getLogger("armcnv")

ALIGNMENT_SUFFIXES = (".bam", ".cram", ".sam")


def open_text(path, mode: str = "r"):
    """Open a text artifact, transparently decompressing ``.gz`` files."""
    return smart_open.open(str(path), mode, encoding="utf-8")


def open_binary(path):
    """Open an artifact for byte reads, transparently decompressing ``.gz`` files."""
    return smart_open.open(str(path), "rb")


def is_alignment_file(path) -> bool:
    """Return True for alignment files, which are binary and never line-checked."""
    return str(path).lower().endswith(ALIGNMENT_SUFFIXES)


def check_external_tools(tools: List[str]) -> None:
    """
    Check that external tools are available in PATH.

    Parameters
    ----------
    tools : List[str]
        Executable names to look up

    Raises
    ------
    ToolNotFoundError
        For the first tool that cannot be found
    """
    for tool in tools:
        if not shutil.which(tool):
            logger.error(f"Required tool not found in PATH: {tool}")
            raise ToolNotFoundError(tool)
        logger.debug(f"Found tool in PATH: {tool}")


def run_command(cmd: list, output_file: Optional[str] = None) -> str:
    """
    Run a command and write stdout to output_file if provided, else return stdout.

    Parameters
    ----------
    cmd : list of str
        Command and its arguments.
    output_file : str, optional
        Path to a file where stdout should be written. If None,
        returns stdout as a string.

    Returns
    -------
    str
        If output_file is None, returns the command stdout as a string.
        If output_file is provided, returns output_file after completion.

    Raises
    ------
    subprocess.CalledProcessError
        If the command returns a non-zero exit code.
    """
    logger.debug("Running command: %s", " ".join(cmd))
    if output_file:
        with open(output_file, "w", encoding="utf-8") as out_f:
            result = subprocess.run(cmd, stdout=out_f, stderr=subprocess.PIPE, text=True)
    else:
        result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)

    if result.returncode != 0:
        logger.error("Command failed: %s\nError: %s", " ".join(cmd), result.stderr)
        raise subprocess.CalledProcessError(result.returncode, cmd, stderr=result.stderr)
    else:
        logger.debug("Command completed successfully.")
        if output_file:
            return output_file
        else:
            return result.stdout


def get_tool_version(tool_name: str, executable: Optional[str] = None) -> str:
    """
    Retrieve the version of a given tool.

    Supported tools:

    - samtools
    - varscan
    - rscript

    Parameters
    ----------
    tool_name : str
        Name of the tool to retrieve version for.
    executable : str, optional
        Executable to call (defaults to ``tool_name``).

    Returns
    -------
    str
        Version string or 'N/A' if not found or cannot be retrieved.
    """

    def parse_samtools(stdout, stderr):
        for line in stdout.splitlines():
            m = re.match(r"samtools\s+(\S+)", line.strip())
            if m:
                return m.group(1)
        return "N/A"

    def parse_varscan(stdout, stderr):
        # VarScan prints its banner to stderr when called without a command
        for line in (stderr + "\n" + stdout).splitlines():
            m = re.search(r"VarScan v?(\d[\w.\-]*)", line)
            if m:
                return m.group(1)
        return "N/A"

    def parse_rscript(stdout, stderr):
        for line in (stderr + "\n" + stdout).splitlines():
            m = re.search(r"version\s+(\d[\w.\-]*)", line)
            if m:
                return m.group(1)
        return "N/A"

    tool_map = {
        "samtools": {"args": ["--version"], "parse_func": parse_samtools},
        "varscan": {"args": [], "parse_func": parse_varscan},
        "rscript": {"args": ["--version"], "parse_func": parse_rscript},
    }

    if tool_name not in tool_map:
        logger.warning(f"No version retrieval method implemented for tool: {tool_name}")
        return "N/A"

    cmd = [executable or tool_name] + tool_map[tool_name]["args"]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        logger.warning(f"Failed to retrieve version for {tool_name}: {e}")
        return "N/A"
    return tool_map[tool_name]["parse_func"](result.stdout, result.stderr)


def parse_version(version: str) -> Tuple[int, ...]:
    """Turn a dotted version string such as '1.17' or '2.4.6' into a comparable tuple."""
    parts = []
    for piece in version.split("."):
        m = re.match(r"\d+", piece)
        if not m:
            break
        parts.append(int(m.group(0)))
    return tuple(parts)


def check_tool_versions(tools: Dict[str, str], min_versions: Dict[str, str]) -> Dict[str, str]:
    """
    Verify tool availability and minimum versions.

    Parameters
    ----------
    tools : dict
        Tool key (``samtools``, ``varscan``, ``rscript``) to executable
    min_versions : dict
        Tool key to minimum version string

    Returns
    -------
    dict
        Tool key to reported version, for run metadata

    Raises
    ------
    ToolNotFoundError
        If a tool is not on PATH
    ToolVersionError
        If a tool reports a version below the configured minimum
    """
    check_external_tools(list(tools.values()))

    versions = {}
    for key, executable in tools.items():
        found = get_tool_version(key, executable)
        versions[key] = found
        required = min_versions.get(key)
        if not required:
            continue
        if found == "N/A" or parse_version(found) < parse_version(required):
            raise ToolVersionError(key, found, required)
        logger.debug(f"{key} version {found} satisfies >= {required}")
    return versions


def get_available_memory_gb() -> float:
    """Get available system memory in GB."""
    try:
        memory = psutil.virtual_memory()
        return memory.available / (1024**3)
    except Exception as e:
        logger.warning(f"Could not detect available memory: {e}. Using default estimate of 8GB")
        return 8.0


def java_heap_option(setting: Optional[str]) -> List[str]:
    """
    Translate the ``varscan_java_heap`` setting into VarScan wrapper arguments.

    ``"auto"`` uses half of the available memory, bounded to 1-16 GB. A literal
    size such as ``"6g"`` is passed through, and an empty setting adds nothing.
    """
    if not setting:
        return []
    if setting == "auto":
        heap_gb = int(min(16, max(1, get_available_memory_gb() / 2)))
        logger.debug(f"Auto-sized VarScan Java heap: {heap_gb}g")
        return [f"-Xmx{heap_gb}g"]
    return [f"-Xmx{setting}"]
