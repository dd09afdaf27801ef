"""Command-line interface for armcnv."""

import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import load_config
from .pipeline import run_pipeline
from .pipeline_core.error_handling import PipelineError
from .validators import validate_inputs
from .version import __version__

logger = logging.getLogger("armcnv")

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def create_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser for the armcnv CLI."""
    parser = argparse.ArgumentParser(
        description="armcnv: Arm-aware tumor/normal copy-number segmentation."
    )

    # General Options
    general_group = parser.add_argument_group("General Options")
    general_group.add_argument(
        "--version",
        action="version",
        version=f"armcnv {__version__}",
        help="Show the current version and exit",
    )
    general_group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN", "ERROR"],
        default="INFO",
        help="Set the logging level",
    )
    general_group.add_argument(
        "--log-file", help="Path to a file to write logs to (in addition to stderr)."
    )
    general_group.add_argument(
        "--config",
        help="Path to a JSON configuration file overriding the packaged defaults",
        default=None,
    )

    # Core Input/Output
    io_group = parser.add_argument_group("Core Input/Output")
    io_group.add_argument(
        "-c", "--control-bam", help="Control (normal) alignment file", required=True
    )
    io_group.add_argument("-t", "--tumor-bam", help="Tumor alignment file", required=True)
    io_group.add_argument(
        "-r",
        "--reference",
        help="Reference genome FASTA; a samtools index (.fai) must exist next to it",
        required=True,
    )
    io_group.add_argument(
        "-C",
        "--centromeres",
        help="Centromere annotation (tab-delimited chromosome, start, end)",
        required=True,
    )
    io_group.add_argument(
        "-e", "--targets", help="Exome/target region annotation (BED)", required=True
    )
    io_group.add_argument(
        "-o",
        "--output-file",
        help="Write the segmentation report to this file instead of stdout",
        default=None,
    )
    io_group.add_argument(
        "-i", "--sample-id", help="Sample identifier used in the report", default="sample"
    )

    # Run Directory
    run_group = parser.add_argument_group("Run Directory")
    location = run_group.add_mutually_exclusive_group(required=True)
    location.add_argument(
        "-s",
        "--scratch-root",
        help="Create a fresh run directory under this directory",
    )
    location.add_argument(
        "-n",
        "--resume-dir",
        help="Resume a previous run directory; valid artifacts are reused",
    )
    run_group.add_argument(
        "-k",
        "--keep-artifacts",
        action="store_true",
        default=False,
        help="Keep the run directory after successful completion "
        "(by default, it is deleted; it is always kept on failure).",
    )
    run_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Validate inputs and log the commands of each step without running them",
    )

    # Tuning
    tuning_group = parser.add_argument_group("Tuning")
    tuning_group.add_argument(
        "--undo-sd",
        type=float,
        default=None,
        help="DNAcopy undo.SD; higher values merge more breakpoints (default from config: 4)",
    )
    tuning_group.add_argument(
        "--min-mapq",
        type=int,
        default=None,
        help="Minimum mapping quality for samtools mpileup -q (default from config: 1)",
    )

    return parser


def parse_args(args_list: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Parameters
    ----------
    args_list : list of str, optional
        Arguments to parse; ``sys.argv[1:]`` when omitted

    Returns
    -------
    argparse.Namespace
        Parsed arguments
    """
    parser = create_parser()
    return parser.parse_args(args_list)


def configure_logging(log_level: str, log_file: Optional[str] = None) -> None:
    """Apply ``--log-level`` to the package logger and attach an optional file handler."""
    logging.getLogger("armcnv").setLevel(LOG_LEVEL_MAP[log_level])

    if log_file:
        log_file_path = Path(log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        fh = logging.FileHandler(log_file)
        fh.setLevel(LOG_LEVEL_MAP[log_level])
        fh.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        logger.addHandler(fh)
        logger.debug(f"Logging to file enabled: {log_file}")


def build_config(args: argparse.Namespace) -> Dict[str, Any]:
    """Load the configuration and apply command-line overrides."""
    cfg: Dict[str, Any] = load_config(args.config)
    if args.undo_sd is not None:
        cfg["undo_sd"] = args.undo_sd
    if args.min_mapq is not None:
        cfg["min_mapq"] = args.min_mapq
    logger.debug(f"Configuration loaded: {cfg}")
    return cfg


def main(argv: Optional[List[str]] = None) -> int:
    """Run main entry point for the armcnv CLI.

    Steps:
        1. Parse arguments (usage errors exit with status 2).
        2. Configure logging and load config.
        3. Validate input files.
        4. Run the pipeline inside a fresh or resumed run directory.

    Returns
    -------
    int
        0 on success, 1 on any pipeline error
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    args = parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    start_time = datetime.datetime.now()
    logger.info(f"armcnv {__version__} run started at {start_time.isoformat()}")
    logger.debug(f"CLI arguments: {args}")

    try:
        cfg = build_config(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load configuration: {e}")
        return 1

    try:
        validate_inputs(args)
        run_pipeline(args, cfg)
    except PipelineError as e:
        logger.error(f"Pipeline failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        return 1

    elapsed = datetime.datetime.now() - start_time
    logger.info(f"Run finished in {elapsed.total_seconds():.1f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
