# File: armcnv/segmentation.py
# Location: armcnv/armcnv/segmentation.py

"""
DNAcopy segmentation script rendering.

The circular binary segmentation itself runs in R. This module renders the
R script from a Jinja2 template with the input/output paths and the
breakpoint sensitivity (``undo.SD``) of the current run.
"""

import logging
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .version import __version__

logger = logging.getLogger("armcnv")

TEMPLATE_NAME = "segment.R.j2"


def render_segmentation_script(
    input_path,
    output_path,
    script_path,
    undo_sd: float = 4,
    sample_placeholder: str = "Sample.1",
    log_ratio_column: str = "adjusted_log_ratio",
) -> Path:
    """
    Write the DNAcopy R script for one segmentation run.

    Parameters
    ----------
    input_path : str or Path
        Arm-split recentered calls (VarScan copyCaller columns)
    output_path : str or Path
        Segment table the script writes
    script_path : str or Path
        Where to write the rendered script
    undo_sd : float
        DNAcopy ``undo.SD``; larger values merge more breakpoints
    sample_placeholder : str
        Sample label written into the ``ID`` column, replaced when merging arms
    log_ratio_column : str
        Column holding the log-ratios to segment

    Returns
    -------
    Path
        The rendered script
    """
    templates_dir = Path(__file__).parent / "templates"
    if not templates_dir.exists():
        raise FileNotFoundError(f"Templates directory not found at: {templates_dir}")

    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    template = env.get_template(TEMPLATE_NAME)
    script = template.render(
        version=__version__,
        input_path=Path(input_path).as_posix(),
        output_path=Path(output_path).as_posix(),
        undo_sd=undo_sd,
        sample_placeholder=sample_placeholder,
        log_ratio_column=log_ratio_column,
    )

    script_path = Path(script_path)
    script_path.write_text(script, encoding="utf-8")
    logger.debug(f"Segmentation script written to {script_path}")
    return script_path
