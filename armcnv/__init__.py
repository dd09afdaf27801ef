# File: armcnv/__init__.py
# Location: armcnv/armcnv/__init__.py

"""
armcnv Package.

This package orchestrates a tumor/normal copy-number pipeline: it validates
genome consistency of the inputs, drives samtools, VarScan and DNAcopy in a
resumable stage sequence, and merges chromosome-arm segmentation results into
a single per-sample report.
"""

from .version import __version__
