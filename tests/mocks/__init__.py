"""Test mocks for armcnv tests."""

from .external_tools import MockCopyNumberTools, flagstat_text, which_everything

__all__ = [
    "MockCopyNumberTools",
    "flagstat_text",
    "which_everything",
]
