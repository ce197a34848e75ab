"""Segregation summary and report rendering for radmarkers."""

from .segregation import (
    Allele,
    Locus,
    SegregationSummary,
    complement_pattern,
    is_mirrored,
    segregation_pattern,
    summarize_segregation,
)
from .report import write_legacy, write_report, write_table

__all__ = [
    "Allele",
    "Locus",
    "SegregationSummary",
    "complement_pattern",
    "is_mirrored",
    "segregation_pattern",
    "summarize_segregation",
    "write_legacy",
    "write_report",
    "write_table",
]
