"""Run configuration for radmarkers."""

import os
from dataclasses import dataclass
from typing import Optional

from Bio.SeqIO.QualityIO import SANGER_SCORE_OFFSET, SOLEXA_SCORE_OFFSET

QUALITY_OFFSETS = (SANGER_SCORE_OFFSET, SOLEXA_SCORE_OFFSET)


@dataclass
class MarkerConfig:
    """Configuration for a marker clustering run.

    Attributes:
        pools_file: Path to the pools file listing individuals in bit order
        directory: Directory holding per-individual tag files
        suffix: Tag file suffix appended to each individual name
        verbose: Show progress bars while reading and merging
        snps: Report per-base SNP positions for each locus
        quality: Report quality glyphs for each allele
        fragments: Use fragment counts instead of read counts
        old_output: Render the legacy nested report instead of the table
        threshold: Minimum count (reads or fragments) for a tag to be kept
        mismatches: Hamming distance threshold for merging (0 = exact only)
        include_singletons: Keep tags seen in only one individual
        quality_offset: ASCII offset of quality characters (33 or 64)
        metadata_file: Optional path for JSON run metadata
    """
    pools_file: str
    directory: Optional[str] = None
    suffix: str = '.tags'
    verbose: bool = False
    snps: bool = False
    quality: bool = False
    fragments: bool = False
    old_output: bool = False
    threshold: int = 1
    mismatches: int = 0
    include_singletons: bool = False
    quality_offset: int = SANGER_SCORE_OFFSET
    metadata_file: Optional[str] = None

    def __post_init__(self):
        if self.directory is None:
            self.directory = default_directory(self.pools_file)

    def validate(self) -> None:
        """Raise ValueError if any option is out of range."""
        if self.threshold < 0:
            raise ValueError(f"Count threshold must be non-negative, got {self.threshold}")
        if self.mismatches < 0:
            raise ValueError(f"Mismatch threshold must be non-negative, got {self.mismatches}")
        if self.quality_offset not in QUALITY_OFFSETS:
            raise ValueError(f"Quality offset must be one of {QUALITY_OFFSETS}, got {self.quality_offset}")
        if not self.suffix:
            raise ValueError("Tag file suffix must not be empty")

    def tag_file(self, individual_name: str) -> str:
        return os.path.join(self.directory, f"{individual_name}{self.suffix}")

    @classmethod
    def from_args(cls, args) -> 'MarkerConfig':
        """Create config from command-line arguments."""
        config = cls(
            pools_file=args.pools_file,
            directory=getattr(args, 'directory', None),
            suffix=getattr(args, 'suffix', '.tags'),
            verbose=getattr(args, 'verbose', False),
            snps=getattr(args, 'snps', False),
            quality=getattr(args, 'quality', False),
            fragments=getattr(args, 'fragments', False),
            old_output=getattr(args, 'old_output', False),
            threshold=getattr(args, 'threshold', 1),
            mismatches=getattr(args, 'mismatches', 0),
            include_singletons=getattr(args, 'include_singletons', False),
            quality_offset=getattr(args, 'quality_offset', SANGER_SCORE_OFFSET),
            metadata_file=getattr(args, 'metadata', None),
        )
        config.validate()
        return config

    def as_dict(self) -> dict:
        return {
            "pools_file": self.pools_file,
            "directory": self.directory,
            "suffix": self.suffix,
            "snps": self.snps,
            "quality": self.quality,
            "fragments": self.fragments,
            "old_output": self.old_output,
            "threshold": self.threshold,
            "mismatches": self.mismatches,
            "include_singletons": self.include_singletons,
            "quality_offset": self.quality_offset,
        }


def default_directory(pools_file: str) -> str:
    """Tag files live in a directory named after the pools file, if it exists."""
    stem = os.path.splitext(pools_file)[0]
    if os.path.isdir(stem):
        return stem
    return os.path.dirname(pools_file) or '.'
