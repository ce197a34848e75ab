"""
RADmarkers: cross-individual clustering of RAD tags into candidate loci.

Merges per-individual local clusters of tag sequences into loci shared
across a mapping population and summarizes each locus by its segregation
pattern.
"""

__version__ = "0.3.0"

from .core import LocusClusterer
from .cli import main

__all__ = ["LocusClusterer", "main", "__version__"]
