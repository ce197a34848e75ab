#!/usr/bin/env python3

import argparse
import logging
import sys
from typing import Dict, List, Optional

from Bio.SeqIO.QualityIO import SANGER_SCORE_OFFSET

from radmarkers import __version__
from radmarkers.config import QUALITY_OFFSETS, MarkerConfig
from radmarkers.core import LocusClusterer
from radmarkers.io import find_pools_file, read_pools
from radmarkers.summarize import summarize_segregation, write_report
from radmarkers.types import Individual


def parse_arguments(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="Cluster per-individual RAD tags into loci and report segregation patterns"
    )
    parser.add_argument("pools_file", nargs='?', default=None,
                        help="Pools file listing individuals in output order "
                             "(default: the single *.pools file in the current directory)")
    parser.add_argument("-d", "--directory", default=None,
                        help="Directory containing tag files (default: directory named after the pools file)")
    parser.add_argument("-s", "--suffix", default=".tags",
                        help="Tag file suffix (default: .tags)")
    parser.add_argument("-t", "--threshold", type=int, default=1,
                        help="Minimum read (or fragment) count for a tag to be used (default: 1)")
    parser.add_argument("-m", "--mismatches", type=int, default=0,
                        help="Merge clusters whose tags differ by at most this many bases "
                             "(default: 0 = identical tags only)")
    parser.add_argument("-f", "--fragments", action="store_true",
                        help="Use fragment counts instead of read counts for thresholds and output")
    parser.add_argument("-e", "--include-singletons", action="store_true",
                        help="Keep tags found in only one individual (default: removed)")
    parser.add_argument("-n", "--snps", action="store_true",
                        help="Report SNP positions for each locus")
    parser.add_argument("-q", "--quality", action="store_true",
                        help="Report quality glyphs for each allele (' ' high, '?' medium, '!' low)")
    parser.add_argument("--quality-offset", type=int, default=SANGER_SCORE_OFFSET, choices=QUALITY_OFFSETS,
                        help=f"ASCII offset of tag quality strings (default: {SANGER_SCORE_OFFSET})")
    parser.add_argument("-o", "--old-output", action="store_true",
                        help="Write the legacy nested text report instead of the table")
    parser.add_argument("--metadata", metavar="FILE", default=None,
                        help="Write run parameters and statistics to a JSON file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show progress and debug logging while clustering")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level (default: DEBUG with --verbose, else INFO)")
    parser.add_argument("--version", action="version",
                        version=f"RADmarkers {__version__}",
                        help="Show program's version number and exit")
    return parser.parse_args(argv)


def setup_logging(log_level: str):
    """Send log records to stderr so the report owns stdout."""
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))

    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level))
    logger.addHandler(handler)


def locate_tag_files(config: MarkerConfig, individuals: List[Individual]) -> Dict[str, str]:
    """Map each individual to its tag file, failing on any file that cannot be opened."""
    tag_files = {}
    for individual in individuals:
        path = config.tag_file(individual.name)
        with open(path, 'r'):
            pass
        tag_files[individual.name] = path
    return tag_files


def main(argv: Optional[List[str]] = None):
    args = parse_arguments(argv)
    setup_logging(args.log_level or ("DEBUG" if args.verbose else "INFO"))

    try:
        if args.pools_file is None:
            args.pools_file = find_pools_file()
        config = MarkerConfig.from_args(args)
        individuals = read_pools(config.pools_file)
        tag_files = locate_tag_files(config, individuals)

        clusterer = LocusClusterer(
            individuals,
            mismatches=config.mismatches,
            threshold=config.threshold,
            use_fragments=config.fragments,
            verbose=config.verbose,
        )
        clusterer.cluster(tag_files)
    except (OSError, ValueError) as e:
        logging.error(str(e))
        sys.exit(1)

    summary = summarize_segregation(clusterer.registry, clusterer.clusters, individuals,
                                    include_singletons=config.include_singletons)
    loci = write_report(summary, sys.stdout, config)
    logging.info(f"Reported {loci} loci")

    if config.metadata_file:
        clusterer.write_metadata(config.metadata_file, config.as_dict(), summary.as_dict())


if __name__ == "__main__":
    main()
