"""Readers for the pools file and per-individual tag files.

Pools file: one individual per line, ``name MID [MID ...]``. Blank lines and
lines starting with ``#`` are ignored.

Tag file: local clusters separated by blank lines. Each record line is
``sequence quality read_count fragment_count``; lines starting with
whitespace carry paired-end detail for the preceding record and are skipped.
"""

import glob
import logging
import os
import re
from dataclasses import dataclass, asdict
from typing import Dict, Iterator, List, Optional

from radmarkers.types import Individual, MalformedRecordError, Observation, TagRecord

# Illumina adapter; tags containing it are sequencing artefacts
CONTAMINANT_MOTIF = 'GATCGGAAGAGC'

SEQUENCE_RE = re.compile(r'^[ACGTN]+$')


@dataclass
class TagFileStats:
    """Counts of records read and filtered from tag files."""
    records: int = 0
    contaminants: int = 0
    below_threshold: int = 0
    local_clusters: int = 0
    empty_clusters: int = 0

    def update(self, other: 'TagFileStats') -> None:
        for key, value in asdict(other).items():
            setattr(self, key, getattr(self, key) + value)

    def as_dict(self) -> dict:
        return asdict(self)


def find_pools_file(directory: str = '.') -> str:
    """Locate the single ``*.pools`` file in directory."""
    candidates = sorted(glob.glob(os.path.join(directory, '*.pools')))
    if not candidates:
        raise FileNotFoundError(f"No pools file given and no *.pools file found in {os.path.abspath(directory)}")
    if len(candidates) > 1:
        raise ValueError(f"Several pools files found, specify one: {', '.join(candidates)}")
    logging.debug(f"Found pools file: {candidates[0]}")
    return candidates[0]


def read_pools(pools_file: str) -> List[Individual]:
    """Read individuals in pools file order."""
    individuals = []
    seen = set()
    with open(pools_file, 'r') as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            fields = line.split()
            name, mids = fields[0], tuple(fields[1:])
            if name in seen:
                raise MalformedRecordError(f"duplicate individual '{name}'", pools_file, line_number)
            seen.add(name)
            individuals.append(Individual(name, len(individuals), mids))

    if not individuals:
        raise ValueError(f"No individuals found in pools file {pools_file}")
    logging.info(f"Loaded {len(individuals)} individuals from {pools_file}")
    return individuals


def parse_tag_line(line: str, path: Optional[str] = None, line_number: Optional[int] = None) -> TagRecord:
    """Parse one record line, rejecting anything that is not a well-formed tag."""
    fields = line.split()
    if len(fields) != 4:
        raise MalformedRecordError(f"expected 4 fields, found {len(fields)}", path, line_number)
    sequence, quality, reads, fragments = fields
    sequence = sequence.upper()
    if not SEQUENCE_RE.match(sequence):
        raise MalformedRecordError(f"invalid sequence '{sequence}'", path, line_number)
    if len(quality) != len(sequence):
        raise MalformedRecordError(
            f"quality length {len(quality)} does not match sequence length {len(sequence)}", path, line_number)
    try:
        read_count = int(reads)
        fragment_count = int(fragments)
    except ValueError:
        raise MalformedRecordError(f"non-numeric counts '{reads}' '{fragments}'", path, line_number) from None
    if read_count < 0 or fragment_count < 0:
        raise MalformedRecordError(f"negative counts '{reads}' '{fragments}'", path, line_number)
    return TagRecord(sequence, quality, read_count, fragment_count)


def read_local_clusters(path: str, threshold: int = 1, use_fragments: bool = False,
                        stats: Optional[TagFileStats] = None) -> Iterator[Dict[str, Observation]]:
    """Yield the local clusters of one tag file in file order.

    Each local cluster maps sequence to its observation for this individual.
    Contaminant and below-threshold tags are dropped; clusters left empty are
    not yielded.
    """
    if stats is None:
        stats = TagFileStats()

    def finish(cluster):
        stats.local_clusters += 1
        if not cluster:
            stats.empty_clusters += 1
        return cluster

    cluster: Dict[str, Observation] = {}
    in_cluster = False
    with open(path, 'r') as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                if in_cluster and finish(cluster):
                    yield cluster
                cluster = {}
                in_cluster = False
                continue
            if line[0] in ' \t':
                continue

            record = parse_tag_line(line, path, line_number)
            stats.records += 1
            in_cluster = True
            if CONTAMINANT_MOTIF in record.sequence:
                stats.contaminants += 1
                continue
            observation = record.observation()
            if observation.count(use_fragments) < threshold:
                stats.below_threshold += 1
                continue
            cluster[record.sequence] = observation

    if in_cluster and finish(cluster):
        yield cluster
