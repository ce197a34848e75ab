"""Segregation pattern summary of the final locus partition.

Each allele of a locus gets a presence/absence pattern over individuals in
pools order. Loci are grouped by tag count and by the sorted, space-joined
patterns of their alleles.
"""

import itertools
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterator, List

from radmarkers.registry import ClusterTable, TagRegistry
from radmarkers.types import Individual, Observation

PRESENT = '1'
ABSENT = '-'


def segregation_pattern(observations: Dict[str, Observation], individuals: List[Individual]) -> str:
    """Presence pattern of one sequence, one character per individual."""
    return ''.join(PRESENT if individual.name in observations else ABSENT
                   for individual in individuals)


def is_singleton(pattern: str) -> bool:
    return pattern.count(PRESENT) == 1


def complement_pattern(pattern: str) -> str:
    """Swap presence and absence at every position.

    Both '-' and '0' are read as absence; the result uses '-'.
    """
    return ''.join(ABSENT if c == PRESENT else PRESENT for c in pattern)


def is_mirrored(joint_pattern: str) -> bool:
    """True if any two distinct allele patterns are exact complements."""
    patterns = [p.replace('0', ABSENT) for p in joint_pattern.split(' ')]
    for a, b in itertools.permutations(patterns, 2):
        if a != b and complement_pattern(b) == a:
            return True
    return False


@dataclass
class Allele:
    sequence: str
    pattern: str
    observations: Dict[str, Observation]


@dataclass
class Locus:
    cluster_id: int
    alleles: List[Allele]
    joint_pattern: str
    mirrored: bool = False

    @property
    def tag_count(self) -> int:
        return len(self.alleles)


@dataclass
class SegregationSummary:
    """Loci grouped by tag count, then by joint pattern in first-seen order."""
    individuals: List[Individual]
    groups: Dict[int, Dict[str, List[Locus]]] = field(default_factory=dict)
    pattern_counts: Counter = field(default_factory=Counter)
    singletons_removed: int = 0
    clusters_removed: int = 0

    def add(self, locus: Locus) -> None:
        bucket = self.groups.setdefault(locus.tag_count, {})
        bucket.setdefault(locus.joint_pattern, []).append(locus)
        self.pattern_counts[(locus.tag_count, locus.joint_pattern)] += 1

    def tag_counts(self) -> List[int]:
        return sorted(self.groups)

    def loci(self) -> Iterator[Locus]:
        """Loci in report order: tag count ascending, then group order."""
        for tag_count in self.tag_counts():
            for loci in self.groups[tag_count].values():
                yield from loci

    def __len__(self) -> int:
        return sum(self.pattern_counts.values())

    def as_dict(self) -> dict:
        return {
            "loci_reported": len(self),
            "singletons_removed": self.singletons_removed,
            "clusters_removed": self.clusters_removed,
            "mirrored_loci": sum(1 for locus in self.loci() if locus.mirrored),
        }


def summarize_segregation(registry: TagRegistry, clusters: ClusterTable,
                          individuals: List[Individual],
                          include_singletons: bool = False) -> SegregationSummary:
    """Compute allele patterns and group every live cluster.

    Unless include_singletons is set, sequences seen in a single individual
    are removed from both the registry and their cluster, and clusters left
    without sequences are deleted.
    """
    summary = SegregationSummary(individuals)

    for cluster_id in clusters.ids():
        members = clusters.members(cluster_id)
        alleles = []
        for sequence in sorted(members):
            observations = registry.observations(sequence)
            pattern = segregation_pattern(observations, individuals)
            if not include_singletons and is_singleton(pattern):
                registry.remove(sequence)
                clusters.discard_sequence(cluster_id, sequence)
                summary.singletons_removed += 1
                continue
            alleles.append(Allele(sequence, pattern, observations))

        if not alleles:
            clusters.delete(cluster_id)
            summary.clusters_removed += 1
            continue

        alleles.sort(key=lambda allele: allele.pattern)
        joint_pattern = ' '.join(sorted(allele.pattern for allele in alleles))
        summary.add(Locus(cluster_id, alleles, joint_pattern, is_mirrored(joint_pattern)))

    logging.info(f"Summarized {len(summary)} loci in {len(summary.pattern_counts)} segregation groups "
                 f"({summary.singletons_removed} singleton tags and "
                 f"{summary.clusters_removed} loci removed)")
    return summary
