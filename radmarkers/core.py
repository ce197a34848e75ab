#!/usr/bin/env python3

import json
import logging
import os
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from tqdm import tqdm

from radmarkers import __version__
from radmarkers.io import TagFileStats, read_local_clusters
from radmarkers.matching import ClusterMatcher
from radmarkers.registry import ClusterTable, TagRegistry
from radmarkers.types import Individual, Observation


class LocusClusterer:
    """Merge per-individual local clusters into cross-individual loci.

    Every local cluster goes through the same three steps: find the global
    clusters it touches, collapse them into the lowest id (or allocate a new
    id), then adopt the local cluster's observations into that cluster.
    """

    def __init__(self, individuals: List[Individual],
                 mismatches: int = 0,
                 threshold: int = 1,
                 use_fragments: bool = False,
                 verbose: bool = False):
        self.individuals = individuals
        self.mismatches = mismatches
        self.threshold = threshold
        self.use_fragments = use_fragments
        self.verbose = verbose

        self.registry = TagRegistry()
        self.clusters = ClusterTable()
        self.matcher = ClusterMatcher(self.registry, mismatches)

        self.stats = TagFileStats()
        self.merge_count = 0

    def process_local_cluster(self, individual: str, local_cluster: Dict[str, Observation]) -> Optional[int]:
        """Fold one local cluster into the global partition.

        Returns the id of the cluster now holding the local cluster's
        sequences, or None if the local cluster was empty.
        """
        if not local_cluster:
            return None
        matched = self.matcher.match(local_cluster)
        canonical = self.merge_or_create(matched)
        self.adopt_local_cluster(canonical, individual, local_cluster)
        return canonical

    def merge_or_create(self, matched: Set[int]) -> int:
        """Collapse matched clusters into the lowest id, or allocate a new one."""
        if not matched:
            return self.clusters.allocate()

        canonical = min(matched)
        for cluster_id in sorted(matched):
            for sequence in self.clusters.members(cluster_id):
                self.registry.assign_cluster(sequence, canonical)
                if cluster_id != canonical:
                    self.clusters.copy_sequence(cluster_id, canonical, sequence)
            if cluster_id != canonical:
                self.clusters.absorb(cluster_id, canonical)
                self.merge_count += 1

        if len(matched) > 1:
            logging.debug(f"Merged clusters {sorted(matched)} into cluster {canonical}")
        return canonical

    def adopt_local_cluster(self, canonical: int, individual: str,
                            local_cluster: Dict[str, Observation]) -> None:
        for sequence, observation in local_cluster.items():
            if self.registry.record_observation(sequence, individual, observation):
                self.matcher.register(sequence)
            self.clusters.add_observation(canonical, sequence, individual, observation)
            self.registry.assign_cluster(sequence, canonical)

    def process_individual(self, individual: str, local_clusters: Iterable[Dict[str, Observation]]) -> int:
        """Process one individual's local clusters in order; returns how many were used."""
        processed = 0
        for local_cluster in local_clusters:
            if self.process_local_cluster(individual, local_cluster) is not None:
                processed += 1
        return processed

    def cluster(self, tag_files: Dict[str, str]) -> None:
        """Read and merge every individual's tag file in pools order.

        Args:
            tag_files: individual name -> tag file path
        """
        logging.info(f"Clustering tags from {len(self.individuals)} individuals "
                     f"(threshold={self.threshold}, mismatches={self.mismatches}, "
                     f"metric={'fragments' if self.use_fragments else 'reads'})")

        for individual in tqdm(self.individuals, desc="Clustering individuals", unit="individual",
                               disable=not self.verbose):
            path = tag_files[individual.name]
            file_stats = TagFileStats()
            local_clusters = read_local_clusters(path, self.threshold, self.use_fragments, file_stats)
            processed = self.process_individual(individual.name, local_clusters)
            self.stats.update(file_stats)

            logging.info(f"{individual.name}: {processed} local clusters, {file_stats.records} tags "
                         f"({file_stats.contaminants} contaminants, "
                         f"{file_stats.below_threshold} below threshold); "
                         f"{len(self.clusters)} loci so far")

        logging.info(f"Clustering complete: {len(self.registry)} tags in {len(self.clusters)} loci "
                     f"({self.clusters.allocated} allocated, {self.merge_count} merges)")

    def write_metadata(self, metadata_file: str, parameters: dict, summary_stats: Optional[dict] = None) -> None:
        """Write run metadata to a JSON file."""
        metadata = {
            "version": __version__,
            "timestamp": datetime.now().isoformat(),
            "parameters": parameters,
            "individuals": [individual.name for individual in self.individuals],
            "statistics": {
                **self.stats.as_dict(),
                "tags": len(self.registry),
                "clusters_allocated": self.clusters.allocated,
                "merges": self.merge_count,
                **(summary_stats or {}),
            },
            "merged_from": {str(cluster_id): absorbed
                            for cluster_id, absorbed in self.clusters.provenance().items()},
        }

        directory = os.path.dirname(metadata_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(metadata_file, 'w') as f:
            json.dump(metadata, f, indent=2)

        logging.debug(f"Wrote run metadata to {metadata_file}")
