"""Tag and cluster tables shared by the merging engine and the summarizer.

Sequences index the tag table; integer cluster ids index the cluster table.
Both tables are owned by a LocusClusterer and passed explicitly to the
matcher and summarizer rather than held as module state.
"""

import logging
from typing import Dict, Iterator, List, Optional

from radmarkers.types import Observation


class Tag:
    """A candidate allele sequence and its observations across individuals."""
    __slots__ = ('sequence', 'observations', 'cluster_id')

    def __init__(self, sequence: str):
        self.sequence = sequence
        self.observations: Dict[str, Observation] = {}  # individual -> observation
        self.cluster_id: Optional[int] = None

    def __repr__(self):
        return f"Tag({self.sequence!r}, cluster={self.cluster_id}, individuals={len(self.observations)})"


class TagRegistry:
    """Global map from sequence to per-individual observations and cluster id."""

    def __init__(self):
        self._tags: Dict[str, Tag] = {}

    def __len__(self) -> int:
        return len(self._tags)

    def __contains__(self, sequence: str) -> bool:
        return sequence in self._tags

    def __iter__(self) -> Iterator[str]:
        return iter(self._tags)

    def record_observation(self, sequence: str, individual: str, observation: Observation) -> bool:
        """Insert or overwrite the observation for (sequence, individual).

        Returns True if the sequence was not in the registry before.
        """
        tag = self._tags.get(sequence)
        is_new = tag is None
        if is_new:
            tag = Tag(sequence)
            self._tags[sequence] = tag
        tag.observations[individual] = observation
        return is_new

    def get_cluster(self, sequence: str) -> Optional[int]:
        tag = self._tags.get(sequence)
        return tag.cluster_id if tag is not None else None

    def assign_cluster(self, sequence: str, cluster_id: int) -> None:
        # Last writer wins; callers only pass recorded sequences
        self._tags[sequence].cluster_id = cluster_id

    def observations(self, sequence: str) -> Dict[str, Observation]:
        return self._tags[sequence].observations

    def remove(self, sequence: str) -> None:
        del self._tags[sequence]


class ClusterTable:
    """Arena of global clusters keyed by monotonically allocated ids.

    Each cluster owns sequence -> (individual -> Observation). Merges relabel
    every member eagerly. merged_from records, for each live cluster, every
    id it has absorbed directly or through an absorbed cluster.
    """

    def __init__(self):
        self._clusters: Dict[int, Dict[str, Dict[str, Observation]]] = {}
        self.merged_from: Dict[int, List[int]] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._clusters)

    def __contains__(self, cluster_id: int) -> bool:
        return cluster_id in self._clusters

    def allocate(self) -> int:
        """Create an empty cluster with the next unused id."""
        cluster_id = self._next_id
        self._next_id += 1
        self._clusters[cluster_id] = {}
        self.merged_from[cluster_id] = []
        return cluster_id

    @property
    def allocated(self) -> int:
        """Number of ids handed out so far, live or deleted."""
        return self._next_id - 1

    def ids(self) -> List[int]:
        return sorted(self._clusters)

    def members(self, cluster_id: int) -> Dict[str, Dict[str, Observation]]:
        return self._clusters[cluster_id]

    def add_observation(self, cluster_id: int, sequence: str, individual: str,
                        observation: Observation) -> None:
        self._clusters[cluster_id].setdefault(sequence, {})[individual] = observation

    def copy_sequence(self, source_id: int, target_id: int, sequence: str) -> None:
        """Copy all per-individual observations of a sequence between clusters."""
        target = self._clusters[target_id].setdefault(sequence, {})
        target.update(self._clusters[source_id][sequence])

    def absorb(self, source_id: int, target_id: int) -> None:
        """Delete source after its members were copied into target."""
        self.merged_from[target_id].append(source_id)
        self.merged_from[target_id].extend(self.merged_from.pop(source_id, []))
        del self._clusters[source_id]
        logging.debug(f"Cluster {source_id} absorbed into cluster {target_id}")

    def delete(self, cluster_id: int) -> None:
        del self._clusters[cluster_id]
        self.merged_from.pop(cluster_id, None)

    def discard_sequence(self, cluster_id: int, sequence: str) -> None:
        del self._clusters[cluster_id][sequence]

    def provenance(self) -> Dict[int, List[int]]:
        """Absorbed ids for every live cluster that has absorbed any."""
        return {cluster_id: sorted(self.merged_from[cluster_id])
                for cluster_id in self.ids() if self.merged_from[cluster_id]}
