"""Find the global clusters a local cluster should join.

A local cluster joins every cluster that already owns one of its sequences,
and optionally every cluster owning a sequence within a Hamming distance
threshold of one of its sequences.
"""

import logging
from typing import Dict, Iterable, List, Set

import numpy as np

from radmarkers.registry import TagRegistry


def encode_sequence(sequence: str) -> np.ndarray:
    return np.frombuffer(sequence.encode('ascii'), dtype=np.uint8)


def mismatch_counts(codes: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Mismatching positions between query and each row of codes (or a single code)."""
    return np.count_nonzero(codes != query, axis=-1)


def hamming_distance(seq1: str, seq2: str) -> int:
    """Count mismatching positions between two equal-length sequences."""
    if len(seq1) != len(seq2):
        raise ValueError(f"Hamming distance needs equal lengths, got {len(seq1)} and {len(seq2)}")
    return int(mismatch_counts(encode_sequence(seq1), encode_sequence(seq2)))


class HammingIndex:
    """All registered sequences, grouped by length as rows of a code matrix.

    Lookups compare the query against every sequence of the same length in
    one vectorised pass. Sequences of other lengths are never compared.
    """

    def __init__(self, initial_capacity: int = 1024):
        self.initial_capacity = initial_capacity
        self._codes: Dict[int, np.ndarray] = {}
        self._sequences: Dict[int, List[str]] = {}

    def __len__(self) -> int:
        return sum(len(seqs) for seqs in self._sequences.values())

    def add(self, sequence: str) -> None:
        length = len(sequence)
        sequences = self._sequences.setdefault(length, [])
        codes = self._codes.get(length)
        if codes is None:
            codes = np.empty((self.initial_capacity, length), dtype=np.uint8)
        elif len(sequences) == codes.shape[0]:
            grown = np.empty((codes.shape[0] * 2, length), dtype=np.uint8)
            grown[:len(sequences)] = codes
            codes = grown
        codes[len(sequences)] = encode_sequence(sequence)
        self._codes[length] = codes
        sequences.append(sequence)

    def within(self, sequence: str, max_distance: int) -> List[str]:
        """Return indexed sequences within max_distance of sequence, excluding itself."""
        sequences = self._sequences.get(len(sequence))
        if not sequences:
            return []
        codes = self._codes[len(sequence)][:len(sequences)]
        distances = mismatch_counts(codes, encode_sequence(sequence))
        hits = np.flatnonzero(distances <= max_distance)
        return [sequences[i] for i in hits if sequences[i] != sequence]


class ClusterMatcher:
    def __init__(self, registry: TagRegistry, mismatches: int = 0):
        self.registry = registry
        self.mismatches = mismatches
        self.index = HammingIndex() if mismatches > 0 else None

    def register(self, sequence: str) -> None:
        """Make a newly recorded sequence visible to similarity matching."""
        if self.index is not None:
            self.index.add(sequence)

    def match(self, sequences: Iterable[str]) -> Set[int]:
        """Return the distinct cluster ids the given local cluster touches."""
        found: Set[int] = set()
        for sequence in sequences:
            cluster_id = self.registry.get_cluster(sequence)
            if cluster_id is not None:
                found.add(cluster_id)
                continue
            if self.index is None:
                continue

            for other in self.index.within(sequence, self.mismatches):
                other_id = self.registry.get_cluster(other)
                if other_id is not None and other_id not in found:
                    logging.debug(f"{sequence} within {self.mismatches} mismatches of {other} "
                                  f"(cluster {other_id})")
                    found.add(other_id)
        return found
