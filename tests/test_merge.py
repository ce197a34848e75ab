#!/usr/bin/env python3
"""
Tests for cross-individual cluster merging.

Covers partition consistency, exact and transitive merges, canonical id
selection and id allocation order.
"""

import pytest

from radmarkers.core import LocusClusterer
from radmarkers.types import Individual, Observation


def make_individuals(*names):
    return [Individual(name, i) for i, name in enumerate(names)]


def obs(reads, fragments=None, sequence_length=4):
    return Observation(reads, reads if fragments is None else fragments, 'I' * sequence_length)


def local(*sequences, reads=5):
    return {seq: obs(reads, sequence_length=len(seq)) for seq in sequences}


def assert_partition(clusterer):
    """Every tag is in exactly one live cluster and cluster maps mirror the registry."""
    owners = {}
    for cluster_id in clusterer.clusters.ids():
        for sequence, observations in clusterer.clusters.members(cluster_id).items():
            assert sequence not in owners, f"{sequence} owned by {owners[sequence]} and {cluster_id}"
            owners[sequence] = cluster_id
            assert observations == clusterer.registry.observations(sequence)
    for sequence in clusterer.registry:
        assert clusterer.registry.get_cluster(sequence) == owners[sequence]
    assert set(owners) == set(clusterer.registry)


class TestExactMerge:

    def test_new_local_cluster_gets_next_id(self):
        clusterer = LocusClusterer(make_individuals('A', 'B'))
        assert clusterer.process_local_cluster('A', local('AAAA', 'AAAT')) == 1
        assert clusterer.process_local_cluster('A', local('CCCC')) == 2
        assert clusterer.registry.get_cluster('AAAT') == 1
        assert_partition(clusterer)

    def test_empty_local_cluster_allocates_nothing(self):
        clusterer = LocusClusterer(make_individuals('A'))
        assert clusterer.process_local_cluster('A', {}) is None
        assert clusterer.clusters.allocated == 0

    def test_shared_sequence_joins_existing_cluster(self):
        clusterer = LocusClusterer(make_individuals('A', 'B'))
        clusterer.process_local_cluster('A', local('GGGG'))
        clusterer.process_local_cluster('A', local('AAAA'))
        clusterer.process_local_cluster('B', local('TTTT'))
        assert clusterer.process_local_cluster('B', local('AAAA', 'AAAC')) == 2

        members = clusterer.clusters.members(2)
        assert set(members) == {'AAAA', 'AAAC'}
        assert set(members['AAAA']) == {'A', 'B'}
        assert_partition(clusterer)

    def test_shared_sequence_merges_regardless_of_unrelated_order(self):
        first = LocusClusterer(make_individuals('A', 'B'))
        first.process_local_cluster('A', local('AAAA'))
        first.process_local_cluster('A', local('CCCC'))
        first.process_local_cluster('B', local('CCCC', 'CCCA'))

        second = LocusClusterer(make_individuals('A', 'B'))
        second.process_local_cluster('A', local('CCCC'))
        second.process_local_cluster('A', local('AAAA'))
        second.process_local_cluster('B', local('CCCC', 'CCCA'))

        for clusterer in (first, second):
            assert clusterer.registry.get_cluster('CCCA') == clusterer.registry.get_cluster('CCCC')
            assert clusterer.registry.get_cluster('AAAA') != clusterer.registry.get_cluster('CCCC')
            assert_partition(clusterer)


class TestTransitiveMerge:

    def test_chain_of_shared_sequences_collapses_to_one_cluster(self):
        clusterer = LocusClusterer(make_individuals('A', 'B', 'C'))
        clusterer.process_local_cluster('A', local('AAAA', 'AAAC'))   # 1
        clusterer.process_local_cluster('B', local('GGGG', 'GGGC'))   # 2
        clusterer.process_local_cluster('C', local('AAAC', 'GGGC'))   # joins 1 and 2

        assert len(clusterer.clusters) == 1
        assert set(clusterer.clusters.members(1)) == {'AAAA', 'AAAC', 'GGGG', 'GGGC'}
        assert set(clusterer.clusters.members(1)['GGGC']) == {'B', 'C'}
        assert_partition(clusterer)

    def test_merge_copies_all_individuals_of_absorbed_cluster(self):
        clusterer = LocusClusterer(make_individuals('A', 'B', 'C'))
        clusterer.process_local_cluster('A', local('TTTT'))
        clusterer.process_local_cluster('B', local('TTTT', 'TTTA'))
        clusterer.process_local_cluster('A', local('CCCC'))
        clusterer.process_local_cluster('C', local('CCCC', 'TTTA'))

        members = clusterer.clusters.members(1)
        assert set(members['TTTT']) == {'A', 'B'}
        assert set(members['CCCC']) == {'A', 'C'}
        assert set(members['TTTA']) == {'B', 'C'}
        assert_partition(clusterer)


class TestCanonicalId:

    def test_survivor_is_minimum_and_ids_not_reused(self):
        clusterer = LocusClusterer(make_individuals('A', 'B'))
        for seq in ('AAAA', 'CCCC', 'GGGG', 'TTTT'):
            clusterer.process_local_cluster('A', local(seq))
        assert clusterer.process_local_cluster('B', local('TTTT', 'CCCC')) == 2

        assert clusterer.clusters.ids() == [1, 2, 3]
        assert clusterer.process_local_cluster('B', local('ACGT')) == 5
        assert clusterer.clusters.allocated == 5
        assert clusterer.merge_count == 1

    def test_absorbed_id_resolves_to_survivor(self):
        clusterer = LocusClusterer(make_individuals('A', 'B'))
        for seq in ('AAAA', 'CCCC', 'GGGG'):
            clusterer.process_local_cluster('A', local(seq))
        clusterer.process_local_cluster('B', local('GGGG', 'CCCC'))
        clusterer.process_local_cluster('B', local('AAAA', 'CCCC'))

        assert clusterer.clusters.ids() == [1]
        assert clusterer.clusters.provenance() == {1: [2, 3]}

    @pytest.mark.parametrize("order", [('A', 'B'), ('B', 'A')])
    def test_sequence_cluster_id_never_increases(self, order):
        clusterer = LocusClusterer(make_individuals('A', 'B'))
        clusterer.process_local_cluster(order[0], local('AAAA'))
        clusterer.process_local_cluster(order[0], local('CCCC'))
        before = clusterer.registry.get_cluster('CCCC')
        clusterer.process_local_cluster(order[1], local('CCCC', 'AAAA'))
        assert clusterer.registry.get_cluster('CCCC') <= before


class TestSimilarityMerge:

    def test_one_mismatch_merges_with_threshold(self):
        clusterer = LocusClusterer(make_individuals('A', 'B'), mismatches=1)
        clusterer.process_local_cluster('A', local('AACGT'))
        assert clusterer.process_local_cluster('B', local('AACGA')) == 1
        assert_partition(clusterer)

    def test_one_mismatch_separate_without_threshold(self):
        clusterer = LocusClusterer(make_individuals('A', 'B'), mismatches=0)
        clusterer.process_local_cluster('A', local('AACGT'))
        assert clusterer.process_local_cluster('B', local('AACGA')) == 2

    def test_different_lengths_never_similar(self):
        clusterer = LocusClusterer(make_individuals('A', 'B'), mismatches=2)
        clusterer.process_local_cluster('A', local('AACGT'))
        assert clusterer.process_local_cluster('B', local('AACG')) == 2
