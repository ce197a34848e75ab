#!/usr/bin/env python3
"""
Tests for pools and tag file readers.
"""

import pytest

from radmarkers.io import (
    CONTAMINANT_MOTIF,
    TagFileStats,
    find_pools_file,
    parse_tag_line,
    read_local_clusters,
    read_pools,
)
from radmarkers.types import MalformedRecordError


def write(path, text):
    path.write_text(text)
    return str(path)


class TestReadPools:

    def test_order_and_mids(self, tmp_path):
        pools = write(tmp_path / "cross.pools",
                      "# parents first\nMum AAAAT\nDad CCCCT GGGGT\n\nKid1 TTTTA\n")
        individuals = read_pools(pools)
        assert [i.name for i in individuals] == ['Mum', 'Dad', 'Kid1']
        assert [i.index for i in individuals] == [0, 1, 2]
        assert individuals[1].mids == ('CCCCT', 'GGGGT')

    def test_duplicate_individual_rejected(self, tmp_path):
        pools = write(tmp_path / "cross.pools", "Mum AAAAT\nMum CCCCT\n")
        with pytest.raises(MalformedRecordError, match="duplicate"):
            read_pools(pools)

    def test_empty_pools_rejected(self, tmp_path):
        pools = write(tmp_path / "cross.pools", "\n# nothing\n")
        with pytest.raises(ValueError):
            read_pools(pools)

    def test_missing_pools_file(self, tmp_path):
        with pytest.raises(OSError):
            read_pools(str(tmp_path / "missing.pools"))

    def test_find_single_pools_file(self, tmp_path):
        write(tmp_path / "cross.pools", "Mum AAAAT\n")
        assert find_pools_file(str(tmp_path)).endswith("cross.pools")

    def test_find_pools_file_none_or_many(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            find_pools_file(str(tmp_path))
        write(tmp_path / "a.pools", "Mum AAAAT\n")
        write(tmp_path / "b.pools", "Dad AAAAT\n")
        with pytest.raises(ValueError, match="Several"):
            find_pools_file(str(tmp_path))


class TestParseTagLine:

    def test_valid_record(self):
        record = parse_tag_line("acgt IIII 10 5\n")
        assert record.sequence == 'ACGT'
        assert record.quality == 'IIII'
        assert (record.read_count, record.fragment_count) == (10, 5)

    @pytest.mark.parametrize("line, message", [
        ("ACGT IIII 10", "expected 4 fields"),
        ("ACGT IIII 10 5 extra", "expected 4 fields"),
        ("ACGT IIII ten 5", "non-numeric"),
        ("ACGT IIII 10 -1", "negative"),
        ("ACGT III 10 5", "quality length"),
        ("AC-T IIII 10 5", "invalid sequence"),
    ])
    def test_malformed_records(self, line, message):
        with pytest.raises(MalformedRecordError, match=message):
            parse_tag_line(line, "John.tags", 7)

    def test_error_names_file_and_line(self):
        with pytest.raises(MalformedRecordError) as excinfo:
            parse_tag_line("ACGT IIII 10", "John.tags", 7)
        assert "John.tags:7" in str(excinfo.value)
        assert excinfo.value.line_number == 7


class TestReadLocalClusters:

    def test_clusters_split_on_blank_lines(self, tmp_path):
        path = write(tmp_path / "John.tags",
                     "AAAA IIII 10 5\n"
                     "    AAAACCCC 3\n"
                     "AAAT IIII 4 2\n"
                     "\n"
                     "CCCC IIII 7 7\n"
                     "\n\n"
                     "GGGG IIII 2 1\n")
        clusters = list(read_local_clusters(path))
        assert [list(c) for c in clusters] == [['AAAA', 'AAAT'], ['CCCC'], ['GGGG']]
        assert clusters[0]['AAAA'].read_count == 10
        assert clusters[0]['AAAA'].fragment_count == 5

    def test_threshold_uses_selected_metric(self, tmp_path):
        path = write(tmp_path / "John.tags", "AAAA IIII 10 1\nAAAT IIII 1 10\n\n")
        by_reads = list(read_local_clusters(path, threshold=5))
        by_fragments = list(read_local_clusters(path, threshold=5, use_fragments=True))
        assert list(by_reads[0]) == ['AAAA']
        assert list(by_fragments[0]) == ['AAAT']

    def test_contaminants_and_empty_clusters_dropped(self, tmp_path):
        contaminant = 'A' + CONTAMINANT_MOTIF
        path = write(tmp_path / "John.tags",
                     f"{contaminant} {'I' * len(contaminant)} 50 40\n"
                     "\n"
                     "AAAA IIII 1 1\n"
                     "CCCC IIII 9 9\n"
                     "\n")
        stats = TagFileStats()
        clusters = list(read_local_clusters(path, threshold=2, stats=stats))
        assert clusters == [{'CCCC': clusters[0]['CCCC']}]
        assert stats.records == 3
        assert stats.contaminants == 1
        assert stats.below_threshold == 1
        assert stats.local_clusters == 2
        assert stats.empty_clusters == 1

    def test_malformed_record_raises(self, tmp_path):
        path = write(tmp_path / "John.tags", "AAAA IIII 10 5\nAAAT IIII 4\n")
        with pytest.raises(MalformedRecordError, match="John.tags:2"):
            list(read_local_clusters(path))
