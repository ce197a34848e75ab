"""Render a segregation summary as a tab-separated table or legacy text blocks."""

import csv
from typing import Dict, List, Optional, TextIO

from Bio.SeqIO.QualityIO import SANGER_SCORE_OFFSET

from radmarkers.summarize.segregation import Allele, Locus, SegregationSummary
from radmarkers.types import Observation

HIGH_QUALITY = 20
MEDIUM_QUALITY = 10
MISSING = 'NA'


def quality_glyph(score: int) -> str:
    """' ' for high quality, '?' for medium, '!' for low."""
    if score >= HIGH_QUALITY:
        return ' '
    if score >= MEDIUM_QUALITY:
        return '?'
    return '!'


def quality_scores(quality: str, offset: int = SANGER_SCORE_OFFSET) -> List[int]:
    return [ord(c) - offset for c in quality]


def snp_positions(sequences: List[str]) -> List[int]:
    """Positions where a locus' alleles do not all carry the same base.

    Covers every position up to the longest allele; shorter alleles read
    as '-' past their end.
    """
    if len(sequences) < 2:
        return []
    length = max(len(s) for s in sequences)
    positions = []
    for i in range(length):
        bases = {s[i] if i < len(s) else '-' for s in sequences}
        if len(bases) > 1:
            positions.append(i)
    return positions


def snp_bases(sequence: str, positions: List[int]) -> str:
    return ''.join(sequence[i] if i < len(sequence) else '-' for i in positions)


def allele_quality(allele: Allele, positions: Optional[List[int]] = None,
                   offset: int = SANGER_SCORE_OFFSET) -> str:
    """Quality glyphs for an allele, worst score across its individuals.

    Without positions, every base of the allele is reported.
    """
    if positions is None:
        positions = list(range(len(allele.sequence)))
    per_individual = [quality_scores(obs.quality, offset) for obs in allele.observations.values()]
    glyphs = []
    for i in positions:
        column = [scores[i] for scores in per_individual if i < len(scores)]
        glyphs.append(quality_glyph(min(column)) if column else '-')
    return ''.join(glyphs)


def count_cells(observations: Dict[str, Observation], individual_names: List[str],
                use_fragments: bool = False) -> List[str]:
    return [str(observations[name].count(use_fragments)) if name in observations else MISSING
            for name in individual_names]


def _locus_positions(locus: Locus, show_snps: bool) -> Optional[List[int]]:
    if not show_snps:
        return None
    return snp_positions([allele.sequence for allele in locus.alleles])


def write_table(summary: SegregationSummary, handle: TextIO,
                use_fragments: bool = False,
                show_snps: bool = False,
                show_quality: bool = False,
                quality_offset: int = SANGER_SCORE_OFFSET) -> int:
    """Write one row per allele; returns the number of loci written."""
    names = [individual.name for individual in summary.individuals]
    header = ['ClusterID', 'ClusterTags', 'SegPattern', 'Tag'] + names
    if show_snps:
        header.append('SNPs')
    if show_quality:
        header.append('Quality')

    writer = csv.writer(handle, delimiter='\t', lineterminator='\n')
    writer.writerow(header)

    locus_number = 0
    for locus in summary.loci():
        locus_number += 1
        positions = _locus_positions(locus, show_snps)
        for allele in locus.alleles:
            row = [locus_number, locus.tag_count, allele.pattern, allele.sequence]
            row.extend(count_cells(allele.observations, names, use_fragments))
            if show_snps:
                row.append(snp_bases(allele.sequence, positions))
            if show_quality:
                row.append(allele_quality(allele, positions, quality_offset))
            writer.writerow(row)
    return locus_number


def write_legacy(summary: SegregationSummary, handle: TextIO,
                 use_fragments: bool = False,
                 show_snps: bool = False,
                 show_quality: bool = False,
                 quality_offset: int = SANGER_SCORE_OFFSET) -> int:
    """Write nested blocks: tag count, then joint pattern, then loci.

    Mirrored loci are flagged with M after their cluster id.
    """
    names = [individual.name for individual in summary.individuals]
    handle.write('\t'.join(['Individuals'] + names) + '\n')

    written = 0
    for tag_count in summary.tag_counts():
        groups = summary.groups[tag_count]
        total = sum(len(loci) for loci in groups.values())
        handle.write(f"\n{tag_count} tag{'s' if tag_count != 1 else ''}: {total} loci\n")

        for joint_pattern, loci in groups.items():
            handle.write(f"  {joint_pattern}\t{len(loci)}\n")
            for locus in loci:
                written += 1
                flag = ' M' if locus.mirrored else ''
                handle.write(f"    Cluster {locus.cluster_id}{flag}\n")
                positions = _locus_positions(locus, show_snps)
                for allele in locus.alleles:
                    cells = count_cells(allele.observations, names, use_fragments)
                    handle.write('      ' + '\t'.join([allele.sequence, allele.pattern] + cells) + '\n')
                    if show_quality:
                        handle.write(f"      {allele_quality(allele, positions, quality_offset)}\n")
                if show_snps:
                    for i in positions:
                        bases = '/'.join(sorted({snp_bases(a.sequence, [i]) for a in locus.alleles}))
                        handle.write(f"      SNP\t{i + 1}\t{bases}\n")
    return written


def write_report(summary: SegregationSummary, handle: TextIO, config) -> int:
    """Render summary in the format selected by a MarkerConfig."""
    writer = write_legacy if config.old_output else write_table
    return writer(summary, handle,
                  use_fragments=config.fragments,
                  show_snps=config.snps,
                  show_quality=config.quality,
                  quality_offset=config.quality_offset)
