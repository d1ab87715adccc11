#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Core I/O module for BreakBench.

Consolidated module containing:
- FASTA writers and paired FASTA / FASTQ writers for simulated pairs
- Ground-truth ledger writers (indel ledger, breakpoint report)
- Quality-string pool learned from real BAM / FASTQ data
- BAM writer for alignment records (auxiliary benchmark artifacts)
"""

# =============================================================================
# SECTION 1: IMPORTS AND DEPENDENCIES
# =============================================================================

import gzip
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, TextIO, Tuple, Union, TYPE_CHECKING

import numpy as np
from Bio import SeqIO

from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..external.interfaces import AlignmentRecord
    from ..simulation.genome_mutator import MutatedGenome
    from ..simulation.read_sampler import ReadPair
    from ..utils.intervals import ReferenceInterval

logger = logging.getLogger(__name__)

PHRED_OFFSET = 33


# =============================================================================
# SECTION 2: FILE HELPERS
# =============================================================================

def is_gzipped(filepath: Union[str, Path]) -> bool:
    """Check the gzip magic number."""
    with open(filepath, 'rb') as f:
        return f.read(2) == b'\x1f\x8b'


def open_file(filepath: Union[str, Path], mode: str = 'r') -> TextIO:
    """Open a plain or gzipped text file."""
    filepath = Path(filepath)
    if 'r' in mode and filepath.exists() and is_gzipped(filepath):
        return gzip.open(filepath, 'rt')
    if 'w' in mode and filepath.suffix in ('.gz', '.gzip'):
        return gzip.open(filepath, 'wt')
    return open(filepath, mode)


# =============================================================================
# SECTION 3: SEQUENCE WRITERS
# =============================================================================

def write_fasta(
    records: Iterable[Tuple[str, str]],
    filepath: Union[str, Path],
    line_width: int = 0
) -> int:
    """
    Write (id, sequence) records to a FASTA file.

    Args:
        records: Iterable of (identifier, sequence)
        filepath: Output path
        line_width: Bases per line (0 = no wrapping)

    Returns:
        Number of sequences written
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with open_file(filepath, 'w') as f:
        for name, seq in records:
            f.write(f">{name}\n")
            if line_width > 0:
                for i in range(0, len(seq), line_width):
                    f.write(seq[i:i + line_width] + "\n")
            else:
                f.write(seq + "\n")
            count += 1
    return count


def write_paired_fastq(pairs: Sequence['ReadPair'], output_r1: Union[str, Path],
                       output_r2: Union[str, Path]) -> int:
    """
    Write paired-end reads to two FASTQ files.

    Records are named @r<index>, the same index in both files.
    """
    Path(output_r1).parent.mkdir(parents=True, exist_ok=True)
    with open_file(output_r1, 'w') as f1, open_file(output_r2, 'w') as f2:
        for index, pair in enumerate(pairs):
            r1, r2 = pair.to_fastq(name=f"r{index}")
            f1.write(r1)
            f2.write(r2)
    logger.info(f"Wrote {len(pairs)} read pairs to {output_r1}, {output_r2}")
    return len(pairs)


def write_paired_fasta(pairs: Sequence['ReadPair'], output_r1: Union[str, Path],
                       output_r2: Union[str, Path]) -> int:
    """Paired reads in plain FASTA (>r<index>), for manual inspection."""
    write_fasta(((f"r{i}", p.read1.sequence) for i, p in enumerate(pairs)), output_r1)
    write_fasta(((f"r{i}", p.read2.sequence) for i, p in enumerate(pairs)), output_r2)
    return len(pairs)


# =============================================================================
# SECTION 4: GROUND-TRUTH LEDGERS
# =============================================================================

def write_indel_ledger(genome: 'MutatedGenome', filepath: Union[str, Path]) -> int:
    """One tab-separated line per IndelRecord, in ledger order."""
    rows = genome.indel_rows()
    with open(filepath, 'w') as f:
        for row in rows:
            f.write(row + "\n")
    logger.info(f"Wrote {len(rows)} indels to {filepath}")
    return len(rows)


def write_breakpoint_report(genome: 'MutatedGenome', filepath: Union[str, Path]) -> None:
    with open(filepath, 'w') as f:
        f.write(genome.breakpoint_report())
    logger.info(f"Wrote {len(genome.breakpoints)} rearrangement junctions to {filepath}")


# =============================================================================
# SECTION 5: QUALITY POOL
# =============================================================================

def generate_quality_string(length: int, rng: np.random.Generator, mean_qual: int = 30) -> str:
    """Generate random quality scores (Phred+33)."""
    quals = np.clip(np.rint(rng.normal(mean_qual, 5, size=length)), 2, 40).astype(int)
    return ''.join(chr(q + PHRED_OFFSET) for q in quals)


class QualityPool:
    """
    Pool of real quality strings to borrow from when writing simulated reads.

    Falls back to synthetic gaussian qualities when empty.
    """

    def __init__(self, qualities: Optional[List[str]] = None):
        self.qualities = [q for q in (qualities or []) if q]

    def __len__(self) -> int:
        return len(self.qualities)

    def draw(self, length: int, rng: np.random.Generator) -> str:
        """
        Draw a quality string fitted to `length`.

        Pool entries are truncated, or padded with their last character.
        """
        if not self.qualities:
            return generate_quality_string(length, rng)
        qual = self.qualities[int(rng.integers(len(self.qualities)))]
        if len(qual) >= length:
            return qual[:length]
        return qual + qual[-1] * (length - len(qual))

    @classmethod
    def from_fastq(cls, filepath: Union[str, Path], max_reads: int = 100000) -> 'QualityPool':
        filepath = Path(filepath)
        if not filepath.exists():
            raise ConfigurationError(f"Quality FASTQ not found: {filepath}")
        qualities = []
        with open_file(filepath, 'r') as handle:
            for record in SeqIO.parse(handle, 'fastq'):
                phred = record.letter_annotations['phred_quality']
                qualities.append(''.join(chr(q + PHRED_OFFSET) for q in phred))
                if len(qualities) >= max_reads:
                    break
        logger.info(f"Loaded {len(qualities)} quality strings from {filepath}")
        return cls(qualities)

    @classmethod
    def from_bam(cls, filepath: Union[str, Path],
                 regions: Optional[Sequence['ReferenceInterval']] = None,
                 max_reads: int = 100000) -> 'QualityPool':
        """
        Learn quality strings from a BAM, optionally restricted to regions
        (requires an index when regions are given).
        """
        import pysam

        filepath = Path(filepath)
        if not filepath.exists():
            raise ConfigurationError(f"Quality BAM not found: {filepath}")

        qualities = []
        with pysam.AlignmentFile(str(filepath), 'rb') as bam:
            if regions and not bam.has_index():
                logger.warning(f"{filepath} has no index, sampling qualities from the start of the file")
                regions = None
            if regions:
                iterators = [bam.fetch(r.chrom, r.start, r.end) for r in regions]
            else:
                iterators = [bam.fetch(until_eof=True)]
            for iterator in iterators:
                for read in iterator:
                    if read.query_qualities is None:
                        continue
                    qualities.append(pysam.qualities_to_qualitystring(read.query_qualities))
                    if len(qualities) >= max_reads:
                        break
                if len(qualities) >= max_reads:
                    break
        logger.info(f"Loaded {len(qualities)} quality strings from {filepath}")
        return cls(qualities)

    @staticmethod
    def training_regions(filepath: Union[str, Path], count: int = 8,
                         spacing: int = 1000000, width: int = 1000) -> List['ReferenceInterval']:
        """
        Evenly spaced 1 kb windows on the first reference of a BAM header
        (1 Mb, 2 Mb, ...), skipping windows past the end of the sequence.
        """
        import pysam
        from ..utils.intervals import ReferenceInterval

        with pysam.AlignmentFile(str(filepath), 'rb') as bam:
            if not bam.references:
                return []
            chrom, length = bam.references[0], bam.lengths[0]
        return [
            ReferenceInterval(chrom, i * spacing, i * spacing + width)
            for i in range(1, count + 1)
            if i * spacing + width <= length
        ]

    @classmethod
    def from_path(cls, filepath: Optional[Union[str, Path]], **kwargs) -> 'QualityPool':
        """Pick the loader from the file extension; None gives an empty pool."""
        if not filepath:
            return cls()
        suffixes = Path(filepath).suffixes
        if '.bam' in suffixes:
            return cls.from_bam(filepath, **kwargs)
        return cls.from_fastq(filepath, max_reads=kwargs.get('max_reads', 100000))


# =============================================================================
# SECTION 6: ALIGNMENT ARTIFACTS
# =============================================================================

def write_alignments_bam(
    records: Iterable['AlignmentRecord'],
    filepath: Union[str, Path],
    reference_name: str,
    reference_length: int,
    use_corrected: bool = False
) -> int:
    """
    Write alignment records to an (unsorted) BAM.

    Args:
        records: Alignment records against the single local reference
        filepath: Output BAM path
        reference_name: Name of the reference in the header
        reference_length: Length of the reference in the header
        use_corrected: Substitute the corrected sequence where one exists

    Returns:
        Number of records written
    """
    import pysam

    header = {
        'HD': {'VN': '1.6', 'SO': 'unsorted'},
        'SQ': [{'SN': reference_name, 'LN': reference_length}],
    }
    count = 0
    with pysam.AlignmentFile(str(filepath), 'wb', header=header) as bam:
        for record in records:
            seg = pysam.AlignedSegment(bam.header)
            seg.query_name = record.query_id
            seg.reference_id = 0
            seg.reference_start = record.reference_start
            seg.mapping_quality = record.mapq
            seg.cigarstring = record.cigar or f"{len(record.query_sequence)}M"
            seg.is_reverse = record.strand == '-'
            seg.is_secondary = not record.is_primary
            if use_corrected and record.corrected_sequence:
                seg.query_sequence = record.corrected_sequence
            else:
                seg.query_sequence = record.query_sequence
            bam.write(seg)
            count += 1
    logger.debug(f"Wrote {count} alignments to {filepath}")
    return count
