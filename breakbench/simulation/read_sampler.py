"""
Read Sampler

Draws single-end reads and paired-end read pairs from one or more weighted
source sequences (alleles), with a per-read error model:
- Per-base substitutions (SNV rate)
- At most one insertion and one deletion per read (per-read rates)

Reads always come out at the configured read length: the source span is
widened or narrowed up front to absorb the length change of the indel
events. Every read carries its source offset, strand and an error ledger
for ground-truth comparison.

All randomness comes from a single numpy Generator, so a fixed seed gives
identical output.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import numpy as np

from ..exceptions import ConfigurationError, SamplingExhaustion
from ..io.io_core_module import QualityPool
from ..utils.sequence_utils import BASES, reverse_complement, substitute_base

logger = logging.getLogger(__name__)

# Consecutive pairs that may fail placement before pair sampling gives up
MAX_CONSECUTIVE_FAILURES = 10


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ============================================================================
#                           READ DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class Allele:
    """Source sequence with a relative sampling weight."""
    sequence: str
    weight: float = 1.0
    name: str = 'allele'

    def __len__(self) -> int:
        return len(self.sequence)


@dataclass
class SampledRead:
    """
    A sampled read with ground-truth provenance.

    Attributes:
        read_id: Read identifier
        sequence: Read sequence (read orientation)
        quality: Quality scores (Phred+33 ASCII)
        strand: '+' or '-' relative to the allele
        allele_id: Name of the source allele
        offset: Start of the source span on the allele
        source_span: Number of allele bases the read was drawn from
        errors: (position, edit type) entries in the order applied
    """
    read_id: str
    sequence: str
    quality: str
    strand: str
    allele_id: str
    offset: int
    source_span: int
    errors: Tuple[Tuple[int, str], ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.sequence)

    def to_fastq(self, name: Optional[str] = None) -> str:
        """Convert to FASTQ format."""
        return f"@{name or self.read_id}\n{self.sequence}\n+\n{self.quality}\n"


@dataclass
class ReadPair:
    """Two reads from opposite ends of one fragment."""
    read1: SampledRead
    read2: SampledRead
    fragment_length: int

    def to_fastq(self, name: Optional[str] = None) -> Tuple[str, str]:
        """Convert to FASTQ format (R1, R2)."""
        return (self.read1.to_fastq(name), self.read2.to_fastq(name))


@dataclass
class SamplingResult:
    """Reads (or pairs) produced against the number requested."""
    reads: List[Union[SampledRead, ReadPair]]
    requested: int

    @property
    def produced(self) -> int:
        return len(self.reads)

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - self.produced)

    def __len__(self) -> int:
        return len(self.reads)

    def __iter__(self):
        return iter(self.reads)


# ============================================================================
#                           SAMPLER
# ============================================================================

class ReadSampler:
    """
    Coverage-targeted read sampler.

    Example:
        sampler = ReadSampler(read_length=101, snv_rate=0.01, rng=rng)
        sampler.add_allele(genome.sequence)
        reads = sampler.sample_reads(coverage=20).reads
    """

    def __init__(self, read_length: int, snv_rate: float = 0.0,
                 ins_rate: float = 0.0, del_rate: float = 0.0,
                 rng: Optional[np.random.Generator] = None,
                 quality_pool: Optional[QualityPool] = None,
                 max_retries: int = 1000, min_yield: float = 0.9):
        if read_length <= 0:
            raise ConfigurationError("Read length must be positive")
        for name, rate in (('snv', snv_rate), ('insertion', ins_rate), ('deletion', del_rate)):
            if not 0.0 <= rate <= 1.0:
                raise ConfigurationError(f"{name} error rate must be in [0, 1], got {rate}")
        self.read_length = read_length
        self.snv_rate = snv_rate
        self.ins_rate = ins_rate
        self.del_rate = del_rate
        self.rng = rng if rng is not None else np.random.default_rng()
        self.quality_pool = quality_pool if quality_pool is not None else QualityPool()
        self.max_retries = max_retries
        self.min_yield = min_yield
        self._alleles: List[Allele] = []

    # ------------------------------------------------------------------------
    # alleles
    # ------------------------------------------------------------------------

    def add_allele(self, sequence: str, weight: float = 1.0, name: Optional[str] = None) -> Allele:
        if weight <= 0:
            raise ConfigurationError(f"Allele weight must be positive, got {weight}")
        allele = Allele(sequence.upper(), float(weight), name or f"allele{len(self._alleles)}")
        self._alleles.append(allele)
        return allele

    @property
    def alleles(self) -> List[Allele]:
        return list(self._alleles)

    @property
    def total_length(self) -> int:
        return sum(len(a) for a in self._alleles)

    def _choose_allele(self) -> Allele:
        weights = np.array([a.weight for a in self._alleles], dtype=float)
        return self._alleles[int(self.rng.choice(len(self._alleles), p=weights / weights.sum()))]

    # ------------------------------------------------------------------------
    # error model
    # ------------------------------------------------------------------------

    def _draw_indel_events(self) -> Tuple[int, int, int]:
        """Returns (n_ins, n_del, source span) for one read."""
        n_ins = int(self.rng.random() < self.ins_rate)
        n_del = int(self.rng.random() < self.del_rate)
        return n_ins, n_del, self.read_length - n_ins + n_del

    def _apply_errors(self, source: str, n_ins: int, n_del: int) -> Tuple[str, Tuple[Tuple[int, str], ...]]:
        """SNVs per base, then the insertion, then the deletion."""
        bases = list(source)
        errors = []

        if self.snv_rate > 0 and bases:
            hits = np.flatnonzero(self.rng.random(len(bases)) < self.snv_rate)
            for pos in hits:
                bases[pos] = substitute_base(bases[pos], self.rng)
                errors.append((int(pos), 'snv'))

        if n_ins:
            pos = int(self.rng.integers(0, len(bases) + 1))
            bases.insert(pos, BASES[int(self.rng.integers(4))])
            errors.append((pos, 'insertion'))

        if n_del and bases:
            pos = int(self.rng.integers(0, len(bases)))
            del bases[pos]
            errors.append((pos, 'deletion'))

        return ''.join(bases), tuple(errors)

    def _make_read(self, read_id: str, source: str, strand: str, allele: Allele,
                   offset: int, n_ins: int, n_del: int) -> SampledRead:
        span = len(source)
        if strand == '-':
            source = reverse_complement(source)
        sequence, errors = self._apply_errors(source, n_ins, n_del)
        return SampledRead(
            read_id=read_id,
            sequence=sequence,
            quality=self.quality_pool.draw(len(sequence), self.rng),
            strand=strand,
            allele_id=allele.name,
            offset=offset,
            source_span=span,
            errors=errors,
        )

    # ------------------------------------------------------------------------
    # single-end
    # ------------------------------------------------------------------------

    def sample_reads(self, coverage: float) -> SamplingResult:
        """
        Sample single-end reads to the target coverage.

        Number of reads = round(coverage * total allele length / read length).
        Reads near a short allele's end are clipped to the allele boundary.
        """
        if not self._alleles:
            raise ConfigurationError("No alleles to sample from")

        requested = round_half_up(coverage * self.total_length / self.read_length)
        logger.debug(f"Sampling {requested} single-end reads ({coverage:g}x)")

        reads = []
        for i in range(requested):
            allele = self._choose_allele()
            if not len(allele):
                continue
            n_ins, n_del, span = self._draw_indel_events()
            span = min(span, len(allele))
            offset = int(self.rng.integers(0, len(allele) - span + 1))
            reads.append(self._make_read(
                f"read_{i + 1}", allele.sequence[offset:offset + span], '+',
                allele, offset, n_ins, n_del,
            ))

        return self._check_yield(SamplingResult(reads, requested), 'reads')

    # ------------------------------------------------------------------------
    # paired-end
    # ------------------------------------------------------------------------

    def sample_pairs(self, coverage: float, insert_mean: float, insert_sd: float) -> SamplingResult:
        """
        Sample read pairs to the target coverage.

        Number of pairs = round(coverage * total allele length / (2 * read length)).
        Fragment length ~ Normal(insert_mean, insert_sd), rounded and clamped
        to at least the read length. A fragment that would run past the allele
        is redrawn, up to max_retries times per pair. Read 1 is the start of
        the fragment on '+', read 2 the reverse complement of its end on '-'.

        Raises:
            SamplingExhaustion: If fewer than min_yield of the requested pairs
                could be placed
        """
        if not self._alleles:
            raise ConfigurationError("No alleles to sample from")

        L = self.read_length
        requested = round_half_up(coverage * self.total_length / (2 * L))
        logger.debug(f"Sampling {requested} read pairs ({coverage:g}x, isize {insert_mean}({insert_sd}))")

        pairs = []
        consecutive_failures = 0
        for _ in range(requested):
            pair = self._place_pair(f"r{len(pairs)}", insert_mean, insert_sd)
            if pair is None:
                consecutive_failures += 1
                if consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
                    logger.debug(f"  Giving up after {consecutive_failures} unplaceable fragments")
                    break
                continue
            consecutive_failures = 0
            pairs.append(pair)

        return self._check_yield(SamplingResult(pairs, requested), 'read pairs')

    def _place_pair(self, name: str, insert_mean: float, insert_sd: float) -> Optional[ReadPair]:
        L = self.read_length
        ins1, del1, span1 = self._draw_indel_events()
        ins2, del2, span2 = self._draw_indel_events()

        for _ in range(self.max_retries):
            fragment_length = max(L, round_half_up(self.rng.normal(insert_mean, insert_sd)))
            needed = max(fragment_length, span1, span2)
            allele = self._choose_allele()
            if needed > len(allele):
                continue
            offset = int(self.rng.integers(0, len(allele)))
            if offset + needed > len(allele):
                continue

            fragment = allele.sequence[offset:offset + needed]
            read1 = self._make_read(name, fragment[:span1], '+', allele, offset, ins1, del1)
            read2 = self._make_read(name, fragment[needed - span2:], '-', allele,
                                    offset + needed - span2, ins2, del2)
            return ReadPair(read1, read2, needed)
        return None

    # ------------------------------------------------------------------------

    def _check_yield(self, result: SamplingResult, what: str) -> SamplingResult:
        if result.shortfall:
            logger.warning(f"Produced {result.produced} of {result.requested} requested {what}")
            if result.produced < self.min_yield * result.requested:
                raise SamplingExhaustion(
                    f"Only {result.produced} of {result.requested} {what} could be placed "
                    f"(minimum yield {self.min_yield:.0%})",
                    result=result,
                )
        return result
