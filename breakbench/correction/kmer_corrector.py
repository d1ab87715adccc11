"""
BreakBench v0.1.0

K-mer consensus read correction.

Reads are corrected against a k-mer spectrum of the read collection itself:
k-mers seen fewer than min_freq times are weak and likely carry a
sequencing error. Single-base substitutions inside weak windows are scored by
how many solid k-mers they gain; the best strictly positive substitution is
applied and the search repeats until nothing improves.

Architecture:
    Section 1: Results and statistics
    Section 2: K-mer spectrum
    Section 3: Corrector

Usage:
    corrector = KmerCorrector(k_size=21, min_kmer_freq=3)
    corrector.fit(seq for _, seq in reads)
    results = corrector.correct(reads)

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from ..external.interfaces import AlignmentRecord
from ..utils.sequence_utils import BASES, extract_kmers

logger = logging.getLogger(__name__)


# ============================================================================
# SECTION 1: RESULTS AND STATISTICS
# ============================================================================

@dataclass(frozen=True)
class CorrectionResult:
    """
    Outcome of correcting one read. The original sequence is kept for audit.

    Attributes:
        read_id: Read identifier
        original: Sequence before correction
        sequence: Sequence after correction (== original when nothing changed)
        corrections: (position, original_base, new_base) in the order applied
    """
    read_id: str
    original: str
    sequence: str
    corrections: Tuple[Tuple[int, str, str], ...] = ()

    @property
    def corrected(self) -> bool:
        return bool(self.corrections)


@dataclass
class CorrectionStats:
    """Statistics for a correction run."""
    reads_processed: int = 0
    reads_corrected: int = 0
    total_bases: int = 0
    bases_corrected: int = 0

    def record_read(self, result: CorrectionResult):
        self.reads_processed += 1
        self.total_bases += len(result.original)
        if result.corrected:
            self.reads_corrected += 1
            self.bases_corrected += len(result.corrections)

    def get_correction_rate(self) -> float:
        """
        Get the correction rate (percentage of bases corrected).

        Returns:
            Correction rate as percentage (0-100)
        """
        if self.total_bases == 0:
            return 0.0
        return (self.bases_corrected / self.total_bases) * 100

    def summary(self) -> str:
        lines = [
            "\n" + "=" * 60,
            "CORRECTION STATISTICS SUMMARY",
            "=" * 60,
            f"Reads processed:       {self.reads_processed:,}",
            f"Reads corrected:       {self.reads_corrected:,}",
            f"Total bases:           {self.total_bases:,}",
            f"Bases corrected:       {self.bases_corrected:,} ({self.get_correction_rate():.3f}%)",
            "=" * 60 + "\n",
        ]
        return "\n".join(lines)


# ============================================================================
# SECTION 2: K-MER SPECTRUM
# ============================================================================

class KmerSpectrum:
    """
    K-mer spectrum for identifying solid (correct) vs weak (error) k-mers.

    Solid k-mers appear at least min_freq times in the read set.
    """

    def __init__(self, k_size: int = 21, min_freq: int = 3):
        """
        Initialize k-mer spectrum.

        Args:
            k_size: Length of k-mers
            min_freq: Minimum frequency for a k-mer to be considered solid
        """
        if k_size <= 0:
            raise ValueError(f"k_size must be positive, got {k_size}")
        self.k_size = k_size
        self.min_freq = min_freq
        self.kmer_counts: Counter = Counter()
        self.solid_kmers: Set[str] = set()

    def add_sequence(self, sequence: str):
        self.kmer_counts.update(extract_kmers(sequence, self.k_size))

    def build_solid_kmers(self):
        """Identify solid k-mers based on frequency threshold."""
        self.solid_kmers = {
            kmer for kmer, count in self.kmer_counts.items()
            if count >= self.min_freq
        }

    def is_solid(self, kmer: str) -> bool:
        return kmer in self.solid_kmers

    def get_count(self, kmer: str) -> int:
        """Get count of a k-mer."""
        return self.kmer_counts.get(kmer, 0)

    def __len__(self) -> int:
        return len(self.kmer_counts)


# ============================================================================
# SECTION 3: CORRECTOR
# ============================================================================

class KmerCorrector:
    """
    Greedy single-substitution corrector over a fixed k-mer spectrum.

    Per read, every substitution at a position covered by a weak k-mer is
    scored as (solid k-mers covering the position after) minus (before).
    The best strictly positive score is applied; ties go to the lowest
    position, then base order A, C, G, T. This repeats until nothing
    improves. A read that would need more than max_corrections
    substitutions is left unmodified, so correcting against the same
    spectrum twice never changes anything the second time.

    correct_reads() refits the spectrum on its own output and corrects
    again until a pass changes nothing, so a fresh corrector fitted on the
    result finds nothing left to fix.
    """

    def __init__(self, k_size: int = 21, min_kmer_freq: int = 3, max_corrections: int = 10,
                 max_passes: int = 10):
        """
        Initialize k-mer corrector.

        Args:
            k_size: K-mer size
            min_kmer_freq: Minimum frequency for solid k-mer
            max_corrections: Maximum corrections per read and pass
            max_passes: Maximum fit-and-correct rounds in correct_reads()
        """
        if max_passes < 1:
            raise ValueError(f"max_passes must be >= 1, got {max_passes}")
        self.k_size = k_size
        self.min_kmer_freq = min_kmer_freq
        self.max_corrections = max_corrections
        self.max_passes = max_passes
        self.spectrum = KmerSpectrum(k_size, min_kmer_freq)
        self.stats = CorrectionStats()
        self._fitted = False

    @classmethod
    def from_settings(cls, settings) -> 'KmerCorrector':
        return cls(settings.k_size, settings.min_kmer_freq, settings.max_corrections,
                   settings.max_passes)

    def fit(self, sequences: Iterable[str]) -> 'KmerCorrector':
        """Build the k-mer spectrum from a read collection (replaces any previous one)."""
        self.spectrum = KmerSpectrum(self.k_size, self.min_kmer_freq)
        count = 0
        for seq in sequences:
            self.spectrum.add_sequence(seq.upper())
            count += 1
        self.spectrum.build_solid_kmers()
        self._fitted = True
        logger.debug(f"K-mer spectrum: {len(self.spectrum):,} distinct {self.k_size}-mers from "
                     f"{count:,} reads, {len(self.spectrum.solid_kmers):,} solid")
        return self

    def correct_sequence(self, sequence: str) -> Tuple[str, List[Tuple[int, str, str]]]:
        """
        Correct one sequence against the fitted spectrum.

        Returns:
            Tuple of (corrected_sequence, corrections_list)
            where corrections_list contains (position, original_base, new_base)
        """
        if not self._fitted:
            raise RuntimeError("Spectrum not built; call fit() first")

        bases = list(sequence.upper())
        corrections = []
        while True:
            best = self._best_substitution(bases)
            if best is None:
                break
            if len(corrections) >= self.max_corrections:
                logger.debug(f"Read needs more than {self.max_corrections} corrections, left unmodified")
                return sequence, []
            pos, new_base = best
            corrections.append((pos, bases[pos], new_base))
            bases[pos] = new_base
        return ''.join(bases), corrections

    def correct(self, reads: Iterable[Tuple[str, str]]) -> List[CorrectionResult]:
        """Correct (read_id, sequence) pairs with the fitted spectrum."""
        results = []
        for read_id, sequence in reads:
            corrected, corrections = self.correct_sequence(sequence)
            result = CorrectionResult(read_id, sequence, corrected, tuple(corrections))
            self.stats.record_read(result)
            results.append(result)
        return results

    def correct_reads(self, reads: Iterable[Tuple[str, str]]) -> List[CorrectionResult]:
        """
        Fit the spectrum on the reads and correct them, refitting on the
        corrected set until a pass changes nothing or max_passes is reached.

        Each result compares the input read with its final sequence; the
        corrections of all passes are listed in the order applied.
        """
        reads = list(reads)
        current = [seq for _, seq in reads]
        applied: List[List[Tuple[int, str, str]]] = [[] for _ in reads]

        for pass_num in range(1, self.max_passes + 1):
            self.fit(current)
            changed = 0
            for i, seq in enumerate(current):
                fixed, corrections = self.correct_sequence(seq)
                if corrections:
                    applied[i].extend(corrections)
                    current[i] = fixed
                    changed += 1
            logger.debug(f"Correction pass {pass_num}: {changed:,} reads changed")
            if not changed:
                break
        else:
            logger.warning(f"Read correction still changing reads after {self.max_passes} passes")

        results = []
        for (read_id, original), sequence, corrections in zip(reads, current, applied):
            result = CorrectionResult(read_id, original, sequence, tuple(corrections))
            self.stats.record_read(result)
            results.append(result)
        return results

    def correct_alignments(self, records: Iterable[AlignmentRecord], fit: bool = True) -> List[AlignmentRecord]:
        """
        Correct aligned reads.

        Records with at least one fix come back with corrected_sequence set;
        the rest are returned unchanged.
        """
        records = list(records)
        pairs = [(r.query_id, r.query_sequence) for r in records]
        results = self.correct_reads(pairs) if fit else self.correct(pairs)

        out = []
        for record, result in zip(records, results):
            out.append(record.with_correction(result.sequence) if result.corrected else record)
        logger.debug(f"Corrected {sum(r.corrected for r in results)} of {len(results)} aligned reads")
        return out

    # ------------------------------------------------------------------------

    def _weak_positions(self, bases: List[str]) -> List[int]:
        k = self.k_size
        positions = set()
        for i in range(len(bases) - k + 1):
            if not self.spectrum.is_solid(''.join(bases[i:i + k])):
                positions.update(range(i, i + k))
        return sorted(positions)

    def _solid_cover(self, bases: List[str], pos: int) -> int:
        """Number of solid k-mers covering pos."""
        k = self.k_size
        count = 0
        for i in range(max(0, pos - k + 1), min(len(bases) - k, pos) + 1):
            if self.spectrum.is_solid(''.join(bases[i:i + k])):
                count += 1
        return count

    def _best_substitution(self, bases: List[str]) -> Optional[Tuple[int, str]]:
        best = None
        best_score = 0
        for pos in self._weak_positions(bases):
            original = bases[pos]
            before = self._solid_cover(bases, pos)
            for base in BASES:
                if base == original:
                    continue
                bases[pos] = base
                score = self._solid_cover(bases, pos) - before
                # strict > keeps the lowest position, then the first base in A,C,G,T order
                if score > best_score:
                    best_score = score
                    best = (pos, base)
            bases[pos] = original
        return best
