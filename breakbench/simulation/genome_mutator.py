"""
Genomic Breakpoint Injector

Builds a mutated copy of a reference interval with a ground-truth ledger of
every edit applied:
- Rearrangement joins (a copied segment, either orientation, spliced in at
  a cut point), recorded as BreakpointRecord
- Short insertions and deletions, recorded as IndelRecord

Every record knows how to apply itself to the sequence it was drawn on, so
the mutated sequence is exactly the fold of the ledger over the reference.
That is also how it is built.

Placement policy:
- Each step picks an indel with probability I_left / (I_left + R_left),
  otherwise a rearrangement.
- Edits may not touch bases already produced by an earlier edit (plus a
  padding flank). A failed placement costs one attempt from a global budget.
- An indel that fails max_edit_retries placements in a row is dropped, so
  fewer than the requested indels may be placed.
- When the budget runs out the genome is returned with the edits placed so
  far and a warning is logged.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from ..config.context import InjectorSettings
from ..exceptions import ConfigurationError
from ..external.interfaces import ReferenceAccessor
from ..utils.intervals import ReferenceInterval
from ..utils.sequence_utils import random_bases, reverse_complement

logger = logging.getLogger(__name__)


class EditType(Enum):
    """Types of ledger edits."""
    REARRANGEMENT = "rearrangement"
    INSERTION = "insertion"
    DELETION = "deletion"


# ============================================================================
#                           LEDGER RECORDS
# ============================================================================

@dataclass(frozen=True)
class BreakpointRecord:
    """
    Rearrangement join.

    The segment [donor_start, donor_end) of the pre-edit sequence is copied
    (reverse complemented when strand is '-') and spliced in at `cut`. The
    copy starts at `post_position` in the post-edit sequence; its two ends
    are the junctions.

    Attributes:
        chrom: Chromosome of the source interval
        cut: Pre-edit coordinate where the segment is joined
        donor_start: Pre-edit start of the joined segment
        donor_end: Pre-edit end of the joined segment
        strand: Orientation of the joined segment
        post_position: Post-edit coordinate of the first joined base
        left_ref: Reference coordinate of the base left of the cut
        right_ref: Reference coordinate of the base right of the cut
        donor_ref_start: Reference coordinate of the segment's first base
        donor_ref_end: Reference coordinate of the segment's last base

    Reference coordinates are genomic and 0-based; None marks bases that
    were themselves inserted by an earlier edit.
    """
    chrom: str
    cut: int
    donor_start: int
    donor_end: int
    strand: str
    post_position: int
    left_ref: Optional[int] = None
    right_ref: Optional[int] = None
    donor_ref_start: Optional[int] = None
    donor_ref_end: Optional[int] = None
    edit_type: EditType = EditType.REARRANGEMENT

    @property
    def size(self) -> int:
        return self.donor_end - self.donor_start

    def apply(self, sequence: str) -> str:
        donor = sequence[self.donor_start:self.donor_end]
        if self.strand == '-':
            donor = reverse_complement(donor)
        return sequence[:self.cut] + donor + sequence[self.cut:]

    def junctions(self) -> Tuple[str, str]:
        """Both junctions as 'chrom:pos(strand)->chrom:pos(strand)' strings."""
        if self.strand == '+':
            entry, exit_ = self.donor_ref_start, self.donor_ref_end
        else:
            entry, exit_ = self.donor_ref_end, self.donor_ref_start
        return (
            f"{_locus(self.chrom, self.left_ref)}(+)->{_locus(self.chrom, entry)}({self.strand})",
            f"{_locus(self.chrom, exit_)}({self.strand})->{_locus(self.chrom, self.right_ref)}(+)",
        )


@dataclass(frozen=True)
class IndelRecord:
    """
    Short insertion or deletion at a pre-edit position.

    `sequence` holds the inserted bases, or the deleted bases for audit.
    """
    chrom: str
    position: int
    length: int
    indel_type: EditType
    sequence: str
    ref_position: Optional[int] = None

    def apply(self, sequence: str) -> str:
        if self.indel_type == EditType.INSERTION:
            return sequence[:self.position] + self.sequence + sequence[self.position:]
        return sequence[:self.position] + sequence[self.position + self.length:]

    def to_row(self) -> str:
        """Tab-separated ledger row: chrom, position, ref_position, type, length, sequence."""
        ref = self.ref_position if self.ref_position is not None else 'NA'
        return '\t'.join([
            self.chrom, str(self.position), str(ref),
            self.indel_type.value, str(self.length), self.sequence,
        ])


LedgerRecord = Union[BreakpointRecord, IndelRecord]


def _locus(chrom: str, pos: Optional[int]) -> str:
    return f"{chrom}:{pos}" if pos is not None else f"{chrom}:NA"


def replay_ledger(reference: str, ledger: Sequence[LedgerRecord]) -> str:
    """Apply ledger records in order to the original reference."""
    sequence = reference
    for record in ledger:
        sequence = record.apply(sequence)
    return sequence


# ============================================================================
#                           MUTATED GENOME
# ============================================================================

@dataclass(frozen=True)
class MutatedGenome:
    """
    Mutated interval with its ground-truth edit ledger.

    Attributes:
        interval: Source reference interval
        reference: Original reference bases
        sequence: Mutated sequence
        ledger: Edits in the order they were applied
    """
    interval: ReferenceInterval
    reference: str
    sequence: str
    ledger: Tuple[LedgerRecord, ...]

    @property
    def breakpoints(self) -> List[BreakpointRecord]:
        return [r for r in self.ledger if isinstance(r, BreakpointRecord)]

    @property
    def indels(self) -> List[IndelRecord]:
        return [r for r in self.ledger if isinstance(r, IndelRecord)]

    def __len__(self) -> int:
        return len(self.sequence)

    def verify(self) -> bool:
        """True if replaying the ledger reproduces the mutated sequence."""
        return replay_ledger(self.reference, self.ledger) == self.sequence

    def indel_rows(self) -> List[str]:
        return [indel.to_row() for indel in self.indels]

    def breakpoint_report(self) -> str:
        """One line per rearrangement junction record."""
        lines = [f"# {len(self.breakpoints)} rearrangements on {self.interval} "
                 f"(0-based genomic coordinates)"]
        for i, bp in enumerate(self.breakpoints, 1):
            first, second = bp.junctions()
            lines.append(
                f"BP{i}\t{bp.edit_type.value}\t{first}\t{second}\t"
                f"post={bp.post_position}\tsize={bp.size}"
            )
        return '\n'.join(lines) + '\n'


# ============================================================================
#                           INJECTOR
# ============================================================================

class GenomicBreakpointInjector:
    """
    Inject rearrangement joins and indels into a reference interval.

    Example:
        injector = GenomicBreakpointInjector(reference, settings, rng)
        genome = injector.build(ReferenceInterval('chr17', 7565720, 7575000))
        assert genome.verify()
    """

    def __init__(self, reference: ReferenceAccessor,
                 settings: Optional[InjectorSettings] = None,
                 rng: Optional[np.random.Generator] = None):
        self.reference = reference
        self.settings = settings or InjectorSettings()
        self.rng = rng if rng is not None else np.random.default_rng()

    def build(self, interval: ReferenceInterval,
              num_rearrangements: Optional[int] = None,
              num_indels: Optional[int] = None) -> MutatedGenome:
        """
        Fetch the interval and apply edits.

        Args:
            interval: Region to mutate
            num_rearrangements: Rearrangement target (defaults to settings)
            num_indels: Indel target (defaults to settings)

        Returns:
            MutatedGenome with its ledger

        Raises:
            ConfigurationError: If the interval has no bases
        """
        s = self.settings
        breaks_left = s.num_rearrangements if num_rearrangements is None else num_rearrangements
        indels_left = s.num_indels if num_indels is None else num_indels

        reference = self.reference.fetch(interval.chrom, interval.start, interval.end).upper()
        if not reference:
            raise ConfigurationError(f"Reference interval {interval} is empty")

        logger.info(f"Generating breaks on {interval} ({len(reference):,} bp)")
        logger.info(f"  Rearrangement target: {breaks_left}, indel target (approx): {indels_left}")

        sequence = reference
        origins = np.arange(interval.start, interval.end, dtype=np.int64)
        edited = np.zeros(len(reference), dtype=bool)
        ledger: List[LedgerRecord] = []

        attempts = 0
        indel_failures = 0
        while (breaks_left > 0 or indels_left > 0) and attempts < s.max_attempts:
            use_indel = indels_left > 0 and self.rng.random() < indels_left / (indels_left + breaks_left)

            if use_indel:
                record = self._propose_indel(interval.chrom, sequence, origins, edited)
                if record is None:
                    attempts += 1
                    indel_failures += 1
                    if indel_failures >= s.max_edit_retries:
                        logger.debug(f"  Dropping indel after {indel_failures} failed placements")
                        indels_left -= 1
                        indel_failures = 0
                    continue
                indel_failures = 0
                indels_left -= 1
            else:
                record = self._propose_rearrangement(interval.chrom, sequence, origins, edited)
                if record is None:
                    attempts += 1
                    continue
                breaks_left -= 1

            sequence = record.apply(sequence)
            origins, edited = _apply_to_tracks(record, origins, edited)
            ledger.append(record)

        if breaks_left > 0 or indels_left > 0:
            logger.warning(
                f"Edit placement budget exhausted after {attempts} failed attempts: "
                f"{breaks_left} rearrangement(s) and {indels_left} indel(s) not placed"
            )

        genome = MutatedGenome(
            interval=interval,
            reference=reference,
            sequence=sequence,
            ledger=tuple(ledger),
        )
        logger.info(f"Mutated genome complete: {len(genome):,} bp, "
                    f"{len(genome.breakpoints)} rearrangements, {len(genome.indels)} indels")
        return genome

    # ------------------------------------------------------------------------
    # proposals (None when the drawn placement is invalid)
    # ------------------------------------------------------------------------

    def _propose_rearrangement(self, chrom: str, sequence: str, origins: np.ndarray,
                               edited: np.ndarray) -> Optional[BreakpointRecord]:
        s = self.settings
        n = len(sequence)
        cap = min(s.donor_max_size, n // 4)
        if n < 2 or cap < 1:
            return None
        size = int(self.rng.integers(min(s.donor_min_size, cap), cap + 1))

        cut = int(self.rng.integers(1, n))
        donor_start = int(self.rng.integers(0, n - size + 1))
        donor_end = donor_start + size
        strand = '+' if self.rng.random() < 0.5 else '-'

        if donor_start < cut < donor_end:
            return None
        if _touches(edited, cut - s.padding, cut + s.padding):
            return None
        if _touches(edited, donor_start - s.padding, donor_end + s.padding):
            return None

        return BreakpointRecord(
            chrom=chrom,
            cut=cut,
            donor_start=donor_start,
            donor_end=donor_end,
            strand=strand,
            post_position=cut,
            left_ref=_origin(origins, cut - 1),
            right_ref=_origin(origins, cut),
            donor_ref_start=_origin(origins, donor_start),
            donor_ref_end=_origin(origins, donor_end - 1),
        )

    def _propose_indel(self, chrom: str, sequence: str, origins: np.ndarray,
                       edited: np.ndarray) -> Optional[IndelRecord]:
        s = self.settings
        n = len(sequence)
        length = int(self.rng.integers(s.indel_min_size, s.indel_max_size + 1))
        is_insertion = self.rng.random() < 0.5

        if is_insertion:
            if n < 2:
                return None
            pos = int(self.rng.integers(1, n))
            if _touches(edited, pos - s.padding, pos + s.padding):
                return None
            return IndelRecord(chrom, pos, length, EditType.INSERTION,
                               random_bases(length, self.rng), _origin(origins, pos))

        if n - length < 2:
            return None
        pos = int(self.rng.integers(1, n - length))
        if _touches(edited, pos - s.padding, pos + length + s.padding):
            return None
        return IndelRecord(chrom, pos, length, EditType.DELETION,
                           sequence[pos:pos + length], _origin(origins, pos))


# ============================================================================
#                           COORDINATE TRACKS
# ============================================================================

def _touches(edited: np.ndarray, start: int, end: int) -> bool:
    start, end = max(0, start), min(len(edited), end)
    return start < end and bool(edited[start:end].any())


def _origin(origins: np.ndarray, index: int) -> Optional[int]:
    if index < 0 or index >= len(origins) or origins[index] < 0:
        return None
    return int(origins[index])


def _apply_to_tracks(record: LedgerRecord, origins: np.ndarray,
                     edited: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Mirror an edit on the per-base origin map and edited mask."""
    if isinstance(record, BreakpointRecord):
        donor_origins = origins[record.donor_start:record.donor_end]
        if record.strand == '-':
            donor_origins = donor_origins[::-1]
        cut = record.cut
        origins = np.concatenate([origins[:cut], donor_origins, origins[cut:]])
        edited = np.concatenate([edited[:cut], np.ones(record.size, dtype=bool), edited[cut:]])
        return origins, edited

    pos = record.position
    if record.indel_type == EditType.INSERTION:
        origins = np.concatenate([origins[:pos], np.full(record.length, -1, dtype=np.int64), origins[pos:]])
        edited = np.concatenate([edited[:pos], np.ones(record.length, dtype=bool), edited[pos:]])
        return origins, edited

    origins = np.concatenate([origins[:pos], origins[pos + record.length:]])
    edited = np.concatenate([edited[:pos], edited[pos + record.length:]])
    # the bases either side of the deletion now form a junction
    edited[max(0, pos - 1):pos + 1] = True
    return origins, edited
