"""
BreakBench v0.1.0

Fraction-proportional read partitioning.

Reads are assigned to buckets by a seeded hash of their name, so both mates
of a pair always land in the same bucket, every name lands in at most one
bucket, and nothing has to be remembered per read while streaming a BAM.

Two modes:
    split_bam        one output per fraction (disjoint subsets)
    fractionate_bam  one output, each read kept with its region's fraction
                     (fractions given per region in a BED file)

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import bisect
import hashlib
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..exceptions import ConfigurationError
from ..utils.intervals import ReferenceInterval

logger = logging.getLogger(__name__)


def check_fractions(fractions: Sequence[float]) -> None:
    """
    Raises:
        ConfigurationError: If any fraction is negative or they sum past 1
    """
    if not fractions:
        raise ConfigurationError("No split fractions given")
    if any(f < 0 for f in fractions):
        raise ConfigurationError(f"Split fractions must be non-negative: {list(fractions)}")
    if sum(fractions) > 1.0 + 1e-9:
        raise ConfigurationError(f"Split fractions sum to {sum(fractions):g} (> 1)")


def name_draw(name: str, seed: int) -> float:
    """Uniform value in [0, 1) fixed by (seed, read name)."""
    digest = hashlib.blake2b(f"{seed}:{name}".encode(), digest_size=8).digest()
    # top 53 bits, so the float never rounds up to 1.0
    return (int.from_bytes(digest, 'big') >> 11) / float(1 << 53)


class NameBucketer:
    """
    Maps read names to buckets.

    assign() returns a bucket index, or None for names that go nowhere.
    """

    def __init__(self, fractions: Sequence[float], seed: int):
        check_fractions(fractions)
        self.cumulative = np.cumsum(np.asarray(fractions, dtype=float))
        self.seed = seed

    def assign(self, name: str) -> Optional[int]:
        bucket = int(np.searchsorted(self.cumulative, name_draw(name, self.seed), side='right'))
        return bucket if bucket < len(self.cumulative) else None


def partition_read_names(names: Iterable[str], fractions: Sequence[float],
                         seed: int) -> List[List[str]]:
    """
    Partition distinct read names into disjoint buckets.

    Each name goes to bucket i with probability fractions[i], or to no
    bucket with the remaining probability. Repeated names (mates) are
    listed once.

    Returns:
        One list of names per fraction, in first-seen order
    """
    bucketer = NameBucketer(fractions, seed)
    buckets: List[List[str]] = [[] for _ in fractions]
    seen = set()
    for name in names:
        if name in seen:
            continue
        seen.add(name)
        bucket = bucketer.assign(name)
        if bucket is not None:
            buckets[bucket].append(name)
    return buckets


def _iter_reads(bam, regions: Optional[Sequence[ReferenceInterval]]):
    if regions:
        for r in regions:
            yield from bam.fetch(r.chrom, r.start, r.end)
    else:
        yield from bam.fetch(until_eof=True)


def split_bam(bam_path: Union[str, Path], fractions: Sequence[float],
              outputs: Sequence[Union[str, Path]], seed: int,
              regions: Optional[Sequence[ReferenceInterval]] = None) -> List[int]:
    """
    Stream a BAM and write each read to the bucket drawn for its name.

    Args:
        bam_path: Input BAM (indexed when regions are given)
        fractions: Bucket fractions, non-negative, summing to at most 1
        outputs: One output BAM path per fraction
        seed: Hash seed
        regions: Restrict to these intervals

    Returns:
        Records written per output
    """
    import pysam

    if len(outputs) != len(fractions):
        raise ConfigurationError("Need exactly one output per split fraction")
    bucketer = NameBucketer(fractions, seed)

    counts = [0] * len(outputs)
    with pysam.AlignmentFile(str(bam_path), 'rb') as bam:
        writers = [pysam.AlignmentFile(str(path), 'wb', template=bam) for path in outputs]
        try:
            for read in _iter_reads(bam, regions):
                bucket = bucketer.assign(read.query_name)
                if bucket is None:
                    continue
                writers[bucket].write(read)
                counts[bucket] += 1
        finally:
            for writer in writers:
                writer.close()

    for path, count in zip(outputs, counts):
        logger.info(f"Wrote {count:,} records to {path}")
    return counts


# ============================================================================
#                           PER-REGION FRACTIONS
# ============================================================================

class RegionFractions:
    """
    Keep-fractions per genomic region, looked up by position.

    Where regions overlap, the one starting last at or before the position
    wins. Positions outside every region get `default`.
    """

    def __init__(self, entries: Sequence[Tuple[ReferenceInterval, float]], default: float = 1.0):
        self.entries = list(entries)
        self.default = default
        self._by_chrom: Dict[str, Tuple[List[int], List[Tuple[int, float]]]] = {}
        for interval, fraction in sorted(self.entries, key=lambda e: (e[0].chrom, e[0].start)):
            if not 0.0 <= fraction <= 1.0:
                raise ConfigurationError(f"Fraction for {interval} must be in [0, 1], got {fraction:g}")
            starts, rest = self._by_chrom.setdefault(interval.chrom, ([], []))
            starts.append(interval.start)
            rest.append((interval.end, fraction))

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def from_bed(cls, path: Union[str, Path], default: float = 1.0) -> 'RegionFractions':
        """Read chrom, start, end, fraction rows (0-based, half-open)."""
        entries = []
        with open(path) as f:
            for line in f:
                if not line.strip() or line.startswith(('#', 'track', 'browser')):
                    continue
                fields = line.split()
                try:
                    entries.append((ReferenceInterval(fields[0], int(fields[1]), int(fields[2])),
                                    float(fields[3])))
                except (IndexError, ValueError) as e:
                    raise ConfigurationError(
                        f"Fraction BED rows need chrom, start, end, fraction; got: {line.strip()}"
                    ) from e
        if not entries:
            raise ConfigurationError(f"No fraction regions found in {path}")
        logger.info(f"Loaded {len(entries)} fraction regions from {path}")
        return cls(entries, default)

    def fraction_at(self, chrom: str, pos: int) -> float:
        if chrom not in self._by_chrom:
            return self.default
        starts, rest = self._by_chrom[chrom]
        i = bisect.bisect_right(starts, pos) - 1
        if i >= 0 and pos < rest[i][0]:
            return rest[i][1]
        return self.default


def _pair_anchor(read) -> Tuple[int, int]:
    """
    (reference id, position) shared by both mates: the leftmost mapped mate.
    Unmapped reads with no mapped mate anchor at (-1, -1).
    """
    own = (read.reference_id, read.reference_start) if not read.is_unmapped else None
    mate = None
    if read.is_paired and not read.mate_is_unmapped:
        mate = (read.next_reference_id, read.next_reference_start)
    anchors = [a for a in (own, mate) if a is not None and a[0] >= 0]
    return min(anchors) if anchors else (-1, -1)


def fractionate_bam(bam_path: Union[str, Path], region_fractions: RegionFractions,
                    output: Union[str, Path], seed: int,
                    regions: Optional[Sequence[ReferenceInterval]] = None) -> int:
    """
    Keep each read pair with the fraction of the region it starts in.

    Both mates are placed by the leftmost mate and decided by the same
    name hash, so pairs are kept or dropped together.

    Returns:
        Records written
    """
    import pysam

    written = 0
    with pysam.AlignmentFile(str(bam_path), 'rb') as bam:
        with pysam.AlignmentFile(str(output), 'wb', template=bam) as out:
            for read in _iter_reads(bam, regions):
                ref_id, pos = _pair_anchor(read)
                if ref_id < 0:
                    fraction = region_fractions.default
                else:
                    fraction = region_fractions.fraction_at(bam.get_reference_name(ref_id), pos)
                if name_draw(read.query_name, seed) < fraction:
                    out.write(read)
                    written += 1

    logger.info(f"Wrote {written:,} records to {output}")
    return written
