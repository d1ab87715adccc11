"""
BreakBench v0.1.0

Genomic interval types and interval arithmetic.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from dataclasses import dataclass
from typing import Iterable, List, Tuple


@dataclass(frozen=True)
class ReferenceInterval:
    """
    Half-open, 0-based genomic interval.
    
    Attributes:
        chrom: Chromosome / contig name
        start: First base (0-based, inclusive)
        end: One past the last base (exclusive)
    """
    chrom: str
    start: int
    end: int
    
    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid interval {self.chrom}:{self.start}-{self.end}")
    
    @property
    def length(self) -> int:
        return self.end - self.start
    
    def to_locus(self) -> str:
        """Samtools-style 1-based inclusive locus string."""
        return f"{self.chrom}:{self.start + 1}-{self.end}"
    
    def __str__(self) -> str:
        return self.to_locus()


def merge_intervals(intervals: Iterable[Tuple[int, int]]) -> List[Tuple[int, int]]:
    """
    Merge overlapping half-open intervals into a minimal covering set.
    
    Touching intervals ([0, 10) and [10, 20)) are merged as well.
    
    Example:
        >>> merge_intervals([(5, 10), (0, 6), (20, 30)])
        [(0, 10), (20, 30)]
    """
    merged: List[Tuple[int, int]] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def widest_interval(intervals: Iterable[Tuple[int, int]]) -> int:
    """Width of the widest interval, 0 when there are none."""
    return max((end - start for start, end in intervals), default=0)
