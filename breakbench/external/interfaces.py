"""
BreakBench v0.1.0

Contracts for the external collaborators driven by the benchmark:
reference accessor, sequence aligner and assembler engine.

Concrete adapters live next to this module (reference.py, aligner.py,
assembler.py). Tests substitute in-memory fakes.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple


# ============================================================================
#                           DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class AlignmentRecord:
    """
    One alignment of a query (read or contig) against the indexed reference.
    
    Attributes:
        query_id: Read / contig identifier
        reference_id: Name of the reference sequence hit
        reference_start: 0-based start on the reference
        reference_end: Exclusive end on the reference
        strand: '+' or '-'
        mapq: Mapping quality
        cigar: CIGAR string (query orientation as aligned)
        query_sequence: Query bases as aligned
        is_primary: Whether this is the primary hit
        corrected_sequence: Sequence after k-mer correction, if one was made
    """
    query_id: str
    reference_id: str
    reference_start: int
    reference_end: int
    strand: str = '+'
    mapq: int = 60
    cigar: str = ''
    query_sequence: str = ''
    is_primary: bool = True
    corrected_sequence: Optional[str] = None
    
    @property
    def sequence(self) -> str:
        """Corrected sequence when present, otherwise the raw query."""
        return self.corrected_sequence if self.corrected_sequence else self.query_sequence
    
    @property
    def interval(self) -> Tuple[int, int]:
        return (self.reference_start, self.reference_end)
    
    def with_correction(self, corrected_sequence: Optional[str]) -> 'AlignmentRecord':
        return replace(self, corrected_sequence=corrected_sequence)


@dataclass(frozen=True)
class Contig:
    """Assembled contig."""
    contig_id: str
    sequence: str
    
    def __len__(self) -> int:
        return len(self.sequence)


@dataclass(frozen=True)
class AssemblerConfig:
    """Parameters handed to an assembler engine."""
    identifier: str
    error_rate: float
    min_overlap: int
    read_length: int


# ============================================================================
#                           CONTRACTS
# ============================================================================

class ReferenceAccessor(ABC):
    """Read-only access to reference bases."""
    
    @abstractmethod
    def fetch(self, chrom: str, start: int, end: int) -> str:
        """Return the bases of [start, end) on chrom (0-based, half-open)."""


class SequenceAligner(ABC):
    """
    Aligner over an index built for a single reference sequence.
    
    align() returns zero or more records per query id; queries with no
    hits map to an empty list.
    """
    
    reference_name: str = 'local_ref'
    
    @abstractmethod
    def align(self, queries: Iterable[Tuple[str, str]]) -> Dict[str, List[AlignmentRecord]]:
        """Align (id, sequence) pairs."""
    
    def primary_hits(self, queries: Iterable[Tuple[str, str]]) -> List[AlignmentRecord]:
        """First primary hit per query, unaligned queries dropped."""
        hits = []
        for query_id, records in self.align(queries).items():
            primary = [r for r in records if r.is_primary] or records
            if primary:
                hits.append(primary[0])
        return hits


class AssemblerEngine(ABC):
    """Opaque assembler: fill a read table, assemble, collect contigs."""
    
    def __init__(self, config: AssemblerConfig):
        self.config = config
        self._contigs: List[Contig] = []
    
    @abstractmethod
    def fill_read_table(self, records: Iterable[AlignmentRecord]) -> None:
        """Load the reads to assemble."""
    
    @abstractmethod
    def perform_assembly(self) -> None:
        """Run the assembly; results exposed via contigs."""
    
    @property
    def contigs(self) -> List[Contig]:
        return list(self._contigs)
