"""
BreakBench v0.1.0

minimap2 (mappy) adapter implementing the SequenceAligner contract.

The index is built in memory over a single local reference sequence,
which is how the benchmark uses it (reads and contigs back onto the
local interval).

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import mappy

from ..exceptions import ExternalToolError
from ..utils.sequence_utils import reverse_complement
from .interfaces import AlignmentRecord, SequenceAligner

logger = logging.getLogger(__name__)


class MappyAligner(SequenceAligner):
    """
    Align queries against one reference sequence with mappy.
    
    Args:
        reference_sequence: Bases to index
        reference_name: Name reported in alignment records
        preset: minimap2 preset ('sr' for short reads)
    """
    
    def __init__(self, reference_sequence: str, reference_name: str = 'local_ref',
                 preset: Optional[str] = 'sr'):
        self.reference_name = reference_name
        self.reference_length = len(reference_sequence)
        self._aligner = mappy.Aligner(seq=reference_sequence, preset=preset)
        if not self._aligner:
            raise ExternalToolError(f"Failed to build minimap2 index for {reference_name}")
        logger.debug(f"Built mappy index over {reference_name} ({self.reference_length:,} bp)")
    
    def align(self, queries: Iterable[Tuple[str, str]]) -> Dict[str, List[AlignmentRecord]]:
        results: Dict[str, List[AlignmentRecord]] = {}
        for query_id, sequence in queries:
            records = []
            for hit in self._aligner.map(sequence):
                records.append(self._to_record(query_id, sequence, hit))
            results[query_id] = records
        return results
    
    def _to_record(self, query_id: str, sequence: str, hit) -> AlignmentRecord:
        strand = '+' if hit.strand >= 0 else '-'
        aligned_seq = sequence if strand == '+' else reverse_complement(sequence)
        
        # mappy reports clipping through q_st/q_en, in forward query coordinates
        left_clip, right_clip = hit.q_st, len(sequence) - hit.q_en
        if strand == '-':
            left_clip, right_clip = right_clip, left_clip
        cigar = hit.cigar_str
        if left_clip:
            cigar = f"{left_clip}S{cigar}"
        if right_clip:
            cigar = f"{cigar}{right_clip}S"
        
        return AlignmentRecord(
            query_id=query_id,
            reference_id=self.reference_name,
            reference_start=hit.r_st,
            reference_end=hit.r_en,
            strand=strand,
            mapq=hit.mapq,
            cigar=cigar,
            query_sequence=aligned_seq,
            is_primary=bool(hit.is_primary),
        )
