"""
BreakBench v0.1.0

Sequence utility functions for BreakBench.

Provides common sequence manipulation helpers shared by the simulators
and the k-mer corrector.
"""

from typing import List

import numpy as np

BASES = ('A', 'C', 'G', 'T')

_COMPLEMENT = str.maketrans('ACGTNacgtn', 'TGCANtgcan')


def extract_kmers(sequence: str, k: int) -> List[str]:
    """
    Extract all k-mers from a sequence.
    
    Args:
        sequence: DNA sequence string
        k: K-mer size
        
    Returns:
        List of k-mer strings
        
    Example:
        >>> extract_kmers("ATCGATCG", 3)
        ['ATC', 'TCG', 'CGA', 'GAT', 'ATC', 'TCG']
    """
    if k <= 0 or k > len(sequence):
        return []
    
    sequence = sequence.upper()
    return [sequence[i:i + k] for i in range(len(sequence) - k + 1)]


def reverse_complement(sequence: str) -> str:
    """
    Generate reverse complement of DNA sequence.
    
    Example:
        >>> reverse_complement("ATCG")
        'CGAT'
    """
    return sequence.translate(_COMPLEMENT)[::-1]


def substitute_base(base: str, rng: np.random.Generator) -> str:
    """Return one of the three other bases, chosen uniformly."""
    alternatives = [b for b in BASES if b != base.upper()]
    if len(alternatives) == 4:
        # ambiguous input base (N): any base is a substitution
        return BASES[int(rng.integers(4))]
    return alternatives[int(rng.integers(3))]


def random_bases(length: int, rng: np.random.Generator) -> str:
    """Uniform random DNA of the given length."""
    if length <= 0:
        return ''
    return ''.join(BASES[i] for i in rng.integers(0, 4, size=length))


def has_ambiguous_bases(sequence: str) -> bool:
    """True if the sequence contains an N."""
    return 'N' in sequence or 'n' in sequence


__all__ = [
    'BASES',
    'extract_kmers',
    'reverse_complement',
    'substitute_base',
    'random_bases',
    'has_ambiguous_bases',
]
