"""
BreakBench v0.1.0

Shared utilities.
"""

from .sequence_utils import (
    BASES,
    extract_kmers,
    reverse_complement,
    substitute_base,
    random_bases,
    has_ambiguous_bases,
)

__all__ = [
    'BASES',
    'extract_kmers',
    'reverse_complement',
    'substitute_base',
    'random_bases',
    'has_ambiguous_bases',
]
