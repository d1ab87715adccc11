"""
BreakBench v0.1.0

K-mer consensus read correction.
"""

from .kmer_corrector import CorrectionResult, CorrectionStats, KmerSpectrum, KmerCorrector

__all__ = [
    'CorrectionResult',
    'CorrectionStats',
    'KmerSpectrum',
    'KmerCorrector',
]
