"""
BreakBench v0.1.0

Reference accessors: indexed FASTA (pysam) and in-memory sequences.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import logging
from pathlib import Path
from typing import Dict, Union

import pysam

from ..exceptions import ConfigurationError
from .interfaces import ReferenceAccessor

logger = logging.getLogger(__name__)


class FastaReference(ReferenceAccessor):
    """
    faidx-indexed FASTA reference.
    
    The index (.fai) is created by pysam on first open if missing.
    """
    
    def __init__(self, fasta_path: Union[str, Path]):
        self.fasta_path = Path(fasta_path)
        if not self.fasta_path.exists():
            raise ConfigurationError(f"Reference genome not found: {self.fasta_path}")
        logger.info(f"Loading reference genome: {self.fasta_path}")
        self._fasta = pysam.FastaFile(str(self.fasta_path))
    
    @property
    def references(self):
        return self._fasta.references
    
    def fetch(self, chrom: str, start: int, end: int) -> str:
        if chrom not in self._fasta.references:
            raise ConfigurationError(f"Chromosome '{chrom}' not in reference {self.fasta_path}")
        return self._fasta.fetch(chrom, start, end).upper()
    
    def close(self):
        self._fasta.close()
    
    def __enter__(self):
        return self
    
    def __exit__(self, *exc):
        self.close()


class InMemoryReference(ReferenceAccessor):
    """Reference backed by a {chrom: sequence} dictionary."""
    
    def __init__(self, sequences: Dict[str, str]):
        self._sequences = {name: seq.upper() for name, seq in sequences.items()}
    
    def fetch(self, chrom: str, start: int, end: int) -> str:
        if chrom not in self._sequences:
            raise ConfigurationError(f"Chromosome '{chrom}' not in reference")
        return self._sequences[chrom][start:end]
