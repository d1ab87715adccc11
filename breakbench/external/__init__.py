"""
BreakBench v0.1.0

External collaborators: contracts plus adapters to real tools.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from .interfaces import (
    AlignmentRecord,
    Contig,
    AssemblerConfig,
    ReferenceAccessor,
    SequenceAligner,
    AssemblerEngine,
)
from .reference import FastaReference, InMemoryReference
from .assembler import (
    ExternalTool,
    ExternalAssembler,
    assembler_factory,
    parse_contigs,
    DEFAULT_ASSEMBLER_COMMAND,
)

__all__ = [
    'AlignmentRecord',
    'Contig',
    'AssemblerConfig',
    'ReferenceAccessor',
    'SequenceAligner',
    'AssemblerEngine',
    'FastaReference',
    'InMemoryReference',
    'ExternalTool',
    'ExternalAssembler',
    'assembler_factory',
    'parse_contigs',
    'DEFAULT_ASSEMBLER_COMMAND',
]
