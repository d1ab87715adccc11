"""
BreakBench v0.1.0

Simulation: genome mutation, read sampling and read partitioning.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from .genome_mutator import (
    EditType,
    BreakpointRecord,
    IndelRecord,
    MutatedGenome,
    GenomicBreakpointInjector,
    replay_ledger,
)
from .read_sampler import (
    Allele,
    SampledRead,
    ReadPair,
    SamplingResult,
    ReadSampler,
)
from .read_splitter import RegionFractions, fractionate_bam, partition_read_names, split_bam

__all__ = [
    'EditType',
    'BreakpointRecord',
    'IndelRecord',
    'MutatedGenome',
    'GenomicBreakpointInjector',
    'replay_ledger',
    'Allele',
    'SampledRead',
    'ReadPair',
    'SamplingResult',
    'ReadSampler',
    'partition_read_names',
    'split_bam',
    'RegionFractions',
    'fractionate_bam',
]
