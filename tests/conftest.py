#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
BreakBench v0.1.0

Pytest configuration and shared fixtures.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import pytest
from pathlib import Path
import tempfile
import shutil

import numpy as np

from breakbench.config.context import SimulationContext
from breakbench.external.interfaces import AlignmentRecord, AssemblerEngine, Contig, SequenceAligner
from breakbench.external.reference import InMemoryReference
from breakbench.utils.intervals import ReferenceInterval, merge_intervals
from breakbench.utils.sequence_utils import random_bases, reverse_complement


class SeedAligner(SequenceAligner):
    """
    Test aligner: looks up a few exact 16-mer seeds of the query in a
    unique-by-construction random reference and reports an ungapped hit.
    """

    SEED = 16

    def __init__(self, reference: str, reference_name: str = 'local_ref'):
        self.reference = reference
        self.reference_name = reference_name
        self.index = {}
        for i in range(len(reference) - self.SEED + 1):
            self.index.setdefault(reference[i:i + self.SEED], i)

    def _locate(self, sequence):
        for offset in range(0, max(1, len(sequence) - self.SEED + 1), 10):
            pos = self.index.get(sequence[offset:offset + self.SEED])
            if pos is not None:
                return max(0, pos - offset)
        return None

    def align(self, queries):
        results = {}
        for query_id, sequence in queries:
            records = []
            for strand, seq in (('+', sequence), ('-', reverse_complement(sequence))):
                start = self._locate(seq)
                if start is not None:
                    end = min(len(self.reference), start + len(seq))
                    records.append(AlignmentRecord(
                        query_id, self.reference_name, start, end, strand,
                        cigar=f"{len(seq)}M", query_sequence=seq,
                    ))
                    break
            results[query_id] = records
        return results


class TilingAssembler(AssemblerEngine):
    """Test assembler: one contig per merged run of aligned reads, copied from the reference."""

    def __init__(self, config, reference: str):
        super().__init__(config)
        self.reference = reference
        self.records = []

    def fill_read_table(self, records):
        self.records = list(records)

    def perform_assembly(self):
        merged = merge_intervals(r.interval for r in self.records)
        self._contigs = [
            Contig(f"{self.config.identifier}_c{i}", self.reference[start:end])
            for i, (start, end) in enumerate(merged)
            if end - start >= self.config.min_overlap
        ]


@pytest.fixture
def temp_output_dir():
    """Create temporary output directory for tests."""
    temp_dir = tempfile.mkdtemp(prefix="breakbench_test_")
    yield Path(temp_dir)
    # Cleanup after test
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def local_sequence():
    """Random 9,280 bp sequence (the size of the default benchmark interval)."""
    return random_bases(9280, np.random.default_rng(2024))


@pytest.fixture
def reference(local_sequence):
    """In-memory reference holding local_sequence as chr17."""
    return InMemoryReference({'chr17': local_sequence})


@pytest.fixture
def interval(local_sequence):
    return ReferenceInterval('chr17', 0, len(local_sequence))


@pytest.fixture
def seed_aligner(local_sequence):
    return SeedAligner(local_sequence)


@pytest.fixture
def tiling_assembler_factory(local_sequence):
    def build(config):
        return TilingAssembler(config, local_sequence)
    return build


@pytest.fixture
def small_context(temp_output_dir):
    """Single-trial context writing into the temporary directory."""
    return SimulationContext(
        seed=42,
        read_length=101,
        coverages=(20.0,),
        snv_rates=(0.01,),
        ins_rates=(0.05,),
        del_rates=(0.05,),
        correction_modes=(True,),
        num_runs=1,
        output_dir=temp_output_dir,
        write_artifacts=False,
    )

# BreakBench v0.1.0
# Any usage is subject to this software's license.
