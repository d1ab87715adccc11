#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
BreakBench v0.1.0

Tests for the sweep enumeration and the assembly benchmark driver.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import dataclasses

import pytest

from breakbench.benchmark.driver import (
    METRICS_HEADER,
    BenchmarkDriver,
    CoverageMetric,
    contig_coverage,
)
from breakbench.benchmark.sweep import build_sweep, first_interesting_cell
from breakbench.exceptions import ConfigurationError
from breakbench.external.interfaces import AlignmentRecord, AssemblerEngine
from breakbench.utils.intervals import merge_intervals, widest_interval


class EmptyAssembler(AssemblerEngine):
    """Assembler that never produces contigs."""

    def fill_read_table(self, records):
        pass

    def perform_assembly(self):
        self._contigs = []


def record(start, end):
    return AlignmentRecord("q", "local_ref", start, end)


class TestIntervals:
    """Test interval merging and coverage scoring."""

    def test_merge_overlapping(self):
        """Overlapping and touching intervals collapse."""
        assert merge_intervals([(5, 10), (0, 6), (10, 12), (20, 30)]) == [(0, 12), (20, 30)]

    def test_widest(self):
        """Widest interval width, 0 when empty."""
        assert widest_interval([(0, 12), (20, 30)]) == 12
        assert widest_interval([]) == 0

    def test_contig_coverage(self):
        """Fraction of the reference covered by the widest merged interval."""
        merged, fraction = contig_coverage([record(0, 50), record(40, 100), record(150, 160)], 200)
        assert merged == 2
        assert fraction == 0.5

    def test_contig_coverage_no_hits(self):
        """No contig hits score zero."""
        assert contig_coverage([], 1000) == (0, 0.0)


class TestSweep:
    """Test sweep-cell enumeration."""

    def test_cartesian_product_order(self, small_context):
        """Cells enumerate trial, correction, coverage, SNV, deletion, insertion."""
        ctx = dataclasses.replace(
            small_context, num_runs=2, correction_modes=(False, True),
            coverages=(10.0, 20.0), snv_rates=(0.0, 0.01), del_rates=(0.05,), ins_rates=(0.0, 0.05),
        )
        cells = build_sweep(ctx)

        assert len(cells) == 2 * 2 * 2 * 2 * 1 * 2
        assert [c.index for c in cells] == list(range(len(cells)))
        assert (cells[0].trial, cells[0].corrected, cells[0].coverage) == (0, False, 10.0)
        assert (cells[1].insertion_rate, cells[2].snv_rate) == (0.05, 0.01)
        assert cells[len(cells) // 2].trial == 1

    def test_interesting_cell(self, small_context):
        """The first corrected cell at coverage 20 / SNV 0.01 is the artifact cell."""
        ctx = dataclasses.replace(small_context, num_runs=2, correction_modes=(False, True),
                                  coverages=(10.0, 20.0))
        cell = first_interesting_cell(build_sweep(ctx), ctx)
        assert cell.corrected and cell.coverage == 20.0 and cell.trial == 0

    def test_cell_generators_independent_of_order(self, small_context):
        """Each cell's generator depends only on (seed, cell index)."""
        cells = build_sweep(dataclasses.replace(small_context, num_runs=3))
        a = [cells[2].rng(42).random() for _ in range(2)]
        b = [cells[2].rng(42).random(), cells[0].rng(42).random()]
        assert a[0] == b[0]
        assert a[0] != b[1]


class TestCoverageMetric:
    """Test metrics row formatting."""

    def test_row_format(self):
        """Numbers use %g formatting and the correction flag is 0/1."""
        metric = CoverageMetric(20.0, 1838, 3, 2, 0.5, True, 0.01)
        assert metric.to_row() == "20\t1838\t3\t2\t0.5\t1\t0.01"

    def test_header(self):
        assert METRICS_HEADER.split('\t') == [
            'coverage', 'numreads', 'numcontigs', 'numfinal', 'contig_coverage', 'kmer_corr', 'error_rate',
        ]


class TestBenchmarkDriver:
    """Test end-to-end sweeps with in-memory collaborators."""

    def test_example_scenario(self, small_context, local_sequence, seed_aligner, tiling_assembler_factory):
        """Coverage 20, SNV 0.01, ins/del 0.05, corrected: row prefix and bounds."""
        driver = BenchmarkDriver(small_context, local_sequence, seed_aligner, tiling_assembler_factory)
        (metric,) = driver.run()

        fields = metric.to_row().split('\t')
        assert fields[0] == '20'
        assert fields[5] == '1'
        assert fields[6] == '0.01'
        assert metric.num_reads > 0 and metric.num_contigs >= 1 and metric.num_merged >= 1
        assert 0.0 <= metric.contig_coverage <= 1.0

    def test_high_coverage_reconstructs_interval(self, small_context, local_sequence,
                                                 seed_aligner, tiling_assembler_factory):
        """Error-free reads at high coverage tile the whole interval."""
        ctx = dataclasses.replace(small_context, coverages=(40.0,), snv_rates=(0.0,),
                                  ins_rates=(0.0,), del_rates=(0.0,), correction_modes=(False,))
        (metric,) = BenchmarkDriver(ctx, local_sequence, seed_aligner, tiling_assembler_factory).run()
        assert metric.num_merged == 1
        assert metric.contig_coverage > 0.95

    def test_zero_contigs(self, small_context, local_sequence, seed_aligner):
        """An assembler with no output gives zero-valued metrics, not an error."""
        driver = BenchmarkDriver(small_context, local_sequence, seed_aligner, EmptyAssembler)
        (metric,) = driver.run()
        assert (metric.num_contigs, metric.num_merged, metric.contig_coverage) == (0, 0, 0.0)

    def test_determinism(self, small_context, local_sequence, seed_aligner,
                         tiling_assembler_factory, temp_output_dir):
        """Same seed gives a byte-identical metrics table."""
        ctx = dataclasses.replace(small_context, num_runs=2, correction_modes=(False, True))
        paths = [temp_output_dir / "a.tsv", temp_output_dir / "b.tsv"]
        for path in paths:
            BenchmarkDriver(ctx, local_sequence, seed_aligner, tiling_assembler_factory).run(metrics_path=path)

        text = paths[0].read_text()
        assert text == paths[1].read_text()
        assert text.splitlines()[0] == METRICS_HEADER
        assert len(text.splitlines()) == 1 + 4

    def test_parallel_matches_sequential(self, small_context, local_sequence,
                                         seed_aligner, tiling_assembler_factory):
        """A thread pool gives the same rows in the same order."""
        ctx = dataclasses.replace(small_context, num_runs=2, coverages=(5.0, 20.0),
                                  correction_modes=(False, True))
        sequential = BenchmarkDriver(ctx, local_sequence, seed_aligner, tiling_assembler_factory).run()
        parallel = BenchmarkDriver(dataclasses.replace(ctx, workers=4), local_sequence,
                                   seed_aligner, tiling_assembler_factory).run()
        assert [m.to_row() for m in parallel] == [m.to_row() for m in sequential]

    def test_artifacts_written(self, small_context, local_sequence, seed_aligner,
                               tiling_assembler_factory, temp_output_dir):
        """The interesting cell writes BAM and FASTA artifacts."""
        pytest.importorskip("pysam")
        ctx = dataclasses.replace(small_context, write_artifacts=True)
        BenchmarkDriver(ctx, local_sequence, seed_aligner, tiling_assembler_factory).run()

        for name in ("local_ref.fa", "contigs_to_ref.bam", "paired_end1.fa", "paired_end2.fa",
                     "reads_to_ref_20.bam", "k.bam"):
            assert (temp_output_dir / name).exists(), name
        headers = [l for l in (temp_output_dir / "paired_end1.fa").read_text().splitlines() if l.startswith('>')]
        assert headers[0] == ">r0"

    def test_read_length_too_long(self, small_context):
        """A local reference shorter than half a read is rejected."""
        with pytest.raises(ConfigurationError):
            BenchmarkDriver(small_context, "ACGT" * 10, None, EmptyAssembler)

# BreakBench v0.1.0
# Any usage is subject to this software's license.
